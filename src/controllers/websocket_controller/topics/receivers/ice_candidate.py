"""
ICE Candidate Receiver

Receives connectivity candidates relayed from the partner. The payload is
forwarded untouched; parsing into an RTCIceCandidate happens in the peer link.
"""

from tools.logger import *
from tools.contract_validation import BASE_MESSAGE, IntegerType, StringType
from use_cases.session.events import ICE_CANDIDATE
from . import topic, validate_message

NAME = ICE_CANDIDATE

MESSAGE_CONTRACT = {
    **BASE_MESSAGE,
    "candidate": StringType,  # Empty string for end-of-candidates
    "sdp_mid": StringType,
    "sdp_m_line_index": IntegerType,
}


@topic(NAME)
def init(channel, session):

    @channel.on(NAME)
    @validate_message(MESSAGE_CONTRACT, NAME)
    async def callback(message):
        session.post(
            NAME,
            candidate=message["candidate"],
            sdp_mid=message["sdp_mid"],
            sdp_m_line_index=message["sdp_m_line_index"],
        )
