"""
Receivers for relayed session descriptions ('Offer' and 'Answer').

Both carry a single SDP string and differ only in which side sent them.
"""

from tools.logger import *
from tools.contract_validation import BASE_MESSAGE, StringType
from use_cases.session.events import ANSWER, OFFER
from . import topic, validate_message

MESSAGE_CONTRACT = {
    **BASE_MESSAGE,
    "sdp": StringType,
}


def _register(channel, session, name):
    @channel.on(name)
    @validate_message(MESSAGE_CONTRACT, name)
    async def callback(message):
        log_debug(f"Received {name} ({len(message['sdp'])} bytes of SDP)")
        session.post(name, sdp=message["sdp"])


@topic(OFFER)
def init_offer(channel, session):
    _register(channel, session, OFFER)


@topic(ANSWER)
def init_answer(channel, session):
    _register(channel, session, ANSWER)
