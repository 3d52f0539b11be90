from tools.logger import *
from tools.contract_validation import BASE_MESSAGE
from use_cases.session.events import PEER_LEFT
from . import topic, validate_message

NAME = PEER_LEFT

MESSAGE_CONTRACT = {**BASE_MESSAGE}


@topic(NAME)
def init(channel, session):
    """
    Handle 'PeerLeft': the partner skipped or disconnected.
    """

    @channel.on(NAME)
    @validate_message(MESSAGE_CONTRACT, NAME)
    async def callback(message):
        log_info("Stranger left the conversation")
        session.post(NAME)
