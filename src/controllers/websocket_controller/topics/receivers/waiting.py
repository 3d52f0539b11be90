from tools.logger import *
from tools.contract_validation import BASE_MESSAGE
from use_cases.session.events import WAITING
from . import topic, validate_message

NAME = WAITING

MESSAGE_CONTRACT = {**BASE_MESSAGE}


@topic(NAME)
def init(channel, session):
    """
    Handle 'Waiting': the server put us in the matchmaking queue.
    """

    @channel.on(NAME)
    @validate_message(MESSAGE_CONTRACT, NAME)
    async def callback(message):
        session.post(NAME)
