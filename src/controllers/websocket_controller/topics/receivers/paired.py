from tools.logger import *
from tools.contract_validation import BASE_MESSAGE, BooleanType
from use_cases.session.events import PAIRED
from . import topic, validate_message

NAME = PAIRED

MESSAGE_CONTRACT = {
    **BASE_MESSAGE,
    "you_are_offerer": BooleanType,
}


@topic(NAME)
def init(channel, session):
    """
    Handle 'Paired': a partner was found and our negotiation role assigned.
    """

    @channel.on(NAME)
    @validate_message(MESSAGE_CONTRACT, NAME)
    async def callback(message):
        role = "offerer" if message["you_are_offerer"] else "answerer"
        log_info(f"Paired with a stranger, acting as {role}")
        session.post(NAME, you_are_offerer=message["you_are_offerer"])
