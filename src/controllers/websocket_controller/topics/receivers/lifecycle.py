from tools.logger import *
from use_cases.session.events import CHANNEL_GIVE_UP
from . import topic


@topic("lifecycle")
def init(channel, session):
    """
    Relay channel lifecycle events to the session.

    Only 'give_up' changes session state; the others are logged.
    """

    @channel.on("connect")
    async def on_connect():
        log_info("Connection established with the signaling server.")

    @channel.on("disconnect")
    async def on_disconnect():
        log_info("Connection to the signaling server ended.")

    @channel.on("reconnecting")
    async def on_reconnecting(attempt, delay):
        log_info(f"Reconnecting to the signaling server (attempt {attempt}, {delay:.1f}s)")

    @channel.on("give_up")
    async def on_give_up():
        log_error("Gave up reconnecting to the signaling server.")
        session.post(CHANNEL_GIVE_UP)
