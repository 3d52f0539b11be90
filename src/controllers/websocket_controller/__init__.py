from .topics import initialize_all
from .signaling_channel import SignalingChannel
from tools.backoff import ReconnectPolicy
from tools.ssl import get_http_session
from tools.logger import *
from typing import Optional


def init(channel, session):
    """
    Initialize the Websocket controller by registering necessary topics.
    """
    log_info("Initializing Websocket Controller...")

    initialize_all(channel, session)

    log_info("Websocket Controller initialized successfully.")


def get_channel(
    server_url: str,
    policy: Optional[ReconnectPolicy] = None,
    ca_file: Optional[str] = None,
) -> SignalingChannel:
    return SignalingChannel(
        server_url,
        policy=policy,
        http_session_factory=lambda: get_http_session(ca_file),
    )
