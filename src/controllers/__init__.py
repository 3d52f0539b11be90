from .websocket_controller import (
    init as init_websocket_controller,
    get_channel as get_signaling_channel,
)
from . import console_controller
from tools.logger import *
from tools.backoff import ReconnectPolicy
from use_cases.media import acquire_local_media
from use_cases.media.sink import RemoteMediaSink
from typing import List, Optional
import asyncio


async def main_session_task(
    server_url: str,
    media_options: Optional[dict] = None,
    ice_servers: Optional[List[str]] = None,
    policy: Optional[ReconnectPolicy] = None,
    ca_file: Optional[str] = None,
    record_to: Optional[str] = None,
    interactive: bool = True,
):
    """
    Run one chat session until the user stops it or the server is gone.

    Raises:
        MediaAcquisitionError: camera or microphone unavailable
        SignalingUnavailableError: reconnection attempts exhausted
    """
    from use_cases.session import SessionOrchestrator, STATUS_TEXT

    media = acquire_local_media(**(media_options or {}))
    log_info("Local media ready")

    channel = get_signaling_channel(server_url, policy=policy, ca_file=ca_file)
    session = SessionOrchestrator(channel, media, ice_servers=ice_servers)
    init_websocket_controller(channel, session)

    sink = RemoteMediaSink(record_to)
    session.subscribe(lambda status, remote_media: log_info(f"[{status.value}] {STATUS_TEXT[status]}"))
    session.subscribe(sink.update)

    session.start()
    if interactive:
        console_controller.init(session)

    try:
        await session.wait_stopped()
    except asyncio.CancelledError:
        log_warning("Interrupted, ending session")
        session.stop()
        await session.wait_stopped()
        raise
    finally:
        if interactive:
            console_controller.stop()
        await sink.stop()

    if session.error is not None:
        raise session.error
