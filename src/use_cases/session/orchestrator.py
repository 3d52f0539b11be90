"""
Session Orchestrator

Top-level state machine for one chat session. Signaling messages, peer link
callbacks and user intents are all posted to one asyncio.Queue and handled
one at a time by a single worker task, in the order they were posted.

    idle -> waiting -> connected -> peer_left -> waiting -> ... -> stopped

stopped is terminal: once reached, further events are dropped.
"""

from controllers.webrtc_controller import LOST_STATES, NegotiationRole, PeerLink
from controllers.websocket_controller.topics.emitters import (
    emit_answer,
    emit_ice_candidate,
    emit_offer,
    emit_ready,
    emit_report,
    emit_skip,
)
from tools.logger import log_info, log_debug, log_error, log_warning
from tools.errors import NegotiationError, SignalingUnavailableError
from use_cases.media import LocalMedia, RemoteMedia
from . import events
from .events import SessionEvent
from typing import Callable, List, Optional
from enum import Enum
import asyncio


class SessionStatus(Enum):
    """Session states observed by the UI."""
    IDLE = "idle"            # Acquiring local media / opening the channel
    WAITING = "waiting"      # In the matchmaking queue or negotiating
    CONNECTED = "connected"  # Remote media flowing
    PEER_LEFT = "peer_left"  # Partner gone or link lost
    STOPPED = "stopped"      # Ended by the user (terminal)


STATUS_TEXT = {
    SessionStatus.IDLE: "Starting camera…",
    SessionStatus.WAITING: "Finding a stranger…",
    SessionStatus.CONNECTED: "Connected",
    SessionStatus.PEER_LEFT: "Stranger disconnected",
    SessionStatus.STOPPED: "Session ended",
}


class SessionOrchestrator:
    """
    Binds the signaling channel to peer link lifecycle for one session.

    Observers registered with subscribe() are called as
    observer(status, remote_media) after every status or media change.
    """

    def __init__(
        self,
        channel,
        media: LocalMedia,
        link_factory: Optional[Callable[[NegotiationRole], PeerLink]] = None,
        ice_servers: Optional[List[str]] = None,
    ):
        """
        Args:
            channel: SignalingChannel (or anything with open/send/close)
            media: Local media, already acquired
            link_factory: Builds a PeerLink for a role; defaults to PeerLink
            ice_servers: Extra STUN/TURN URLs for the default link factory
        """
        self._channel = channel
        self._media = media
        self._link_factory = link_factory or (lambda role: PeerLink(role, ice_servers=ice_servers))
        self._link: Optional[PeerLink] = None
        self._status = SessionStatus.IDLE
        self._remote_media: Optional[RemoteMedia] = None
        self._queue: asyncio.Queue = asyncio.Queue()
        self._worker: Optional[asyncio.Task] = None
        self._observers: List[Callable] = []
        self.error: Optional[Exception] = None

        self._handlers = {
            events.START: self._on_start,
            events.WAITING: self._on_waiting,
            events.PAIRED: self._on_paired,
            events.OFFER: self._on_offer,
            events.ANSWER: self._on_answer,
            events.ICE_CANDIDATE: self._on_ice_candidate,
            events.PEER_LEFT: self._on_peer_left,
            events.CHANNEL_GIVE_UP: self._on_channel_give_up,
            events.LINK_MEDIA: self._on_link_media,
            events.LINK_CANDIDATE: self._on_link_candidate,
            events.LINK_STATE: self._on_link_state,
            events.SKIP: self._on_skip,
            events.REPORT: self._on_report,
            events.READY: self._on_ready,
            events.STOP: self._on_stop,
        }

    # ------------------------------------------------------------------
    # Observation
    # ------------------------------------------------------------------

    @property
    def status(self) -> SessionStatus:
        return self._status

    @property
    def remote_media(self) -> Optional[RemoteMedia]:
        """Partner media, only while connected."""
        return self._remote_media

    @property
    def link(self) -> Optional[PeerLink]:
        return self._link

    def subscribe(self, observer: Callable):
        self._observers.append(observer)

    def _notify(self):
        for observer in list(self._observers):
            try:
                observer(self._status, self._remote_media)
            except Exception as e:
                log_error(f"Session observer raised: {e}")

    def _set_status(self, status: SessionStatus):
        if status == self._status:
            return
        log_info(f"Session status: {self._status.value} -> {status.value}")
        self._status = status
        self._notify()

    # ------------------------------------------------------------------
    # Event queue
    # ------------------------------------------------------------------

    def post(self, name: str, link: Optional[PeerLink] = None, **payload):
        """Queue an event for the worker. Dropped once the session is stopped."""
        if self._status == SessionStatus.STOPPED:
            log_debug(f"Session stopped, dropping {name}")
            return
        self._queue.put_nowait(SessionEvent(name=name, payload=payload, link=link))

    async def _run(self):
        while True:
            event = await self._queue.get()
            try:
                handler = self._handlers.get(event.name)
                if handler is None:
                    log_warning(f"No handler for session event {event.name}")
                else:
                    await handler(event)
            except Exception as e:
                log_error(f"Error handling {event.name}: {e}")
            finally:
                self._queue.task_done()

            if self._status == SessionStatus.STOPPED:
                break

        # Discard whatever was queued behind the stop
        while not self._queue.empty():
            self._queue.get_nowait()
            self._queue.task_done()

    async def drain(self):
        """Wait until every event posted so far has been handled."""
        await self._queue.join()

    async def wait_stopped(self):
        # Shielded so cancelling the waiter does not kill the worker
        if self._worker is not None:
            await asyncio.shield(self._worker)

    # ------------------------------------------------------------------
    # User intents
    # ------------------------------------------------------------------

    def start(self):
        """Begin the session: local media is ready, open the channel."""
        if self._worker is not None:
            log_warning("Session already started")
            return
        self._worker = asyncio.create_task(self._run())
        self.post(events.START)

    def skip(self):
        self.post(events.SKIP)

    def report(self):
        self.post(events.REPORT)

    def ready(self):
        self.post(events.READY)

    def stop(self):
        self.post(events.STOP)

    # ------------------------------------------------------------------
    # Link management
    # ------------------------------------------------------------------

    def _build_link(self, role: NegotiationRole) -> PeerLink:
        link = self._link_factory(role)
        link.on_remote_media = lambda l, media: self.post(events.LINK_MEDIA, link=l, media=media)
        link.on_local_candidate = lambda l, payload: self.post(events.LINK_CANDIDATE, link=l, candidate=payload)
        link.on_connection_state = lambda l, state: self.post(events.LINK_STATE, link=l, state=state)
        link.attach_local_media(self._media)
        return link

    async def _teardown_link(self):
        link, self._link = self._link, None
        had_media = self._remote_media is not None
        self._remote_media = None
        if link is not None:
            await link.close()
        if had_media:
            self._notify()

    def _is_current(self, link: Optional[PeerLink]) -> bool:
        return link is not None and link is self._link and not link.is_closed

    async def _link_failed(self, link: PeerLink, reason: str):
        if not self._is_current(link):
            return
        log_warning(f"Peer link lost: {reason}")
        await self._teardown_link()
        self._set_status(SessionStatus.PEER_LEFT)

    # ------------------------------------------------------------------
    # Channel events
    # ------------------------------------------------------------------

    async def _on_start(self, event):
        # Handshake runs in the channel's own task; the queue never waits on it
        self._channel.open()

    async def _on_waiting(self, event):
        if self._link is not None:
            log_warning("Server re-queued us while a peer link was active, closing it")
            await self._teardown_link()
        self._set_status(SessionStatus.WAITING)

    async def _on_paired(self, event):
        if self._link is not None:
            log_warning("Paired again while a peer link is active, rebuilding")
            await self._teardown_link()

        role = NegotiationRole.from_flag(event.payload["you_are_offerer"])
        link = self._build_link(role)
        self._link = link
        self._set_status(SessionStatus.WAITING)

        if role is NegotiationRole.OFFERER:
            try:
                sdp = await link.create_offer()
            except NegotiationError as e:
                await self._link_failed(link, str(e))
                return
            if self._is_current(link):
                await emit_offer(self._channel, sdp)

    async def _on_offer(self, event):
        link = self._link
        if link is None:
            log_debug("Dropping Offer, no active peer link")
            return
        if link.role is not NegotiationRole.ANSWERER:
            log_warning("Dropping Offer received while acting as offerer")
            return

        try:
            sdp = await link.handle_offer(event.payload["sdp"])
        except NegotiationError as e:
            await self._link_failed(link, str(e))
            return
        if self._is_current(link):
            await emit_answer(self._channel, sdp)

    async def _on_answer(self, event):
        link = self._link
        if link is None:
            log_debug("Dropping Answer, no active peer link")
            return
        if link.role is not NegotiationRole.OFFERER:
            log_warning("Dropping Answer received while acting as answerer")
            return

        try:
            await link.handle_answer(event.payload["sdp"])
        except NegotiationError as e:
            await self._link_failed(link, str(e))

    async def _on_ice_candidate(self, event):
        link = self._link
        if link is None:
            log_debug("Dropping IceCandidate, no active peer link")
            return
        await link.add_candidate(event.payload)

    async def _on_peer_left(self, event):
        await self._teardown_link()
        self._set_status(SessionStatus.PEER_LEFT)

    async def _on_channel_give_up(self, event):
        self.error = SignalingUnavailableError(
            "Could not reach the pairing server. Check your connection and start again."
        )
        await self._on_stop(event)

    # ------------------------------------------------------------------
    # Link events
    # ------------------------------------------------------------------

    async def _on_link_media(self, event):
        if not self._is_current(event.link):
            log_debug("Ignoring remote media from a stale peer link")
            return
        self._remote_media = event.payload["media"]
        if self._status == SessionStatus.CONNECTED:
            self._notify()
        else:
            self._set_status(SessionStatus.CONNECTED)

    async def _on_link_candidate(self, event):
        if not self._is_current(event.link):
            return
        await emit_ice_candidate(self._channel, event.payload["candidate"])

    async def _on_link_state(self, event):
        state = event.payload["state"]
        if state in LOST_STATES:
            await self._link_failed(event.link, f"connection {state}")

    # ------------------------------------------------------------------
    # Intent handlers
    # ------------------------------------------------------------------

    async def _on_skip(self, event):
        if self._status not in (SessionStatus.WAITING, SessionStatus.CONNECTED, SessionStatus.PEER_LEFT):
            log_warning(f"Cannot skip while {self._status.value}")
            return
        await self._teardown_link()
        self._set_status(SessionStatus.WAITING)
        await emit_skip(self._channel)

    async def _on_report(self, event):
        if self._status != SessionStatus.CONNECTED:
            log_warning(f"Cannot report while {self._status.value}")
            return
        log_info("Reporting stranger and moving on")
        await emit_report(self._channel)
        await self._on_skip(event)

    async def _on_ready(self, event):
        if self._status not in (SessionStatus.WAITING, SessionStatus.PEER_LEFT):
            log_warning(f"Cannot re-queue while {self._status.value}")
            return
        self._set_status(SessionStatus.WAITING)
        await emit_ready(self._channel)

    async def _on_stop(self, event):
        await self._channel.close()
        await self._teardown_link()
        self._media.release()
        self._set_status(SessionStatus.STOPPED)
