"""
Peer Link

One RTCPeerConnection for one pairing. Performs the offer/answer handshake
for the role the server assigned and applies remote ICE candidates, buffering
those that arrive before the remote description is committed.

A link is never reused: after close() or link loss a new pairing builds a new
PeerLink.
"""

from aiortc import RTCPeerConnection, RTCSessionDescription
from tools.logger import log_info, log_debug, log_error, log_warning
from tools.errors import NegotiationError
from use_cases.media import RemoteMedia
from .ice import build_configuration, candidate_from_payload, candidate_to_payload, is_end_of_candidates
from typing import Callable, Iterable, List, Optional
from enum import Enum


class NegotiationRole(Enum):
    """Negotiation role assigned by the server for one pairing."""
    OFFERER = "offerer"
    ANSWERER = "answerer"

    @classmethod
    def from_flag(cls, you_are_offerer: bool) -> "NegotiationRole":
        return cls.OFFERER if you_are_offerer else cls.ANSWERER


class LinkState(Enum):
    """Peer link states."""
    NEW = "new"                    # Built, no description exchanged
    NEGOTIATING = "negotiating"    # Local or remote description in progress
    CONNECTED = "connected"        # Transport up
    DISCONNECTED = "disconnected"  # Transport lost
    FAILED = "failed"              # ICE/DTLS gave up
    CLOSED = "closed"              # Closed locally or by the stack


# Connection states that all mean the link is lost
LOST_STATES = ("disconnected", "failed", "closed")


class PeerLink:
    """
    Wraps one RTCPeerConnection for a single pairing.

    Callbacks (all optional, called with the link as first argument):
        on_remote_media(link, media)       remote media is flowing
        on_local_candidate(link, payload)  wire-ready local candidate
        on_connection_state(link, state)   any connection state change
    """

    def __init__(
        self,
        role: NegotiationRole,
        ice_servers: Optional[Iterable[str]] = None,
        pc_factory: Optional[Callable[[], RTCPeerConnection]] = None,
    ):
        self.role = role
        if pc_factory is None:
            configuration = build_configuration(ice_servers)
            pc_factory = lambda: RTCPeerConnection(configuration=configuration)
        self._pc = pc_factory()
        self._state = LinkState.NEW
        self._closed = False
        self._offer_created = False
        self._has_remote_description = False
        self._pending_candidates: List[dict] = []
        self._remote_media = RemoteMedia()
        self._media_announced = False

        self.on_remote_media: Optional[Callable] = None
        self.on_local_candidate: Optional[Callable] = None
        self.on_connection_state: Optional[Callable] = None

        self._setup_handlers()

    def _setup_handlers(self):
        """Set up peer connection event handlers."""

        @self._pc.on("track")
        def on_track(track):
            if self._closed:
                return
            log_info(f"Remote {track.kind} track received")
            self._remote_media.add_track(track)
            self._maybe_announce_media()

        @self._pc.on("icecandidate")
        def on_ice_candidate(candidate):
            if self._closed or candidate is None:
                return
            if self.on_local_candidate:
                self.on_local_candidate(self, candidate_to_payload(candidate))

        @self._pc.on("connectionstatechange")
        def on_connection_state_change():
            if self._closed:
                return
            state = self._pc.connectionState
            log_info(f"Peer connection state: {state}")

            if state == "connected":
                self._state = LinkState.CONNECTED
                self._maybe_announce_media()
            elif state in LOST_STATES:
                self._state = LinkState(state)

            if self.on_connection_state:
                self.on_connection_state(self, state)

    def _maybe_announce_media(self):
        # Tracks are signalled with the remote description; media only flows
        # once the transport is connected.
        if self._media_announced or self._state != LinkState.CONNECTED:
            return
        if not self._remote_media.tracks:
            return
        self._media_announced = True
        if self.on_remote_media:
            self.on_remote_media(self, self._remote_media)

    # ------------------------------------------------------------------
    # Properties
    # ------------------------------------------------------------------

    @property
    def state(self) -> LinkState:
        return self._state

    @property
    def is_closed(self) -> bool:
        return self._closed

    @property
    def has_remote_description(self) -> bool:
        return self._has_remote_description

    @property
    def pending_candidates(self) -> List[dict]:
        """Snapshot of candidates waiting for the remote description."""
        return list(self._pending_candidates)

    @property
    def remote_media(self) -> RemoteMedia:
        return self._remote_media

    # ------------------------------------------------------------------
    # Negotiation
    # ------------------------------------------------------------------

    def attach_local_media(self, media):
        """
        Add every local track to the connection. Must run before negotiation.

        A track that cannot be added is logged and skipped; the link still
        works, it just sends no media for that track.
        """
        for track in media.tracks():
            try:
                self._pc.addTrack(track)
                log_debug(f"Attached local {track.kind} track")
            except Exception as e:
                log_error(f"Failed to attach local {getattr(track, 'kind', '?')} track: {e}")

    def _ensure_open(self):
        if self._closed:
            raise NegotiationError("Peer link is closed")

    async def create_offer(self) -> str:
        """
        Offerer: create and commit the local offer.

        Returns:
            Offer SDP, including the gathered candidates
        """
        self._ensure_open()
        if self.role is not NegotiationRole.OFFERER:
            raise NegotiationError("Only the offerer creates an offer")
        if self._offer_created:
            raise NegotiationError("Offer already created; renegotiation is not supported")
        self._offer_created = True
        self._state = LinkState.NEGOTIATING

        try:
            offer = await self._pc.createOffer()
            await self._pc.setLocalDescription(offer)
        except Exception as e:
            raise NegotiationError(f"Failed to create offer: {e}") from e

        self._ensure_open()
        log_debug("Created local offer")
        return self._pc.localDescription.sdp

    async def handle_offer(self, sdp: str) -> str:
        """
        Answerer: commit the remote offer, then create and commit the answer.

        Returns:
            Answer SDP
        """
        self._ensure_open()
        if self.role is not NegotiationRole.ANSWERER:
            raise NegotiationError("Only the answerer handles an offer")
        self._state = LinkState.NEGOTIATING

        await self._set_remote_description(sdp, "offer")

        try:
            answer = await self._pc.createAnswer()
            await self._pc.setLocalDescription(answer)
        except Exception as e:
            raise NegotiationError(f"Failed to create answer: {e}") from e

        self._ensure_open()
        log_debug("Created local answer")
        return self._pc.localDescription.sdp

    async def handle_answer(self, sdp: str):
        """Offerer: commit the remote answer."""
        self._ensure_open()
        if self.role is not NegotiationRole.OFFERER:
            raise NegotiationError("Only the offerer handles an answer")
        await self._set_remote_description(sdp, "answer")

    async def _set_remote_description(self, sdp: str, sdp_type: str):
        if self._has_remote_description:
            raise NegotiationError("Remote description already set; renegotiation is not supported")

        try:
            await self._pc.setRemoteDescription(RTCSessionDescription(sdp=sdp, type=sdp_type))
        except Exception as e:
            raise NegotiationError(f"Failed to set remote {sdp_type}: {e}") from e

        self._ensure_open()
        self._has_remote_description = True
        log_debug(f"Set remote {sdp_type}")
        await self._drain_buffer()

    # ------------------------------------------------------------------
    # ICE candidates
    # ------------------------------------------------------------------

    async def add_candidate(self, payload: dict):
        """
        Apply a relayed candidate, or buffer it until the remote description
        is committed.

        Args:
            payload: dict with candidate, sdp_mid and sdp_m_line_index
        """
        if self._closed:
            log_debug("Ignoring ICE candidate for closed link")
            return

        if is_end_of_candidates(payload):
            log_debug("End of remote ICE candidates")
            return

        if not self._has_remote_description:
            self._pending_candidates.append(payload)
            log_debug(f"Buffered ICE candidate ({len(self._pending_candidates)} pending)")
            return

        await self._apply_candidate(payload)

    async def _drain_buffer(self):
        pending, self._pending_candidates = self._pending_candidates, []
        if pending:
            log_debug(f"Applying {len(pending)} buffered ICE candidates")
        for payload in pending:
            if self._closed:
                return
            await self._apply_candidate(payload)

    async def _apply_candidate(self, payload: dict) -> bool:
        try:
            candidate = candidate_from_payload(payload)
            await self._pc.addIceCandidate(candidate)
        except Exception as e:
            log_warning(f"Skipping ICE candidate: {e}")
            return False

        log_debug(f"Added ICE candidate: {candidate.type} {candidate.ip}:{candidate.port}")
        return True

    # ------------------------------------------------------------------
    # Teardown
    # ------------------------------------------------------------------

    async def close(self):
        """Release the connection. Safe to call more than once."""
        if self._closed:
            return

        # Flip first so callbacks fired by pc.close() are ignored
        self._closed = True
        self._state = LinkState.CLOSED
        self._pending_candidates.clear()
        self.on_remote_media = None
        self.on_local_candidate = None
        self.on_connection_state = None

        try:
            await self._pc.close()
            log_info("Peer link closed")
        except Exception as e:
            log_error(f"Error closing peer connection: {e}")
