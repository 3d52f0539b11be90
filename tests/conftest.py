"""Shared fakes for peer connection, signaling channel and local media."""

import asyncio
from typing import Callable, Dict, List, Optional

import pytest

from controllers.webrtc_controller import PeerLink


VALID_CANDIDATE = "candidate:1 1 udp 2130706431 192.168.1.2 54400 typ host"


def make_candidate(port: int, sdp_mid: str = "0", index: int = 0) -> dict:
    """Wire payload for a host candidate on the given port."""
    return {
        "candidate": f"candidate:{port} 1 udp 2130706431 192.168.1.2 {port} typ host",
        "sdp_mid": sdp_mid,
        "sdp_m_line_index": index,
    }


class FakeDescription:
    def __init__(self, sdp: str, type: str) -> None:
        self.sdp = sdp
        self.type = type


class FakeTrack:
    def __init__(self, kind: str) -> None:
        self.kind = kind
        self.stopped = False

    def stop(self) -> None:
        self.stopped = True


class FakePeerConnection:
    """Records what PeerLink does to an RTCPeerConnection."""

    def __init__(self) -> None:
        self._handlers: Dict[str, Callable] = {}
        self.connectionState = "new"
        self.localDescription: Optional[FakeDescription] = None
        self.remoteDescription: Optional[FakeDescription] = None
        self.added_candidates: List = []
        self.tracks: List = []
        self.closed = False
        self.fail_remote_description = False
        self.fail_candidate_ports: set = set()

    def on(self, event: str, f: Optional[Callable] = None):
        def register(func):
            self._handlers[event] = func
            return func

        if f is None:
            return register
        return register(f)

    def emit(self, event: str, *args) -> None:
        handler = self._handlers.get(event)
        if handler is not None:
            handler(*args)

    def set_connection_state(self, state: str) -> None:
        self.connectionState = state
        self.emit("connectionstatechange")

    def addTrack(self, track) -> None:
        if getattr(track, "broken", False):
            raise RuntimeError("track cannot be sent")
        self.tracks.append(track)

    async def createOffer(self) -> FakeDescription:
        return FakeDescription("v=0 offer", "offer")

    async def createAnswer(self) -> FakeDescription:
        return FakeDescription("v=0 answer", "answer")

    async def setLocalDescription(self, description) -> None:
        await asyncio.sleep(0)
        self.localDescription = FakeDescription(description.sdp + " +candidates", description.type)

    async def setRemoteDescription(self, description) -> None:
        await asyncio.sleep(0)
        if self.fail_remote_description:
            raise ValueError("bad sdp")
        self.remoteDescription = description

    async def addIceCandidate(self, candidate) -> None:
        if self.remoteDescription is None:
            raise RuntimeError("addIceCandidate before setRemoteDescription")
        if candidate.port in self.fail_candidate_ports:
            raise ValueError("candidate rejected")
        self.added_candidates.append(candidate)

    async def close(self) -> None:
        self.closed = True
        self.set_connection_state("closed")


class FakeLocalMedia:
    def __init__(self) -> None:
        self.release_count = 0
        self.subscriptions = 0

    def tracks(self) -> list:
        self.subscriptions += 1
        return [FakeTrack("audio"), FakeTrack("video")]

    def release(self) -> None:
        self.release_count += 1


class FakeChannel:
    """Stands in for SignalingChannel; records outbound messages."""

    def __init__(self) -> None:
        self.sent: List[dict] = []
        self.connect_count = 0
        self.closed = False
        self.handlers: Dict[str, Callable] = {}

    def on(self, name: str, handler: Optional[Callable] = None):
        def register(func):
            self.handlers[name] = func
            return func

        if handler is None:
            return register
        return register(handler)

    def open(self) -> None:
        self.connect_count += 1

    async def send(self, message: dict) -> bool:
        if self.closed:
            return False
        self.sent.append(message)
        return True

    async def close(self) -> None:
        self.closed = True

    @property
    def sent_types(self) -> List[str]:
        return [message["type"] for message in self.sent]


class LinkRecorder:
    """link_factory that keeps every link it built and its fake pc."""

    def __init__(self) -> None:
        self.links: List[PeerLink] = []
        self.pcs: List[FakePeerConnection] = []

    def __call__(self, role) -> PeerLink:
        pc = FakePeerConnection()
        link = PeerLink(role, pc_factory=lambda: pc)
        self.links.append(link)
        self.pcs.append(pc)
        return link

    @property
    def last(self) -> PeerLink:
        return self.links[-1]

    @property
    def last_pc(self) -> FakePeerConnection:
        return self.pcs[-1]


@pytest.fixture
def fake_pc() -> FakePeerConnection:
    return FakePeerConnection()


@pytest.fixture
def fake_channel() -> FakeChannel:
    return FakeChannel()


@pytest.fixture
def fake_media() -> FakeLocalMedia:
    return FakeLocalMedia()


@pytest.fixture
def links() -> LinkRecorder:
    return LinkRecorder()
