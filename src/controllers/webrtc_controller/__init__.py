"""
WebRTC Controller

Manages the peer connection for the current pairing. Signaling is handled
by the websocket controller; this package only talks to aiortc.
"""

from .peer_link import LOST_STATES, LinkState, NegotiationRole, PeerLink
from .ice import DEFAULT_ICE_SERVERS, build_configuration

__all__ = [
    "LOST_STATES",
    "LinkState",
    "NegotiationRole",
    "PeerLink",
    "DEFAULT_ICE_SERVERS",
    "build_configuration",
]
