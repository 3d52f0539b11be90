"""
Events consumed by the session worker.

Server messages keep their wire tag as event name; everything else gets a
lowercase internal name.
"""

from dataclasses import dataclass, field
from typing import Any, Optional


# Server -> client messages
WAITING = "Waiting"
PAIRED = "Paired"
OFFER = "Offer"
ANSWER = "Answer"
ICE_CANDIDATE = "IceCandidate"
PEER_LEFT = "PeerLeft"

# Signaling channel
CHANNEL_GIVE_UP = "channel_give_up"

# Peer link callbacks
LINK_MEDIA = "link_media"
LINK_CANDIDATE = "link_candidate"
LINK_STATE = "link_state"

# User intents
START = "start"
SKIP = "skip"
REPORT = "report"
READY = "ready"
STOP = "stop"


@dataclass
class SessionEvent:
    name: str
    payload: dict = field(default_factory=dict)
    # Link that raised the event, for LINK_* events only
    link: Optional[Any] = None
