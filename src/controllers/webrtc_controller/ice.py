"""
ICE configuration and candidate conversion.

Candidates travel on the wire in browser form: the SDP attribute value with a
"candidate:" prefix plus sdp_mid / sdp_m_line_index.
"""

from aiortc import RTCConfiguration, RTCIceCandidate, RTCIceServer
from aiortc.sdp import candidate_from_sdp, candidate_to_sdp
from typing import Iterable, List, Optional


DEFAULT_ICE_SERVERS = [
    # Google's free public STUN servers
    "stun:stun.l.google.com:19302",
    "stun:stun1.l.google.com:19302",
]

CANDIDATE_PREFIX = "candidate:"


def build_configuration(extra_servers: Optional[Iterable[str]] = None) -> RTCConfiguration:
    """
    Build the peer connection configuration.

    Args:
        extra_servers: Additional STUN/TURN URLs. TURN credentials may be
            embedded as turn:user:password@host:port
    """
    servers: List[RTCIceServer] = [RTCIceServer(urls=url) for url in DEFAULT_ICE_SERVERS]
    for url in extra_servers or []:
        servers.append(_parse_ice_server(url))
    return RTCConfiguration(iceServers=servers)


def _parse_ice_server(url: str) -> RTCIceServer:
    scheme, _, rest = url.partition(":")
    if scheme in ("turn", "turns") and "@" in rest:
        credentials, _, host = rest.rpartition("@")
        username, _, password = credentials.partition(":")
        return RTCIceServer(urls=f"{scheme}:{host}", username=username, credential=password)
    return RTCIceServer(urls=url)


def is_end_of_candidates(payload: dict) -> bool:
    return not payload.get("candidate")


def candidate_from_payload(payload: dict) -> RTCIceCandidate:
    """
    Parse a relayed candidate.

    Raises:
        ValueError: the candidate string is not a valid ICE candidate
    """
    sdp = payload["candidate"]
    if sdp.startswith(CANDIDATE_PREFIX):
        sdp = sdp[len(CANDIDATE_PREFIX):]

    try:
        candidate = candidate_from_sdp(sdp)
    except (AssertionError, IndexError, ValueError) as e:
        raise ValueError(f"Unparseable ICE candidate '{payload['candidate']}': {e}") from e

    candidate.sdpMid = payload.get("sdp_mid")
    candidate.sdpMLineIndex = payload.get("sdp_m_line_index")
    return candidate


def candidate_to_payload(candidate: RTCIceCandidate) -> dict:
    return {
        "candidate": CANDIDATE_PREFIX + candidate_to_sdp(candidate),
        "sdp_mid": candidate.sdpMid or "",
        "sdp_m_line_index": candidate.sdpMLineIndex or 0,
    }
