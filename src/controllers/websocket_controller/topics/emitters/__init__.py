"""
Outbound signaling messages.

Each emitter builds one wire message and hands it to the channel. Sends made
while the channel is reconnecting are dropped by the channel.
"""

SKIP = "Skip"
READY = "Ready"
REPORT = "Report"
OFFER = "Offer"
ANSWER = "Answer"
ICE_CANDIDATE = "IceCandidate"


async def emit_skip(channel) -> bool:
    return await channel.send({"type": SKIP})


async def emit_ready(channel) -> bool:
    return await channel.send({"type": READY})


async def emit_report(channel) -> bool:
    return await channel.send({"type": REPORT})


async def emit_offer(channel, sdp: str) -> bool:
    return await channel.send({"type": OFFER, "sdp": sdp})


async def emit_answer(channel, sdp: str) -> bool:
    return await channel.send({"type": ANSWER, "sdp": sdp})


async def emit_ice_candidate(channel, payload: dict) -> bool:
    """
    Args:
        payload: dict with candidate, sdp_mid and sdp_m_line_index
    """
    return await channel.send({
        "type": ICE_CANDIDATE,
        "candidate": payload["candidate"],
        "sdp_mid": payload["sdp_mid"],
        "sdp_m_line_index": payload["sdp_m_line_index"],
    })
