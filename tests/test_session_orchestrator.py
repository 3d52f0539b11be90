"""Tests for the session state machine, driven through its event queue."""

import pytest
import pytest_asyncio

from conftest import FakeChannel, FakeLocalMedia, FakeTrack, LinkRecorder, make_candidate
from controllers.webrtc_controller import NegotiationRole
from tools.errors import SignalingUnavailableError
from use_cases.session import STATUS_TEXT, SessionOrchestrator, SessionStatus
from use_cases.session import events


@pytest_asyncio.fixture
async def session(fake_channel: FakeChannel, fake_media: FakeLocalMedia, links: LinkRecorder):
    orchestrator = SessionOrchestrator(fake_channel, fake_media, link_factory=links)
    orchestrator.start()
    await orchestrator.drain()
    yield orchestrator
    if orchestrator.status is not SessionStatus.STOPPED:
        orchestrator.stop()
        await orchestrator.wait_stopped()


async def pair(session: SessionOrchestrator, you_are_offerer: bool) -> None:
    session.post(events.WAITING)
    session.post(events.PAIRED, you_are_offerer=you_are_offerer)
    await session.drain()


async def connect_media(session: SessionOrchestrator, links: LinkRecorder) -> None:
    """Make the current link's fake pc deliver a track and reach 'connected'."""
    links.last_pc.emit("track", FakeTrack("video"))
    links.last_pc.set_connection_state("connected")
    await session.drain()


@pytest.mark.asyncio
async def test_start_opens_channel(session: SessionOrchestrator, fake_channel: FakeChannel) -> None:
    assert fake_channel.connect_count == 1
    assert session.status is SessionStatus.IDLE
    assert session.remote_media is None


@pytest.mark.asyncio
async def test_waiting_message_sets_waiting(session: SessionOrchestrator, fake_channel: FakeChannel) -> None:
    session.post(events.WAITING)
    await session.drain()

    assert session.status is SessionStatus.WAITING
    assert fake_channel.sent == []


@pytest.mark.asyncio
async def test_offerer_flow(session: SessionOrchestrator, fake_channel: FakeChannel, links: LinkRecorder) -> None:
    await pair(session, you_are_offerer=True)

    assert fake_channel.sent == [{"type": "Offer", "sdp": "v=0 offer +candidates"}]
    assert links.last.role is NegotiationRole.OFFERER
    assert session.status is SessionStatus.WAITING

    # Candidates relayed before the answer are held back
    session.post(events.ICE_CANDIDATE, **make_candidate(5001))
    session.post(events.ICE_CANDIDATE, **make_candidate(5002))
    await session.drain()
    assert links.last_pc.added_candidates == []

    session.post(events.ANSWER, sdp="v=0 remote answer")
    await session.drain()

    assert links.last_pc.remoteDescription.sdp == "v=0 remote answer"
    assert [c.port for c in links.last_pc.added_candidates] == [5001, 5002]
    assert fake_channel.sent_types == ["Offer"]


@pytest.mark.asyncio
async def test_answerer_never_offers(session: SessionOrchestrator, fake_channel: FakeChannel, links: LinkRecorder) -> None:
    await pair(session, you_are_offerer=False)

    assert fake_channel.sent == []
    assert links.last.role is NegotiationRole.ANSWERER

    session.post(events.OFFER, sdp="v=0 remote offer")
    await session.drain()

    assert fake_channel.sent == [{"type": "Answer", "sdp": "v=0 answer +candidates"}]


@pytest.mark.asyncio
async def test_local_media_attached_to_each_link(session: SessionOrchestrator, fake_media: FakeLocalMedia, links: LinkRecorder) -> None:
    await pair(session, you_are_offerer=False)

    assert fake_media.subscriptions == 1
    assert sorted(t.kind for t in links.last_pc.tracks) == ["audio", "video"]


@pytest.mark.asyncio
async def test_remote_media_connects(session: SessionOrchestrator, links: LinkRecorder) -> None:
    observed = []
    session.subscribe(lambda status, media: observed.append(status))
    await pair(session, you_are_offerer=False)

    await connect_media(session, links)

    assert session.status is SessionStatus.CONNECTED
    assert session.remote_media is links.last.remote_media
    assert observed[-1] is SessionStatus.CONNECTED


@pytest.mark.asyncio
async def test_local_candidates_are_forwarded(session: SessionOrchestrator, fake_channel: FakeChannel, links: LinkRecorder) -> None:
    await pair(session, you_are_offerer=False)
    payload = make_candidate(7001)

    session.post(events.LINK_CANDIDATE, link=links.last, candidate=payload)
    await session.drain()

    assert fake_channel.sent == [{"type": "IceCandidate", **payload}]


@pytest.mark.asyncio
async def test_report_sends_report_then_skip(session: SessionOrchestrator, fake_channel: FakeChannel, links: LinkRecorder) -> None:
    await pair(session, you_are_offerer=False)
    await connect_media(session, links)

    session.report()
    await session.drain()

    assert fake_channel.sent_types == ["Report", "Skip"]
    assert session.status is SessionStatus.WAITING
    assert session.remote_media is None
    assert links.last.is_closed


@pytest.mark.asyncio
async def test_report_ignored_unless_connected(session: SessionOrchestrator, fake_channel: FakeChannel) -> None:
    session.post(events.WAITING)
    session.report()
    await session.drain()

    assert fake_channel.sent == []


@pytest.mark.asyncio
async def test_skip_closes_link(session: SessionOrchestrator, fake_channel: FakeChannel, links: LinkRecorder) -> None:
    await pair(session, you_are_offerer=False)
    await connect_media(session, links)

    session.skip()
    await session.drain()

    assert fake_channel.sent_types == ["Skip"]
    assert session.status is SessionStatus.WAITING
    assert session.remote_media is None
    assert links.last_pc.closed


@pytest.mark.asyncio
async def test_skip_ignored_while_idle(session: SessionOrchestrator, fake_channel: FakeChannel) -> None:
    session.skip()
    await session.drain()

    assert fake_channel.sent == []
    assert session.status is SessionStatus.IDLE


@pytest.mark.asyncio
async def test_peer_left_while_connected(session: SessionOrchestrator, links: LinkRecorder) -> None:
    await pair(session, you_are_offerer=True)
    await connect_media(session, links)

    session.post(events.PEER_LEFT)
    await session.drain()

    assert session.status is SessionStatus.PEER_LEFT
    assert session.remote_media is None
    assert session.link is None
    assert links.last.is_closed


@pytest.mark.asyncio
@pytest.mark.parametrize("state", ["disconnected", "failed", "closed"])
async def test_link_loss_means_peer_left(session: SessionOrchestrator, links: LinkRecorder, state: str) -> None:
    await pair(session, you_are_offerer=False)
    await connect_media(session, links)

    links.last_pc.set_connection_state(state)
    await session.drain()

    assert session.status is SessionStatus.PEER_LEFT
    assert session.remote_media is None
    assert links.last.is_closed


@pytest.mark.asyncio
async def test_stale_media_after_close_is_ignored(session: SessionOrchestrator, links: LinkRecorder) -> None:
    await pair(session, you_are_offerer=False)
    old_link = links.last

    session.skip()
    await session.drain()
    session.post(events.LINK_MEDIA, link=old_link, media=old_link.remote_media)
    await session.drain()

    assert session.status is SessionStatus.WAITING
    assert session.remote_media is None


@pytest.mark.asyncio
async def test_description_failure_means_peer_left(session: SessionOrchestrator, fake_channel: FakeChannel, links: LinkRecorder) -> None:
    await pair(session, you_are_offerer=False)
    links.last_pc.fail_remote_description = True

    session.post(events.OFFER, sdp="garbage")
    await session.drain()

    assert session.status is SessionStatus.PEER_LEFT
    assert fake_channel.sent == []
    assert links.last.is_closed


@pytest.mark.asyncio
async def test_messages_without_link_are_dropped(session: SessionOrchestrator, fake_channel: FakeChannel) -> None:
    session.post(events.WAITING)
    session.post(events.OFFER, sdp="v=0 stale offer")
    session.post(events.ANSWER, sdp="v=0 stale answer")
    session.post(events.ICE_CANDIDATE, **make_candidate(5001))
    await session.drain()

    assert session.status is SessionStatus.WAITING
    assert fake_channel.sent == []


@pytest.mark.asyncio
async def test_offer_for_offerer_is_dropped(session: SessionOrchestrator, fake_channel: FakeChannel, links: LinkRecorder) -> None:
    await pair(session, you_are_offerer=True)

    session.post(events.OFFER, sdp="v=0 crossed offer")
    await session.drain()

    assert fake_channel.sent_types == ["Offer"]
    assert not links.last.is_closed


@pytest.mark.asyncio
async def test_second_paired_rebuilds_link(session: SessionOrchestrator, fake_channel: FakeChannel, links: LinkRecorder) -> None:
    await pair(session, you_are_offerer=False)
    first = links.last

    session.post(events.PAIRED, you_are_offerer=True)
    await session.drain()

    assert len(links.links) == 2
    assert first.is_closed
    assert session.link is links.last
    assert links.last.role is NegotiationRole.OFFERER
    assert fake_channel.sent_types == ["Offer"]


@pytest.mark.asyncio
async def test_ready_requeues_after_peer_left(session: SessionOrchestrator, fake_channel: FakeChannel) -> None:
    await pair(session, you_are_offerer=False)
    session.post(events.PEER_LEFT)
    session.ready()
    await session.drain()

    assert fake_channel.sent_types == ["Ready"]
    assert session.status is SessionStatus.WAITING


@pytest.mark.asyncio
async def test_stop_is_terminal(session: SessionOrchestrator, fake_channel: FakeChannel, fake_media: FakeLocalMedia, links: LinkRecorder) -> None:
    await pair(session, you_are_offerer=False)
    await connect_media(session, links)

    session.stop()
    await session.wait_stopped()

    assert session.status is SessionStatus.STOPPED
    assert fake_channel.closed
    assert links.last.is_closed
    assert session.remote_media is None
    assert fake_media.release_count == 1

    session.post(events.WAITING)
    session.stop()
    await session.drain()

    assert session.status is SessionStatus.STOPPED
    assert fake_media.release_count == 1


@pytest.mark.asyncio
async def test_give_up_stops_with_error(session: SessionOrchestrator, fake_channel: FakeChannel, fake_media: FakeLocalMedia) -> None:
    session.post(events.WAITING)
    session.post(events.CHANNEL_GIVE_UP)
    await session.wait_stopped()

    assert session.status is SessionStatus.STOPPED
    assert isinstance(session.error, SignalingUnavailableError)
    assert fake_media.release_count == 1


def test_every_status_has_text() -> None:
    assert set(STATUS_TEXT) == set(SessionStatus)
