import pytest

from swipematch.core.diagnostics import metrics
from swipematch.core.errors import AlreadyExists, InvalidOperation, NotFound, TransientStoreFailure
from swipematch.db.models import RequestStatus
from swipematch.db.repositories import match_repo, reset_request_repo, swipe_repo
from swipematch.matching import (
    ResetOutcome,
    accept_reset_request,
    get_received_reset_requests,
    get_sent_reset_requests,
    reject_reset_request,
    record_swipe,
    remove_connection,
    send_reset_request,
)


@pytest.fixture
async def shared_likes(test_session, connected_pair, carol):
    """Alice and Bob share a hike and a movie; Carol likes the same movie."""
    alice, bob = connected_pair
    for user in (alice, bob):
        await record_swipe(test_session, user.id, "hike-1", "hikes", True)
        await record_swipe(test_session, user.id, "movie-1", "movies", True)
    await record_swipe(test_session, carol.id, "movie-1", "movies", True)
    # Liked by Alice alone, never matched
    await record_swipe(test_session, alice.id, "movie-2", "movies", True)
    return alice, bob, carol


@pytest.mark.resets
async def test_reset_movies_leaves_hikes_untouched(test_session, shared_likes):
    alice, bob, carol = shared_likes

    sent = await send_reset_request(test_session, alice.id, bob.id, "movies")
    assert sent.outcome == ResetOutcome.REQUEST_SENT
    assert [r.id for r in await get_received_reset_requests(test_session, bob.id)] == [sent.request.id]
    assert [r.id for r in await get_sent_reset_requests(test_session, alice.id)] == [sent.request.id]

    summary = await accept_reset_request(test_session, sent.request.id)

    assert summary.request.status == RequestStatus.ACCEPTED.value
    assert summary.swipes_deleted == 2
    assert summary.matches_deleted == 1
    assert metrics["resets_accepted"] == 1

    between = await match_repo.get_matches_between_users(test_session, alice.id, bob.id)
    assert [(m.item_id, m.category) for m in between] == [("hike-1", "hikes")]
    assert sorted(await swipe_repo.list_item_ids(test_session, alice.id)) == ["hike-1", "movie-2"]
    assert await swipe_repo.list_item_ids(test_session, bob.id) == ["hike-1"]

    # Matches with other users are not part of the reset
    assert len(await match_repo.get_matches_between_users(test_session, alice.id, carol.id, "movies")) == 1
    assert len(await match_repo.get_matches_between_users(test_session, bob.id, carol.id, "movies")) == 1
    assert await get_received_reset_requests(test_session, bob.id) == []


@pytest.mark.resets
async def test_users_can_match_again_after_reset(test_session, shared_likes):
    alice, bob, _ = shared_likes
    sent = await send_reset_request(test_session, bob.id, alice.id, "movies")
    await accept_reset_request(test_session, sent.request.id)

    await record_swipe(test_session, alice.id, "movie-1", "movies", True)
    await record_swipe(test_session, bob.id, "movie-1", "movies", True)

    assert len(await match_repo.get_matches_between_users(test_session, alice.id, bob.id, "movies")) == 1


@pytest.mark.resets
async def test_accept_twice_is_same_as_once(test_session, shared_likes):
    alice, bob, _ = shared_likes
    sent = await send_reset_request(test_session, alice.id, bob.id, "movies")

    await accept_reset_request(test_session, sent.request.id)
    again = await accept_reset_request(test_session, sent.request.id)

    assert again.swipes_deleted == 0
    assert again.matches_deleted == 0
    assert metrics["resets_accepted"] == 1


@pytest.mark.resets
async def test_accept_finishes_after_transient_failure(test_session, shared_likes, fast_retries, monkeypatch):
    alice, bob, _ = shared_likes
    sent = await send_reset_request(test_session, alice.id, bob.id, "movies")

    delete_match = match_repo.delete_match
    calls = []

    async def flaky_delete_match(session, key):
        calls.append(key)
        if len(calls) == 1:
            raise TransientStoreFailure("store unavailable")
        return await delete_match(session, key)

    monkeypatch.setattr(match_repo, "delete_match", flaky_delete_match)

    summary = await accept_reset_request(test_session, sent.request.id)

    assert summary.request.status == RequestStatus.ACCEPTED.value
    assert await match_repo.get_matches_between_users(test_session, alice.id, bob.id, "movies") == []
    assert "movie-1" not in await swipe_repo.list_item_ids(test_session, bob.id)


@pytest.mark.resets
async def test_reverse_request_is_accepted(test_session, shared_likes):
    alice, bob, _ = shared_likes
    first = await send_reset_request(test_session, alice.id, bob.id, "movies")

    second = await send_reset_request(test_session, bob.id, alice.id, "movies")

    assert second.auto_accepted
    assert second.request.id == first.request.id
    assert await match_repo.get_matches_between_users(test_session, alice.id, bob.id, "movies") == []


@pytest.mark.resets
async def test_requests_are_per_category(test_session, shared_likes):
    alice, bob, _ = shared_likes
    await send_reset_request(test_session, alice.id, bob.id, "movies")

    hikes = await send_reset_request(test_session, bob.id, alice.id, "hikes")
    assert hikes.outcome == ResetOutcome.REQUEST_SENT

    with pytest.raises(AlreadyExists):
        await send_reset_request(test_session, alice.id, bob.id, "movies")


@pytest.mark.resets
async def test_reset_requires_connection(test_session, alice, carol):
    with pytest.raises(InvalidOperation):
        await send_reset_request(test_session, alice.id, carol.id, "movies")


@pytest.mark.resets
async def test_accept_after_connection_removed(test_session, shared_likes):
    alice, bob, _ = shared_likes
    sent = await send_reset_request(test_session, alice.id, bob.id, "movies")
    await remove_connection(test_session, alice.id, bob.id)

    with pytest.raises(InvalidOperation):
        await accept_reset_request(test_session, sent.request.id)
    assert len(await match_repo.get_matches_between_users(test_session, alice.id, bob.id, "movies")) == 1


@pytest.mark.resets
async def test_invalid_reset_requests(test_session, connected_pair):
    alice, bob = connected_pair
    with pytest.raises(InvalidOperation):
        await send_reset_request(test_session, alice.id, alice.id, "movies")
    with pytest.raises(InvalidOperation):
        await send_reset_request(test_session, alice.id, bob.id, "books")
    with pytest.raises(NotFound):
        await accept_reset_request(test_session, "missing")


@pytest.mark.resets
async def test_reject_reset_request(test_session, shared_likes):
    alice, bob, _ = shared_likes
    sent = await send_reset_request(test_session, alice.id, bob.id, "movies")

    rejected = await reject_reset_request(test_session, sent.request.id)

    assert rejected.status == RequestStatus.REJECTED.value
    with pytest.raises(InvalidOperation):
        await accept_reset_request(test_session, sent.request.id)
    assert len(await match_repo.get_matches_between_users(test_session, alice.id, bob.id, "movies")) == 1
    stored = await reset_request_repo.get(test_session, sent.request.id)
    assert stored.status == RequestStatus.REJECTED.value
