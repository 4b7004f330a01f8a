import asyncio

import pytest

from swipematch.core.errors import AlreadyExists, InvalidOperation, NotFound
from swipematch.db.models import RequestStatus
from swipematch.db.repositories import connection_repo, connection_request_repo, user_repo
from swipematch.matching import (
    SendOutcome,
    accept_request,
    get_connections,
    get_received_requests,
    get_sent_requests,
    is_connected,
    reject_request,
    remove_connection,
    send_request,
    send_request_by_username,
)


async def _statuses(session, *request_ids):
    return [(await connection_request_repo.get(session, rid)).status for rid in request_ids]


@pytest.mark.connections
async def test_send_and_accept_request(test_session, alice, bob):
    result = await send_request(test_session, alice.id, bob.id)

    assert result.outcome == SendOutcome.REQUEST_SENT
    assert result.request.status == RequestStatus.PENDING.value
    assert [r.id for r in await get_sent_requests(test_session, alice.id)] == [result.request.id]
    assert [r.id for r in await get_received_requests(test_session, bob.id)] == [result.request.id]
    assert not await is_connected(test_session, alice.id, bob.id)

    accepted = await accept_request(test_session, result.request.id)

    assert accepted.status == RequestStatus.ACCEPTED.value
    assert await is_connected(test_session, alice.id, bob.id)
    assert await is_connected(test_session, bob.id, alice.id)
    alice_connections = await get_connections(test_session, alice.id)
    assert [(c.connected_user_id, c.connected_username) for c in alice_connections] == [(bob.id, "bob")]
    bob_connections = await get_connections(test_session, bob.id)
    assert [(c.connected_user_id, c.connected_username) for c in bob_connections] == [(alice.id, "alice")]
    assert await get_received_requests(test_session, bob.id) == []


@pytest.mark.connections
async def test_mutual_request_auto_connects(test_session, alice, bob):
    first = await send_request(test_session, alice.id, bob.id)
    second = await send_request(test_session, bob.id, alice.id)

    assert second.auto_connected
    assert second.request.id == first.request.id
    assert await is_connected(test_session, alice.id, bob.id)
    assert await _statuses(test_session, first.request.id) == [RequestStatus.ACCEPTED.value]
    # No second request was written
    assert await connection_request_repo.get_pending_between(test_session, alice.id, bob.id) == []


@pytest.mark.connections
async def test_simultaneous_mutual_requests(test_session_maker, alice, bob):
    async def send(from_user_id, to_user_id):
        async with test_session_maker() as session:
            return await send_request(session, from_user_id, to_user_id)

    results = await asyncio.gather(send(alice.id, bob.id), send(bob.id, alice.id), return_exceptions=True)

    for result in results:
        assert not isinstance(result, Exception) or isinstance(result, AlreadyExists)

    async with test_session_maker() as session:
        assert await is_connected(session, alice.id, bob.id)
        assert len(await get_connections(session, alice.id)) == 1
        assert len(await get_connections(session, bob.id)) == 1
        requests = await connection_request_repo.query(session)
        assert requests
        assert all(r.status == RequestStatus.ACCEPTED.value for r in requests)


@pytest.mark.connections
async def test_accept_twice_is_same_as_once(test_session, alice, bob):
    result = await send_request(test_session, alice.id, bob.id)

    await accept_request(test_session, result.request.id)
    again = await accept_request(test_session, result.request.id)

    assert again.status == RequestStatus.ACCEPTED.value
    assert len(await get_connections(test_session, alice.id)) == 1
    assert len(await get_connections(test_session, bob.id)) == 1


@pytest.mark.connections
async def test_concurrent_accepts_converge(test_session, test_session_maker, alice, bob):
    result = await send_request(test_session, alice.id, bob.id)

    async def accept():
        async with test_session_maker() as session:
            return await accept_request(session, result.request.id)

    await asyncio.gather(accept(), accept())

    assert await is_connected(test_session, alice.id, bob.id)
    assert len(await get_connections(test_session, alice.id)) == 1


@pytest.mark.connections
async def test_accept_completes_one_sided_connection(test_session, alice, bob):
    result = await send_request(test_session, alice.id, bob.id)
    # A previous accept stopped after its first write
    await connection_repo.create_row_if_absent(test_session, alice.id, bob.id, {"username": "bob"})
    assert not await is_connected(test_session, alice.id, bob.id)

    await accept_request(test_session, result.request.id)
    assert await is_connected(test_session, alice.id, bob.id)


@pytest.mark.connections
async def test_reject_request(test_session, alice, bob):
    result = await send_request(test_session, alice.id, bob.id)

    rejected = await reject_request(test_session, result.request.id)
    assert rejected.status == RequestStatus.REJECTED.value
    # Rejecting again is a no-op
    assert (await reject_request(test_session, result.request.id)).status == RequestStatus.REJECTED.value

    with pytest.raises(InvalidOperation):
        await accept_request(test_session, result.request.id)
    assert not await is_connected(test_session, alice.id, bob.id)

    # A new request can be sent after a rejection
    retry = await send_request(test_session, alice.id, bob.id)
    assert retry.outcome == SendOutcome.REQUEST_SENT


@pytest.mark.connections
async def test_reject_accepted_request(test_session, alice, bob):
    result = await send_request(test_session, alice.id, bob.id)
    await accept_request(test_session, result.request.id)

    with pytest.raises(InvalidOperation):
        await reject_request(test_session, result.request.id)


@pytest.mark.connections
async def test_unknown_request(test_session):
    with pytest.raises(NotFound):
        await accept_request(test_session, "missing")
    with pytest.raises(NotFound):
        await reject_request(test_session, "missing")


@pytest.mark.connections
async def test_request_to_self(test_session, alice):
    with pytest.raises(InvalidOperation):
        await send_request(test_session, alice.id, alice.id)


@pytest.mark.connections
async def test_request_to_unknown_user(test_session, alice):
    with pytest.raises(NotFound):
        await send_request(test_session, alice.id, "uid-nobody")


@pytest.mark.connections
async def test_duplicate_pending_request(test_session, alice, bob):
    await send_request(test_session, alice.id, bob.id)

    with pytest.raises(AlreadyExists) as exc_info:
        await send_request(test_session, alice.id, bob.id)
    assert exc_info.value.user_message == "Connection request already sent."


@pytest.mark.connections
async def test_request_when_already_connected(test_session, connected_pair):
    alice, bob = connected_pair
    with pytest.raises(AlreadyExists):
        await send_request(test_session, bob.id, alice.id)


@pytest.mark.connections
async def test_send_request_by_username(test_session, alice, bob):
    result = await send_request_by_username(test_session, alice.id, "  BOB ")
    assert result.request.to_user_id == bob.id

    with pytest.raises(NotFound):
        await send_request_by_username(test_session, alice.id, "nobody")


@pytest.mark.connections
async def test_remove_connection_deletes_both_rows(test_session, connected_pair):
    alice, bob = connected_pair

    assert await remove_connection(test_session, bob.id, alice.id) == 2

    assert await get_connections(test_session, alice.id) == []
    assert await get_connections(test_session, bob.id) == []
    assert await connection_repo.get_row(test_session, alice.id, bob.id) is None
    assert await connection_repo.get_row(test_session, bob.id, alice.id) is None

    # Removing again is a no-op
    assert await remove_connection(test_session, alice.id, bob.id) == 0
    assert await connection_request_repo.get_accepted_between(test_session, alice.id, bob.id) == []


@pytest.mark.connections
async def test_late_accept_does_not_restore_removed_connection(test_session, alice, bob):
    result = await send_request(test_session, alice.id, bob.id)
    await accept_request(test_session, result.request.id)
    await remove_connection(test_session, alice.id, bob.id)

    again = await accept_request(test_session, result.request.id)

    assert again.status == RequestStatus.REMOVED.value
    assert not await is_connected(test_session, alice.id, bob.id)
    assert await connection_repo.get_row(test_session, alice.id, bob.id) is None
    assert await connection_repo.get_row(test_session, bob.id, alice.id) is None


@pytest.mark.connections
async def test_accepted_request_without_rows_is_not_rebuilt(test_session, alice, bob):
    result = await send_request(test_session, alice.id, bob.id)
    await accept_request(test_session, result.request.id)
    # Both rows gone while the request still reads accepted
    await connection_repo.delete(test_session, (alice.id, bob.id))
    await connection_repo.delete(test_session, (bob.id, alice.id))

    await accept_request(test_session, result.request.id)

    assert not await is_connected(test_session, alice.id, bob.id)
    assert await connection_repo.get_row(test_session, alice.id, bob.id) is None


@pytest.mark.connections
async def test_users_can_reconnect_after_removal(test_session, connected_pair):
    alice, bob = connected_pair
    await remove_connection(test_session, alice.id, bob.id)

    result = await send_request(test_session, bob.id, alice.id)
    assert result.outcome == SendOutcome.REQUEST_SENT
    await accept_request(test_session, result.request.id)

    assert await is_connected(test_session, alice.id, bob.id)


@pytest.mark.connections
async def test_one_sided_row_is_not_a_connection(test_session, alice, bob):
    await connection_repo.create_row_if_absent(test_session, alice.id, bob.id, {"username": "bob"})

    assert not await is_connected(test_session, alice.id, bob.id)
    assert await get_connections(test_session, alice.id) == []


@pytest.mark.connections
async def test_register_user(test_session, alice):
    assert alice.username == "alice"
    assert await user_repo.is_username_taken(test_session, "ALICE")
    assert not await user_repo.is_username_taken(test_session, "zed")

    # Registering the same user again is a no-op
    again = await user_repo.register_user(test_session, alice.id, "alice")
    assert again.id == alice.id

    with pytest.raises(AlreadyExists):
        await user_repo.register_user(test_session, "uid-other", "Alice")
    with pytest.raises(InvalidOperation):
        await user_repo.register_user(test_session, "uid-other", "  ")

    profile = await user_repo.get_user_profile(test_session, alice.id)
    assert profile == {"uid": alice.id, "username": "alice", "displayName": "Alice A."}
