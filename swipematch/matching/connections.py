"""
Connection protocol.

Two users become connected through a request/accept handshake. A connection
is stored as two rows (A->B and B->A) with deterministic keys, so every
accept path writes the same rows and concurrent accepts converge.

Simultaneous mutual requests are resolved in send_request: a request towards
someone who already asked us accepts their request instead, and every newly
created request re-checks for a reverse request after it is written.
"""
from dataclasses import dataclass
from enum import Enum

from loguru import logger
from sqlalchemy.ext.asyncio import AsyncSession

from swipematch.core.diagnostics import record
from swipematch.core.errors import AlreadyExists, InvalidOperation, NotFound
from swipematch.db.models import Connection, ConnectionRequest, RequestStatus
from swipematch.db.repositories import connection_repo, connection_request_repo, user_repo
from swipematch.db.utils.session_management import with_retry


class SendOutcome(str, Enum):
    REQUEST_SENT = "request_sent"
    AUTO_CONNECTED = "auto_connected"


@dataclass
class SendResult:
    """Result of send_request.

    ``request`` is the newly created request for REQUEST_SENT, or the
    reverse request that was accepted for AUTO_CONNECTED.
    """
    outcome: SendOutcome
    request: ConnectionRequest

    @property
    def auto_connected(self) -> bool:
        return self.outcome == SendOutcome.AUTO_CONNECTED


async def _require_profile(session: AsyncSession, user_id: str) -> dict:
    profile = await user_repo.get_user_profile(session, user_id)
    if profile is None:
        raise NotFound(f"User {user_id} not found", user_message="User not found.")
    return profile


def _oldest(requests: list[ConnectionRequest]) -> ConnectionRequest:
    return min(requests, key=lambda r: (r.created_at, r.id))


async def _has_any_row(session: AsyncSession, user_a: str, user_b: str) -> bool:
    if await connection_repo.get_row(session, user_a, user_b) is not None:
        return True
    return await connection_repo.get_row(session, user_b, user_a) is not None


async def send_request(session: AsyncSession, from_user_id: str, to_user_id: str) -> SendResult:
    """
    Ask another user to connect.

    Raises:
        InvalidOperation: sending a request to yourself
        NotFound: either user is unknown
        AlreadyExists: already connected, or a request is already pending
    """
    if from_user_id == to_user_id:
        raise InvalidOperation(
            "Cannot send request to yourself",
            user_message="You cannot send a connection request to yourself.",
        )
    from_profile = await _require_profile(session, from_user_id)
    to_profile = await _require_profile(session, to_user_id)

    if await connection_repo.is_connected(session, from_user_id, to_user_id):
        raise AlreadyExists(
            f"{from_user_id} is already connected with {to_user_id}",
            user_message="Already connected with this user.",
        )

    reverse = await connection_request_repo.get_pending(session, to_user_id, from_user_id)
    if reverse:
        return await _auto_connect(session, _oldest(reverse))

    if await connection_request_repo.get_pending(session, from_user_id, to_user_id):
        raise AlreadyExists(
            f"Request {from_user_id}->{to_user_id} already pending",
            user_message="Connection request already sent.",
        )

    request = await connection_request_repo.create_request(session, from_profile, to_profile)
    return await _settle_new_request(session, request)


async def _auto_connect(session: AsyncSession, reverse: ConnectionRequest) -> SendResult:
    logger.info(
        f"Reverse request {reverse.id} ({reverse.from_user_id} -> {reverse.to_user_id}) is pending, "
        f"auto-connecting instead of sending a new request"
    )
    accepted = await accept_request(session, reverse.id)
    return SendResult(outcome=SendOutcome.AUTO_CONNECTED, request=accepted)


async def _settle_new_request(session: AsyncSession, request: ConnectionRequest) -> SendResult:
    """Re-check the pair after our request is written.

    A concurrent caller may have written a duplicate of our request or the
    reverse request, or may have connected the pair while we were writing
    ours.
    """
    from_user_id, to_user_id = request.from_user_id, request.to_user_id

    forward = await connection_request_repo.get_pending(session, from_user_id, to_user_id)
    if forward and _oldest(forward).id != request.id:
        # The oldest duplicate wins, the others remove themselves
        await connection_request_repo.delete(session, request.id)
        raise AlreadyExists(
            f"Request {from_user_id}->{to_user_id} already pending",
            user_message="Connection request already sent.",
        )

    reverse = await connection_request_repo.get_pending(session, to_user_id, from_user_id)
    if reverse:
        return await _auto_connect(session, _oldest(reverse))

    if await connection_repo.is_connected(session, from_user_id, to_user_id):
        # The other side accepted our request, or auto-connected through it
        accepted = await connection_request_repo.set_status(session, request.id, RequestStatus.ACCEPTED)
        logger.info(f"Request {request.id} settled by a concurrent accept, {from_user_id} and {to_user_id} are connected")
        return SendResult(outcome=SendOutcome.AUTO_CONNECTED, request=accepted or request)

    logger.info(f"Connection request {request.id} sent: {from_user_id} -> {to_user_id}")
    return SendResult(outcome=SendOutcome.REQUEST_SENT, request=request)


async def send_request_by_username(session: AsyncSession, from_user_id: str, to_username: str) -> SendResult:
    """send_request addressed by (case-insensitive) username."""
    to_user = await user_repo.get_user_by_username(session, to_username)
    if to_user is None:
        raise NotFound(f"Username {to_username} not found", user_message="User not found.")
    return await send_request(session, from_user_id, to_user.id)


@with_retry()
async def accept_request(session: AsyncSession, request_id: str) -> ConnectionRequest:
    """
    Accept a connection request. Safe to call again on an accepted request.

    Steps, each idempotent: write both connection rows (no-op for rows that
    already exist), mark the request accepted, then mark accepted every other
    request still pending between the two users. An accepted request whose
    connection was removed does not reconnect the pair.

    Raises:
        NotFound: unknown request
        InvalidOperation: the request was rejected
    """
    request = await connection_request_repo.get(session, request_id)
    if request is None:
        raise NotFound(f"Connection request {request_id} not found", user_message="Request not found.")
    if request.status == RequestStatus.REJECTED.value:
        raise InvalidOperation(
            f"Connection request {request_id} was rejected",
            user_message="This request was already rejected.",
        )

    from_user_id, to_user_id = request.from_user_id, request.to_user_id
    if request.status == RequestStatus.REMOVED.value:
        logger.info(f"Connection request {request_id} belongs to a removed connection, nothing to accept")
        return request
    if request.status == RequestStatus.ACCEPTED.value and not await _has_any_row(session, from_user_id, to_user_id):
        # Accept only completes a one-sided pair, it never rebuilds a removed one
        logger.info(f"Connection request {request_id} already accepted and the pair has no rows, nothing to do")
        return request

    from_profile = await user_repo.get_user_profile(session, from_user_id) or {
        "uid": from_user_id, "username": request.from_username, "displayName": request.from_display_name,
    }
    to_profile = await user_repo.get_user_profile(session, to_user_id) or {
        "uid": to_user_id, "username": request.to_username, "displayName": "",
    }

    _, forward_created = await connection_repo.create_row_if_absent(session, from_user_id, to_user_id, to_profile)
    _, backward_created = await connection_repo.create_row_if_absent(session, to_user_id, from_user_id, from_profile)
    if forward_created and backward_created:
        record("connections_created")
        logger.info(f"Connected {from_user_id} and {to_user_id}")
    elif forward_created or backward_created:
        logger.info(f"Completed one-sided connection between {from_user_id} and {to_user_id}")

    if request.is_pending:
        request = await connection_request_repo.set_status(session, request_id, RequestStatus.ACCEPTED)

    for pending in await connection_request_repo.get_pending_between(session, from_user_id, to_user_id):
        logger.info(f"Marking pending request {pending.id} accepted, pair is connected")
        await connection_request_repo.set_status(session, pending.id, RequestStatus.ACCEPTED)

    return request


@with_retry()
async def reject_request(session: AsyncSession, request_id: str) -> ConnectionRequest:
    """
    Reject a pending connection request. Rejecting twice is a no-op.

    Raises:
        NotFound: unknown request
        InvalidOperation: the request was already accepted
    """
    request = await connection_request_repo.get(session, request_id)
    if request is None:
        raise NotFound(f"Connection request {request_id} not found", user_message="Request not found.")
    if request.status == RequestStatus.ACCEPTED.value:
        raise InvalidOperation(
            f"Connection request {request_id} was accepted",
            user_message="This request was already accepted.",
        )
    if request.is_pending:
        request = await connection_request_repo.set_status(session, request_id, RequestStatus.REJECTED)
        logger.info(f"Connection request {request_id} rejected")
    return request


@with_retry()
async def remove_connection(session: AsyncSession, user_id: str, other_user_id: str) -> int:
    """
    Remove the connection between two users (both rows). Removing a
    connection that does not exist is a no-op.

    The accepted requests of the pair are marked removed before any row is
    deleted, so an interrupted removal is finished by a retry or by the
    startup repair instead of being undone.

    Returns:
        How many rows were removed
    """
    for accepted in await connection_request_repo.get_accepted_between(session, user_id, other_user_id):
        await connection_request_repo.set_status(session, accepted.id, RequestStatus.REMOVED)

    removed = await connection_repo.delete_pair(session, user_id, other_user_id)
    if removed == 0:
        logger.debug(f"No connection between {user_id} and {other_user_id} to remove")
        return 0
    logger.info(f"Connection between {user_id} and {other_user_id} removed ({removed} rows)")
    return removed


async def get_connections(session: AsyncSession, user_id: str) -> list[Connection]:
    return await connection_repo.get_connections_for_user(session, user_id)


async def is_connected(session: AsyncSession, user_id: str, other_user_id: str) -> bool:
    return await connection_repo.is_connected(session, user_id, other_user_id)


async def get_sent_requests(session: AsyncSession, user_id: str) -> list[ConnectionRequest]:
    """Pending requests sent by the user."""
    return await connection_request_repo.get_sent(session, user_id)


async def get_received_requests(session: AsyncSession, user_id: str) -> list[ConnectionRequest]:
    """Pending requests waiting for the user's answer."""
    return await connection_request_repo.get_received(session, user_id)
