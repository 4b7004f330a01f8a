"""
Reset protocol.

Two connected users agree to wipe what they share in one category: their
swipes on the items they matched on, and those matches. Once accepted both
can swipe the category again from scratch.
"""
from dataclasses import dataclass
from enum import Enum

from loguru import logger
from sqlalchemy.ext.asyncio import AsyncSession

from swipematch.core.categories import validate_category
from swipematch.core.diagnostics import record
from swipematch.core.errors import AlreadyExists, InvalidOperation, NotFound
from swipematch.db.models import RequestStatus, ResetRequest
from swipematch.db.repositories import connection_repo, match_repo, reset_request_repo, swipe_repo
from swipematch.db.utils.session_management import with_retry


class ResetOutcome(str, Enum):
    REQUEST_SENT = "request_sent"
    AUTO_ACCEPTED = "auto_accepted"


@dataclass
class ResetSendResult:
    outcome: ResetOutcome
    request: ResetRequest

    @property
    def auto_accepted(self) -> bool:
        return self.outcome == ResetOutcome.AUTO_ACCEPTED


@dataclass
class ResetSummary:
    """What an accepted reset removed."""
    request: ResetRequest
    swipes_deleted: int = 0
    matches_deleted: int = 0


async def _require_connected(session: AsyncSession, user_a: str, user_b: str):
    if not await connection_repo.is_connected(session, user_a, user_b):
        raise InvalidOperation(
            f"{user_a} and {user_b} are not connected",
            user_message="You can only reset matches with your connections.",
        )


def _oldest(requests: list[ResetRequest]) -> ResetRequest:
    return min(requests, key=lambda r: (r.created_at, r.id))


async def send_reset_request(
    session: AsyncSession, from_user_id: str, to_user_id: str, category: str
) -> ResetSendResult:
    """
    Ask a connection to reset the shared swipes and matches of one category.

    A pending request from the other user for the same category is accepted
    instead of creating a second one.

    Raises:
        InvalidOperation: self-request, unknown category, users not connected
        AlreadyExists: a request for this category is already pending
    """
    if from_user_id == to_user_id:
        raise InvalidOperation(
            "Cannot send reset request to yourself",
            user_message="You cannot send a reset request to yourself.",
        )
    category = validate_category(category).value
    await _require_connected(session, from_user_id, to_user_id)

    reverse = await reset_request_repo.get_pending(session, to_user_id, from_user_id, category)
    if reverse:
        summary = await accept_reset_request(session, _oldest(reverse).id)
        return ResetSendResult(outcome=ResetOutcome.AUTO_ACCEPTED, request=summary.request)

    if await reset_request_repo.get_pending(session, from_user_id, to_user_id, category):
        raise AlreadyExists(
            f"Reset request {from_user_id}->{to_user_id} for {category} already pending",
            user_message="Reset request already sent.",
        )

    request = await reset_request_repo.create_request(session, from_user_id, to_user_id, category)

    # Re-check after the write, same as connection requests
    forward = await reset_request_repo.get_pending(session, from_user_id, to_user_id, category)
    if forward and _oldest(forward).id != request.id:
        await reset_request_repo.delete(session, request.id)
        raise AlreadyExists(
            f"Reset request {from_user_id}->{to_user_id} for {category} already pending",
            user_message="Reset request already sent.",
        )
    reverse = await reset_request_repo.get_pending(session, to_user_id, from_user_id, category)
    if reverse:
        summary = await accept_reset_request(session, _oldest(reverse).id)
        return ResetSendResult(outcome=ResetOutcome.AUTO_ACCEPTED, request=summary.request)

    logger.info(f"Reset request {request.id} sent: {from_user_id} -> {to_user_id} ({category})")
    return ResetSendResult(outcome=ResetOutcome.REQUEST_SENT, request=request)


@with_retry()
async def accept_reset_request(session: AsyncSession, request_id: str) -> ResetSummary:
    """
    Accept a reset request and purge the pair's shared data in its category.

    Runs as ordered idempotent steps so a retry after a partial failure
    finishes the job:
      1. delete both users' swipes on the items they matched on in the category
      2. delete their matches in the category
      3. mark the request (and any pending reverse request) accepted

    Raises:
        NotFound: unknown request
        InvalidOperation: the request was rejected or the users are not connected
    """
    request = await reset_request_repo.get(session, request_id)
    if request is None:
        raise NotFound(f"Reset request {request_id} not found", user_message="Request not found.")
    if request.status == RequestStatus.ACCEPTED.value:
        return ResetSummary(request=request)
    if request.status == RequestStatus.REJECTED.value:
        raise InvalidOperation(
            f"Reset request {request_id} was rejected",
            user_message="This request was already rejected.",
        )

    from_user_id, to_user_id, category = request.from_user_id, request.to_user_id, request.category
    await _require_connected(session, from_user_id, to_user_id)

    matches = await match_repo.get_matches_between_users(session, from_user_id, to_user_id, category)
    item_ids = {match.item_id for match in matches}

    swipes_deleted = await swipe_repo.delete_swipes_on_items(
        session, [from_user_id, to_user_id], item_ids, category
    )
    matches_deleted = 0
    for match in matches:
        if await match_repo.delete_match(session, match.id):
            matches_deleted += 1

    request = await reset_request_repo.set_status(session, request_id, RequestStatus.ACCEPTED)
    for pending in await reset_request_repo.get_pending(session, to_user_id, from_user_id, category):
        await reset_request_repo.set_status(session, pending.id, RequestStatus.ACCEPTED)

    record("resets_accepted")
    logger.info(
        f"Reset {request_id} accepted: {from_user_id} and {to_user_id} in {category}, "
        f"{swipes_deleted} swipes and {matches_deleted} matches deleted"
    )
    return ResetSummary(request=request, swipes_deleted=swipes_deleted, matches_deleted=matches_deleted)


@with_retry()
async def reject_reset_request(session: AsyncSession, request_id: str) -> ResetRequest:
    """
    Reject a pending reset request. Rejecting twice is a no-op.

    Raises:
        NotFound: unknown request
        InvalidOperation: the request was already accepted
    """
    request = await reset_request_repo.get(session, request_id)
    if request is None:
        raise NotFound(f"Reset request {request_id} not found", user_message="Request not found.")
    if request.status == RequestStatus.ACCEPTED.value:
        raise InvalidOperation(
            f"Reset request {request_id} was accepted",
            user_message="This request was already accepted.",
        )
    if request.is_pending:
        request = await reset_request_repo.set_status(session, request_id, RequestStatus.REJECTED)
        logger.info(f"Reset request {request_id} rejected")
    return request


async def get_sent_reset_requests(session: AsyncSession, user_id: str) -> list[ResetRequest]:
    return await reset_request_repo.get_sent(session, user_id)


async def get_received_reset_requests(session: AsyncSession, user_id: str) -> list[ResetRequest]:
    return await reset_request_repo.get_received(session, user_id)
