"""
Application startup tasks.
"""
import sys

from loguru import logger
from sqlalchemy.ext.asyncio import AsyncSession

from swipematch.core.config import Settings, get_settings
from swipematch.db import get_session
from swipematch.db.repositories import connection_repo, connection_request_repo, user_repo
from swipematch.db.models import RequestStatus


def configure_logging(settings: Settings | None = None):
    """Replace the default loguru sink with the configured ones."""
    settings = settings or get_settings()
    logger.remove()  # Remove default handlers
    logger.add(sys.stderr, level=settings.LOG_LEVEL)
    if settings.LOG_FILE:
        logger.add(settings.LOG_FILE, rotation="10 MB", level="DEBUG", backtrace=True, diagnose=True)


async def repair_one_sided_connections(session: AsyncSession) -> tuple[int, int]:
    """
    Fix connections that only exist in one direction.

    A row whose mirror is missing is completed when an accepted request
    exists for the pair, otherwise it is removed.

    Returns:
        (rows completed, rows removed)
    """
    completed = removed = 0
    for row in await connection_repo.get_one_sided_rows(session):
        user_id, other_id = row.user_id, row.connected_user_id
        accepted = await connection_request_repo.get_latest_accepted(session, user_id, other_id)
        profile = await user_repo.get_user_profile(session, user_id)
        if accepted is not None and profile is not None:
            _, created = await connection_repo.create_row_if_absent(session, other_id, user_id, profile)
            if created:
                completed += 1
                logger.info(f"Completed one-sided connection {user_id} -> {other_id}")
        else:
            if await connection_repo.delete(session, (user_id, other_id)):
                removed += 1
                logger.info(f"Removed one-sided connection {user_id} -> {other_id}, no accepted request")
    return completed, removed


async def close_stale_requests(session: AsyncSession) -> int:
    """Mark accepted every pending request between users who are already connected."""
    closed = 0
    for request in await connection_request_repo.get_all_pending(session):
        if await connection_repo.is_connected(session, request.from_user_id, request.to_user_id):
            await connection_request_repo.set_status(session, request.id, RequestStatus.ACCEPTED)
            closed += 1
    return closed


async def run_integrity_checks(session: AsyncSession) -> dict:
    """
    Run database integrity checks.

    Args:
        session: Database session
    """
    logger.info("Checking for one-sided connections...")
    completed, removed = await repair_one_sided_connections(session)
    logger.info(f"One-sided connections: completed {completed}, removed {removed}")

    logger.info("Closing pending requests between connected users...")
    closed = await close_stale_requests(session)
    logger.info(f"Closed {closed} stale requests")
    return {"completed": completed, "removed": removed, "closed": closed}


async def run_startup_tasks():
    """
    Run critical startup tasks to ensure database integrity.
    - Repair one-sided connections
    - Close pending requests of connected pairs
    """
    logger.info("Starting database integrity checks...")
    report = None
    try:
        async for session in get_session():
            report = await run_integrity_checks(session)
            break
    except Exception as e:
        logger.error(f"Error running startup integrity checks: {e}")

    logger.info("Database integrity checks completed.")
    return report
