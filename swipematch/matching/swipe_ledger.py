"""
Swipe ledger: one like/pass decision per (user, item).
"""
from loguru import logger
from sqlalchemy.ext.asyncio import AsyncSession

from swipematch.core.categories import validate_category
from swipematch.core.errors import NotFound
from swipematch.db.models import Swipe
from swipematch.db.repositories import match_repo, swipe_repo, user_repo
from swipematch.db.utils.session_management import with_retry
from swipematch.matching.catalog import Catalog
from swipematch.matching.match_detector import detect_matches


async def record_swipe(
    session: AsyncSession,
    user_id: str,
    item_id: str,
    category: str,
    liked: bool,
) -> Swipe:
    """
    Record the decision of a user on an item.

    A second swipe on the same item replaces the first. When the swipe is a
    like, match detection for the item runs before this returns; the swipe is
    committed first so a match is never visible before both likes are.
    """
    category = validate_category(category).value
    if await user_repo.get(session, user_id) is None:
        raise NotFound(f"User {user_id} not found", user_message="User profile not found.")

    swipe = await swipe_repo.upsert_swipe(session, user_id, item_id, category, liked)
    logger.debug(f"Swipe recorded: {swipe}")

    if liked:
        await detect_matches(session, item_id, category)
    return swipe


async def list_swipes(session: AsyncSession, user_id: str) -> list[str]:
    """Ids of all items the user has swiped on."""
    return await swipe_repo.list_item_ids(session, user_id)


async def get_user_swipes(session: AsyncSession, user_id: str, category: str | None = None) -> list[Swipe]:
    """Full swipe records of a user, most recent first."""
    if category is not None:
        category = validate_category(category).value
    return await swipe_repo.get_user_swipes(session, user_id, category)


@with_retry()
async def delete_swipe(session: AsyncSession, user_id: str, item_id: str) -> bool:
    """
    Remove one swipe of a user. Matches built on it are kept; only an
    explicit reset removes matches.

    Returns:
        True if a swipe was removed
    """
    removed = await swipe_repo.delete_swipe(session, user_id, item_id)
    if removed:
        logger.info(f"User {user_id} deleted swipe on item {item_id}")
    return removed


async def get_unswiped_items(session: AsyncSession, user_id: str, category: str, catalog: Catalog) -> list[dict]:
    """Catalog items of a category the user has not swiped on yet."""
    category = validate_category(category).value
    swiped = set(await swipe_repo.list_item_ids(session, user_id, category))
    return [item for item in await catalog.list_items(category) if item["id"] not in swiped]


@with_retry()
async def reset_all_swipes(session: AsyncSession, user_id: str) -> tuple[int, int]:
    """
    Start over: delete every swipe of the user, then every match the user is
    a member of. Both steps are idempotent, a retry completes a partial run.

    Returns:
        (swipes deleted, matches deleted)
    """
    swipes_deleted = await swipe_repo.delete_all_for_user(session, user_id)
    matches_deleted = await match_repo.delete_matches_for_user(session, user_id)
    logger.info(f"User {user_id} reset all swipes: {swipes_deleted} swipes, {matches_deleted} matches deleted")
    return swipes_deleted, matches_deleted
