from datetime import datetime

from sqlalchemy import delete, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from swipematch.core.diagnostics import track_db
from swipematch.core.pairs import canonical_pair, match_id
from swipematch.db.models import Match
from swipematch.db.repositories.base import BaseRepository

_matches = BaseRepository(Match)


async def create_match_if_absent(
    session: AsyncSession,
    user1_id: str,
    user2_id: str,
    item_id: str,
    category: str,
    user_profiles: list[dict],
) -> tuple[Match, bool]:
    """Create the match between two users on an item unless it already exists.

    Returns the stored match and whether this call created it.
    """
    first, second = canonical_pair(user1_id, user2_id)
    profiles_by_id = {p["uid"]: p for p in user_profiles}
    key = match_id(first, second, item_id)
    return await _matches.create_if_absent(
        session,
        key,
        {
            "id": key,
            "item_id": item_id,
            "category": category,
            "user1_id": first,
            "user2_id": second,
            "user_profiles": [profiles_by_id[first], profiles_by_id[second]],
            "matched_at": datetime.utcnow(),
        },
    )


@track_db
async def get_matches_for_user(session: AsyncSession, user_id: str, category: str | None = None) -> list[Match]:
    """Get all matches whose user_ids contain the user."""
    query = select(Match).where(or_(Match.user1_id == user_id, Match.user2_id == user_id))
    if category is not None:
        query = query.where(Match.category == category)
    result = await session.execute(query.order_by(Match.matched_at.desc()))
    return list(result.scalars().all())


@track_db
async def get_matches_for_item(session: AsyncSession, item_id: str) -> list[Match]:
    result = await session.execute(select(Match).where(Match.item_id == item_id))
    return list(result.scalars().all())


@track_db
async def get_matches_between_users(
    session: AsyncSession, user1_id: str, user2_id: str, category: str | None = None
) -> list[Match]:
    """Get the matches two users share, optionally restricted to one category."""
    first, second = canonical_pair(user1_id, user2_id)
    query = select(Match).where(Match.user1_id == first, Match.user2_id == second)
    if category is not None:
        query = query.where(Match.category == category)
    result = await session.execute(query)
    return list(result.scalars().all())


async def delete_match(session: AsyncSession, key: str) -> bool:
    """Delete a match; deleting a missing match is not an error."""
    return await _matches.delete(session, key)


@track_db
async def delete_matches_for_user(session: AsyncSession, user_id: str) -> int:
    stmt = delete(Match).where(or_(Match.user1_id == user_id, Match.user2_id == user_id))
    try:
        result = await session.execute(stmt)
        await session.commit()
    except Exception:
        await session.rollback()
        raise
    return result.rowcount
