"""
Match detection.

A match is materialized for every unordered pair of users who liked the same
item. Matches are keyed by ``match_id`` (canonical pair + item), so running
detection any number of times, from any number of concurrent callers,
converges to exactly one record per pair.
"""
from dataclasses import dataclass
from itertools import combinations

from loguru import logger
from sqlalchemy.ext.asyncio import AsyncSession

from swipematch.core.categories import validate_category
from swipematch.core.diagnostics import record
from swipematch.core.errors import TransientStoreFailure
from swipematch.db.models import Match
from swipematch.db.repositories import connection_repo, match_repo, swipe_repo, user_repo
from swipematch.db.utils.session_management import with_retry
from swipematch.matching.catalog import Catalog


@dataclass
class MatchView:
    """A match as shown to one of its members."""
    match: Match
    other_user: dict
    item: dict | None = None


async def _collect_likers(session: AsyncSession, item_id: str, category: str | None) -> dict[str, dict[str, dict]]:
    """Profiles of every user who currently likes the item, grouped by category.

    A liker whose profile cannot be loaded is left out of this pass; the next
    like on the item picks them up again.
    """
    likers: dict[str, dict[str, dict]] = {}
    for swipe in await swipe_repo.get_likers(session, item_id, category):
        user_id = swipe.user_id
        try:
            profile = await user_repo.get_user_profile(session, user_id)
        except TransientStoreFailure as e:
            logger.warning(f"Skipping liker {user_id} of item {item_id}, profile lookup failed: {e}")
            continue
        if profile is None:
            logger.warning(f"Skipping liker {user_id} of item {item_id}, no profile found")
            continue
        likers.setdefault(swipe.category, {})[user_id] = profile
    return likers


@with_retry()
async def detect_matches(session: AsyncSession, item_id: str, category: str | None = None) -> list[Match]:
    """
    Materialize a match for every pair of users who like ``item_id``.

    Args:
        session: Database session
        item_id: The item that was just liked
        category: Only consider likes in this category (default: every category
            the item was liked in; pairs never span categories)

    Returns:
        The matches created by this call (existing ones are left untouched)
    """
    if category is not None:
        category = validate_category(category).value
    likers_by_category = await _collect_likers(session, item_id, category)

    created = []
    for item_category, likers in likers_by_category.items():
        logger.debug(f"Item {item_category}/{item_id} has {len(likers)} likers")
        for user1_id, user2_id in combinations(sorted(likers), 2):
            match, is_new = await match_repo.create_match_if_absent(
                session,
                user1_id,
                user2_id,
                item_id,
                item_category,
                [likers[user1_id], likers[user2_id]],
            )
            if is_new:
                record("matches_created")
                logger.info(f"Match created: {match.id}")
                created.append(match)
    return created


async def get_user_matches(
    session: AsyncSession,
    user_id: str,
    category: str | None = None,
    connected_only: bool = False,
    catalog: Catalog | None = None,
) -> list[MatchView]:
    """
    Get the matches of a user, newest first.

    Args:
        session: Database session
        user_id: The user whose matches to list
        category: Only matches of this category
        connected_only: Only matches with a user the caller is connected to
        catalog: If given, each match is enriched with its catalog item

    Returns:
        List of MatchView objects
    """
    if category is not None:
        category = validate_category(category).value
    matches = await match_repo.get_matches_for_user(session, user_id, category)

    connected_ids = None
    if connected_only:
        connections = await connection_repo.get_connections_for_user(session, user_id)
        connected_ids = {c.connected_user_id for c in connections}

    views = []
    for match in matches:
        other_id = match.other_user_id(user_id)
        if connected_ids is not None and other_id not in connected_ids:
            continue
        other_profile = next(
            (p for p in match.user_profiles if p.get("uid") == other_id),
            {"uid": other_id, "username": "", "displayName": ""},
        )
        item = await catalog.get_item(match.category, match.item_id) if catalog else None
        views.append(MatchView(match=match, other_user=other_profile, item=item))
    return views
