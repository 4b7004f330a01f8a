from datetime import datetime
from typing import Iterable

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from swipematch.core.diagnostics import track_db
from swipematch.db.models import Swipe
from swipematch.db.repositories.base import BaseRepository


class SwipeRepository(BaseRepository[Swipe]):
    """Repository for swipes, keyed by (user_id, item_id)."""

    def __init__(self):
        super().__init__(Swipe)

    async def upsert_swipe(
        self,
        session: AsyncSession,
        user_id: str,
        item_id: str,
        category: str,
        liked: bool,
    ) -> Swipe:
        """Write the decision of a user on an item, replacing any earlier one."""
        return await self.put(
            session,
            {
                "user_id": user_id,
                "item_id": item_id,
                "category": category,
                "liked": liked,
                "swiped_at": datetime.utcnow(),
            },
        )

    @track_db
    async def list_item_ids(self, session: AsyncSession, user_id: str, category: str | None = None) -> list[str]:
        """Ids of every item the user has swiped on."""
        query = select(Swipe.item_id).where(Swipe.user_id == user_id)
        if category is not None:
            query = query.where(Swipe.category == category)
        result = await session.execute(query)
        return list(result.scalars().all())

    async def get_user_swipes(self, session: AsyncSession, user_id: str, category: str | None = None) -> list[Swipe]:
        """Swipes of a user, most recent first."""
        filters = {"user_id": user_id}
        if category is not None:
            filters["category"] = category
        return list(await self.query(session, order_by=Swipe.swiped_at.desc(), **filters))

    @track_db
    async def get_likers(self, session: AsyncSession, item_id: str, category: str | None = None) -> list[Swipe]:
        """Liked swipes on the item, in user id order.

        Served by the (item_id, liked) index.
        """
        query = select(Swipe).where(Swipe.item_id == item_id, Swipe.liked.is_(True))
        if category is not None:
            query = query.where(Swipe.category == category)
        result = await session.execute(query.order_by(Swipe.user_id))
        return list(result.scalars().all())

    async def delete_swipe(self, session: AsyncSession, user_id: str, item_id: str) -> bool:
        return await self.delete(session, (user_id, item_id))

    @track_db
    async def delete_swipes_on_items(
        self,
        session: AsyncSession,
        user_ids: Iterable[str],
        item_ids: Iterable[str],
        category: str,
    ) -> int:
        """Delete the swipes of the given users on the given items of one category."""
        user_ids, item_ids = list(user_ids), list(item_ids)
        if not user_ids or not item_ids:
            return 0
        stmt = delete(Swipe).where(
            Swipe.user_id.in_(user_ids),
            Swipe.item_id.in_(item_ids),
            Swipe.category == category,
        )
        try:
            result = await session.execute(stmt)
            await session.commit()
        except Exception:
            await session.rollback()
            raise
        return result.rowcount

    @track_db
    async def delete_all_for_user(self, session: AsyncSession, user_id: str) -> int:
        try:
            result = await session.execute(delete(Swipe).where(Swipe.user_id == user_id))
            await session.commit()
        except Exception:
            await session.rollback()
            raise
        return result.rowcount


swipe_repo = SwipeRepository()
