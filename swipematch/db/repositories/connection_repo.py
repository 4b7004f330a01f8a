from datetime import datetime

from sqlalchemy import and_, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import aliased

from swipematch.core.diagnostics import track_db
from swipematch.db.models import Connection
from swipematch.db.repositories.base import BaseRepository


class ConnectionRepository(BaseRepository[Connection]):
    """Repository for the two symmetric rows that make up a connection."""

    def __init__(self):
        super().__init__(Connection)

    async def create_row_if_absent(
        self,
        session: AsyncSession,
        user_id: str,
        connected_user_id: str,
        connected_profile: dict,
    ) -> tuple[Connection, bool]:
        """Write the user_id -> connected_user_id row unless it exists."""
        return await self.create_if_absent(
            session,
            (user_id, connected_user_id),
            {
                "user_id": user_id,
                "connected_user_id": connected_user_id,
                "connected_username": connected_profile.get("username", ""),
                "connected_display_name": connected_profile.get("displayName", ""),
                "connected_at": datetime.utcnow(),
            },
        )

    async def get_row(self, session: AsyncSession, user_id: str, connected_user_id: str) -> Connection | None:
        return await self.get(session, (user_id, connected_user_id))

    async def is_connected(self, session: AsyncSession, user_a: str, user_b: str) -> bool:
        """True only when both directions of the connection exist."""
        if await self.get_row(session, user_a, user_b) is None:
            return False
        return await self.get_row(session, user_b, user_a) is not None

    @track_db
    async def get_connections_for_user(self, session: AsyncSession, user_id: str) -> list[Connection]:
        """Connections of a user whose mirror row also exists."""
        mirror = aliased(Connection)
        query = (
            select(Connection)
            .join(
                mirror,
                and_(
                    mirror.user_id == Connection.connected_user_id,
                    mirror.connected_user_id == Connection.user_id,
                ),
            )
            .where(Connection.user_id == user_id)
            .order_by(Connection.connected_at.desc())
        )
        result = await session.execute(query)
        return list(result.scalars().all())

    @track_db
    async def get_one_sided_rows(self, session: AsyncSession) -> list[Connection]:
        """Rows whose mirror row is missing."""
        mirror = aliased(Connection)
        query = (
            select(Connection)
            .outerjoin(
                mirror,
                and_(
                    mirror.user_id == Connection.connected_user_id,
                    mirror.connected_user_id == Connection.user_id,
                ),
            )
            .where(mirror.user_id.is_(None))
        )
        result = await session.execute(query)
        return list(result.scalars().all())

    async def delete_pair(self, session: AsyncSession, user_a: str, user_b: str) -> int:
        """Delete both rows of a connection. Returns how many rows were removed."""
        removed = 0
        for user_id, connected_user_id in ((user_a, user_b), (user_b, user_a)):
            if await self.delete(session, (user_id, connected_user_id)):
                removed += 1
        return removed


connection_repo = ConnectionRepository()
