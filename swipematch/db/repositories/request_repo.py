from sqlalchemy import or_, and_, select
from sqlalchemy.ext.asyncio import AsyncSession

from swipematch.core.diagnostics import track_db
from swipematch.db.models import ConnectionRequest, RequestStatus, ResetRequest
from swipematch.db.repositories.base import BaseRepository


class ConnectionRequestRepository(BaseRepository[ConnectionRequest]):
    """Repository for connection requests."""

    def __init__(self):
        super().__init__(ConnectionRequest)

    async def create_request(self, session: AsyncSession, from_profile: dict, to_profile: dict) -> ConnectionRequest:
        return await self.create(
            session,
            {
                "from_user_id": from_profile["uid"],
                "from_username": from_profile.get("username", ""),
                "from_display_name": from_profile.get("displayName", ""),
                "to_user_id": to_profile["uid"],
                "to_username": to_profile.get("username", ""),
                "status": RequestStatus.PENDING.value,
            },
        )

    async def get_pending(self, session: AsyncSession, from_user_id: str, to_user_id: str) -> list[ConnectionRequest]:
        """Pending requests for one ordered pair, oldest first."""
        return list(await self.query(
            session,
            order_by=ConnectionRequest.created_at,
            from_user_id=from_user_id,
            to_user_id=to_user_id,
            status=RequestStatus.PENDING.value,
        ))

    @track_db
    async def get_pending_between(self, session: AsyncSession, user_a: str, user_b: str) -> list[ConnectionRequest]:
        """Pending requests in either direction between two users."""
        query = select(ConnectionRequest).where(
            ConnectionRequest.status == RequestStatus.PENDING.value,
            or_(
                and_(ConnectionRequest.from_user_id == user_a, ConnectionRequest.to_user_id == user_b),
                and_(ConnectionRequest.from_user_id == user_b, ConnectionRequest.to_user_id == user_a),
            ),
        )
        result = await session.execute(query)
        return list(result.scalars().all())

    async def get_sent(self, session: AsyncSession, user_id: str) -> list[ConnectionRequest]:
        return list(await self.query(
            session, order_by=ConnectionRequest.created_at.desc(),
            from_user_id=user_id, status=RequestStatus.PENDING.value,
        ))

    async def get_received(self, session: AsyncSession, user_id: str) -> list[ConnectionRequest]:
        return list(await self.query(
            session, order_by=ConnectionRequest.created_at.desc(),
            to_user_id=user_id, status=RequestStatus.PENDING.value,
        ))

    async def get_all_pending(self, session: AsyncSession) -> list[ConnectionRequest]:
        return list(await self.query(session, status=RequestStatus.PENDING.value))

    async def get_latest_accepted(self, session: AsyncSession, user_a: str, user_b: str) -> ConnectionRequest | None:
        accepted = await self.query(
            session,
            or_(
                and_(ConnectionRequest.from_user_id == user_a, ConnectionRequest.to_user_id == user_b),
                and_(ConnectionRequest.from_user_id == user_b, ConnectionRequest.to_user_id == user_a),
            ),
            order_by=ConnectionRequest.updated_at.desc(),
            status=RequestStatus.ACCEPTED.value,
        )
        return accepted[0] if accepted else None

    async def get_accepted_between(self, session: AsyncSession, user_a: str, user_b: str) -> list[ConnectionRequest]:
        """Accepted requests in either direction between two users."""
        return list(await self.query(
            session,
            or_(
                and_(ConnectionRequest.from_user_id == user_a, ConnectionRequest.to_user_id == user_b),
                and_(ConnectionRequest.from_user_id == user_b, ConnectionRequest.to_user_id == user_a),
            ),
            status=RequestStatus.ACCEPTED.value,
        ))

    async def set_status(self, session: AsyncSession, request_id: str, status: RequestStatus) -> ConnectionRequest | None:
        return await self.update(session, request_id, {"status": status.value})


class ResetRequestRepository(BaseRepository[ResetRequest]):
    """Repository for category reset requests."""

    def __init__(self):
        super().__init__(ResetRequest)

    async def create_request(self, session: AsyncSession, from_user_id: str, to_user_id: str, category: str) -> ResetRequest:
        return await self.create(
            session,
            {
                "from_user_id": from_user_id,
                "to_user_id": to_user_id,
                "category": category,
                "status": RequestStatus.PENDING.value,
            },
        )

    async def get_pending(
        self, session: AsyncSession, from_user_id: str, to_user_id: str, category: str
    ) -> list[ResetRequest]:
        """Pending reset requests for one ordered pair and category, oldest first."""
        return list(await self.query(
            session,
            order_by=ResetRequest.created_at,
            from_user_id=from_user_id,
            to_user_id=to_user_id,
            category=category,
            status=RequestStatus.PENDING.value,
        ))

    async def get_sent(self, session: AsyncSession, user_id: str) -> list[ResetRequest]:
        return list(await self.query(
            session, order_by=ResetRequest.created_at.desc(),
            from_user_id=user_id, status=RequestStatus.PENDING.value,
        ))

    async def get_received(self, session: AsyncSession, user_id: str) -> list[ResetRequest]:
        return list(await self.query(
            session, order_by=ResetRequest.created_at.desc(),
            to_user_id=user_id, status=RequestStatus.PENDING.value,
        ))

    async def set_status(self, session: AsyncSession, request_id: str, status: RequestStatus) -> ResetRequest | None:
        return await self.update(session, request_id, {"status": status.value})


connection_request_repo = ConnectionRequestRepository()
reset_request_repo = ResetRequestRepository()
