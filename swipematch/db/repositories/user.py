from sqlalchemy import func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from loguru import logger

from swipematch.core.diagnostics import track_db
from swipematch.core.errors import AlreadyExists, InvalidOperation, TransientStoreFailure
from swipematch.db.models import User
from swipematch.db.repositories.base import BaseRepository


class UserRepository(BaseRepository[User]):
    def __init__(self):
        super().__init__(User)

    async def register_user(
        self, session: AsyncSession, user_id: str, username: str, display_name: str = ""
    ) -> User:
        """Store the profile of a newly signed-up user."""
        username = (username or "").strip().lower()
        if not user_id or not username:
            raise InvalidOperation(
                "user_id and username are required", user_message="Please choose a username."
            )
        existing = await self.get_user_by_username(session, username)
        if existing is not None and existing.id == user_id:
            return existing
        if existing is not None:
            raise AlreadyExists(
                f"Username {username} is already taken",
                user_message="This username is already taken. Please choose another one.",
            )

        try:
            user, created = await self.create_if_absent(
                session,
                user_id,
                {"id": user_id, "username": username, "display_name": display_name or username},
            )
        except TransientStoreFailure as e:
            if isinstance(e.__cause__, IntegrityError):
                # Lost a race for the same username
                raise AlreadyExists(
                    f"Username {username} is already taken",
                    user_message="This username is already taken. Please choose another one.",
                ) from e
            raise
        if created:
            logger.info(f"Registered user {user_id} as @{username}")
        return user

    async def is_username_taken(self, session: AsyncSession, username: str) -> bool:
        return await self.get_user_by_username(session, username) is not None

    @track_db
    async def get_user_profile(self, session: AsyncSession, user_id: str) -> dict | None:
        """Profile snapshot ({uid, username, displayName}) or None if the user is unknown."""
        user = await session.get(User, user_id)
        return user.profile() if user else None

    async def get_user_by_username(self, session: AsyncSession, username: str) -> User | None:
        """Case-insensitive username lookup."""
        if not username:
            return None
        return await self.get_by_attribute(
            session, expression=func.lower(User.username) == username.strip().lower()
        )


user_repo = UserRepository()
