from datetime import datetime

from sqlalchemy import DateTime, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from swipematch.db.base import Base


class User(Base):
    """Profile of a user as supplied by the identity provider."""

    __tablename__ = "users"

    id: Mapped[str] = mapped_column(String(128), primary_key=True)
    # Always stored lower-cased, lookups are case-insensitive
    username: Mapped[str] = mapped_column(String(64), unique=True, index=True)
    display_name: Mapped[str] = mapped_column(String(128), default="")

    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, default=datetime.utcnow, onupdate=datetime.utcnow
    )

    # Relationships
    swipes = relationship("Swipe", back_populates="user", cascade="all, delete-orphan")
    connections = relationship(
        "Connection", foreign_keys="Connection.user_id", back_populates="user", cascade="all, delete-orphan"
    )

    def profile(self) -> dict:
        """Snapshot used for denormalized copies on matches and connections."""
        return {"uid": self.id, "username": self.username, "displayName": self.display_name}

    def __repr__(self) -> str:
        return f"<User {self.id} (@{self.username})>"
