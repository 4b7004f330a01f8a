from datetime import datetime
from enum import Enum
from uuid import uuid4

from sqlalchemy import DateTime, ForeignKey, Index, String
from sqlalchemy.orm import Mapped, mapped_column

from swipematch.db.base import Base


class RequestStatus(str, Enum):
    PENDING = "pending"
    ACCEPTED = "accepted"
    REJECTED = "rejected"
    # An accepted request whose connection was later removed
    REMOVED = "removed"


def new_request_id() -> str:
    return uuid4().hex


class ConnectionRequest(Base):
    """A request from one user to connect with another."""
    __tablename__ = "connection_requests"
    __table_args__ = (
        Index("ix_connection_requests_pair_status", "from_user_id", "to_user_id", "status"),
    )

    id: Mapped[str] = mapped_column(String(64), primary_key=True, default=new_request_id)
    from_user_id: Mapped[str] = mapped_column(ForeignKey("users.id"))
    to_user_id: Mapped[str] = mapped_column(ForeignKey("users.id"), index=True)

    # Denormalized for display
    from_username: Mapped[str] = mapped_column(String(64), default="")
    from_display_name: Mapped[str] = mapped_column(String(128), default="")
    to_username: Mapped[str] = mapped_column(String(64), default="")

    status: Mapped[str] = mapped_column(String(20), default=RequestStatus.PENDING.value)  # pending, accepted, rejected, removed
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    @property
    def is_pending(self) -> bool:
        return self.status == RequestStatus.PENDING.value

    def __repr__(self) -> str:
        return f"<ConnectionRequest {self.id} {self.from_user_id}->{self.to_user_id} {self.status}>"
