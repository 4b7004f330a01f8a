from datetime import datetime

from sqlalchemy import DateTime, ForeignKey, Index, String
from sqlalchemy.orm import Mapped, mapped_column

from swipematch.db.base import Base
from swipematch.db.models.connection_request import RequestStatus, new_request_id


class ResetRequest(Base):
    """A request to wipe the shared swipes and matches of two users in one category."""
    __tablename__ = "reset_requests"
    __table_args__ = (
        Index("ix_reset_requests_pair_category_status", "from_user_id", "to_user_id", "category", "status"),
    )

    id: Mapped[str] = mapped_column(String(64), primary_key=True, default=new_request_id)
    from_user_id: Mapped[str] = mapped_column(ForeignKey("users.id"))
    to_user_id: Mapped[str] = mapped_column(ForeignKey("users.id"), index=True)
    category: Mapped[str] = mapped_column(String(32))
    status: Mapped[str] = mapped_column(String(20), default=RequestStatus.PENDING.value)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    @property
    def is_pending(self) -> bool:
        return self.status == RequestStatus.PENDING.value

    def __repr__(self) -> str:
        return f"<ResetRequest {self.id} {self.from_user_id}->{self.to_user_id} {self.category} {self.status}>"
