from datetime import datetime

from sqlalchemy import DateTime, ForeignKey, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from swipematch.db.base import Base


class Connection(Base):
    """One direction of a symmetric connection between two users.

    A connection is valid only while both rows (A->B and B->A) exist.
    """
    __tablename__ = "connections"

    user_id: Mapped[str] = mapped_column(ForeignKey("users.id"), primary_key=True)
    connected_user_id: Mapped[str] = mapped_column(ForeignKey("users.id"), primary_key=True, index=True)

    # Denormalized profile of the peer
    connected_username: Mapped[str] = mapped_column(String(64), default="")
    connected_display_name: Mapped[str] = mapped_column(String(128), default="")
    connected_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)

    # Relationships
    user = relationship("User", foreign_keys=[user_id], back_populates="connections")

    def __repr__(self) -> str:
        return f"<Connection {self.user_id}->{self.connected_user_id}>"
