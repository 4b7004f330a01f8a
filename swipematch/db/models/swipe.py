from datetime import datetime

from sqlalchemy import Boolean, DateTime, ForeignKey, Index, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from swipematch.db.base import Base


class Swipe(Base):
    """One like/pass decision of a user on a catalog item."""

    __tablename__ = "swipes"
    __table_args__ = (
        # Match detection reads likers of an item through this index
        Index("ix_swipes_item_id_liked", "item_id", "liked"),
    )

    user_id: Mapped[str] = mapped_column(ForeignKey("users.id"), primary_key=True)
    item_id: Mapped[str] = mapped_column(String(128), primary_key=True)
    category: Mapped[str] = mapped_column(String(32), index=True)
    liked: Mapped[bool] = mapped_column(Boolean, default=False)
    swiped_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)

    # Relationships
    user = relationship("User", back_populates="swipes")

    def __repr__(self) -> str:
        decision = "like" if self.liked else "pass"
        return f"<Swipe {self.user_id} {decision} {self.category}/{self.item_id}>"
