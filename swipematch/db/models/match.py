from datetime import datetime

from sqlalchemy import JSON, DateTime, ForeignKey, String
from sqlalchemy.orm import Mapped, mapped_column

from swipematch.db.base import Base


class Match(Base):
    """Model representing two users who both liked the same item."""
    __tablename__ = "matches"

    # "<lower user id>_<higher user id>_<item id>", see pair_key()
    id: Mapped[str] = mapped_column(String(320), primary_key=True)
    item_id: Mapped[str] = mapped_column(String(128), index=True)
    category: Mapped[str] = mapped_column(String(32), index=True)
    # user1_id always sorts before user2_id
    user1_id: Mapped[str] = mapped_column(ForeignKey("users.id"), index=True)
    user2_id: Mapped[str] = mapped_column(ForeignKey("users.id"), index=True)
    user_profiles: Mapped[list] = mapped_column(JSON, default=list)
    matched_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)

    @property
    def user_ids(self) -> list[str]:
        return [self.user1_id, self.user2_id]

    def other_user_id(self, user_id: str) -> str:
        return self.user2_id if user_id == self.user1_id else self.user1_id

    def __repr__(self) -> str:
        return f"<Match {self.id}>"
