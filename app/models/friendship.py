"""
Friendship model: one edge per unordered pair of users.
"""
from sqlalchemy import (
    Column, Integer, ForeignKey, Enum as SQLEnum, UniqueConstraint, CheckConstraint
)
from sqlalchemy.orm import relationship
from app.db.base import BaseModel
import enum


class FriendshipStatus(str, enum.Enum):
    """Friendship status enumeration."""
    PENDING = "pending"
    ACCEPTED = "accepted"
    BLOCKED = "blocked"


class Friendship(BaseModel):
    """
    Edge between an initiator (user_id) and a target (friend_id).

    The pair is also stored canonically as (user_low, user_high) so the
    unique constraint holds regardless of who initiated.
    """
    __tablename__ = "friendships"

    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    friend_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    user_low = Column(Integer, nullable=False)
    user_high = Column(Integer, nullable=False)
    status = Column(
        SQLEnum(FriendshipStatus, values_callable=lambda e: [m.value for m in e], name="friendship_status"),
        default=FriendshipStatus.ACCEPTED,
        nullable=False,
    )

    __table_args__ = (
        UniqueConstraint("user_low", "user_high", name="uq_friendships_pair"),
        CheckConstraint("user_low < user_high", name="ck_friendships_low_lt_high"),
    )

    # Relationships
    user = relationship("User", foreign_keys=[user_id], back_populates="sent_friendships")
    friend = relationship("User", foreign_keys=[friend_id], back_populates="received_friendships")

    @staticmethod
    def canonical_pair(a: int, b: int):
        """Return the (low, high) ordering of two user ids."""
        return (a, b) if a < b else (b, a)

    def other_party(self, user_id: int) -> int:
        """Id of the user on the other end of this edge."""
        return self.friend_id if self.user_id == user_id else self.user_id
