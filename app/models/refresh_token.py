"""
Refresh token model: a persisted, single-use capability to mint a new session.
"""
from sqlalchemy import Column, Text, DateTime, ForeignKey, Integer
from sqlalchemy.orm import relationship
from app.db.base import BaseModel


class RefreshToken(BaseModel):
    """Refresh token row. Deleted on use, logout, expiry purge or pruning."""
    __tablename__ = "refresh_tokens"

    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    token = Column(Text, unique=True, nullable=False)
    expires_at = Column(DateTime, nullable=False, index=True)

    # Relationships
    user = relationship("User", back_populates="refresh_tokens")
