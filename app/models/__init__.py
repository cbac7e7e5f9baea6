"""Models package - Import all models for SQLAlchemy registration."""
from app.models.user import User
from app.models.refresh_token import RefreshToken
from app.models.run import Run
from app.models.friendship import Friendship, FriendshipStatus

__all__ = [
    "User",
    "RefreshToken",
    "Run",
    "Friendship",
    "FriendshipStatus",
]
