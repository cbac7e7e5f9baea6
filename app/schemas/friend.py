"""
Pydantic schemas for the friend graph.
"""
from datetime import datetime
from app.schemas.base import CamelModel


class FriendStats(CamelModel):
    """Live stats over a friend's non-deleted runs."""
    runs: int = 0
    points: int = 0
    top_speed: float = 0.0
    total_vert: float = 0.0


class FriendResponse(CamelModel):
    id: int
    display_name: str
    invite_code: str
    joined_at: datetime
    friend_since: datetime
    direction: str  # sent | received
    stats: FriendStats


class FriendAdded(CamelModel):
    id: int
    display_name: str
