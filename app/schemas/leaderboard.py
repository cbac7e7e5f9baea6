"""
Pydantic schemas for leaderboards.
"""
from typing import Union
from app.schemas.base import CamelModel


class LeaderboardEntry(CamelModel):
    """One ranked row of a leaderboard."""
    rank: int
    user_id: int
    display_name: str
    is_you: bool
    value: Union[int, float]
    display_value: str
    detail: str
