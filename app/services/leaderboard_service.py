"""
Season leaderboards over the caller and their accepted friends.
"""
from datetime import datetime
from typing import Any, Dict, List, Optional
from sqlalchemy import and_, func
from sqlalchemy.orm import Session
from app.core.exceptions import NotFound
from app.core.utils import season_start
from app.models.run import Run
from app.models.user import User
from app.services.friend_service import FriendService

# board name -> (aggregate over the season's runs, display suffix)
BOARDS = {
    "season": (lambda: func.coalesce(func.sum(Run.points), 0), "pts"),
    "speed": (lambda: func.coalesce(func.max(Run.max_speed), 0), "km/h"),
    "vert": (lambda: func.coalesce(func.sum(Run.elevation_drop), 0), "m"),
    "distance": (lambda: func.coalesce(func.sum(Run.distance), 0), "km"),
}


def _format_value(board: str, value) -> Any:
    if board == "season":
        return int(value)
    return round(float(value), 2)


class LeaderboardService:
    """Read-only rollups; never includes users outside self + accepted friends."""

    def __init__(self, db: Session):
        self.db = db

    def visible_user_ids(self, user_id: int) -> List[int]:
        return [user_id] + FriendService(self.db).friend_ids(user_id)

    def leaderboard(self, user_id: int, board: str, now: Optional[datetime] = None) -> List[Dict[str, Any]]:
        """
        Rank the visible set by ``board`` over the current season.

        Ordered by the metric descending, ties broken by user id ascending.
        Users without runs this season are listed with a zero value.
        """
        if board not in BOARDS:
            raise NotFound("Leaderboard not found")
        aggregate, unit = BOARDS[board]
        metric = aggregate().label("metric")
        run_count = func.count(Run.id).label("run_count")
        start = season_start(now)

        rows = (
            self.db.query(User.id, User.display_name, metric, run_count)
            .outerjoin(Run, and_(
                Run.user_id == User.id,
                Run.is_deleted.is_(False),
                Run.start_time >= start,
            ))
            .filter(User.id.in_(self.visible_user_ids(user_id)))
            .group_by(User.id, User.display_name)
            .order_by(metric.desc(), User.id.asc())
            .all()
        )

        entries = []
        for rank, row in enumerate(rows, start=1):
            value = _format_value(board, row.metric)
            entries.append({
                "rank": rank,
                "user_id": row.id,
                "display_name": row.display_name,
                "is_you": row.id == user_id,
                "value": value,
                "display_value": f"{value} {unit}",
                "detail": f"{int(row.run_count)} runs",
            })
        return entries
