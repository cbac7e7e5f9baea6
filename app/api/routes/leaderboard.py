"""
Season leaderboard routes.
"""
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session
from app.db.session import get_db
from app.models.user import User
from app.schemas.leaderboard import LeaderboardEntry
from app.api.dependencies import get_current_user
from app.core.utils import format_response, season_start
from app.services.leaderboard_service import LeaderboardService

router = APIRouter(prefix="/leaderboard", tags=["leaderboard"])


def _board_response(board: str, user: User, db: Session) -> dict:
    entries = LeaderboardService(db).leaderboard(user.id, board)
    return format_response(
        board=board,
        seasonStart=season_start(),
        leaderboard=[LeaderboardEntry(**e).model_dump(by_alias=True) for e in entries],
    )


@router.get("/season")
async def season_points(
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Season points board."""
    return _board_response("season", current_user, db)


@router.get("/speed")
async def top_speed(
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Fastest single run this season, per skier."""
    return _board_response("speed", current_user, db)


@router.get("/vert")
async def total_vert(
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Total vertical drop this season."""
    return _board_response("vert", current_user, db)


@router.get("/distance")
async def total_distance(
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    return _board_response("distance", current_user, db)
