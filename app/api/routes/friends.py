"""
Friend graph routes.
"""
from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session
from app.db.session import get_db
from app.models.user import User
from app.schemas.friend import FriendAdded, FriendResponse
from app.schemas.run import FriendRunSummary
from app.api.dependencies import get_current_user
from app.core.utils import format_response
from app.services.friend_service import FriendService

router = APIRouter(prefix="/friends", tags=["friends"])


@router.get("")
async def list_friends(
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """List accepted friends with their run stats."""
    friends = FriendService(db).list_friends(current_user.id)
    return format_response(
        friends=[FriendResponse(**f).model_dump(by_alias=True) for f in friends]
    )


@router.post("/invite/{code}", status_code=status.HTTP_201_CREATED)
async def add_friend_by_invite_code(
    code: str,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Add the owner of an invite code as a friend (accepted immediately)."""
    _, friend = FriendService(db).add_by_invite_code(current_user, code)
    return format_response(
        message="Friend added!",
        friend=FriendAdded.model_validate(friend).model_dump(by_alias=True),
    )


@router.delete("/{friend_id}")
async def remove_friend(
    friend_id: int,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Remove a friend."""
    FriendService(db).remove(current_user.id, friend_id)
    return format_response(message="Friend removed")


@router.get("/{friend_id}/runs")
async def list_friend_runs(
    friend_id: int,
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """A friend's runs (metrics only)."""
    runs = FriendService(db).list_friend_runs(current_user.id, friend_id, page=page, limit=limit)
    return format_response(
        runs=[FriendRunSummary.model_validate(r).model_dump(by_alias=True) for r in runs],
        page=page,
        limit=limit,
    )
