"""
Profile routes for the current user.
"""
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session
from app.db.session import get_db
from app.models.user import User
from app.schemas.user import ProfileResponse, ProfileStats, ProfileUpdate
from app.api.dependencies import get_current_user
from app.core.utils import format_response
from app.services.identity_service import IdentityStore

router = APIRouter(prefix="/profile", tags=["profile"])


@router.get("")
async def get_profile(
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Get the current user's profile and lifetime stats."""
    stats = IdentityStore(db).profile_stats(current_user.id)
    return format_response(
        profile=ProfileResponse.model_validate(current_user).model_dump(by_alias=True),
        stats=ProfileStats(**stats).model_dump(by_alias=True),
    )


@router.put("")
async def update_profile(
    body: ProfileUpdate,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Update profile fields and preferences."""
    user = IdentityStore(db).update_profile(current_user, body.model_dump(exclude_unset=True))
    return format_response(
        message="Profile updated",
        profile=ProfileResponse.model_validate(user).model_dump(by_alias=True),
    )
