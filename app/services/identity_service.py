"""
Identity store: typed access to user records and their alternate keys.
"""
from datetime import datetime
from typing import Any, Dict, Optional
import logging
from sqlalchemy import func, or_
from sqlalchemy.orm import Session
from app.core.exceptions import ValidationError
from app.core.utils import fallback_invite_code, generate_invite_code, sanitize_display_name
from app.models.friendship import Friendship, FriendshipStatus
from app.models.run import Run
from app.models.user import User

logger = logging.getLogger(__name__)

INVITE_CODE_ATTEMPTS = 10

PROFILE_FIELDS = (
    "display_name", "home_resort", "use_metric", "weight_kg", "haptics_enabled", "battery_mode",
)


class IdentityStore:
    """User lookups by id, email, Apple subject and invite code."""

    def __init__(self, db: Session):
        self.db = db

    def get(self, user_id: int) -> Optional[User]:
        return self.db.query(User).filter(User.id == user_id).first()

    def get_by_email(self, email: str) -> Optional[User]:
        return self.db.query(User).filter(User.email == email.strip().lower()).first()

    def get_by_apple_id(self, apple_user_id: str) -> Optional[User]:
        return self.db.query(User).filter(User.apple_user_id == apple_user_id).first()

    def get_by_invite_code(self, code: str) -> Optional[User]:
        return self.db.query(User).filter(User.invite_code == code.strip().upper()).first()

    def invite_code_taken(self, code: str) -> bool:
        return self.db.query(User.id).filter(User.invite_code == code).first() is not None

    def unique_invite_code(self) -> str:
        """
        Draw random invite codes until one is free.

        After INVITE_CODE_ATTEMPTS collisions a time-derived code is used
        instead, which bounds the number of lookups per sign-up.
        """
        for _ in range(INVITE_CODE_ATTEMPTS):
            code = generate_invite_code()
            if not self.invite_code_taken(code):
                return code
        code = fallback_invite_code()
        logger.warning("Invite code space congested, using fallback code %s", code)
        return code

    def create_user(
        self,
        email: Optional[str] = None,
        password_hash: Optional[str] = None,
        apple_user_id: Optional[str] = None,
        display_name: Optional[str] = None,
    ) -> User:
        """Create a user with a fresh invite code. Flushes but does not commit."""
        user = User(
            email=email.strip().lower() if email else None,
            password_hash=password_hash,
            apple_user_id=apple_user_id,
            display_name=sanitize_display_name(display_name),
            invite_code=self.unique_invite_code(),
            last_login_at=datetime.utcnow(),
        )
        self.db.add(user)
        self.db.flush()
        logger.info("Created user %s (apple=%s)", user.id, apple_user_id is not None)
        return user

    def touch_login(self, user: User) -> None:
        user.last_login_at = datetime.utcnow()
        self.db.flush()

    def update_profile(self, user: User, changes: Dict[str, Any]) -> User:
        """Apply a partial profile update."""
        updates = {k: v for k, v in changes.items() if k in PROFILE_FIELDS and v is not None}
        if not updates:
            raise ValidationError("No fields to update")

        if "display_name" in updates:
            updates["display_name"] = sanitize_display_name(updates["display_name"])
        if "home_resort" in updates:
            updates["home_resort"] = updates["home_resort"].strip()

        for field, value in updates.items():
            setattr(user, field, value)
        self.db.commit()
        self.db.refresh(user)
        return user

    def delete(self, user: User) -> None:
        """Hard delete; refresh tokens, runs and friendships cascade."""
        user_id = user.id
        self.db.delete(user)
        self.db.commit()
        logger.info("Deleted user %s", user_id)

    def profile_stats(self, user_id: int) -> Dict[str, Any]:
        """Lifetime stats over non-deleted runs plus the accepted friend count."""
        row = self.db.query(
            func.count(Run.id),
            func.coalesce(func.sum(Run.points), 0),
            func.coalesce(func.max(Run.max_speed), 0),
            func.coalesce(func.sum(Run.elevation_drop), 0),
            func.coalesce(func.sum(Run.distance), 0),
            func.count(func.distinct(Run.resort_name)),
        ).filter(Run.user_id == user_id, Run.is_deleted.is_(False)).one()

        friend_count = self.db.query(func.count(Friendship.id)).filter(
            or_(Friendship.user_id == user_id, Friendship.friend_id == user_id),
            Friendship.status == FriendshipStatus.ACCEPTED,
        ).scalar()

        return {
            "total_runs": int(row[0]),
            "total_points": int(row[1]),
            "top_speed": float(row[2]),
            "total_vert": float(row[3]),
            "total_distance": float(row[4]),
            "resort_count": int(row[5]),
            "friend_count": int(friend_count or 0),
        }
