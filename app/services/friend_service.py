"""
Friend graph: one status-carrying edge per unordered pair of users.

Redeeming an invite code creates an accepted edge straight away; there is
no approval handshake.
"""
from typing import Any, Dict, List, Optional, Tuple
import logging
from sqlalchemy import and_, func, or_
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session
from app.core.config import settings
from app.core.exceptions import Conflict, Forbidden, LimitExceeded, NotFound, SelfReference
from app.models.friendship import Friendship, FriendshipStatus
from app.models.run import Run
from app.models.user import User
from app.services.identity_service import IdentityStore

logger = logging.getLogger(__name__)

EXISTING_EDGE_MESSAGES = {
    FriendshipStatus.ACCEPTED: "Already friends",
    FriendshipStatus.PENDING: "Friend request already pending",
    FriendshipStatus.BLOCKED: "Unable to send request",
}


def _touching(user_id: int):
    return or_(Friendship.user_id == user_id, Friendship.friend_id == user_id)


def _between(a: int, b: int):
    low, high = Friendship.canonical_pair(a, b)
    return and_(Friendship.user_low == low, Friendship.user_high == high)


class FriendService:
    """Friend edges and friend-gated reads."""

    def __init__(self, db: Session):
        self.db = db

    def edge_between(self, a: int, b: int) -> Optional[Friendship]:
        return self.db.query(Friendship).filter(_between(a, b)).first()

    def friend_ids(self, user_id: int) -> List[int]:
        """Ids of every user with an accepted edge to ``user_id``."""
        edges = self.db.query(Friendship).filter(
            _touching(user_id), Friendship.status == FriendshipStatus.ACCEPTED
        ).all()
        return [edge.other_party(user_id) for edge in edges]

    def friend_count(self, user_id: int) -> int:
        return self.db.query(func.count(Friendship.id)).filter(
            _touching(user_id), Friendship.status == FriendshipStatus.ACCEPTED
        ).scalar() or 0

    def are_friends(self, a: int, b: int) -> bool:
        edge = self.edge_between(a, b)
        return edge is not None and edge.status == FriendshipStatus.ACCEPTED

    def add_by_invite_code(self, user: User, code: str) -> Tuple[Friendship, User]:
        """Befriend the owner of ``code``. Returns the new edge and the friend."""
        target = IdentityStore(self.db).get_by_invite_code(code)
        if not target:
            raise NotFound("No user found with that invite code")
        if target.id == user.id:
            raise SelfReference("That's your own invite code!")
        if self.friend_count(user.id) >= settings.MAX_FRIENDS:
            raise LimitExceeded(f"Friend limit reached ({settings.MAX_FRIENDS})")

        existing = self.edge_between(user.id, target.id)
        if existing:
            raise Conflict(EXISTING_EDGE_MESSAGES[existing.status])

        low, high = Friendship.canonical_pair(user.id, target.id)
        edge = Friendship(
            user_id=user.id,
            friend_id=target.id,
            user_low=low,
            user_high=high,
            status=FriendshipStatus.ACCEPTED,
        )
        self.db.add(edge)
        try:
            self.db.commit()
        except IntegrityError:
            # The other user redeemed our code at the same moment
            self.db.rollback()
            raise Conflict(EXISTING_EDGE_MESSAGES[FriendshipStatus.ACCEPTED])
        self.db.refresh(edge)
        logger.info("User %s added friend %s", user.id, target.id)
        return edge, target

    def remove(self, user_id: int, other_id: int) -> None:
        """Delete the edge between two users unless it is a block."""
        removed = self.db.query(Friendship).filter(
            _between(user_id, other_id),
            Friendship.status != FriendshipStatus.BLOCKED,
        ).delete(synchronize_session=False)
        if not removed:
            raise NotFound("Friendship not found")
        self.db.commit()

    def _stats_for(self, user_ids: List[int]) -> Dict[int, Dict[str, Any]]:
        if not user_ids:
            return {}
        rows = self.db.query(
            Run.user_id,
            func.count(Run.id),
            func.coalesce(func.sum(Run.points), 0),
            func.coalesce(func.max(Run.max_speed), 0),
            func.coalesce(func.sum(Run.elevation_drop), 0),
        ).filter(
            Run.user_id.in_(user_ids), Run.is_deleted.is_(False)
        ).group_by(Run.user_id).all()
        return {
            row[0]: {
                "runs": int(row[1]),
                "points": int(row[2]),
                "top_speed": float(row[3]),
                "total_vert": float(row[4]),
            }
            for row in rows
        }

    def list_friends(self, user_id: int) -> List[Dict[str, Any]]:
        """Accepted friends ordered by display name, with live run stats."""
        edges = self.db.query(Friendship).filter(
            _touching(user_id), Friendship.status == FriendshipStatus.ACCEPTED
        ).all()
        by_friend = {edge.other_party(user_id): edge for edge in edges}
        if not by_friend:
            return []

        users = self.db.query(User).filter(User.id.in_(list(by_friend))).order_by(
            User.display_name, User.id
        ).all()
        stats = self._stats_for([u.id for u in users])

        friends = []
        for friend in users:
            edge = by_friend[friend.id]
            friends.append({
                "id": friend.id,
                "display_name": friend.display_name,
                "invite_code": friend.invite_code,
                "joined_at": friend.created_at,
                "friend_since": edge.created_at,
                "direction": "sent" if edge.user_id == user_id else "received",
                "stats": stats.get(friend.id, {}),
            })
        return friends

    def list_friend_runs(self, user_id: int, friend_id: int, page: int = 1, limit: int = 20) -> List[Run]:
        """A friend's non-deleted runs, newest first. Requires an accepted edge."""
        if not self.are_friends(user_id, friend_id):
            raise Forbidden("Not friends with this user")
        return (
            self.db.query(Run)
            .filter(Run.user_id == friend_id, Run.is_deleted.is_(False))
            .order_by(Run.start_time.desc(), Run.id.desc())
            .offset((max(page, 1) - 1) * limit)
            .limit(limit)
            .all()
        )
