"""
Session manager: issues, validates, rotates and revokes token pairs.

A refresh token moves through a single lifecycle:
issued -> (consumed by refresh | revoked by logout | expired | pruned) -> absent.
Every terminal path is a row deletion, so "present and unexpired" is the
whole validity check.
"""
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Optional
import logging
from jose import JOSEError
from sqlalchemy.orm import Session
from app.core.config import settings
from app.core.exceptions import Forbidden, InternalError, Unauthenticated
from app.core.security import (
    ACCESS_TOKEN_TYPE,
    REFRESH_TOKEN_TYPE,
    TokenExpired,
    TokenInvalid,
    create_access_token,
    create_refresh_token,
    decode_token,
    token_user_id,
)
from app.models.refresh_token import RefreshToken
from app.models.user import User
from app.services.identity_service import IdentityStore

logger = logging.getLogger(__name__)


@dataclass
class SessionTokens:
    access_token: str
    refresh_token: str


class SessionManager:
    """Token pair lifecycle for authenticated users."""

    def __init__(self, db: Session):
        self.db = db

    def issue_session(self, user: User, commit: bool = True) -> SessionTokens:
        """
        Sign a new access/refresh pair, persist the refresh token and prune
        the user's older refresh tokens down to the configured maximum.
        """
        try:
            access_token = create_access_token(user.id, user.email)
            refresh_token = create_refresh_token(user.id, user.email)
        except JOSEError as e:
            logger.error("Token signing failed for user %s: %s", user.id, e)
            raise InternalError("Failed to issue session")

        self.db.add(RefreshToken(
            user_id=user.id,
            token=refresh_token,
            expires_at=datetime.utcnow() + timedelta(days=settings.REFRESH_TOKEN_EXPIRE_DAYS),
        ))
        self.db.flush()
        self._prune(user.id)

        if commit:
            self.db.commit()
        return SessionTokens(access_token=access_token, refresh_token=refresh_token)

    def _prune(self, user_id: int) -> int:
        keep = settings.MAX_REFRESH_TOKENS_PER_USER
        stale_ids = [
            row.id for row in self.db.query(RefreshToken.id)
            .filter(RefreshToken.user_id == user_id)
            .order_by(RefreshToken.created_at.desc(), RefreshToken.id.desc())
            .offset(keep)
            .all()
        ]
        if not stale_ids:
            return 0
        return self.db.query(RefreshToken).filter(
            RefreshToken.id.in_(stale_ids)
        ).delete(synchronize_session=False)

    def authenticate(self, access_token: str) -> User:
        """
        Resolve an access token to its user.

        Runs on every protected request; the banned flag is read fresh each
        time so a ban takes effect on the next request.
        """
        try:
            payload = decode_token(access_token, ACCESS_TOKEN_TYPE)
            user_id = token_user_id(payload)
        except TokenExpired:
            raise Unauthenticated("Token expired")
        except TokenInvalid:
            raise Unauthenticated("Invalid token")

        user = IdentityStore(self.db).get(user_id)
        if not user:
            raise Unauthenticated("User not found")
        if user.is_banned:
            raise Forbidden("Account suspended")
        return user

    def refresh(self, refresh_token: str) -> tuple:
        """
        Exchange a refresh token for a new pair.

        The old row is consumed with one conditional DELETE; of two
        concurrent refreshes with the same token only one sees a deleted
        row. Returns ``(user, SessionTokens)``.
        """
        try:
            payload = decode_token(refresh_token, REFRESH_TOKEN_TYPE)
            user_id = token_user_id(payload)
        except (TokenExpired, TokenInvalid):
            raise Unauthenticated("Invalid refresh token")

        consumed = self.db.query(RefreshToken).filter(
            RefreshToken.token == refresh_token,
            RefreshToken.user_id == user_id,
            RefreshToken.expires_at > datetime.utcnow(),
        ).delete(synchronize_session=False)
        if consumed != 1:
            self.db.rollback()
            logger.info("Rejected refresh for user %s: token expired or revoked", user_id)
            raise Unauthenticated("Refresh token expired or revoked")

        user = IdentityStore(self.db).get(user_id)
        if not user or user.is_banned:
            self.db.rollback()
            raise Unauthenticated("User not found")

        tokens = self.issue_session(user, commit=False)
        self.db.commit()
        return user, tokens

    def logout(self, user_id: int, refresh_token: Optional[str] = None) -> int:
        """Revoke one refresh token, or all of the user's tokens when none is given."""
        query = self.db.query(RefreshToken).filter(RefreshToken.user_id == user_id)
        if refresh_token:
            query = query.filter(RefreshToken.token == refresh_token)
        removed = query.delete(synchronize_session=False)
        self.db.commit()
        logger.info("Logout for user %s revoked %d refresh token(s)", user_id, removed)
        return removed

    def purge_expired(self) -> int:
        """Delete expired refresh tokens across all users."""
        removed = self.db.query(RefreshToken).filter(
            RefreshToken.expires_at <= datetime.utcnow()
        ).delete(synchronize_session=False)
        self.db.commit()
        return removed
