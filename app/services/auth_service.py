"""
Authentication service: Sign in with Apple, email registration and login.
"""
from dataclasses import dataclass
from typing import Optional
import logging
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session
from app.core.exceptions import Conflict, Forbidden, InvalidCredential
from app.core.security import get_password_hash, verify_password
from app.core.utils import DEFAULT_DISPLAY_NAME
from app.models.user import User
from app.services.apple_auth import AppleTokenVerifier
from app.services.identity_service import IdentityStore
from app.services.session_service import SessionManager, SessionTokens

logger = logging.getLogger(__name__)

# Compared against on login failures that have no real hash to check
DUMMY_PASSWORD_HASH = get_password_hash("skistat-dummy-password")


@dataclass
class SessionResult:
    """A signed-in user together with their fresh token pair."""
    user: User
    tokens: SessionTokens


class AuthService:
    """Credential checks and implicit registration for both login methods."""

    def __init__(self, db: Session, apple_verifier: Optional[AppleTokenVerifier] = None):
        self.db = db
        self.identities = IdentityStore(db)
        self.sessions = SessionManager(db)
        self.apple_verifier = apple_verifier

    def _start_session(self, user: User) -> SessionResult:
        tokens = self.sessions.issue_session(user)
        self.db.refresh(user)
        return SessionResult(user=user, tokens=tokens)

    def sign_in_with_apple(self, identity_token: str, full_name: Optional[str] = None) -> SessionResult:
        """
        Verify an Apple identity token and sign the user in, creating the
        account on first sign-in.
        """
        identity = self.apple_verifier.verify(identity_token)

        user = self.identities.get_by_apple_id(identity.sub)
        if user:
            if user.is_banned:
                raise Forbidden("Account suspended")
            self.identities.touch_login(user)
            logger.info("Apple sign-in for user %s", user.id)
            return self._start_session(user)

        email = identity.email.lower() if identity.email else None
        if email and self.identities.get_by_email(email):
            # Email already belongs to a password account; keep the Apple
            # account separate rather than silently linking the two.
            email = None

        if full_name and full_name.strip():
            display_name = full_name
        elif identity.email:
            display_name = identity.email.split("@")[0]
        else:
            display_name = DEFAULT_DISPLAY_NAME

        try:
            user = self.identities.create_user(
                email=email,
                apple_user_id=identity.sub,
                display_name=display_name,
            )
        except IntegrityError:
            self.db.rollback()
            raise Conflict("Account already exists")
        logger.info("Registered user %s via Apple", user.id)
        return self._start_session(user)

    def register(self, email: str, password: str, display_name: Optional[str] = None) -> SessionResult:
        """Create an email/password account and sign it in."""
        email = email.strip().lower()
        if self.identities.get_by_email(email):
            raise Conflict("Email already registered")

        try:
            user = self.identities.create_user(
                email=email,
                password_hash=get_password_hash(password),
                display_name=display_name or email.split("@")[0],
            )
        except IntegrityError:
            # Lost a race with a concurrent registration of the same email
            self.db.rollback()
            raise Conflict("Email already registered")
        logger.info("Registered user %s via email", user.id)
        return self._start_session(user)

    def login(self, email: str, password: str) -> SessionResult:
        """
        Email/password login.

        All failures raise InvalidCredential and differ only in message.
        Every branch pays exactly one bcrypt comparison.
        """
        user = self.identities.get_by_email(email)
        if not user or user.is_banned or not user.password_hash:
            verify_password(password, DUMMY_PASSWORD_HASH)
        if not user:
            raise InvalidCredential("Invalid email or password")
        if user.is_banned:
            raise InvalidCredential("Account suspended")
        if not user.password_hash:
            raise InvalidCredential("This account uses Apple Sign In. Please sign in with Apple.")
        if not verify_password(password, user.password_hash):
            raise InvalidCredential("Invalid email or password")

        self.identities.touch_login(user)
        return self._start_session(user)

    def refresh(self, refresh_token: str) -> SessionResult:
        user, tokens = self.sessions.refresh(refresh_token)
        return SessionResult(user=user, tokens=tokens)

    def delete_account(self, user: User) -> None:
        self.identities.delete(user)
