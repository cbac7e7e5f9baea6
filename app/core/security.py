"""
Security utilities for JWT signing and password hashing.
"""
from datetime import datetime, timedelta
from typing import Optional
import base64
import hashlib
import uuid
import bcrypt
from jose import ExpiredSignatureError, JWTError, jwt
from app.core.config import settings

ACCESS_TOKEN_TYPE = "access"
REFRESH_TOKEN_TYPE = "refresh"


class TokenExpired(Exception):
    """Raised when a token carries a valid signature but is past its expiry."""


class TokenInvalid(Exception):
    """Raised when a token is malformed or its signature does not verify."""


def _pre_hash_password(password: str) -> bytes:
    """
    Pre-hash password with SHA256 to support passwords longer than 72 bytes.
    The digest is base64 encoded so it never contains NUL bytes.
    """
    digest = hashlib.sha256(password.encode("utf-8")).digest()
    return base64.b64encode(digest)


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """Verify a password against its hash (constant-time inside bcrypt)."""
    pre_hashed = _pre_hash_password(plain_password)
    try:
        return bcrypt.checkpw(pre_hashed, hashed_password.encode("utf-8"))
    except ValueError:
        # Stored value is not a bcrypt hash
        return False


def get_password_hash(password: str) -> str:
    """Hash a password with bcrypt at the configured cost."""
    pre_hashed = _pre_hash_password(password)
    salt = bcrypt.gensalt(rounds=settings.BCRYPT_ROUNDS)
    hashed = bcrypt.hashpw(pre_hashed, salt)
    return hashed.decode("utf-8")


def _secret_for(token_type: str) -> str:
    if token_type == REFRESH_TOKEN_TYPE:
        return settings.JWT_REFRESH_SECRET
    return settings.JWT_SECRET


def create_token(
    user_id: int,
    email: Optional[str],
    token_type: str,
    expires_delta: timedelta,
) -> str:
    """
    Create a signed JWT for a user.

    Access and refresh tokens carry the same claims but are signed with
    different secrets, so one can never be replayed as the other. Every
    token gets a random ``jti`` so two tokens minted in the same second
    are still distinct strings.
    """
    expire = datetime.utcnow() + expires_delta
    to_encode = {
        "sub": str(user_id),
        "email": email,
        "type": token_type,
        "jti": uuid.uuid4().hex,
        "exp": expire,
    }
    return jwt.encode(to_encode, _secret_for(token_type), algorithm=settings.ALGORITHM)


def create_access_token(user_id: int, email: Optional[str] = None) -> str:
    """Create a short-lived access token."""
    return create_token(
        user_id, email, ACCESS_TOKEN_TYPE,
        timedelta(days=settings.ACCESS_TOKEN_EXPIRE_DAYS),
    )


def create_refresh_token(user_id: int, email: Optional[str] = None) -> str:
    """Create a long-lived refresh token."""
    return create_token(
        user_id, email, REFRESH_TOKEN_TYPE,
        timedelta(days=settings.REFRESH_TOKEN_EXPIRE_DAYS),
    )


def decode_token(token: str, token_type: str) -> dict:
    """
    Decode and verify a JWT of the given type.

    Raises:
        TokenExpired: signature is valid but ``exp`` has passed
        TokenInvalid: anything else (bad signature, wrong type, no subject)
    """
    try:
        payload = jwt.decode(token, _secret_for(token_type), algorithms=[settings.ALGORITHM])
    except ExpiredSignatureError as exc:
        raise TokenExpired(str(exc)) from exc
    except JWTError as exc:
        raise TokenInvalid(str(exc)) from exc

    if payload.get("type") != token_type or not payload.get("sub"):
        raise TokenInvalid("Unexpected token claims")
    return payload


def token_user_id(payload: dict) -> int:
    """Extract the integer user id from a decoded token payload."""
    try:
        return int(payload["sub"])
    except (KeyError, TypeError, ValueError) as exc:
        raise TokenInvalid("Token subject is not a user id") from exc
