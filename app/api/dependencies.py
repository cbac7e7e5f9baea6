"""
Shared FastAPI dependencies.
"""
from typing import Optional
from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session
from app.core.exceptions import Unauthenticated
from app.db.session import get_db
from app.models.user import User
from app.services.session_service import SessionManager

bearer_scheme = HTTPBearer(auto_error=False)


def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    db: Session = Depends(get_db)
) -> User:
    """Resolve the bearer access token to the current user (401 / 403 otherwise)."""
    if credentials is None or credentials.scheme.lower() != "bearer" or not credentials.credentials:
        raise Unauthenticated("No token provided")
    return SessionManager(db).authenticate(credentials.credentials)
