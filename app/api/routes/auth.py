"""
Authentication routes: Sign in with Apple, email register/login, token
refresh, logout and account deletion.
"""
from typing import Optional
from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session
from app.db.session import get_db
from app.models.user import User
from app.schemas.user import (
    AppleSignInRequest, LoginRequest, LogoutRequest, RefreshRequest,
    RegisterRequest, SessionResponse, UserSummary
)
from app.api.dependencies import get_current_user
from app.core.utils import format_response
from app.services.apple_auth import AppleTokenVerifier, get_apple_verifier
from app.services.auth_service import AuthService, SessionResult
from app.services.session_service import SessionManager

router = APIRouter(prefix="/auth", tags=["auth"])


def _session_payload(result: SessionResult) -> dict:
    return format_response(SessionResponse(
        user=UserSummary.model_validate(result.user),
        access_token=result.tokens.access_token,
        refresh_token=result.tokens.refresh_token,
    ).model_dump(by_alias=True))


@router.post("/apple")
async def sign_in_with_apple(
    body: AppleSignInRequest,
    db: Session = Depends(get_db),
    verifier: AppleTokenVerifier = Depends(get_apple_verifier)
):
    """Sign in with Apple; creates the account on first sign-in."""
    result = AuthService(db, apple_verifier=verifier).sign_in_with_apple(body.identity_token, body.full_name)
    return _session_payload(result)


@router.post("/register", status_code=status.HTTP_201_CREATED)
async def register(body: RegisterRequest, db: Session = Depends(get_db)):
    """Register with email and password."""
    result = AuthService(db).register(body.email, body.password, body.display_name)
    return _session_payload(result)


@router.post("/login")
async def login(body: LoginRequest, db: Session = Depends(get_db)):
    """Login with email and password."""
    result = AuthService(db).login(body.email, body.password)
    return _session_payload(result)


@router.post("/refresh")
async def refresh(body: RefreshRequest, db: Session = Depends(get_db)):
    """Exchange a refresh token for a new token pair (the old one is consumed)."""
    result = AuthService(db).refresh(body.refresh_token)
    return _session_payload(result)


@router.post("/logout")
async def logout(
    body: Optional[LogoutRequest] = None,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Revoke one refresh token, or every session when none is given."""
    refresh_token = body.refresh_token if body else None
    SessionManager(db).logout(current_user.id, refresh_token)
    return format_response(message="Logged out")


@router.delete("/account")
async def delete_account(
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Permanently delete the account and everything it owns."""
    AuthService(db).delete_account(current_user)
    return format_response(message="Account deleted")
