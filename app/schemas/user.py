"""
Pydantic schemas for authentication and the user profile.
"""
from pydantic import EmailStr, Field
from typing import Literal, Optional
from datetime import datetime
from app.schemas.base import CamelModel


class RegisterRequest(CamelModel):
    """Schema for email + password registration."""
    email: EmailStr
    password: str = Field(..., min_length=8, max_length=256)
    display_name: Optional[str] = Field(None, max_length=100)


class LoginRequest(CamelModel):
    """Schema for email + password login."""
    email: EmailStr
    password: str = Field(..., min_length=1)


class AppleSignInRequest(CamelModel):
    """Schema for Sign in with Apple."""
    identity_token: str = Field(..., min_length=1)
    full_name: Optional[str] = None


class RefreshRequest(CamelModel):
    refresh_token: str = Field(..., min_length=1)


class LogoutRequest(CamelModel):
    """Omitting the refresh token logs out every device."""
    refresh_token: Optional[str] = None


class UserSummary(CamelModel):
    """User fields returned alongside a fresh session."""
    id: int
    email: Optional[str] = None
    display_name: str
    invite_code: str
    use_metric: bool
    created_at: datetime


class SessionResponse(CamelModel):
    """Schema for a session (token pair) response."""
    user: UserSummary
    access_token: str
    refresh_token: str


class ProfileResponse(CamelModel):
    """Full profile of the current user."""
    id: int
    email: Optional[str] = None
    display_name: str
    home_resort: Optional[str] = None
    avatar_url: Optional[str] = None
    invite_code: str
    use_metric: bool
    weight_kg: Optional[float] = None
    haptics_enabled: bool
    battery_mode: str
    created_at: datetime


class ProfileStats(CamelModel):
    """Lifetime stats shown on the profile screen."""
    total_runs: int = 0
    total_points: int = 0
    top_speed: float = 0.0
    total_vert: float = 0.0
    total_distance: float = 0.0
    resort_count: int = 0
    friend_count: int = 0


class ProfileUpdate(CamelModel):
    """Schema for a partial profile update."""
    display_name: Optional[str] = Field(None, min_length=1, max_length=100)
    home_resort: Optional[str] = Field(None, max_length=255)
    use_metric: Optional[bool] = None
    weight_kg: Optional[float] = Field(None, ge=30, le=200)
    haptics_enabled: Optional[bool] = None
    battery_mode: Optional[Literal["precision", "fullDay"]] = None
