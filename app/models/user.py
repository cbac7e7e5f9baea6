"""
User model for accounts signed in by email/password or Sign in with Apple.
"""
from sqlalchemy import Column, String, Boolean, Float, DateTime
from sqlalchemy.orm import relationship
from app.db.base import BaseModel


class User(BaseModel):
    """
    Identity record.

    An account is usable once it has either an email + password hash or an
    Apple subject id; Apple sign-ups may start without an email.
    """
    __tablename__ = "users"

    email = Column(String(255), unique=True, nullable=True, index=True)  # Always lower-cased
    password_hash = Column(String(255), nullable=True)
    apple_user_id = Column(String(255), unique=True, nullable=True, index=True)
    display_name = Column(String(100), nullable=False, default="Skier")
    home_resort = Column(String(255), nullable=True)
    avatar_url = Column(String(500), nullable=True)
    invite_code = Column(String(20), unique=True, nullable=False, index=True)

    # Preferences
    use_metric = Column(Boolean, default=True, nullable=False)
    weight_kg = Column(Float, nullable=True)
    haptics_enabled = Column(Boolean, default=True, nullable=False)
    battery_mode = Column(String(20), default="precision", nullable=False)  # precision | fullDay

    is_banned = Column(Boolean, default=False, nullable=False)
    last_login_at = Column(DateTime, nullable=True)

    # Relationships
    refresh_tokens = relationship("RefreshToken", back_populates="user", cascade="all, delete-orphan", passive_deletes=True)
    runs = relationship("Run", back_populates="user", cascade="all, delete-orphan", passive_deletes=True)
    sent_friendships = relationship(
        "Friendship", foreign_keys="Friendship.user_id", back_populates="user",
        cascade="all, delete-orphan", passive_deletes=True
    )
    received_friendships = relationship(
        "Friendship", foreign_keys="Friendship.friend_id", back_populates="friend",
        cascade="all, delete-orphan", passive_deletes=True
    )
