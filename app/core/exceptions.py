"""
Domain exceptions raised by services and rendered by the API error handlers.
"""
from typing import Any, List, Optional


class AppError(Exception):
    """Base class for errors that map onto an HTTP response."""
    status_code = 500

    def __init__(self, message: str, details: Optional[List[Any]] = None):
        super().__init__(message)
        self.message = message
        self.details = details


class ValidationError(AppError):
    """Malformed or out-of-range input."""
    status_code = 400


class SelfReference(ValidationError):
    """A user tried to act on themselves (e.g. redeem their own invite code)."""


class LimitExceeded(ValidationError):
    """A per-user capacity limit was reached."""


class InvalidCredential(AppError):
    """Login or identity token could not be verified."""
    status_code = 401


class Unauthenticated(AppError):
    """Missing, invalid, expired or revoked token."""
    status_code = 401


class Forbidden(AppError):
    """Banned account or relationship-gated resource."""
    status_code = 403


class NotFound(AppError):
    status_code = 404


class Conflict(AppError):
    """Duplicate unique key."""
    status_code = 409


class InternalError(AppError):
    status_code = 500
