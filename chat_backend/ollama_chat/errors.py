"""
Error taxonomy shared by the services and the HTTP layer.

Every error carries the HTTP status it maps to and a message that is safe to
show to clients.
"""
from __future__ import annotations

from typing import Optional


class ChatServiceError(Exception):
    """Base class for business-rule failures."""

    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(ChatServiceError):
    """Malformed or missing input."""

    status_code = 400


def check_length(label: str, value: Optional[str], limit: int) -> None:
    """Raise ValidationError if value is longer than its column allows."""
    if value is not None and len(value) > limit:
        raise ValidationError(f"{label} must be at most {limit} characters")


class AuthError(ChatServiceError):
    """Bad credentials or a missing bearer token."""

    status_code = 401


class TokenRejectedError(AuthError):
    """A bearer token was supplied but is invalid or expired."""

    status_code = 403

    def __init__(self, message: str = "Invalid token"):
        super().__init__(message)


class NotFoundError(ChatServiceError):
    """Resource is absent or not owned by the caller."""

    status_code = 404


class ConflictError(ChatServiceError):
    """Uniqueness violation."""

    status_code = 409


class InternalError(ChatServiceError):
    """Unexpected store or connection failure."""

    status_code = 500

    def __init__(self, message: str = "Internal server error"):
        super().__init__(message)
