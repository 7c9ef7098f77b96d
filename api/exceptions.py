"""
Exception types raised by the book and user services.

Every error carries the message that ends up in the JSON body and the HTTP
status it is rendered with. Book operations report all failures as 400.
"""

from typing import Optional

from fastapi import status


class BookAPIError(Exception):
    """Base class for errors rendered as ``{"message": ..., "error": ...}``."""

    status_code: int = status.HTTP_400_BAD_REQUEST

    def __init__(self, message: str, error: Optional[str] = None, status_code: Optional[int] = None):
        super().__init__(message)
        self.message = message
        self.error = error
        if status_code is not None:
            self.status_code = status_code

    def to_dict(self) -> dict:
        body = {"message": self.message}
        if self.error is not None:
            body["error"] = self.error
        return body


class ValidationError(BookAPIError):
    """Required input missing or rejected by the entity schema."""


class NotFoundError(BookAPIError):
    """Lookup by id found nothing."""


class StoreError(BookAPIError):
    """The persistence layer raised, including for malformed identifiers."""

    def __init__(self, error: str, message: str = "Internal server error"):
        super().__init__(message, error=error)


class DuplicateUserError(BookAPIError):
    """Email already registered."""


class AuthenticationError(BookAPIError):
    """Missing, invalid or expired token, or bad credentials."""

    status_code = status.HTTP_401_UNAUTHORIZED
