"""Exception hierarchy shared by the login API layers."""
from __future__ import annotations


class LoginAPIError(Exception):
    """Base class for failures that map onto an HTTP response."""

    code = "error"
    status_code = 500

    def __init__(self, message: str | None = None) -> None:
        super().__init__(message or self.code)
        self.message = message or self.code


class ValidationError(LoginAPIError):
    """A supplied field failed format, length or charset checks."""

    code = "invalid_format"
    status_code = 404


class BlockedWordError(LoginAPIError):
    """A username matched an entry of the configured blocklist."""

    code = "blocked_word"
    status_code = 404


class ConflictError(LoginAPIError):
    """Another active user already owns the username or email."""

    code = "conflict"
    status_code = 404


class NotFoundError(LoginAPIError):
    code = "not_found"
    status_code = 404


class UnauthorizedError(LoginAPIError):
    code = "unauthorized"
    status_code = 401


class BadRequestError(LoginAPIError):
    code = "bad_request"
    status_code = 400


class StoreUnavailableError(LoginAPIError):
    """The backing store could not be reached within the configured timeout."""

    code = "store_unavailable"
    status_code = 503


__all__ = [
    "BadRequestError",
    "BlockedWordError",
    "ConflictError",
    "LoginAPIError",
    "NotFoundError",
    "StoreUnavailableError",
    "UnauthorizedError",
    "ValidationError",
]
