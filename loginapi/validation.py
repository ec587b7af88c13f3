"""Field validation rules for user records."""
from __future__ import annotations

from dataclasses import dataclass
from typing import AbstractSet, Optional

from email_validator import EmailNotValidError, validate_email as _check_email

from .errors import BlockedWordError, LoginAPIError, ValidationError

USERNAME_MIN_LENGTH = 1
USERNAME_MAX_LENGTH = 20
EMAIL_MAX_LENGTH = 254
DISPLAY_NAME_MAX_LENGTH = 100

RESERVED_USERNAME_CHARACTERS = frozenset("`!@#$%^&*()+=;:'\",<.>/?\\")


@dataclass(frozen=True)
class ValidationResult:
    """Outcome of a non-raising validation check."""

    ok: bool
    value: Optional[str] = None
    error: Optional[LoginAPIError] = None


def validate_username(candidate: object, blocklist: AbstractSet[str] = frozenset()) -> str:
    """Return ``candidate`` if it is an acceptable username.

    Format problems raise :class:`ValidationError`; a username that passes the
    format checks but matches a blocklist entry raises
    :class:`BlockedWordError`.
    """

    if candidate is None:
        raise ValidationError("username is required")
    if not isinstance(candidate, str):
        raise ValidationError("username must be a string")

    length = len(candidate)
    if length < USERNAME_MIN_LENGTH:
        raise ValidationError("username must not be empty")
    if length > USERNAME_MAX_LENGTH:
        raise ValidationError(f"username must be at most {USERNAME_MAX_LENGTH} characters")

    for char in candidate:
        if char in RESERVED_USERNAME_CHARACTERS or char.isspace() or not char.isprintable():
            raise ValidationError(f"username contains the illegal character {char!r}")

    if candidate in blocklist:
        raise BlockedWordError("username is not allowed")

    return candidate


def check_username(candidate: object, blocklist: AbstractSet[str] = frozenset()) -> ValidationResult:
    try:
        value = validate_username(candidate, blocklist)
    except (ValidationError, BlockedWordError) as exc:
        return ValidationResult(ok=False, error=exc)
    return ValidationResult(ok=True, value=value)


def validate_email(candidate: object) -> str:
    """Return the normalised (stripped, lower-cased) form of ``candidate``."""

    if not isinstance(candidate, str):
        raise ValidationError("email must be a string")

    normalized = candidate.strip().lower()
    if not normalized:
        raise ValidationError("email must not be empty")
    if len(normalized) > EMAIL_MAX_LENGTH:
        raise ValidationError("email exceeds maximum length")

    try:
        _check_email(normalized, check_deliverability=False)
    except EmailNotValidError as exc:
        raise ValidationError(f"invalid email: {exc}") from exc

    return normalized


def validate_display_name(value: object, field: str) -> str:
    """Validate a free-text name field such as ``fullName``."""

    if not isinstance(value, str):
        raise ValidationError(f"{field} must be a string")
    stripped = value.strip()
    if len(stripped) > DISPLAY_NAME_MAX_LENGTH:
        raise ValidationError(f"{field} must be at most {DISPLAY_NAME_MAX_LENGTH} characters")
    if any(not char.isprintable() for char in stripped):
        raise ValidationError(f"{field} contains control characters")
    return stripped


__all__ = [
    "RESERVED_USERNAME_CHARACTERS",
    "USERNAME_MAX_LENGTH",
    "ValidationResult",
    "check_username",
    "validate_display_name",
    "validate_email",
    "validate_username",
]
