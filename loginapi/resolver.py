"""Resolve opaque lookup tokens (id, email or username) to user records."""
from __future__ import annotations

import enum
import logging
from typing import AbstractSet, List, Optional, Protocol

from .errors import BadRequestError, BlockedWordError, NotFoundError
from .models import User
from .validation import check_username

logger = logging.getLogger("loginapi.resolver")

_TRAVERSAL_MARKERS = ("/", "\\", "..", "\x00")
_MAX_ID_DIGITS = 18


class UserLookup(Protocol):
    def get_user(self, user_id: int) -> Optional[User]: ...

    def get_user_by_email(self, email: str) -> Optional[User]: ...

    def get_user_by_username(self, username: str) -> Optional[User]: ...


class LookupStrategy(enum.Enum):
    """Interpretations of a token, declared in resolution priority order."""

    ID = "id"
    EMAIL = "email"
    USERNAME = "username"

    def lookup(self, store: UserLookup, token: str) -> Optional[User]:
        if self is LookupStrategy.ID:
            return store.get_user(int(token))
        if self is LookupStrategy.EMAIL:
            return store.get_user_by_email(token)
        return store.get_user_by_username(token)


def is_traversal_token(token: str) -> bool:
    """Return ``True`` for tokens shaped like filesystem paths or empty segments."""

    if not token.strip():
        return True
    return any(marker in token for marker in _TRAVERSAL_MARKERS)


def classify_token(token: str) -> List[LookupStrategy]:
    """Return the strict interpretations ``token`` admits, in priority order."""

    if is_traversal_token(token):
        return []

    strategies: List[LookupStrategy] = []
    if token.isascii() and token.isdigit() and len(token) <= _MAX_ID_DIGITS:
        strategies.append(LookupStrategy.ID)
    if "@" in token:
        strategies.append(LookupStrategy.EMAIL)
    if check_username(token).ok:
        strategies.append(LookupStrategy.USERNAME)
    return strategies


def resolve(store: UserLookup, token: str) -> User:
    """Return the first active user matched by the token's interpretations."""

    for strategy in classify_token(token):
        user = strategy.lookup(store, token)
        if user is not None:
            logger.debug("Resolved token via %s lookup to user %s", strategy.value, user.id)
            return user
    raise NotFoundError("User not found")


def check_username_availability(
    store: UserLookup,
    name: str,
    blocklist: AbstractSet[str],
) -> User:
    """Return the user owning ``name``; raise when it is unused or unusable.

    Empty names raise :class:`BadRequestError`, blocklisted names raise
    :class:`BlockedWordError` and unused (or malformed) names raise
    :class:`NotFoundError`.
    """

    if not name:
        raise BadRequestError("A username must be supplied")
    if is_traversal_token(name):
        raise NotFoundError("Username not found")

    result = check_username(name, blocklist)
    if not result.ok:
        if isinstance(result.error, BlockedWordError):
            raise result.error
        raise NotFoundError("Username not found")

    user = store.get_user_by_username(name)
    if user is None:
        raise NotFoundError("Username not found")
    return user


__all__ = [
    "LookupStrategy",
    "UserLookup",
    "check_username_availability",
    "classify_token",
    "is_traversal_token",
    "resolve",
]
