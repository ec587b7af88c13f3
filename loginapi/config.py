"""Configuration management for the login API."""
from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import FrozenSet, Mapping, Optional, Tuple

import yaml

from .database import DEFAULT_STORE_TIMEOUT, resolve_database_path

DEFAULT_BLOCKLIST: FrozenSet[str] = frozenset(
    {
        "ass",
        "asshole",
        "bastard",
        "bitch",
        "bollocks",
        "crap",
        "damn",
        "dick",
        "fuck",
        "piss",
        "shit",
        "slut",
        "twat",
        "wanker",
        "whore",
    }
)


@dataclass(frozen=True)
class Settings:
    """Runtime settings resolved from the environment."""

    database_path: Path
    allowed_users: Tuple[str, ...] = ()
    store_timeout: float = DEFAULT_STORE_TIMEOUT
    blocklist: FrozenSet[str] = DEFAULT_BLOCKLIST


def parse_allowed_users(raw: Optional[str]) -> Tuple[str, ...]:
    """Split a comma-separated ``user:secret`` list, dropping blank entries."""

    if not raw:
        return ()
    return tuple(item.strip() for item in raw.split(",") if item.strip())


def load_blocklist(path: Path) -> FrozenSet[str]:
    """Load blocked usernames from a YAML file with a ``blocked_usernames`` list."""

    with path.open("r", encoding="utf-8") as handle:
        raw = yaml.safe_load(handle) or {}

    if not isinstance(raw, dict):
        raise ValueError("Blocklist file must contain a mapping")

    words = raw.get("blocked_usernames")
    if words is None:
        raise ValueError("Blocklist file must define 'blocked_usernames'")
    if not isinstance(words, list) or not all(isinstance(word, str) for word in words):
        raise ValueError("'blocked_usernames' must be a list of strings")

    return frozenset(word.strip() for word in words if word.strip())


def _parse_timeout(value: Optional[str]) -> float:
    if value is None or not value.strip():
        return DEFAULT_STORE_TIMEOUT
    try:
        timeout = float(value)
    except ValueError as exc:
        raise ValueError(f"LOGIN_STORE_TIMEOUT must be a number, got {value!r}") from exc
    if timeout <= 0:
        raise ValueError("LOGIN_STORE_TIMEOUT must be positive")
    return timeout


def load_settings(environ: Optional[Mapping[str, str]] = None) -> Settings:
    """Build :class:`Settings` from ``environ`` (defaults to ``os.environ``)."""

    env = os.environ if environ is None else environ

    blocklist_path = env.get("LOGIN_BLOCKLIST_PATH")
    if blocklist_path:
        blocklist = load_blocklist(Path(blocklist_path).expanduser().resolve(strict=False))
    else:
        blocklist = DEFAULT_BLOCKLIST

    return Settings(
        database_path=resolve_database_path(env.get("LOGIN_DB_PATH")),
        allowed_users=parse_allowed_users(env.get("ALLOWED_USERS")),
        store_timeout=_parse_timeout(env.get("LOGIN_STORE_TIMEOUT")),
        blocklist=blocklist,
    )


__all__ = [
    "DEFAULT_BLOCKLIST",
    "Settings",
    "load_blocklist",
    "load_settings",
    "parse_allowed_users",
]
