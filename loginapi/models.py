"""Domain models for the login API."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Optional


@dataclass(frozen=True)
class User:
    """Represents a user account stored in the login database."""

    id: int
    username: str
    email: str
    email_hash: str
    full_name: str
    display_name: str
    is_admin: bool
    is_suspended: bool
    send_notifications: bool
    send_engagements: bool
    created_at: datetime
    updated_at: datetime
    deleted_at: Optional[datetime] = None

    @property
    def is_deleted(self) -> bool:
        return self.deleted_at is not None


__all__ = ["User"]
