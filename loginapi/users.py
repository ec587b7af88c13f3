"""User record operations layered over the SQLite store."""
from __future__ import annotations

import hashlib
import logging
from typing import AbstractSet, Dict, Mapping, Optional

from .database import Database
from .models import User
from .resolver import check_username_availability, resolve
from .errors import ValidationError
from .validation import validate_display_name, validate_email, validate_username

logger = logging.getLogger("loginapi.users")

BOOLEAN_FIELDS = ("is_admin", "is_suspended", "send_notifications", "send_engagements")
NAME_FIELDS = {"full_name": "fullName", "display_name": "displayName"}


def email_hash(email: Optional[str]) -> str:
    """Return the gravatar-style digest for ``email`` (empty when unset)."""

    if not email:
        return ""
    return hashlib.md5(email.strip().lower().encode("utf-8"), usedforsecurity=False).hexdigest()


class UserStore:
    """Validate, default and persist user records.

    Every mutating call validates its input before touching the database and
    relies on the database's unique indexes for conflict detection.
    """

    def __init__(self, database: Database, blocklist: AbstractSet[str] = frozenset()) -> None:
        self._database = database
        self._blocklist = frozenset(blocklist)

    @property
    def database(self) -> Database:
        return self._database

    @property
    def blocklist(self) -> frozenset[str]:
        return self._blocklist

    def create(self, fields: Mapping[str, object]) -> User:
        username = validate_username(fields.get("username"), self._blocklist)

        raw_email = fields.get("email")
        email = validate_email(raw_email) if raw_email is not None else None

        record: Dict[str, object] = {
            "username": username,
            "email": email,
            "email_hash": email_hash(email),
        }
        for field, label in NAME_FIELDS.items():
            value = fields.get(field)
            cleaned = validate_display_name(value, label) if value is not None else ""
            record[field] = cleaned or username
        for field in BOOLEAN_FIELDS:
            record[field] = bool(fields.get(field) or False)

        user = self._database.create_user(record)
        logger.info("Created user %s (%s)", user.id, user.username)
        return user

    def read(self, token: str) -> User:
        return resolve(self._database, token)

    def update(self, token: str, fields: Mapping[str, object]) -> User:
        user = resolve(self._database, token)
        changes = self._validated_changes(fields)
        updated = self._database.update_user(user.id, changes)
        logger.info("Updated user %s (fields: %s)", updated.id, ", ".join(sorted(changes)) or "none")
        return updated

    def delete(self, token: str) -> User:
        user = resolve(self._database, token)
        deleted = self._database.soft_delete_user(user.id)
        logger.info("Deleted user %s (%s)", deleted.id, deleted.username)
        return deleted

    def is_admin(self, token: str) -> bool:
        return resolve(self._database, token).is_admin

    def username_in_use(self, name: str) -> User:
        return check_username_availability(self._database, name, self._blocklist)

    def _validated_changes(self, fields: Mapping[str, object]) -> Dict[str, object]:
        changes: Dict[str, object] = {}

        if "username" in fields:
            changes["username"] = validate_username(fields["username"], self._blocklist)

        if "email" in fields:
            email = validate_email(fields["email"])
            changes["email"] = email
            changes["email_hash"] = email_hash(email)

        for field, label in NAME_FIELDS.items():
            if field in fields:
                changes[field] = validate_display_name(fields[field], label)

        for field in BOOLEAN_FIELDS:
            if field in fields:
                value = fields[field]
                if not isinstance(value, bool):
                    raise ValidationError(f"{field} must be true or false")
                changes[field] = value

        return changes


__all__ = ["UserStore", "email_hash"]
