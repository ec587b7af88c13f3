"""SQLite-backed persistence for user accounts."""
from __future__ import annotations

import logging
import sqlite3
from contextlib import contextmanager
from datetime import datetime, timezone
from pathlib import Path
from typing import Dict, Iterator, List, Mapping, Optional

from .errors import ConflictError, NotFoundError, StoreUnavailableError
from .models import User

logger = logging.getLogger("loginapi.database")

DEFAULT_STORE_TIMEOUT = 5.0

_BOOLEAN_COLUMNS = ("is_admin", "is_suspended", "send_notifications", "send_engagements")
_TEXT_COLUMNS = ("username", "email", "email_hash", "full_name", "display_name")
_MUTABLE_COLUMNS = _TEXT_COLUMNS + _BOOLEAN_COLUMNS


def _ensure_directory(path: Path) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)


def resolve_database_path(env_value: Optional[str]) -> Path:
    """Resolve the on-disk path for the application database."""

    if env_value:
        return Path(env_value).expanduser().resolve(strict=False)
    base_dir = Path(__file__).resolve().parent.parent / "data"
    return (base_dir / "login.sqlite3").resolve(strict=False)


def _current_timestamp() -> datetime:
    return datetime.now(timezone.utc)


def _serialize_datetime(value: datetime) -> str:
    return value.isoformat()


def _parse_datetime(value: str) -> datetime:
    return datetime.fromisoformat(value)


def _conflict_message(exc: sqlite3.IntegrityError) -> str:
    text = str(exc)
    if "username" in text:
        return "A user with that username already exists"
    if "email" in text:
        return "A user with that email already exists"
    return "A user with that username or email already exists"


class Database:
    """Simple wrapper around SQLite for persisting user accounts.

    Username and email uniqueness among active users is enforced by partial
    unique indexes, so concurrent writers racing on the same key are
    serialised by SQLite itself and the loser receives :class:`ConflictError`.
    """

    def __init__(self, path: Path, *, timeout: float = DEFAULT_STORE_TIMEOUT) -> None:
        _ensure_directory(path)
        self._path = path
        self._timeout = timeout

    @property
    def path(self) -> Path:
        return self._path

    def _connect(self) -> sqlite3.Connection:
        conn = sqlite3.connect(self._path, timeout=self._timeout, check_same_thread=False)
        conn.row_factory = sqlite3.Row
        return conn

    @contextmanager
    def _transaction(self) -> Iterator[sqlite3.Connection]:
        try:
            conn = self._connect()
        except sqlite3.Error as exc:
            logger.error("Unable to open database %s: %s", self._path, exc)
            raise StoreUnavailableError("The user store is unavailable") from exc

        try:
            with conn:
                yield conn
        except sqlite3.IntegrityError as exc:
            raise ConflictError(_conflict_message(exc)) from exc
        except sqlite3.OperationalError as exc:
            logger.error("Database operation failed on %s: %s", self._path, exc)
            raise StoreUnavailableError("The user store is unavailable") from exc
        finally:
            conn.close()

    def initialize(self) -> None:
        """Create the required tables and indexes if they do not already exist."""

        with self._transaction() as conn:
            conn.executescript(
                """
                CREATE TABLE IF NOT EXISTS users (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    username TEXT NOT NULL,
                    email TEXT,
                    email_hash TEXT NOT NULL DEFAULT '',
                    full_name TEXT NOT NULL,
                    display_name TEXT NOT NULL,
                    is_admin INTEGER NOT NULL DEFAULT 0,
                    is_suspended INTEGER NOT NULL DEFAULT 0,
                    send_notifications INTEGER NOT NULL DEFAULT 0,
                    send_engagements INTEGER NOT NULL DEFAULT 0,
                    created_at TEXT NOT NULL,
                    updated_at TEXT NOT NULL,
                    deleted_at TEXT
                );

                CREATE UNIQUE INDEX IF NOT EXISTS idx_users_active_username
                    ON users(username COLLATE NOCASE) WHERE deleted_at IS NULL;
                CREATE UNIQUE INDEX IF NOT EXISTS idx_users_active_email
                    ON users(email) WHERE deleted_at IS NULL;
                """
            )

    def ping(self) -> None:
        """Raise :class:`StoreUnavailableError` unless the store answers a trivial query."""

        with self._transaction() as conn:
            conn.execute("SELECT 1").fetchone()

    # ------------------------------------------------------------------
    # User management
    # ------------------------------------------------------------------
    def create_user(self, fields: Mapping[str, object]) -> User:
        """Insert a fully materialised user row and return the stored record."""

        now = _serialize_datetime(_current_timestamp())
        values = self._column_values(fields)
        missing = [column for column in _MUTABLE_COLUMNS if column not in values]
        if missing:
            raise ValueError(f"Missing user columns: {', '.join(missing)}")

        columns = list(_MUTABLE_COLUMNS) + ["created_at", "updated_at"]
        params = [values[column] for column in _MUTABLE_COLUMNS] + [now, now]
        placeholders = ", ".join("?" for _ in columns)

        with self._transaction() as conn:
            cursor = conn.execute(
                f"INSERT INTO users ({', '.join(columns)}) VALUES ({placeholders})",
                params,
            )
            row = conn.execute("SELECT * FROM users WHERE id = ?", (cursor.lastrowid,)).fetchone()

        return self._row_to_user(row)

    def get_user(self, user_id: int, *, include_deleted: bool = False) -> Optional[User]:
        query = "SELECT * FROM users WHERE id = ?"
        if not include_deleted:
            query += " AND deleted_at IS NULL"
        with self._transaction() as conn:
            row = conn.execute(query, (user_id,)).fetchone()
        if row is None:
            return None
        return self._row_to_user(row)

    def get_user_by_email(self, email: str) -> Optional[User]:
        with self._transaction() as conn:
            row = conn.execute(
                "SELECT * FROM users WHERE email = ? AND deleted_at IS NULL",
                (email.strip().lower(),),
            ).fetchone()
        if row is None:
            return None
        return self._row_to_user(row)

    def get_user_by_username(self, username: str) -> Optional[User]:
        with self._transaction() as conn:
            row = conn.execute(
                "SELECT * FROM users WHERE username = ? COLLATE NOCASE AND deleted_at IS NULL",
                (username,),
            ).fetchone()
        if row is None:
            return None
        return self._row_to_user(row)

    def update_user(self, user_id: int, changes: Mapping[str, object]) -> User:
        """Apply ``changes`` to an active user and refresh ``updated_at``.

        The update is a single statement, so a uniqueness violation leaves the
        stored row untouched.
        """

        values = self._column_values(changes)
        updates: List[str] = [f"{column} = ?" for column in values]
        params: List[object] = list(values.values())
        updates.append("updated_at = ?")
        params.append(_serialize_datetime(_current_timestamp()))
        params.append(user_id)

        with self._transaction() as conn:
            cursor = conn.execute(
                f"UPDATE users SET {', '.join(updates)} WHERE id = ? AND deleted_at IS NULL",
                params,
            )
            if cursor.rowcount == 0:
                raise NotFoundError("User not found")
            row = conn.execute("SELECT * FROM users WHERE id = ?", (user_id,)).fetchone()

        return self._row_to_user(row)

    def soft_delete_user(self, user_id: int) -> User:
        """Mark an active user as deleted and return the final record."""

        now = _serialize_datetime(_current_timestamp())
        with self._transaction() as conn:
            cursor = conn.execute(
                "UPDATE users SET deleted_at = ?, updated_at = ? WHERE id = ? AND deleted_at IS NULL",
                (now, now, user_id),
            )
            if cursor.rowcount == 0:
                raise NotFoundError("User not found")
            row = conn.execute("SELECT * FROM users WHERE id = ?", (user_id,)).fetchone()

        return self._row_to_user(row)

    def count_users(self, *, include_deleted: bool = False) -> int:
        query = "SELECT COUNT(*) FROM users"
        if not include_deleted:
            query += " WHERE deleted_at IS NULL"
        with self._transaction() as conn:
            return int(conn.execute(query).fetchone()[0])

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------
    @staticmethod
    def _column_values(fields: Mapping[str, object]) -> Dict[str, object]:
        values: Dict[str, object] = {}
        for column in _MUTABLE_COLUMNS:
            if column not in fields:
                continue
            value = fields[column]
            if column in _BOOLEAN_COLUMNS:
                value = int(bool(value))
            values[column] = value
        return values

    def _row_to_user(self, row: sqlite3.Row) -> User:
        deleted_at = row["deleted_at"]
        return User(
            id=int(row["id"]),
            username=str(row["username"]),
            email=row["email"] or "",
            email_hash=str(row["email_hash"]),
            full_name=str(row["full_name"]),
            display_name=str(row["display_name"]),
            is_admin=bool(row["is_admin"]),
            is_suspended=bool(row["is_suspended"]),
            send_notifications=bool(row["send_notifications"]),
            send_engagements=bool(row["send_engagements"]),
            created_at=_parse_datetime(str(row["created_at"])),
            updated_at=_parse_datetime(str(row["updated_at"])),
            deleted_at=_parse_datetime(str(deleted_at)) if deleted_at else None,
        )


__all__ = ["DEFAULT_STORE_TIMEOUT", "Database", "resolve_database_path"]
