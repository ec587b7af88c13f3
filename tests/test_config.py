from __future__ import annotations

from pathlib import Path

import pytest

from loginapi.config import (
    DEFAULT_BLOCKLIST,
    load_blocklist,
    load_settings,
    parse_allowed_users,
)
from loginapi.database import DEFAULT_STORE_TIMEOUT


def test_parse_allowed_users() -> None:
    assert parse_allowed_users("a:1, b:2,,") == ("a:1", "b:2")
    assert parse_allowed_users("") == ()
    assert parse_allowed_users(None) == ()


def test_load_settings_defaults(tmp_path: Path) -> None:
    settings = load_settings({"LOGIN_DB_PATH": str(tmp_path / "db.sqlite3")})

    assert settings.database_path == (tmp_path / "db.sqlite3").resolve()
    assert settings.allowed_users == ()
    assert settings.store_timeout == DEFAULT_STORE_TIMEOUT
    assert settings.blocklist == DEFAULT_BLOCKLIST
    assert "damn" in settings.blocklist


def test_load_settings_reads_environment(tmp_path: Path) -> None:
    blocklist = tmp_path / "blocklist.yaml"
    blocklist.write_text("blocked_usernames:\n  - heck\n  - darn\n", encoding="utf-8")

    settings = load_settings(
        {
            "ALLOWED_USERS": "webmaker:secret,other:pass",
            "LOGIN_STORE_TIMEOUT": "0.5",
            "LOGIN_BLOCKLIST_PATH": str(blocklist),
        }
    )

    assert settings.allowed_users == ("webmaker:secret", "other:pass")
    assert settings.store_timeout == 0.5
    assert settings.blocklist == frozenset({"heck", "darn"})


@pytest.mark.parametrize("value", ["soon", "0", "-1"])
def test_invalid_timeout_is_rejected(value: str) -> None:
    with pytest.raises(ValueError):
        load_settings({"LOGIN_STORE_TIMEOUT": value})


@pytest.mark.parametrize(
    "content",
    [
        "- just\n- a list\n",
        "other_key: []\n",
        "blocked_usernames: damn\n",
        "blocked_usernames:\n  - 1\n",
    ],
)
def test_malformed_blocklist_files(tmp_path: Path, content: str) -> None:
    path = tmp_path / "blocklist.yaml"
    path.write_text(content, encoding="utf-8")
    with pytest.raises(ValueError):
        load_blocklist(path)


def test_shipped_blocklist_matches_default() -> None:
    shipped = Path(__file__).resolve().parents[1] / "config" / "blocklist.yaml"
    assert load_blocklist(shipped) == DEFAULT_BLOCKLIST
