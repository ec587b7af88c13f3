from __future__ import annotations

import sys
from pathlib import Path
from typing import Iterator

import pytest
from fastapi.testclient import TestClient

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from helpers import ADMIN_AUTH, UserTracker
from loginapi.config import DEFAULT_BLOCKLIST, Settings
from loginapi.database import Database
from loginapi.service import create_app
from loginapi.users import UserStore


@pytest.fixture()
def database(tmp_path: Path) -> Database:
    db = Database(tmp_path / "login.sqlite3")
    db.initialize()
    return db


@pytest.fixture()
def settings(tmp_path: Path) -> Settings:
    return Settings(
        database_path=tmp_path / "login.sqlite3",
        allowed_users=(":".join(ADMIN_AUTH),),
        blocklist=DEFAULT_BLOCKLIST,
    )


@pytest.fixture()
def store(database: Database) -> UserStore:
    return UserStore(database, DEFAULT_BLOCKLIST)


@pytest.fixture()
def client(database: Database, settings: Settings) -> Iterator[TestClient]:
    app = create_app(database=database, settings=settings)
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture()
def tracker(client: TestClient) -> Iterator[UserTracker]:
    user_tracker = UserTracker(client)
    yield user_tracker
    user_tracker.cleanup()
