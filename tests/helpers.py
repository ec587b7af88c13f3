"""Shared helpers for the login API tests."""

from __future__ import annotations

import itertools
import time
from typing import Dict, List

from fastapi.testclient import TestClient

ADMIN_AUTH = ("webmaker", "secret")

_counter = itertools.count(int(time.time() * 1000))


def _base36(value: int) -> str:
    digits = "0123456789abcdefghijklmnopqrstuvwxyz"
    encoded = ""
    while value:
        value, remainder = divmod(value, 36)
        encoded = digits[remainder] + encoded
    return encoded or "0"


def unique() -> Dict[str, str]:
    """Return a fresh username/email pair that no other test uses."""

    token = "u" + _base36(next(_counter))
    return {"username": token, "email": f"{token}@email.com"}


class UserTracker:
    """Remember users created through the API and delete them afterwards."""

    def __init__(self, client: TestClient) -> None:
        self._client = client
        self._ids: List[int] = []

    def watch(self, user_id: int) -> None:
        if user_id not in self._ids:
            self._ids.append(user_id)

    def unwatch(self, user_id: int) -> None:
        if user_id in self._ids:
            self._ids.remove(user_id)

    def cleanup(self) -> None:
        for user_id in self._ids:
            self._client.delete(f"/user/{user_id}", auth=ADMIN_AUTH)
        self._ids = []
