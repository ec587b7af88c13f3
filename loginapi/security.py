"""HTTP basic authentication against a static allow-list of principals."""
from __future__ import annotations

import logging
import secrets
from typing import Iterable, List

from fastapi import Request
from fastapi.security import HTTPBasic, HTTPBasicCredentials

from .errors import UnauthorizedError

logger = logging.getLogger("loginapi.security")


class BasicAuthGate:
    """Basic authentication using constant-time comparisons.

    Each principal is a ``user:secret`` string. The supplied credentials are
    compared against every principal so the response time does not reveal
    which part of the credential was wrong.
    """

    def __init__(self, principals: Iterable[str]):
        principal_list: List[str] = [item.strip() for item in principals if item.strip()]
        if not principal_list:
            raise ValueError("At least one allowed user must be configured")
        for principal in principal_list:
            if ":" not in principal:
                raise ValueError("Allowed users must be given as 'user:secret' pairs")
        self._principals = [principal.encode("utf-8") for principal in principal_list]
        self._basic = HTTPBasic(auto_error=False)

    def authenticate(self, username: str, password: str) -> str:
        candidate = f"{username}:{password}".encode("utf-8")
        matched = False
        for principal in self._principals:
            if secrets.compare_digest(candidate, principal):
                matched = True
        if not matched:
            logger.warning("Rejected basic auth credentials")
            raise UnauthorizedError("Invalid authentication credentials")
        return username

    async def __call__(self, request: Request) -> str:
        credentials: HTTPBasicCredentials | None = await self._basic(request)
        if credentials is None:
            raise UnauthorizedError("Missing basic auth credentials")
        return self.authenticate(credentials.username, credentials.password)


__all__ = ["BasicAuthGate"]
