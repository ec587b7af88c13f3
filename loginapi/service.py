"""HTTP API for creating, resolving, updating and deleting user accounts."""

from __future__ import annotations

import json
import logging
from datetime import datetime
from typing import Dict, Optional

from fastapi import APIRouter, Depends, FastAPI, Query, Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ConfigDict
from pydantic import ValidationError as PydanticValidationError
from pydantic.alias_generators import to_camel

from .config import Settings, load_settings
from .database import Database
from .errors import BadRequestError, BlockedWordError, LoginAPIError, ValidationError
from .models import User
from .security import BasicAuthGate
from .users import UserStore

logger = logging.getLogger("loginapi.service")


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class UserPayload(_CamelModel):
    """Mutable user fields accepted by POST and PUT; unknown keys are ignored.

    On PUT an explicit ``null`` is rejected for every field; omit a key to
    leave it unchanged.
    """

    model_config = ConfigDict(extra="ignore")

    username: Optional[str] = None
    email: Optional[str] = None
    full_name: Optional[str] = None
    display_name: Optional[str] = None
    is_admin: Optional[bool] = None
    is_suspended: Optional[bool] = None
    send_notifications: Optional[bool] = None
    send_engagements: Optional[bool] = None


class UserView(_CamelModel):
    id: int
    email: str
    username: str
    full_name: str
    display_name: str
    email_hash: str
    is_admin: bool
    is_suspended: bool
    send_notifications: bool
    send_engagements: bool
    created_at: datetime
    updated_at: datetime
    deleted_at: Optional[datetime]


class UserEnvelope(BaseModel):
    user: UserView


class AdminStatusResponse(_CamelModel):
    is_admin: bool


def user_to_view(user: User) -> UserView:
    return UserView(
        id=user.id,
        email=user.email,
        username=user.username,
        full_name=user.full_name,
        display_name=user.display_name,
        email_hash=user.email_hash,
        is_admin=user.is_admin,
        is_suspended=user.is_suspended,
        send_notifications=user.send_notifications,
        send_engagements=user.send_engagements,
        created_at=user.created_at,
        updated_at=user.updated_at,
        deleted_at=user.deleted_at,
    )


def _error_response(exc: LoginAPIError, status_code: int | None = None) -> JSONResponse:
    code = status_code or exc.status_code
    headers = {"WWW-Authenticate": "Basic"} if code == status.HTTP_401_UNAUTHORIZED else None
    return JSONResponse(
        status_code=code,
        content={"error": exc.code, "detail": exc.message},
        headers=headers,
    )


async def read_user_payload(request: Request) -> Dict[str, object]:
    """Decode the POST/PUT body into the user fields it explicitly sets.

    Router-level dependencies run before this one, so credentials are checked
    before any JSON is decoded.
    """

    raw = await request.body()
    if not raw.strip():
        return {}
    try:
        data = json.loads(raw)
    except ValueError as exc:
        raise ValidationError("request body is not valid JSON") from exc
    if not isinstance(data, dict):
        raise ValidationError("request body must be a JSON object")
    try:
        payload = UserPayload.model_validate(data)
    except PydanticValidationError as exc:
        raise RequestValidationError(exc.errors(include_url=False)) from exc
    return payload.model_dump(exclude_unset=True)


def register_user_routes(app: FastAPI, store: UserStore, *, auth: BasicAuthGate) -> None:
    """Expose the user JSON API on ``app``; every route requires basic auth."""

    router = APIRouter(dependencies=[Depends(auth)])

    # Availability routes must be registered before the catch-all token routes.
    @router.get("/user/username/")
    def username_missing() -> None:
        raise BadRequestError("A username must be supplied")

    @router.get("/user/username/{name:path}", response_model=UserEnvelope)
    def username_in_use(name: str):
        try:
            user = store.username_in_use(name)
        except BlockedWordError as exc:
            return _error_response(exc, status.HTTP_403_FORBIDDEN)
        return UserEnvelope(user=user_to_view(user))

    @router.post("/user", response_model=UserEnvelope)
    def create_user(fields: Dict[str, object] = Depends(read_user_payload)) -> UserEnvelope:
        user = store.create(fields)
        return UserEnvelope(user=user_to_view(user))

    @router.get("/user/{token:path}", response_model=UserEnvelope)
    def read_user(token: str) -> UserEnvelope:
        return UserEnvelope(user=user_to_view(store.read(token)))

    @router.put("/user/{token:path}", response_model=UserEnvelope)
    def update_user(token: str, fields: Dict[str, object] = Depends(read_user_payload)) -> UserEnvelope:
        user = store.update(token, fields)
        return UserEnvelope(user=user_to_view(user))

    @router.delete("/user/{token:path}", response_model=UserEnvelope)
    def delete_user(token: str) -> UserEnvelope:
        return UserEnvelope(user=user_to_view(store.delete(token)))

    @router.get("/isAdmin", response_model=AdminStatusResponse)
    def is_admin(user_id: Optional[str] = Query(default=None, alias="id")) -> AdminStatusResponse:
        if not user_id:
            raise BadRequestError("An id must be supplied")
        return AdminStatusResponse(is_admin=store.is_admin(user_id))

    app.include_router(router)


def create_app(
    *,
    database: Database | None = None,
    settings: Settings | None = None,
    auth: BasicAuthGate | None = None,
) -> FastAPI:
    """Instantiate the FastAPI application for the login API."""

    if settings is None:
        settings = load_settings()

    db = database or Database(settings.database_path, timeout=settings.store_timeout)
    db.initialize()

    if auth is None:
        auth = BasicAuthGate(settings.allowed_users)

    store = UserStore(db, settings.blocklist)

    app = FastAPI(
        title="Login API",
        version="1.0.0",
        description="User account management behind HTTP basic authentication.",
    )
    app.state.database = db
    app.state.store = store
    app.state.settings = settings

    @app.get("/healthcheck")
    def healthcheck() -> Dict[str, str]:
        db.ping()
        return {"status": "ok"}

    register_user_routes(app, store, auth=auth)

    @app.exception_handler(LoginAPIError)
    async def handle_login_error(request: Request, exc: LoginAPIError) -> JSONResponse:
        if exc.status_code >= 500:
            logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
        return _error_response(exc)

    @app.exception_handler(RequestValidationError)
    async def handle_request_validation(_: Request, exc: RequestValidationError) -> JSONResponse:
        # Malformed bodies are reported like any other rejected user field.
        return JSONResponse(
            status_code=status.HTTP_404_NOT_FOUND,
            content={"error": "invalid_format", "detail": jsonable_encoder(exc.errors())},
        )

    return app


__all__ = ["create_app", "register_user_routes", "user_to_view"]
