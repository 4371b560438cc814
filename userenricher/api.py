"""HTTP interface for listing, adding, editing and deleting users."""

from __future__ import annotations

import json
import re
from collections.abc import Mapping
from typing import Any

import httpx
from fastapi import FastAPI, Request
from fastapi.concurrency import run_in_threadpool
from fastapi.responses import JSONResponse

from .enrichment import EnrichmentError, NameValidationError, enrich_user, validate_all_names
from .models import (
    DeleteUserPayload,
    EditUserPayload,
    SaveUserPayload,
    UserFilter,
    UserNotFoundError,
)
from .service import Enricher, EnricherError

_INTEGER = re.compile(r"[+-]?[0-9]+")
_SERVICE_ERRORS = (EnricherError, UserNotFoundError)


class _PayloadError(ValueError):
    """Raised when a request body cannot be decoded."""


def _atoi(value: str | None) -> int | None:
    if value and _INTEGER.fullmatch(value):
        return int(value)
    return None


def parse_filter(params: Mapping[str, str]) -> UserFilter:
    """Build a UserFilter from query parameters; bad numbers are ignored.

    Raises ValueError when the sex parameter is neither male nor female.
    """
    user_filter = UserFilter(
        name=params.get("name") or "",
        surname=params.get("surname") or "",
        patronymic=params.get("patronymic") or "",
        sex=params.get("sex") or "",
        country=params.get("country") or "",
    )
    for key, attribute in (
        ("ageFrom", "age_from"),
        ("ageTo", "age_to"),
        ("limit", "limit"),
        ("offset", "offset"),
    ):
        number = _atoi(params.get(key))
        if number is not None:
            setattr(user_filter, attribute, number)
    if user_filter.sex not in ("", "male", "female"):
        raise ValueError("invalid sex value, must be 'male' or 'female'")
    return user_filter


async def _read_object(request: Request) -> dict[str, Any]:
    raw = await request.body()
    try:
        data = json.loads(raw)
    except ValueError as exc:
        raise _PayloadError(str(exc)) from exc
    if not isinstance(data, dict):
        raise _PayloadError("request body must be a JSON object")
    return data


def _str_field(data: Mapping[str, Any], key: str) -> str:
    value = data.get(key)
    if value is None:
        return ""
    if not isinstance(value, str):
        raise _PayloadError(f"field {key!r} must be a string")
    return value


def _int_field(data: Mapping[str, Any], key: str) -> int:
    value = data.get(key)
    if value is None:
        return 0
    if isinstance(value, bool) or not isinstance(value, int):
        raise _PayloadError(f"field {key!r} must be an integer")
    return value


def _error(status: int, message: str, exc: Exception | None = None) -> JSONResponse:
    body: dict[str, Any] = {"error": message}
    if exc is not None:
        body["details"] = str(exc)
    return JSONResponse(body, status_code=status)


def _unavailable() -> JSONResponse:
    return _error(500, "service not available")


def create_app(service: Enricher | None, http_client: httpx.Client) -> FastAPI:
    """Return the application serving the user endpoints and the API docs."""
    app = FastAPI(
        title="User Enricher API",
        version="1.0",
        description="API for managing and enriching user data",
        openapi_url="/swagger/doc.json",
        docs_url="/swagger/index.html",
        redoc_url=None,
    )

    @app.get("/", tags=["users"], summary="Get filtered users")
    async def data_with_filters(request: Request) -> JSONResponse:
        """Retrieve users with optional filters."""
        if service is None:
            return _unavailable()
        try:
            user_filter = parse_filter(request.query_params)
        except ValueError as exc:
            return _error(400, str(exc))
        try:
            users = await run_in_threadpool(service.get_users, user_filter)
        except _SERVICE_ERRORS as exc:
            return _error(500, "failed to get users", exc)
        return JSONResponse(
            {"count": len(users), "users": [user.to_dict() for user in users]}
        )

    @app.post("/delete", tags=["users"], summary="Delete a user")
    async def delete(request: Request) -> JSONResponse:
        """Delete user by ID."""
        if service is None:
            return _unavailable()
        try:
            payload = DeleteUserPayload(id=_int_field(await _read_object(request), "id"))
        except _PayloadError:
            return _error(400, "invalid request body")
        try:
            await run_in_threadpool(service.delete_user, payload.id)
        except _SERVICE_ERRORS as exc:
            return _error(500, str(exc))
        return JSONResponse({"message": "user deleted"})

    @app.post("/edit", tags=["users"], summary="Update a user")
    async def edit(request: Request) -> JSONResponse:
        """Update user information; empty fields keep their stored values."""
        if service is None:
            return _unavailable()
        try:
            data = await _read_object(request)
            payload = EditUserPayload(
                id=_int_field(data, "id"),
                name=_str_field(data, "name"),
                surname=_str_field(data, "surname"),
                patronymic=_str_field(data, "patronymic"),
            )
        except _PayloadError as exc:
            return _error(400, "invalid request payload", exc)
        try:
            existing = await run_in_threadpool(service.get_user, payload.id)
        except _SERVICE_ERRORS as exc:
            return _error(404, "user not found", exc)
        if payload.name:
            existing.name = payload.name
        if payload.surname:
            existing.surname = payload.surname
        if payload.patronymic:
            existing.patronymic = payload.patronymic
        try:
            updated = await run_in_threadpool(service.edit_user, existing)
        except _SERVICE_ERRORS as exc:
            return _error(500, "failed to update user", exc)
        return JSONResponse(
            {"message": "user updated successfully", "user": updated.to_dict()}
        )

    @app.post("/add", tags=["users"], summary="Create a new user", status_code=201)
    async def add(request: Request) -> JSONResponse:
        """Add a new user with data enrichment."""
        if service is None:
            return _unavailable()
        try:
            data = await _read_object(request)
            payload = SaveUserPayload(
                name=_str_field(data, "name"),
                surname=_str_field(data, "surname"),
                patronymic=_str_field(data, "patronymic"),
            )
        except _PayloadError as exc:
            return _error(400, "invalid request payload", exc)
        try:
            validate_all_names(payload.name, payload.surname, payload.patronymic)
        except NameValidationError as exc:
            return _error(400, "invalid name format", exc)
        try:
            user = await run_in_threadpool(enrich_user, payload, http_client)
        except EnrichmentError as exc:
            return _error(424, "failed to enrich user data", exc)
        try:
            user_id = await run_in_threadpool(service.save_user, user)
        except _SERVICE_ERRORS as exc:
            return _error(500, "failed to save user", exc)
        return JSONResponse({"id": user_id}, status_code=201)

    return app