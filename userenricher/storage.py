"""Persistence of enriched users in a relational database."""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from sqlalchemy import (
    JSON,
    BigInteger,
    Column,
    Integer,
    MetaData,
    String,
    Table,
    Text,
    cast,
    create_engine,
    delete,
    insert,
    select,
    update,
)
from sqlalchemy.exc import SQLAlchemyError

from .models import EnrichedUser, UserFilter, UserNotFoundError, user_from_dict

_METADATA = MetaData()

_USERS = Table(
    "users",
    _METADATA,
    Column(
        "id",
        BigInteger().with_variant(Integer, "sqlite"),
        primary_key=True,
        autoincrement=True,
    ),
    Column("name", Text, nullable=False, default=""),
    Column("surname", Text, nullable=False, default=""),
    Column("patronymic", Text, nullable=False, default=""),
    Column("age", Integer, nullable=False, default=0),
    Column("sex", Text, nullable=False, default=""),
    Column("country", JSON),
)


class StorageError(Exception):
    """Raised when a database operation fails."""


def _normalise_url(url: str) -> str:
    if url.startswith("postgres://"):
        return "postgresql://" + url[len("postgres://"):]
    return url


def _row_values(user: EnrichedUser) -> dict[str, Any]:
    return {
        "name": user.name,
        "surname": user.surname,
        "patronymic": user.patronymic,
        "age": user.age,
        "sex": user.sex,
        "country": [c.to_dict() for c in user.country],
    }


def _to_user(op: str, row: Mapping[str, Any]) -> EnrichedUser:
    try:
        return user_from_dict(dict(row))
    except (ValueError, TypeError) as exc:
        raise StorageError(f"{op}: failed to unmarshal country data: {exc}") from exc


class Storage:
    """User repository backed by an SQLAlchemy engine."""

    def __init__(self, url: str) -> None:
        try:
            self._engine = create_engine(_normalise_url(url))
        except (SQLAlchemyError, ImportError, ValueError) as exc:
            raise StorageError(f"storage.postgres.New: {exc}") from exc

    def create_schema(self) -> None:
        """Create the users table if it does not exist."""
        try:
            _METADATA.create_all(self._engine)
        except SQLAlchemyError as exc:
            raise StorageError(f"storage.CreateSchema: {exc}") from exc

    def save_user(self, user: EnrichedUser) -> int:
        """Insert a user and return its new id."""
        op = "storage.postgres.SaveUser"
        try:
            with self._engine.begin() as conn:
                result = conn.execute(insert(_USERS).values(**_row_values(user)))
                return int(result.inserted_primary_key[0])
        except SQLAlchemyError as exc:
            raise StorageError(f"{op}: {exc}") from exc

    def edit_user(self, user: EnrichedUser) -> EnrichedUser:
        """Overwrite the stored user with the same id and return the stored row."""
        op = "storage.postgres.EditUser"
        try:
            with self._engine.begin() as conn:
                result = conn.execute(
                    update(_USERS)
                    .where(_USERS.c.id == user.id)
                    .values(**_row_values(user))
                )
                if result.rowcount == 0:
                    raise StorageError(f"{op}: no rows in result set")
                row = (
                    conn.execute(select(_USERS).where(_USERS.c.id == user.id))
                    .mappings()
                    .one()
                )
        except SQLAlchemyError as exc:
            raise StorageError(f"{op}: {exc}") from exc
        return _to_user(op, row)

    def delete_user(self, user_id: int) -> None:
        """Delete the user with the given id."""
        op = "storage.postgres.DeleteUser"
        try:
            with self._engine.begin() as conn:
                result = conn.execute(delete(_USERS).where(_USERS.c.id == user_id))
                affected = result.rowcount
        except SQLAlchemyError as exc:
            raise StorageError(f"{op}: {exc}") from exc
        if affected == 0:
            raise StorageError(f"{op}: no rows in result set")

    def get_user(self, user_id: int) -> EnrichedUser:
        """Return the user with the given id or raise UserNotFoundError."""
        op = "storage.postgres.GetUser"
        try:
            with self._engine.connect() as conn:
                row = (
                    conn.execute(select(_USERS).where(_USERS.c.id == user_id))
                    .mappings()
                    .first()
                )
        except SQLAlchemyError as exc:
            raise StorageError(f"{op}: {exc}") from exc
        if row is None:
            raise UserNotFoundError(f"{op}: user not found")
        return _to_user(op, row)

    def get_users(self, user_filter: UserFilter) -> list[EnrichedUser]:
        """Return users matching the filter, ordered by id."""
        op = "storage.postgres.GetUsers"
        f = user_filter
        stmt = select(_USERS)
        if f.name:
            stmt = stmt.where(_USERS.c.name.ilike(f"%{f.name}%"))
        if f.surname:
            stmt = stmt.where(_USERS.c.surname.ilike(f"%{f.surname}%"))
        if f.patronymic:
            stmt = stmt.where(_USERS.c.patronymic.ilike(f"%{f.patronymic}%"))
        if f.age_from > 0:
            stmt = stmt.where(_USERS.c.age >= f.age_from)
        if f.age_to > 0:
            stmt = stmt.where(_USERS.c.age <= f.age_to)
        if f.sex:
            stmt = stmt.where(_USERS.c.sex == f.sex)
        if f.country:
            stmt = stmt.where(cast(_USERS.c.country, String).ilike(f"%{f.country}%"))
        stmt = stmt.order_by(_USERS.c.id.asc())
        if f.limit > 0:
            stmt = stmt.limit(f.limit)
        if f.offset > 0:
            stmt = stmt.offset(f.offset)
        try:
            with self._engine.connect() as conn:
                rows = conn.execute(stmt).mappings().all()
        except SQLAlchemyError as exc:
            raise StorageError(f"{op}: {exc}") from exc
        return [_to_user(op, row) for row in rows]