"""Command that applies numbered SQL migrations to the database."""

from __future__ import annotations

import argparse
import re
import sqlite3
import sys
from collections.abc import Iterator
from pathlib import Path

from sqlalchemy import (
    BigInteger,
    Boolean,
    Column,
    MetaData,
    Table,
    create_engine,
    delete,
    insert,
    select,
)
from sqlalchemy.engine import Connection
from sqlalchemy.exc import SQLAlchemyError

from .config import database_url

_MIGRATION_NAME = re.compile(r"^([0-9]+)_(.*)\.(down|up)\.(.*)$")

_METADATA = MetaData()
_SCHEMA_MIGRATIONS = Table(
    "schema_migrations",
    _METADATA,
    Column("version", BigInteger, primary_key=True, autoincrement=False),
    Column("dirty", Boolean, nullable=False),
)


class NoChangeError(Exception):
    """Raised when every migration has already been applied."""

    def __init__(self, message: str = "no change") -> None:
        super().__init__(message)


def _normalise_url(url: str) -> str:
    if url.startswith("postgres://"):
        return "postgresql://" + url[len("postgres://"):]
    return url


def _up_migrations(directory: str | Path) -> list[tuple[int, Path]]:
    root = Path(directory)
    if not root.is_dir():
        raise FileNotFoundError(f"migration directory not found: {root}")
    found: dict[int, Path] = {}
    for path in sorted(root.iterdir()):
        match = _MIGRATION_NAME.match(path.name)
        if not match or match.group(3) != "up":
            continue
        version = int(match.group(1))
        if version in found:
            raise ValueError(f"duplicate migration file: {path.name}")
        found[version] = path
    return sorted(found.items())


def _sqlite_statements(script: str) -> Iterator[str]:
    *pieces, tail = script.split(";")
    buffer = ""
    for piece in pieces:
        buffer += piece + ";"
        if sqlite3.complete_statement(buffer):
            statement = buffer.strip()
            if statement != ";":
                yield statement
            buffer = ""
    rest = (buffer + tail).strip()
    if rest:
        yield rest


def _statements(script: str, dialect: str) -> Iterator[str]:
    if dialect == "sqlite":
        yield from _sqlite_statements(script)
    elif script.strip():
        yield script


def _current_version(conn: Connection) -> tuple[int | None, bool]:
    row = conn.execute(select(_SCHEMA_MIGRATIONS)).first()
    if row is None:
        return None, False
    return int(row.version), bool(row.dirty)


def _set_version(conn: Connection, version: int, dirty: bool) -> None:
    conn.execute(delete(_SCHEMA_MIGRATIONS))
    conn.execute(insert(_SCHEMA_MIGRATIONS).values(version=version, dirty=dirty))


def apply_migrations(url: str, directory: str | Path) -> list[int]:
    """Apply pending NNN_name.up.sql files in order and return their versions.

    Raises NoChangeError when nothing is pending and RuntimeError when the
    database is left dirty by an earlier failure or a migration fails.
    """
    migrations = _up_migrations(directory)
    engine = create_engine(_normalise_url(url))
    try:
        try:
            _METADATA.create_all(engine)
            with engine.connect() as conn:
                current, dirty = _current_version(conn)
        except SQLAlchemyError as exc:
            raise RuntimeError(f"failed to read migration version: {exc}") from exc
        if dirty:
            raise RuntimeError(f"Dirty database version {current}. Fix and force version.")

        pending = [(v, p) for v, p in migrations if current is None or v > current]
        if not pending:
            raise NoChangeError()

        applied = []
        for version, path in pending:
            script = path.read_text(encoding="utf-8")
            try:
                with engine.begin() as conn:
                    _set_version(conn, version, True)
                with engine.begin() as conn:
                    for statement in _statements(script, engine.dialect.name):
                        conn.exec_driver_sql(statement)
                with engine.begin() as conn:
                    _set_version(conn, version, False)
            except SQLAlchemyError as exc:
                raise RuntimeError(f"migration {path.name} failed: {exc}") from exc
            applied.append(version)
        return applied
    finally:
        engine.dispose()


def main(argv: list[str] | None = None) -> int:
    """Apply the migrations in ./migrations to the database named by DB_URL."""
    argparse.ArgumentParser(
        prog="userenricher-migrate",
        description="Apply database migrations from ./migrations.",
    ).parse_args(argv)

    url = database_url()
    print(url)
    try:
        apply_migrations(url, "migrations")
    except NoChangeError:
        print("Nothing to migrate")
        return 0
    except FileNotFoundError as exc:
        print(f"Failed to create migrate instance: {exc}", file=sys.stderr)
        return 1
    print("Migrations applied successfully")
    return 0


if __name__ == "__main__":
    sys.exit(main())