"""Command that starts the user enrichment HTTP server."""

from __future__ import annotations

import argparse
import json
import logging
import sys
from datetime import datetime, timezone
from typing import Any

import httpx

from .api import create_app
from .config import database_url, load_config
from .service import Enricher
from .storage import Storage

ENV_LOCAL = "local"
ENV_DEV = "dev"
ENV_PROD = "prod"

_RESERVED = frozenset(vars(logging.makeLogRecord({}))) | {"message", "asctime"}


def _extras(record: logging.LogRecord) -> dict[str, Any]:
    return {k: v for k, v in vars(record).items() if k not in _RESERVED}


def _timestamp(record: logging.LogRecord) -> str:
    return datetime.fromtimestamp(record.created, timezone.utc).astimezone().isoformat()


class _JsonFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        entry: dict[str, Any] = {
            "time": _timestamp(record),
            "level": record.levelname,
            "msg": record.getMessage(),
        }
        entry.update(_extras(record))
        if record.exc_info:
            entry["exc"] = self.formatException(record.exc_info)
        return json.dumps(entry, default=str, ensure_ascii=False)


def _text_value(value: Any) -> str:
    text = str(value)
    if not text or any(c.isspace() or c in '"=' for c in text):
        return json.dumps(text, ensure_ascii=False)
    return text


class _TextFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        fields = {
            "time": _timestamp(record),
            "level": record.levelname,
            "msg": record.getMessage(),
            **_extras(record),
        }
        line = " ".join(f"{key}={_text_value(value)}" for key, value in fields.items())
        if record.exc_info:
            line += "\n" + self.formatException(record.exc_info)
        return line


_SETTINGS: dict[str, tuple[int, type[logging.Formatter]]] = {
    ENV_LOCAL: (logging.DEBUG, _TextFormatter),
    ENV_DEV: (logging.DEBUG, _JsonFormatter),
    ENV_PROD: (logging.INFO, _JsonFormatter),
}


def setup_logging(env: str) -> logging.Logger:
    """Configure the package logger for local, dev or prod and return it."""
    try:
        level, formatter_class = _SETTINGS[env]
    except KeyError:
        raise ValueError(f"unknown environment: {env!r}") from None
    logger = logging.getLogger("userenricher")
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(formatter_class())
    logger.addHandler(handler)
    logger.setLevel(level)
    logger.propagate = False
    return logger


def _listen_address(address: str) -> tuple[str, int]:
    host, separator, number = address.rpartition(":")
    if not separator:
        host, number = "", address
    host = host.strip("[]") or "0.0.0.0"
    try:
        port = int(number)
    except ValueError:
        raise ValueError(f"invalid listen address: {address!r}") from None
    return host, port


def main(argv: list[str] | None = None) -> int:
    """Load settings, connect to the database and serve the API."""
    argparse.ArgumentParser(
        prog="userenricher", description="Run the user enrichment HTTP server."
    ).parse_args(argv)

    config = load_config()
    log = setup_logging(config.env)
    log.info("starting application", extra={"env": config.env})

    storage = Storage(database_url())
    log.info("connected to database")
    service = Enricher(log, storage)

    import uvicorn

    with httpx.Client() as http_client:
        app = create_app(service, http_client)
        try:
            host, port = _listen_address(config.port)
            uvicorn.run(app, host=host, port=port, log_config=None)
        except (OSError, ValueError) as exc:
            log.error("failed to run server: %s", exc)
            return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())