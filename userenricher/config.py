"""Application settings read from a .env file in the working directory."""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv


@dataclass
class Config:
    """Runtime environment name and listening address."""

    env: str = ""
    port: str = ""


def _load_env_file() -> bool:
    """Load ./.env without overriding existing variables; report whether it exists."""
    path = Path.cwd() / ".env"
    if not path.is_file():
        return False
    load_dotenv(path, override=False)
    return True


def load_config() -> Config:
    """Return the configuration; it stays empty when there is no .env file."""
    config = Config()
    if _load_env_file():
        config.env = os.environ.get("ENV", "")
        config.port = os.environ.get("PORT", "")
    return config


def database_url() -> str:
    """Return DB_URL after loading .env; raise RuntimeError when it is unavailable."""
    if _load_env_file():
        url = os.environ.get("DB_URL", "")
        if url:
            return url
    raise RuntimeError("DB_URL not found")