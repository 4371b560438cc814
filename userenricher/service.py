"""User service that logs and wraps the errors of a storage provider."""

from __future__ import annotations

import logging
from typing import Protocol

from .models import EnrichedUser, UserFilter, UserNotFoundError

_logger = logging.getLogger(__name__)


class UserProvider(Protocol):
    """Storage operations the service relies on."""

    def save_user(self, user: EnrichedUser) -> int: ...

    def edit_user(self, user: EnrichedUser) -> EnrichedUser: ...

    def delete_user(self, user_id: int) -> None: ...

    def get_users(self, user_filter: UserFilter) -> list[EnrichedUser]: ...

    def get_user(self, user_id: int) -> EnrichedUser: ...


class EnricherError(Exception):
    """Raised when the provider fails; the message is prefixed by the operation."""


class Enricher:
    """Business layer in front of a UserProvider."""

    def __init__(
        self,
        log: logging.Logger | logging.LoggerAdapter | None,
        provider: UserProvider,
    ) -> None:
        self._log = log if log is not None else _logger
        self._provider = provider

    def _fail(self, op: str, message: str, exc: Exception) -> EnricherError:
        self._log.error("%s: %s", message, exc, extra={"op": op})
        return EnricherError(f"{op}: {exc}")

    def save_user(self, user: EnrichedUser) -> int:
        """Store a new user and return its id."""
        op = "enricher.SaveUser"
        self._log.info("attempting to save user", extra={"op": op})
        try:
            return self._provider.save_user(user)
        except Exception as exc:
            raise self._fail(op, "failed to save user", exc) from exc

    def edit_user(self, user: EnrichedUser) -> EnrichedUser:
        """Update a user and return the stored result."""
        op = "enricher.EditUser"
        self._log.info("attempting to edit user", extra={"op": op})
        try:
            return self._provider.edit_user(user)
        except Exception as exc:
            raise self._fail(op, "failed to edit user", exc) from exc

    def delete_user(self, user_id: int) -> None:
        """Delete a user by id."""
        op = "enricher.DeleteUser"
        self._log.info("attempting to delete user", extra={"op": op})
        try:
            self._provider.delete_user(user_id)
        except Exception as exc:
            raise self._fail(op, "failed to delete user", exc) from exc

    def get_users(self, user_filter: UserFilter) -> list[EnrichedUser]:
        """Return the users matching the filter."""
        op = "enricher.GetUser"
        self._log.info("attempting to get user", extra={"op": op})
        try:
            return list(self._provider.get_users(user_filter))
        except UserNotFoundError as exc:
            raise UserNotFoundError() from exc
        except Exception as exc:
            raise self._fail(op, "failed to get user", exc) from exc

    def get_user(self, user_id: int) -> EnrichedUser:
        """Return one user or raise UserNotFoundError."""
        op = "enricher.GetUser"
        self._log.info("attempting to get user", extra={"op": op})
        try:
            return self._provider.get_user(user_id)
        except UserNotFoundError as exc:
            raise UserNotFoundError() from exc
        except Exception as exc:
            raise self._fail(op, "failed to get user", exc) from exc