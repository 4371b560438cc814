"""Data types shared by the storage, service and HTTP layers."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any


class UserNotFoundError(LookupError):
    """Raised when a requested user does not exist."""

    def __init__(self, message: str = "user not found") -> None:
        super().__init__(message)


@dataclass
class SaveUserPayload:
    """Request body for creating a user."""

    name: str = ""
    surname: str = ""
    patronymic: str = ""


@dataclass
class EditUserPayload:
    """Request body for updating a user; empty fields are left unchanged."""

    id: int = 0
    name: str = ""
    surname: str = ""
    patronymic: str = ""


@dataclass
class DeleteUserPayload:
    """Request body for deleting a user."""

    id: int = 0


@dataclass
class Country:
    """A probable nationality of a user."""

    country_id: str = ""
    probability: float = 0.0

    def to_dict(self) -> dict[str, Any]:
        """Return the JSON representation."""
        return {"country_id": self.country_id, "probability": self.probability}


@dataclass
class EnrichedUser:
    """A user together with the data obtained from the enrichment services."""

    id: int = 0
    name: str = ""
    surname: str = ""
    patronymic: str = ""
    age: int = 0
    sex: str = ""
    country: list[Country] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        """Return the JSON representation; an empty surname is omitted."""
        data: dict[str, Any] = {"id": self.id, "name": self.name}
        if self.surname:
            data["surname"] = self.surname
        data["patronymic"] = self.patronymic
        data["age"] = self.age
        data["sex"] = self.sex
        data["country"] = [c.to_dict() for c in self.country]
        return data


@dataclass
class UserFilter:
    """Criteria for listing users; empty strings and zeros mean no restriction."""

    name: str = ""
    surname: str = ""
    patronymic: str = ""
    age_from: int = 0
    age_to: int = 0
    sex: str = ""
    country: str = ""
    limit: int = 0
    offset: int = 0


def _country_from_dict(item: Any) -> Country:
    if not isinstance(item, Mapping):
        raise ValueError(f"invalid country entry: {item!r}")
    return Country(
        country_id=str(item.get("country_id") or ""),
        probability=float(item.get("probability") or 0.0),
    )


def user_from_dict(data: Mapping[str, Any]) -> EnrichedUser:
    """Build an EnrichedUser from its JSON-like mapping form.

    Missing or null fields take their zero values. A malformed country
    list raises ValueError.
    """
    countries = data.get("country")
    if countries is None:
        countries = []
    if not isinstance(countries, list):
        raise ValueError(f"country must be a list, got {type(countries).__name__}")
    return EnrichedUser(
        id=int(data.get("id") or 0),
        name=str(data.get("name") or ""),
        surname=str(data.get("surname") or ""),
        patronymic=str(data.get("patronymic") or ""),
        age=int(data.get("age") or 0),
        sex=str(data.get("sex") or ""),
        country=[_country_from_dict(item) for item in countries],
    )