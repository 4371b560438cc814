"""Validation of user names and enrichment from public name-statistics APIs."""

from __future__ import annotations

from typing import Any

import httpx

from .models import Country, EnrichedUser, SaveUserPayload

AGE_URL = "https://api.agify.io/"
GENDER_URL = "https://api.genderize.io/"
NATIONALITY_URL = "https://api.nationalize.io/"

_MAX_NAME_LENGTH = 100
_SPECIAL_CHARACTERS = frozenset(" -'")


class NameValidationError(ValueError):
    """Raised when a name field has an unacceptable format."""


class EnrichmentError(Exception):
    """Raised when an enrichment API cannot be queried or answers badly."""


def _validate_name_field(field_name: str, value: str, required: bool) -> None:
    if not value.strip():
        if required:
            raise NameValidationError(f"{field_name} cannot be empty")
        return

    if len(value) > _MAX_NAME_LENGTH:
        raise NameValidationError(
            f"{field_name} is too long (max {_MAX_NAME_LENGTH} characters)"
        )

    last = len(value) - 1
    previous = ""
    for index, char in enumerate(value):
        if char.isalpha():
            pass
        elif char in _SPECIAL_CHARACTERS:
            if index in (0, last):
                raise NameValidationError(
                    f"{field_name} cannot start or end with special characters"
                )
            if char == previous:
                raise NameValidationError(
                    f"{field_name} cannot have consecutive special characters"
                )
        else:
            raise NameValidationError(
                f"{field_name} contains invalid characters - only letters, "
                "spaces, hyphens and apostrophes are allowed"
            )
        previous = char


def validate_all_names(first_name: str, last_name: str, patronymic: str) -> None:
    """Check the three name fields; the patronymic may be empty."""
    _validate_name_field("first name", first_name, True)
    _validate_name_field("last name", last_name, True)
    _validate_name_field("patronymic", patronymic, False)


def _get_json(client: httpx.Client, url: str, name: str) -> dict[str, Any]:
    try:
        response = client.get(url, params={"name": name})
        data = response.json()
    except httpx.HTTPError as exc:
        raise EnrichmentError(str(exc)) from exc
    except ValueError as exc:
        raise EnrichmentError(f"invalid response from {url}: {exc}") from exc
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise EnrichmentError(f"unexpected response from {url}: {data!r}")
    return data


def fetch_age(client: httpx.Client, name: str) -> int:
    """Return the estimated age for a first name; 0 when unknown."""
    age = _get_json(client, AGE_URL, name).get("age")
    if age is None:
        return 0
    if isinstance(age, bool) or not isinstance(age, int):
        raise EnrichmentError(f"invalid age value: {age!r}")
    return age


def fetch_gender(client: httpx.Client, name: str) -> str:
    """Return the estimated gender for a first name; empty when unknown."""
    gender = _get_json(client, GENDER_URL, name).get("gender")
    if gender is None:
        return ""
    if not isinstance(gender, str):
        raise EnrichmentError(f"invalid gender value: {gender!r}")
    return gender


def _parse_country(item: Any) -> Country:
    if not isinstance(item, dict):
        raise EnrichmentError(f"invalid country entry: {item!r}")
    country_id = item.get("country_id")
    probability = item.get("probability")
    if country_id is None:
        country_id = ""
    if probability is None:
        probability = 0.0
    if not isinstance(country_id, str):
        raise EnrichmentError(f"invalid country_id: {country_id!r}")
    if isinstance(probability, bool) or not isinstance(probability, (int, float)):
        raise EnrichmentError(f"invalid probability: {probability!r}")
    return Country(country_id=country_id, probability=float(probability))


def fetch_nationality(client: httpx.Client, name: str) -> list[Country]:
    """Return the probable nationalities for a first name."""
    countries = _get_json(client, NATIONALITY_URL, name).get("country")
    if countries is None:
        return []
    if not isinstance(countries, list):
        raise EnrichmentError(f"invalid country list: {countries!r}")
    return [_parse_country(item) for item in countries]


def enrich_user(payload: SaveUserPayload, client: httpx.Client) -> EnrichedUser:
    """Build an EnrichedUser from a payload using the three enrichment APIs."""
    user = EnrichedUser(
        name=payload.name,
        surname=payload.surname,
        patronymic=payload.patronymic,
    )
    try:
        user.age = fetch_age(client, payload.name)
    except EnrichmentError as exc:
        raise EnrichmentError(f"failed to get age: {exc}") from exc
    try:
        user.sex = fetch_gender(client, payload.name)
    except EnrichmentError as exc:
        raise EnrichmentError(f"failed to get gender: {exc}") from exc
    try:
        user.country = fetch_nationality(client, payload.name)
    except EnrichmentError as exc:
        raise EnrichmentError(f"failed to get nationality: {exc}") from exc
    return user