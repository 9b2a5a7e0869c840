"""Data models exchanged with the universities API."""

from __future__ import annotations

import json
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any


def _dumps(data: Mapping[str, Any]) -> str:
    return json.dumps(data, sort_keys=True, separators=(",", ":"), ensure_ascii=False)


def _optional_str(data: Mapping[str, Any], key: str) -> str | None:
    value = data.get(key)
    if value is None or isinstance(value, str):
        return value
    raise TypeError(f"field {key} must be a string, not {type(value).__name__}")


@dataclass
class University:
    """A university with its name, abbreviation and website."""

    name: str | None = None
    abbreviation: str | None = None
    website_link: str | None = None

    def to_dict(self) -> dict[str, str]:
        """Return the fields that are set, keyed by their wire names."""
        fields = {
            "name": self.name,
            "abbreviation": self.abbreviation,
            "website_link": self.website_link,
        }
        return {key: value for key, value in fields.items() if value is not None}

    def to_json(self) -> str:
        """Encode the set fields as compact JSON."""
        return _dumps(self.to_dict())

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> University:
        """Build a university from decoded JSON, ignoring unknown keys."""
        if not isinstance(data, Mapping):
            raise TypeError(f"expected a JSON object, not {type(data).__name__}")
        return cls(
            name=_optional_str(data, "name"),
            abbreviation=_optional_str(data, "abbreviation"),
            website_link=_optional_str(data, "website_link"),
        )


@dataclass
class UniversityNameRequest:
    """The body of a search by university name."""

    name: str = ""

    _REQUIRED = ("name",)
    _KNOWN = frozenset({"name"})

    def to_dict(self) -> dict[str, str]:
        """Return the request keyed by its wire names."""
        return {"name": self.name}

    def to_json(self) -> str:
        """Encode the request as compact JSON."""
        return _dumps(self.to_dict())

    @classmethod
    def from_json(cls, text: str | bytes) -> UniversityNameRequest:
        """Decode a request strictly: required keys present, no unknown keys."""
        data = json.loads(text)
        if not isinstance(data, dict):
            raise ValueError(f"expected a JSON object, not {type(data).__name__}")
        for required in cls._REQUIRED:
            if required not in data:
                raise ValueError(f"no value given for required property {required}")
        unknown = sorted(set(data) - cls._KNOWN)
        if unknown:
            raise ValueError(f'json: unknown field "{unknown[0]}"')
        name = data["name"]
        if name is None:
            name = ""
        elif not isinstance(name, str):
            raise TypeError(f"field name must be a string, not {type(name).__name__}")
        return cls(name=name)


@dataclass
class APIResponse:
    """What the server returned for one operation."""

    response: Any = None
    message: str = ""
    operation: str = ""
    request_url: str = ""
    method: str = ""
    payload: bytes = b""

    @classmethod
    def with_error(cls, message: str) -> APIResponse:
        """Return a response carrying only an error message."""
        return cls(message=message)