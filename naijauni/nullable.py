"""A value that may be explicitly set to null or left unset."""

from __future__ import annotations

import datetime as _dt
import json
from typing import Any, Generic, TypeVar

T = TypeVar("T")

_UNSET: Any = object()


def _encode(value: Any) -> Any:
    if isinstance(value, (_dt.datetime, _dt.date, _dt.time)):
        return value.isoformat()
    raise TypeError(f"object of type {type(value).__name__} is not JSON serializable")


def is_nil(value: Any) -> bool:
    """Return whether ``value`` is absent."""
    return value is None


class Nullable(Generic[T]):
    """Holds a value together with whether it was ever set.

    ``Nullable()`` is unset; ``Nullable(None)`` is set to null.
    """

    __slots__ = ("_value", "_is_set")

    def __init__(self, value: T | None = _UNSET) -> None:
        if value is _UNSET:
            self._value: T | None = None
            self._is_set = False
        else:
            self._value = value
            self._is_set = True

    def get(self) -> T | None:
        """Return the held value, or None."""
        return self._value

    def set(self, value: T | None) -> None:
        """Hold ``value`` and mark it as set."""
        self._value = value
        self._is_set = True

    def is_set(self) -> bool:
        """Return whether a value, null included, has been set."""
        return self._is_set

    def unset(self) -> None:
        """Drop the value and mark it as unset."""
        self._value = None
        self._is_set = False

    def to_json(self) -> str:
        """Encode the held value as JSON."""
        return json.dumps(self._value, default=_encode)

    @classmethod
    def from_json(cls, text: str | bytes) -> Nullable[Any]:
        """Decode JSON into a set instance."""
        return cls(json.loads(text))

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Nullable):
            return NotImplemented
        return self._is_set == other._is_set and self._value == other._value

    def __repr__(self) -> str:
        if not self._is_set:
            return "Nullable()"
        return f"Nullable({self._value!r})"