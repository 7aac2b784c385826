"""Coercion of pushed values into booleans."""

from __future__ import annotations

from typing import Any

_TRUE_STRINGS = frozenset({"true", "1", "on", "yes"})
_FALSE_STRINGS = frozenset({"false", "0", "off", "no"})


def coerce_bool(value: Any) -> bool:
    """Interpret a pushed value as a boolean.

    Accepts booleans, the numbers ``0``/``1`` and the strings
    ``true/false/1/0/on/off/yes/no`` (case-insensitive, surrounding
    whitespace ignored). Raises :class:`ValueError` otherwise.
    """
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float)):
        if value in (0, 1):
            return bool(value)
        raise ValueError(f"numeric value {value!r} is not 0 or 1")
    if isinstance(value, bytes):
        value = value.decode("utf-8", errors="replace")
    if isinstance(value, str):
        normalized = value.strip().lower()
        if normalized in _TRUE_STRINGS:
            return True
        if normalized in _FALSE_STRINGS:
            return False
    raise ValueError(f"cannot interpret {value!r} as a boolean")
