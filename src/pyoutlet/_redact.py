"""Masking of credentials in debug output.

Endpoint descriptors carry basic-auth passwords and arbitrary headers, and
MQTT options carry broker credentials. Everything dumped at DEBUG level goes
through :func:`redact_for_log` first.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from typing import Any

MASK = "<redacted>"
MAX_DEPTH = 20

_SECRET_KEYS: frozenset[str] = frozenset(
    {
        "password",
        "notificationpassword",
        "authorization",
        "proxy-authorization",
        "cookie",
        "token",
        "apikey",
        "x-api-key",
    }
)


def _is_secret(key: str, value: Any) -> bool:
    return value is not None and key.lower() in _SECRET_KEYS


def _shorten(text: str, limit: int) -> str:
    if len(text) <= limit:
        return text
    return f"{text[:limit]}…<truncated>"


def redact_for_log(value: Any, *, max_string: int = 512, _depth: int = 0) -> Any:
    """Return a copy of *value* with secrets masked and long strings cut."""
    if _depth > MAX_DEPTH:
        return "<max-depth>"

    def recurse(item: Any) -> Any:
        return redact_for_log(item, max_string=max_string, _depth=_depth + 1)

    if value is None or isinstance(value, (bool, int, float)):
        return value
    if isinstance(value, str):
        return _shorten(value, max_string)
    if isinstance(value, (bytes, bytearray)):
        return f"<{len(value)} bytes>"
    if isinstance(value, Mapping):
        return {str(k): MASK if _is_secret(str(k), v) else recurse(v) for k, v in value.items()}
    if isinstance(value, Sequence):
        return [recurse(item) for item in value]

    dump = getattr(value, "model_dump", None)
    if callable(dump):
        return recurse(dump())
    return repr(value)
