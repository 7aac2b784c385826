"""Status body patterns.

A status endpoint answers with an arbitrary body; the outlet decides whether
the property is on by searching that body with a regular expression.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Any

from pyoutlet._constants import DEFAULT_STATUS_PATTERN
from pyoutlet.exceptions import OutletConfigError


@dataclass(frozen=True)
class StatusPattern:
    """Compiled rule turning a response body into a boolean."""

    regex: re.Pattern[str]

    @property
    def source(self) -> str:
        return self.regex.pattern

    def test(self, body: str) -> bool:
        """Return ``True`` if the pattern matches anywhere in *body*."""
        if not isinstance(body, str):
            return False
        return self.regex.search(body) is not None


DEFAULT_PATTERN = StatusPattern(re.compile(DEFAULT_STATUS_PATTERN))


def compile_pattern(source: Any) -> StatusPattern:
    """Compile a pattern source string.

    ``None`` yields :data:`DEFAULT_PATTERN`. Raises :class:`OutletConfigError`
    for non-string sources and invalid regular expressions.
    """
    if source is None:
        return DEFAULT_PATTERN
    if not isinstance(source, str):
        raise OutletConfigError(f"Unsupported type for pattern: {type(source).__name__}")
    try:
        return StatusPattern(re.compile(source))
    except re.error as exc:
        raise OutletConfigError(f"Invalid pattern {source!r}: {exc}") from exc
