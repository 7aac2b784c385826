"""Base model for pyoutlet configuration and wire shapes.

Accessory configs are written in camelCase (``statusUrl``,
``sendImmediately``); :class:`OutletBaseModel` maps those keys onto
snake_case fields via ``alias_generator=to_camel`` while still accepting the
field names themselves.
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class OutletBaseModel(BaseModel):
    """Frozen, camelCase-aware base for all pyoutlet models."""

    model_config = ConfigDict(
        frozen=True,
        extra="ignore",
        populate_by_name=True,
        alias_generator=to_camel,
    )
