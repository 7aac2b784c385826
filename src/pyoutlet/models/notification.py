"""Notification push body."""

from __future__ import annotations

from typing import Any

from pydantic import Field

from pyoutlet.models._base import OutletBaseModel


class NotificationBody(OutletBaseModel):
    """Body delivered by the notification server: ``{"characteristic": "On", "value": true}``."""

    characteristic: str = Field(..., min_length=1)
    value: Any = Field(...)
