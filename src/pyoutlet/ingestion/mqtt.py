"""MQTT ingestion helpers.

This module turns raw MQTT payloads into the boolean values handed to the
push reconciler.
"""

from __future__ import annotations

import re

from pyoutlet.ingestion.normalize import coerce_bool
from pyoutlet.models.mqtt import MqttSubscription


def extract_value(subscription: MqttSubscription, payload: bytes | str) -> bool:
    """Extract the boolean carried by *payload* for *subscription*.

    When the subscription has a ``messagePattern`` the configured group is
    extracted first. Raises :class:`ValueError` when the pattern does not
    match or the extracted text is not a boolean.
    """
    text = payload.decode("utf-8", errors="replace") if isinstance(payload, bytes) else payload
    text = text.strip()

    if subscription.message_pattern is not None:
        match = re.search(subscription.message_pattern, text)
        if match is None:
            raise ValueError(f"payload {text[:64]!r} does not match messagePattern")
        try:
            group = match.group(subscription.pattern_group_to_extract)
        except IndexError as exc:
            raise ValueError(
                f"messagePattern has no group {subscription.pattern_group_to_extract}"
            ) from exc
        if group is None:
            raise ValueError("messagePattern group did not participate in the match")
        text = group

    return coerce_bool(text)
