"""Ingestion layer.

This package contains adapters that receive out-of-band updates
(notifications, MQTT) and apply them to the outlet state.
"""

__all__: list[str] = []
