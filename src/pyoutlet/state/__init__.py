"""State/store layer.

This package is the single source of truth for how updates from HTTP
polling, on-demand reads, command writes, notifications and MQTT are applied
to the outlet's observable state.
"""
