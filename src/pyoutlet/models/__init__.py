"""Configuration and wire models for pyoutlet."""

from pyoutlet.models._base import OutletBaseModel
from pyoutlet.models.endpoint import BasicAuth, Endpoint
from pyoutlet.models.mqtt import MqttOptions, MqttSubscription
from pyoutlet.models.notification import NotificationBody

__all__ = [
    "BasicAuth",
    "Endpoint",
    "MqttOptions",
    "MqttSubscription",
    "NotificationBody",
    "OutletBaseModel",
]
