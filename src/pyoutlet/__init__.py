"""pyoutlet - Async Python engine for HTTP-controlled outlets."""

from pyoutlet._constants import VERSION as __version__
from pyoutlet._notifications import DispatchResult, NotificationRegistry, create_notification_app
from pyoutlet._pull_timer import PullTimer, PullTimerState
from pyoutlet.config import ConfigFinding, FindingSeverity, OutletConfig, parse_config
from pyoutlet.exceptions import (
    OutletConfigError,
    OutletError,
    OutletHttpStatusError,
    OutletRequestError,
    OutletTransportError,
    UnknownPropertyError,
)
from pyoutlet.models import BasicAuth, Endpoint, MqttOptions, MqttSubscription, NotificationBody
from pyoutlet.outlet import AccessoryInformation, HttpOutlet, OutletDevice
from pyoutlet.state.events import OutletProperty, StateUpdate, UpdateSource
from pyoutlet.state.store import DeviceState

__all__ = [
    "__version__",
    "AccessoryInformation",
    "BasicAuth",
    "ConfigFinding",
    "DeviceState",
    "DispatchResult",
    "Endpoint",
    "FindingSeverity",
    "HttpOutlet",
    "MqttOptions",
    "MqttSubscription",
    "NotificationBody",
    "NotificationRegistry",
    "OutletConfig",
    "OutletConfigError",
    "OutletDevice",
    "OutletError",
    "OutletHttpStatusError",
    "OutletProperty",
    "OutletRequestError",
    "OutletTransportError",
    "PullTimer",
    "PullTimerState",
    "StateUpdate",
    "UnknownPropertyError",
    "UpdateSource",
    "create_notification_app",
    "parse_config",
]
