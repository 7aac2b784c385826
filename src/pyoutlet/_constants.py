"""Internal constants shared across the library."""

from importlib.metadata import PackageNotFoundError, version

try:
    VERSION = version("pyoutlet")
except PackageNotFoundError:
    VERSION = "0+local"

DEFAULT_NAME = "HTTP Outlet"
DEFAULT_STATUS_PATTERN = "1"

MANUFACTURER = "pyoutlet"
MODEL = "HTTP Outlet"
SERIAL_NUMBER = "OT01"

USER_AGENT = "pyoutlet"

# Config durations (cache ttl, pull interval, request timeout) are given in
# milliseconds, matching existing accessory configs.
MS_PER_SECOND = 1000.0

HTTP_SUCCESS_MIN = 200
HTTP_SUCCESS_MAX = 299

MQTT_DEFAULT_PORT = 1883
MQTT_DEFAULT_TLS_PORT = 8883
MQTT_DEFAULT_KEEPALIVE = 60


def is_http_success(status: int) -> bool:
    """Return ``True`` for 2xx status codes."""
    return HTTP_SUCCESS_MIN <= status <= HTTP_SUCCESS_MAX


def ms_to_seconds(value: float) -> float:
    """Convert a config duration in milliseconds to seconds."""
    return float(value) / MS_PER_SECOND
