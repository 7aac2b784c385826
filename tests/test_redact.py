from __future__ import annotations

from pyoutlet._redact import redact_for_log
from pyoutlet.models.endpoint import BasicAuth, Endpoint


def test_redact_for_log_redacts_sensitive_keys() -> None:
    payload = {
        "onUrl": "http://plug.local/on",
        "notificationPassword": "pw",
        "headers": {"Authorization": "Bearer abc", "Accept": "text/plain"},
        "auth": {"username": "admin", "password": "hunter2"},
        "token": None,
    }

    redacted = redact_for_log(payload)
    assert redacted["onUrl"] == "http://plug.local/on"
    assert redacted["notificationPassword"] == "<redacted>"
    assert redacted["headers"] == {"Authorization": "<redacted>", "Accept": "text/plain"}
    assert redacted["auth"] == {"username": "admin", "password": "<redacted>"}
    assert redacted["token"] is None


def test_redact_for_log_dumps_models() -> None:
    endpoint = Endpoint(
        url="http://plug.local/status",
        auth=BasicAuth(username="admin", password="hunter2"),
    )

    redacted = redact_for_log(endpoint)
    assert redacted["url"] == "http://plug.local/status"
    assert redacted["auth"]["password"] == "<redacted>"
    assert "hunter2" not in repr(redacted)


def test_redact_for_log_truncates_long_strings() -> None:
    long_value = "x" * 600
    redacted = redact_for_log({"value": long_value}, max_string=10)
    assert redacted["value"].startswith("x" * 10)
    assert "<truncated>" in redacted["value"]
