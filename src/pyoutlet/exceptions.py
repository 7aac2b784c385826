"""Custom exception hierarchy for pyoutlet."""

from __future__ import annotations


class OutletError(Exception):
    """Base exception for all pyoutlet errors."""


class OutletConfigError(OutletError):
    """Invalid or missing configuration.

    ``errors`` lists every fatal finding collected while validating the
    configuration, so a single exception reports all problems at once.
    """

    def __init__(self, message: str, *, errors: list[str] | None = None) -> None:
        self.errors = list(errors) if errors else [message]
        super().__init__(message)


class OutletRequestError(OutletError):
    """A single status read or command write failed."""

    def __init__(self, message: str, *, endpoint: str = "") -> None:
        self.endpoint = endpoint
        super().__init__(message)


class OutletTransportError(OutletRequestError):
    """Network-level failure (connection refused, DNS, timeout)."""


class OutletHttpStatusError(OutletRequestError):
    """Device answered with a status code outside 200-299."""

    def __init__(
        self,
        message: str,
        *,
        status_code: int,
        body: str = "",
        endpoint: str = "",
    ) -> None:
        self.status_code = status_code
        self.body = body
        super().__init__(message, endpoint=endpoint)


class UnknownPropertyError(OutletError):
    """A push update named a property this outlet does not expose."""

    def __init__(self, key: str) -> None:
        self.key = key
        super().__init__(f"Unknown property {key!r}")
