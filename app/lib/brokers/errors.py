# backend/app/lib/brokers/errors.py
from typing import Any, Optional


class BrokerApiError(Exception):
    """
    Low-level failure talking to a broker API.

    code is one of:
      - NETWORK_ERROR     no response received (connect error, timeout, ...)
      - <broker code>     broker-supplied error code from the response body
      - HTTP_<status>     non-2xx response without a broker code
      - INVALID_RESPONSE  2xx response whose body is not JSON
    """

    def __init__(
        self,
        message: str,
        code: str,
        status_code: Optional[int] = None,
        details: Any = None,
    ):
        super().__init__(message)
        self.message = message
        self.code = code
        self.status_code = status_code
        self.details = details

    @property
    def retryable(self) -> bool:
        # Network-level failures and 5xx only; 4xx and bad payloads will not improve on retry
        if self.code == "NETWORK_ERROR":
            return True
        return self.status_code is not None and self.status_code >= 500


class BrokerError(Exception):
    """Broker-qualified failure surfaced to the sync layer."""

    def __init__(self, message: str, broker: Optional[str] = None, code: Optional[str] = None):
        super().__init__(message)
        self.broker = broker
        self.code = code


class DataShapeError(BrokerError):
    """Broker response does not have the shape the config promises."""


class BrokerConfigError(BrokerError):
    """A registered broker has no matching config or mapping."""


class UnknownBrokerError(BrokerError):
    """No adapter is registered under the requested name."""
