from __future__ import annotations

from typing import List, Optional, Sequence


class ReservationClientError(Exception):
    """Description: Base class for every failure raised by the reservation client.
    Layer: L0
    """

    kind: str = "error"


class ConfigurationError(ReservationClientError):
    """Description: Malformed or placeholder configuration detected at startup.
    Layer: L0
    Input: list of structural issues
    Output: fatal error; the client is never constructed
    """

    kind = "configuration"

    def __init__(self, issues: Sequence[str]) -> None:
        self.issues: List[str] = list(issues)
        super().__init__("Configuration validation failed: " + "; ".join(self.issues))


class ValidationError(ReservationClientError):
    """Description: Aggregated field-rule violations for one submission attempt.
    Layer: L0
    """

    kind = "validation"

    def __init__(self, errors: Sequence[str]) -> None:
        self.errors: List[str] = list(errors)
        super().__init__(", ".join(self.errors))


class SecurityRejection(ReservationClientError):
    """Description: Security gate veto carrying the single reason that fired.
    Layer: L0
    """

    kind = "security"

    def __init__(self, reason: str, *, check: Optional[str] = None, fatal: bool = False) -> None:
        self.reason = reason
        self.check = check
        self.fatal = fatal
        super().__init__(reason)


class TransportError(ReservationClientError):
    kind = "network"


class TransportTimeout(TransportError):
    kind = "timeout"


class TransportNetworkError(TransportError):
    kind = "network"


class BackendApplicationError(ReservationClientError):
    """Description: The backend answered with `success: false`."""

    kind = "application"


class PayloadTooLarge(ReservationClientError):
    """Description: Payload cannot be carried in a callback-script query string."""

    kind = "payload_too_large"


ERRORS_BY_KIND = {
    "validation": ValidationError,
    "security": SecurityRejection,
    "timeout": TransportTimeout,
    "network": TransportNetworkError,
    "application": BackendApplicationError,
    "payload_too_large": PayloadTooLarge,
}
