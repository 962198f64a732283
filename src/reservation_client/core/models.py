from __future__ import annotations

import re
import time
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Literal, Mapping, Optional
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field, field_validator

from reservation_client.core.errors import ERRORS_BY_KIND, SecurityRejection, ValidationError


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


def _iso_utc(dt: datetime) -> str:
    """Description: Convert datetime to ISO-8601 Zulu time.
    Layer: L0
    Input: datetime
    Output: str (e.g., 2026-02-20T12:34:56Z)
    """
    return dt.astimezone(timezone.utc).replace(microsecond=0).isoformat().replace("+00:00", "Z")


Action = Literal["submitform", "queryreservation", "getreservations", "updatestatus", "health"]
ErrorKind = Literal["validation", "security", "timeout", "network", "application", "payload_too_large"]

RESERVATION_ID_MAX_LEN = 20
_NOT_ID_CHAR = re.compile(r"[^A-Z0-9]")


def normalize_reservation_id(raw: Any) -> str:
    """Description: Normalize a reservation identifier.
    Layer: L0
    Input: raw identifier (any value)
    Output: uppercase [A-Z0-9] string, at most 20 characters
    """
    return _NOT_ID_CHAR.sub("", str(raw or "").upper())[:RESERVATION_ID_MAX_LEN]


def field_text(v: Any) -> Optional[str]:
    """Form value as the string the backend receives; multi-select lists are comma-joined."""
    if v is None or isinstance(v, str):
        return v
    if isinstance(v, (list, tuple)):
        return ", ".join(str(item) for item in v)
    return str(v)


class SubmissionRecord(BaseModel):
    """Description: One reservation form submission.
    Layer: L0
    Input: raw form mapping (camelCase keys)
    Output: immutable record; unknown keys (decoy field, buttons) are dropped
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="ignore")

    first_name: str = Field(alias="firstName")
    last_name: str = Field(alias="lastName")
    email: str
    phone: str
    grade: str
    gender: str
    english_level: str = Field(alias="englishLevel")
    preferred_days: str = Field(alias="preferredDays")
    preferred_time: str = Field(alias="preferredTime")
    session_length: str = Field(alias="sessionLength")
    gpa: Optional[str] = None
    learning_goals: Optional[str] = Field(default=None, alias="learningGoals")
    referral: Optional[str] = None

    @field_validator("*", mode="before")
    @classmethod
    def _coerce_text(cls, v: Any) -> Any:
        return field_text(v)

    def to_wire(self) -> Dict[str, Any]:
        """camelCase mapping without unset optional fields."""
        return self.model_dump(by_alias=True, exclude_none=True)


class FieldError(BaseModel):
    model_config = ConfigDict(frozen=True)

    field: str
    message: str

    def __str__(self) -> str:
        return self.message


class ValidationResult(BaseModel):
    """Description: Aggregated result of the field rules.
    Layer: L0
    """

    model_config = ConfigDict(frozen=True)

    is_valid: bool
    errors: List[FieldError] = Field(default_factory=list)

    @property
    def messages(self) -> List[str]:
        return [e.message for e in self.errors]

    @property
    def fields(self) -> List[str]:
        return [e.field for e in self.errors]


class SecurityCheckResult(BaseModel):
    model_config = ConfigDict(frozen=True)

    passed: bool
    reason: Optional[str] = None
    check: Optional[str] = None
    fatal: bool = False


@dataclass
class SessionContext:
    """Description: Per-form-load state read and updated by the security gate.
    Layer: L0
    Input: form render time
    Output: mutable session counters (never reset implicitly)
    """

    start_time: float
    attempt_count: int = 0

    @classmethod
    def start(cls, clock: Callable[[], float] = time.monotonic) -> "SessionContext":
        return cls(start_time=clock())

    def elapsed(self, now: float) -> float:
        return now - self.start_time


@dataclass(frozen=True)
class PageSignals:
    """Auxiliary page state at submission time: decoy field content and consent checkbox."""

    decoy_value: str = ""
    consent: bool = False


class RequestEnvelope(BaseModel):
    """Description: Unit of work handed to the transport dispatcher.
    Layer: L1
    Input: action + origin + payload
    Output: envelope with fresh correlation id and issue time
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    action: Action
    origin: str
    payload: Dict[str, Any] = Field(default_factory=dict)
    correlation_id: str = Field(default_factory=lambda: uuid4().hex, alias="correlationId")
    issued_at: str = Field(default_factory=lambda: _iso_utc(_utc_now()), alias="issuedAt")

    def to_body(self) -> Dict[str, Any]:
        """Structured body for the direct transport."""
        return self.model_dump(by_alias=True)

    def scalar_fields(self) -> Dict[str, Any]:
        """Flat mapping of envelope and payload fields for a query string."""
        flat: Dict[str, Any] = {
            "action": self.action,
            "origin": self.origin,
            "correlationId": self.correlation_id,
            "issuedAt": self.issued_at,
        }
        for key, value in self.payload.items():
            if key not in flat:
                flat[key] = value
        return flat


class Outcome(BaseModel):
    """Description: Normalized result of any pipeline or transport operation.
    Layer: L1
    Input: backend response or classified failure
    Output: success with payload, or tagged failure
    """

    model_config = ConfigDict(extra="forbid")

    success: bool
    data: Dict[str, Any] = Field(default_factory=dict)
    error_kind: Optional[ErrorKind] = None
    error: Optional[str] = None
    errors: List[str] = Field(default_factory=list)
    transport: Optional[str] = None
    meta: Dict[str, Any] = Field(default_factory=dict)

    @classmethod
    def ok(cls, data: Mapping[str, Any], *, transport: Optional[str] = None) -> "Outcome":
        return cls(success=True, data=dict(data), transport=transport)

    @classmethod
    def failure(
        cls,
        kind: ErrorKind,
        error: str,
        *,
        transport: Optional[str] = None,
        errors: Optional[List[str]] = None,
        data: Optional[Mapping[str, Any]] = None,
        meta: Optional[Dict[str, Any]] = None,
    ) -> "Outcome":
        return cls(
            success=False,
            error_kind=kind,
            error=error,
            errors=list(errors or []),
            transport=transport,
            data=dict(data or {}),
            meta=dict(meta or {}),
        )

    @property
    def reservation_id(self) -> Optional[str]:
        rid = self.data.get("reservationId")
        return str(rid) if rid is not None else None

    def raise_for_error(self) -> "Outcome":
        """Description: Raise the exception matching a failed outcome.
        Layer: L1
        Input: Outcome
        Output: self when successful; otherwise raises with the message unmodified
        """
        if self.success:
            return self
        if self.error_kind == "validation":
            raise ValidationError(self.errors or [self.error or "Validation failed"])
        if self.error_kind == "security":
            raise SecurityRejection(
                self.error or "Security validation failed",
                check=self.meta.get("check"),
                fatal=bool(self.meta.get("fatal")),
            )
        exc_cls = ERRORS_BY_KIND.get(self.error_kind or "network", ERRORS_BY_KIND["network"])
        raise exc_cls(self.error or "Request failed")


def response_failed(body: Mapping[str, Any]) -> bool:
    """A response is failure-shaped only when it carries an explicit `success: false`."""
    return body.get("success") is False


@dataclass
class CallbackOutcome:
    """Terminal value delivered by the callback registry."""

    status: Literal["resolved", "expired", "failed"]
    response: Dict[str, Any] = field(default_factory=dict)
    error: Optional[str] = None
