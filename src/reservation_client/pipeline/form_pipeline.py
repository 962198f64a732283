from __future__ import annotations

import base64
import json
import logging
import secrets
import time
from typing import Any, Callable, Dict, Mapping, Optional

from reservation_client.client import ReservationClient
from reservation_client.core.models import (
    Outcome,
    PageSignals,
    SessionContext,
    SubmissionRecord,
    _iso_utc,
    _utc_now,
    normalize_reservation_id,
)
from reservation_client.guards.sanitizer import sanitize
from reservation_client.guards.security_gate import SecurityGate
from reservation_client.guards.validation_service import validate


log = logging.getLogger("form_pipeline")

FORM_VERSION = "2.0"


def request_signature(data: Mapping[str, Any], *, now_ms: Optional[int] = None) -> Dict[str, Any]:
    """
    Description: Timestamp + nonce + short digest attached to a submission.
    Layer: L2
    Input: submission payload
    Output: {timestamp, nonce, signature}
    """
    timestamp = int(time.time() * 1000) if now_ms is None else now_ms
    nonce = secrets.token_hex(6)
    raw = f"{timestamp}-{nonce}-{json.dumps(data, separators=(',', ':'), sort_keys=True)}"
    return {
        "timestamp": timestamp,
        "nonce": nonce,
        "signature": base64.b64encode(raw.encode("utf-8")).decode("ascii")[:32],
    }


class FormSubmissionPipeline:
    """
    Description: Validation -> security gate -> sanitizer -> transport for reservation forms.
    Layer: L2
    Input: raw form mapping + PageSignals, or query/admin arguments
    Output: Outcome

    Notes:
      - A validation failure returns before the gate runs, so it does not
        consume a submission attempt.
      - Query/admin operations skip the three guards and dispatch directly.
    """

    def __init__(
        self,
        client: ReservationClient,
        *,
        gate: Optional[SecurityGate] = None,
        session: Optional[SessionContext] = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.client = client
        self.clock = clock
        self.gate = gate or SecurityGate(clock=clock)
        self.session = session or SessionContext.start(clock)

    def new_session(self) -> SessionContext:
        """Start a fresh form session (explicit page reload)."""
        self.session = SessionContext.start(self.clock)
        return self.session

    async def submit(self, raw: Mapping[str, Any], page: PageSignals) -> Outcome:
        validation = validate(raw)
        if not validation.is_valid:
            log.info("Submission rejected by validation (%d errors)", len(validation.errors))
            return Outcome.failure(
                "validation",
                ", ".join(validation.messages),
                errors=validation.messages,
                meta={"fields": validation.fields},
            )

        check = self.gate.check(self.session, page)
        if not check.passed:
            return Outcome.failure(
                "security",
                check.reason or "Security validation failed",
                meta={"check": check.check, "fatal": check.fatal},
            )

        record = sanitize(SubmissionRecord.model_validate(dict(raw)))
        payload = self._stamp(record)
        return await self.client.dispatch("submitform", payload)

    def _stamp(self, record: SubmissionRecord) -> Dict[str, Any]:
        data = record.to_wire()
        elapsed = int(self.session.elapsed(self.clock()))
        data.update(
            {
                "submissionTime": _iso_utc(_utc_now()),
                "formTime": f"{elapsed} seconds",
                "formVersion": FORM_VERSION,
                "securityPassed": True,
                "userAgent": self.client.s.USER_AGENT[:200],
            }
        )
        data.update(request_signature(record.to_wire()))
        return data

    async def query_reservation(self, reservation_id: Any) -> Outcome:
        return await self.client.dispatch("queryreservation", {"reservationId": normalize_reservation_id(reservation_id)})

    async def get_reservations(self) -> Outcome:
        return await self.client.dispatch("getreservations")

    async def update_status(self, reservation_id: Any, status: str) -> Outcome:
        payload = {
            "reservationId": normalize_reservation_id(reservation_id),
            "status": str(status).strip(),
        }
        return await self.client.dispatch("updatestatus", payload)

    async def health_check(self) -> Outcome:
        return await self.client.dispatch("health")
