from __future__ import annotations

import logging
from typing import Optional

from reservation_client.core.models import Outcome, RequestEnvelope
from reservation_client.transport.base import Transport


log = logging.getLogger("transport.dispatcher")


class TransportDispatcher:
    """Description: Primary attempt with a single automatic fallback.
    Layer: L1
    Input: RequestEnvelope
    Output: Outcome from the first transport that succeeds

    Notes:
      - The fallback runs exactly once after any primary failure (status,
        transport error, timeout, malformed body or success:false).
      - When both fail, the error names both causes and keeps the fallback's kind.
      - There is no retry loop beyond this composition.
    """

    def __init__(self, fallback: Transport, primary: Optional[Transport] = None) -> None:
        self.primary = primary
        self.fallback = fallback

    async def send(self, envelope: RequestEnvelope) -> Outcome:
        if self.primary is None:
            return await self.fallback.send(envelope)

        first = await self.primary.send(envelope)
        if first.success:
            return first

        log.warning(
            "Primary transport %s failed for %s (%s); falling back to %s",
            self.primary.name,
            envelope.action,
            first.error_kind,
            self.fallback.name,
        )
        second = await self.fallback.send(envelope)
        if second.success:
            second.meta["fallback_reason"] = first.error
            return second

        log.error("Both transports failed for %s (%s, %s)", envelope.action, first.error_kind, second.error_kind)
        return Outcome.failure(
            second.error_kind or "network",
            f"{self.primary.name}: {first.error}; {self.fallback.name}: {second.error}",
            transport=self.fallback.name,
            data=second.data,
            meta={"primary_error": first.error, "primary_kind": first.error_kind, "fallback_error": second.error},
        )
