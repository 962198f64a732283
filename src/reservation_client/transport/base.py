from __future__ import annotations

from typing import Protocol, runtime_checkable

from reservation_client.core.models import Outcome, RequestEnvelope


@runtime_checkable
class Transport(Protocol):
    """Description: Uniform delivery capability shared by the direct and callback-script transports.
    Layer: L1
    Input: RequestEnvelope
    Output: Outcome (never raises for transport-level failures)
    """

    name: str

    async def send(self, envelope: RequestEnvelope) -> Outcome: ...
