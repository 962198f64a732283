from __future__ import annotations

import itertools
import logging
from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional, Protocol
from uuid import uuid4

from reservation_client.core.models import CallbackOutcome


log = logging.getLogger("callback_registry")


class Cancellable(Protocol):
    def cancel(self) -> Any: ...


@dataclass
class PendingRequest:
    correlation_id: str
    deadline: Optional[float]
    on_complete: Callable[[CallbackOutcome], None]
    transport_handle: Optional[Cancellable] = None
    timer: Optional[Cancellable] = None


class CallbackRegistry:
    """Description: Table correlating outstanding callback requests with their completion handlers.
    Layer: L1
    Input: register / resolve / expire / fail signals
    Output: exactly one terminal CallbackOutcome per registered id

    Notes:
      - The first terminal signal removes the entry, cancels its timer and
        releases its transport handle; later signals for the same id are no-ops.
      - Every method checks and mutates without awaiting, so a single event
        loop never observes a half-removed entry.
    """

    def __init__(self) -> None:
        self._pending: Dict[str, PendingRequest] = {}
        self._counter = itertools.count(1)

    @property
    def pending_count(self) -> int:
        return len(self._pending)

    def is_pending(self, correlation_id: str) -> bool:
        return correlation_id in self._pending

    def new_callback_name(self, prefix: str = "callback") -> str:
        """Fresh identifier-safe name not used by any pending request."""
        while True:
            name = f"{prefix}_{next(self._counter)}_{uuid4().hex[:8]}"
            if name not in self._pending:
                return name

    def register(
        self,
        correlation_id: str,
        on_complete: Callable[[CallbackOutcome], None],
        *,
        deadline: Optional[float] = None,
        transport_handle: Optional[Cancellable] = None,
        timer: Optional[Cancellable] = None,
    ) -> PendingRequest:
        if correlation_id in self._pending:
            raise ValueError(f"correlation id already pending: {correlation_id}")
        entry = PendingRequest(
            correlation_id=correlation_id,
            deadline=deadline,
            on_complete=on_complete,
            transport_handle=transport_handle,
            timer=timer,
        )
        self._pending[correlation_id] = entry
        log.debug("Registered %s (pending=%d)", correlation_id, len(self._pending))
        return entry

    def attach(
        self,
        correlation_id: str,
        *,
        transport_handle: Optional[Cancellable] = None,
        timer: Optional[Cancellable] = None,
    ) -> bool:
        """Bind a timer or transport handle to a live entry; False if it already completed."""
        entry = self._pending.get(correlation_id)
        if entry is None:
            return False
        if transport_handle is not None:
            entry.transport_handle = transport_handle
        if timer is not None:
            entry.timer = timer
        return True

    def resolve(self, correlation_id: str, response: Any) -> bool:
        body = response if isinstance(response, dict) else {"value": response}
        return self._complete(correlation_id, CallbackOutcome(status="resolved", response=body))

    def expire(self, correlation_id: str) -> bool:
        return self._complete(correlation_id, CallbackOutcome(status="expired", error="Request timeout - please try again"))

    def fail(self, correlation_id: str, error: str) -> bool:
        return self._complete(correlation_id, CallbackOutcome(status="failed", error=error))

    def _complete(self, correlation_id: str, outcome: CallbackOutcome) -> bool:
        entry = self._pending.pop(correlation_id, None)
        if entry is None:
            log.debug("Ignoring %s signal for unknown id %s", outcome.status, correlation_id)
            return False
        if entry.timer is not None:
            entry.timer.cancel()
        if entry.transport_handle is not None:
            entry.transport_handle.cancel()
        log.debug("Completed %s as %s (pending=%d)", correlation_id, outcome.status, len(self._pending))
        entry.on_complete(outcome)
        return True


_DEFAULT_REGISTRY = CallbackRegistry()


def get_registry() -> CallbackRegistry:
    """Process-wide registry shared by clients that do not inject their own."""
    return _DEFAULT_REGISTRY
