from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Callable, Optional

from reservation_client.core.models import PageSignals, SecurityCheckResult, SessionContext


log = logging.getLogger("security_gate")


@dataclass(frozen=True)
class GateConfig:
    """
    Description: Thresholds for the anti-automation checks.
    Layer: L0
    Input: Optional overrides
    Output: Deterministic gate behavior
    """

    min_dwell_seconds: float = 15.0
    max_dwell_seconds: float = 1800.0
    max_attempts: int = 3


class SecurityGate:
    """
    Description: Short-circuiting veto pipeline run before sanitization and transport.
    Layer: L0
    Input: SessionContext + PageSignals
    Output: SecurityCheckResult (first failing check wins)

    Order: decoy field, dwell time, attempt ceiling, consent. The attempt counter
    is advanced on every call, including calls vetoed by an earlier check.
    """

    def __init__(self, config: Optional[GateConfig] = None, *, clock: Callable[[], float] = time.monotonic) -> None:
        self.cfg = config or GateConfig()
        self.clock = clock

    def check(self, session: SessionContext, page: PageSignals) -> SecurityCheckResult:
        session.attempt_count += 1

        if page.decoy_value:
            return self._reject("decoy", "Security validation failed", fatal=True)

        dwell = session.elapsed(self.clock())
        if dwell < self.cfg.min_dwell_seconds:
            return self._reject("too_fast", "Please take more time to complete the form carefully")
        if dwell > self.cfg.max_dwell_seconds:
            return self._reject("session_expired", "Form session expired. Please refresh and try again", fatal=True)

        if session.attempt_count > self.cfg.max_attempts:
            return self._reject("attempt_ceiling", "Too many submission attempts. Please refresh the page", fatal=True)

        if not page.consent:
            return self._reject("consent", "You must agree to the terms and conditions")

        return SecurityCheckResult(passed=True)

    @staticmethod
    def _reject(check: str, reason: str, *, fatal: bool = False) -> SecurityCheckResult:
        log.warning("Security gate veto: %s", check)
        return SecurityCheckResult(passed=False, reason=reason, check=check, fatal=fatal)
