from __future__ import annotations

import time
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field

from reservation_client.core.models import _iso_utc, _utc_now
from reservation_client.core.settings import Settings, collect_config_issues
from reservation_client.guards.sanitizer import sanitize_display_text
from reservation_client.pipeline.form_pipeline import FormSubmissionPipeline


class EnvHealthCheck(BaseModel):
    """
    Description: Configuration readiness report.
    Layer: L0
    Input: Settings
    Output: Health report for the ops check and startup logging
    """

    model_config = ConfigDict(extra="forbid")

    ok: bool
    issues: List[str] = Field(default_factory=list)
    details: Dict[str, Any] = Field(default_factory=dict)


class BackendHealth(BaseModel):
    """
    Description: Result of one `health` round trip.
    Layer: L2
    Input: Outcome of the health action
    Output: status + latency + transport used
    """

    model_config = ConfigDict(extra="forbid")

    ok: bool
    checked_at_utc: str = Field(default_factory=lambda: _iso_utc(_utc_now()))
    latency_ms: int = 0
    transport: Optional[str] = None
    message: str = ""
    response: Dict[str, Any] = Field(default_factory=dict)


def check_environment(s: Settings) -> EnvHealthCheck:
    """
    Description: Non-raising counterpart of validate_settings.
    Layer: L0
    Input: Settings
    Output: EnvHealthCheck
    """
    issues = collect_config_issues(s)
    return EnvHealthCheck(
        ok=not issues,
        issues=issues,
        details={
            "admin_endpoint": s.RESERVATION_ADMIN_API_URL is not None,
            "direct_transport": s.DIRECT_TRANSPORT_ENABLED,
            "request_timeout_seconds": s.REQUEST_TIMEOUT_SECONDS,
            "production": s.IS_PRODUCTION,
        },
    )


async def run_health_check(pipeline: FormSubmissionPipeline) -> BackendHealth:
    """Call the backend `health` action and time the round trip."""
    started = time.perf_counter()
    out = await pipeline.health_check()
    latency = int((time.perf_counter() - started) * 1000)
    if out.success:
        return BackendHealth(
            ok=True,
            latency_ms=latency,
            transport=out.transport,
            message="Connection to server verified",
            response=out.data,
        )
    return BackendHealth(
        ok=False,
        latency_ms=latency,
        transport=out.transport,
        message=sanitize_display_text(out.error or "Unable to connect to server"),
    )
