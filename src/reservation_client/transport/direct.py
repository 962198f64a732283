from __future__ import annotations

import logging
from typing import Any, Dict, Optional

import httpx

from reservation_client.core.models import Outcome, RequestEnvelope, response_failed


log = logging.getLogger("transport.direct")


class DirectTransport:
    """Description: Direct cross-origin request carrying the envelope as a JSON body.
    Layer: L1
    Input: RequestEnvelope
    Output: Outcome (timeout / network / application failures tagged)
    """

    name = "direct"

    def __init__(self, client: httpx.AsyncClient, url: str, *, timeout: float = 15.0, headers: Optional[Dict[str, str]] = None) -> None:
        self.client = client
        self.url = url
        self.timeout = timeout
        self.headers = headers or {}

    async def send(self, envelope: RequestEnvelope) -> Outcome:
        try:
            r = await self.client.post(
                self.url,
                json=envelope.to_body(),
                headers=self.headers,
                timeout=self.timeout,
                follow_redirects=True,
            )
        except httpx.TimeoutException:
            return Outcome.failure("timeout", f"direct request timed out after {self.timeout:g}s", transport=self.name)
        except httpx.HTTPError as e:
            return Outcome.failure("network", f"direct request failed: {e.__class__.__name__}", transport=self.name)

        if not r.is_success:
            return Outcome.failure("network", f"HTTP {r.status_code}", transport=self.name)

        body = _json_object(r)
        if body is None:
            return Outcome.failure("network", "malformed response body", transport=self.name)
        if response_failed(body):
            return Outcome.failure(
                "application", str(body.get("error") or "Request failed"), transport=self.name, data=body
            )
        log.debug("Direct %s delivered (status=%d)", envelope.action, r.status_code)
        return Outcome.ok(body, transport=self.name)


def _json_object(r: httpx.Response) -> Optional[Dict[str, Any]]:
    try:
        body = r.json()
    except ValueError:
        return None
    return body if isinstance(body, dict) else None
