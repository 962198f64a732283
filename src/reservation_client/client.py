from __future__ import annotations

import logging
from typing import Any, Mapping, Optional

import httpx

from reservation_client.core.models import Action, Outcome, RequestEnvelope
from reservation_client.core.settings import Settings, get_settings, validate_settings
from reservation_client.transport.callback_script import CallbackScriptTransport
from reservation_client.transport.direct import DirectTransport
from reservation_client.transport.dispatcher import TransportDispatcher
from reservation_client.transport.registry import CallbackRegistry, get_registry


log = logging.getLogger("client")

ADMIN_ACTIONS = frozenset({"getreservations", "updatestatus"})


class ReservationClient:
    """Description: Configured delivery surface for the reservation backend.
    Layer: L1
    Input: Settings (validated on construction)
    Output: dispatch(action, payload) -> Outcome

    Notes:
      - Construction raises ConfigurationError on a malformed configuration,
        so a half-configured client never accepts operations.
      - Admin actions go to the admin endpoint when one is configured.
      - Authentication keys are not attached here.
    """

    def __init__(
        self,
        settings: Optional[Settings] = None,
        *,
        http_client: Optional[httpx.AsyncClient] = None,
        registry: Optional[CallbackRegistry] = None,
    ) -> None:
        self.s = validate_settings(settings or get_settings())
        self._owns_http = http_client is None
        self.http = http_client or httpx.AsyncClient(
            timeout=self.s.REQUEST_TIMEOUT_SECONDS,
            headers={"User-Agent": self.s.USER_AGENT[:200]},
        )
        self.registry = registry or get_registry()
        self.dispatcher = self._build_dispatcher(self.s.RESERVATION_API_URL)
        admin_url = self.s.RESERVATION_ADMIN_API_URL
        self.admin_dispatcher = self._build_dispatcher(admin_url) if admin_url else self.dispatcher
        log.info("Reservation client ready (direct=%s)", self.s.DIRECT_TRANSPORT_ENABLED)

    def _build_dispatcher(self, url: str) -> TransportDispatcher:
        fallback = CallbackScriptTransport(
            self.http,
            url,
            self.registry,
            timeout=self.s.REQUEST_TIMEOUT_SECONDS,
            approved_host=self.s.APPROVED_HOST,
            max_url_length=self.s.MAX_CALLBACK_URL_LENGTH,
        )
        primary = None
        if self.s.DIRECT_TRANSPORT_ENABLED:
            primary = DirectTransport(self.http, url, timeout=self.s.REQUEST_TIMEOUT_SECONDS)
        return TransportDispatcher(fallback, primary=primary)

    @property
    def origin(self) -> str:
        return self.s.ORIGIN

    def envelope(self, action: Action, payload: Optional[Mapping[str, Any]] = None) -> RequestEnvelope:
        return RequestEnvelope(action=action, origin=self.origin, payload=dict(payload or {}))

    async def dispatch(self, action: Action, payload: Optional[Mapping[str, Any]] = None) -> Outcome:
        env = self.envelope(action, payload)
        dispatcher = self.admin_dispatcher if action in ADMIN_ACTIONS else self.dispatcher
        log.info("Dispatching %s (%s)", action, env.correlation_id)
        out = await dispatcher.send(env)
        if out.success:
            log.info("Delivered %s via %s", action, out.transport)
        else:
            log.warning("Dispatch of %s failed: %s", action, out.error_kind)
        return out

    async def aclose(self) -> None:
        if self._owns_http:
            await self.http.aclose()

    async def __aenter__(self) -> "ReservationClient":
        return self

    async def __aexit__(self, *exc: Any) -> None:
        await self.aclose()
