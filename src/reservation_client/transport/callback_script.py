from __future__ import annotations

import asyncio
import json
import logging
import re
import urllib.parse
from typing import Any, Dict, Optional, Tuple

import httpx

from reservation_client.core.models import CallbackOutcome, Outcome, RequestEnvelope, response_failed
from reservation_client.core.settings import is_valid_endpoint
from reservation_client.transport.registry import CallbackRegistry


log = logging.getLogger("transport.callback")

CALLBACK_PREFIXES: Dict[str, str] = {
    "submitform": "submitCallback",
    "queryreservation": "queryCallback",
    "getreservations": "adminCallback",
    "updatestatus": "updateCallback",
    "health": "healthCallback",
}

# name({...}) with optional "/**/" guard prefix and trailing semicolon
_JSONP_RE = re.compile(r"^\s*(?:/\*\*/\s*)?(?:typeof\s+[\w$]+\s*===?\s*['\"]function['\"]\s*&&\s*)?([A-Za-z_$][\w$]*)\s*\((.*)\)\s*;?\s*$", re.S)


def flatten_params(envelope: RequestEnvelope) -> Dict[str, str]:
    """Description: Flatten envelope + payload scalars into query parameters.
    Layer: L1
    Input: RequestEnvelope
    Output: str -> str mapping (None dropped, bools lowercase, containers JSON-encoded)
    """
    params: Dict[str, str] = {}
    for key, value in envelope.scalar_fields().items():
        if value is None:
            continue
        if isinstance(value, bool):
            params[key] = "true" if value else "false"
        elif isinstance(value, (dict, list, tuple)):
            params[key] = json.dumps(value, separators=(",", ":"), sort_keys=True)
        else:
            params[key] = str(value)
    return params


def parse_jsonp(body: str) -> Optional[Tuple[str, Any]]:
    """Description: Split a callback script into (function name, argument).
    Layer: L1
    Input: script body
    Output: (name, decoded JSON argument) or None when the body is not a single call
    """
    m = _JSONP_RE.match(body or "")
    if not m:
        return None
    try:
        arg = json.loads(m.group(2))
    except ValueError:
        return None
    return m.group(1), arg


class ScriptTag:
    """In-flight script load bound to one callback; cancelling it removes the load."""

    def __init__(self, url: str) -> None:
        self.url = url
        self.task: Optional[asyncio.Task] = None

    def cancel(self) -> None:
        task = self.task
        if task is None or task.done():
            return
        try:
            current = asyncio.current_task()
        except RuntimeError:
            current = None
        if task is not current:
            task.cancel()


class CallbackScriptTransport:
    """Description: Fallback transport that encodes the request in a script URL (JSONP).
    Layer: L1
    Input: RequestEnvelope
    Output: Outcome

    Notes:
      - The callback name is the registry key; the remote script is expected to
        invoke it with a JSON object.
      - Whichever of reply / load failure / deadline arrives first completes the
        request; the others are ignored by the registry.
      - Oversized payloads are flattened into the query string until the URL
        exceeds max_url_length, then rejected before anything is registered.
    """

    name = "callback"

    def __init__(
        self,
        client: httpx.AsyncClient,
        url: str,
        registry: CallbackRegistry,
        *,
        timeout: float = 15.0,
        approved_host: str = "script.google.com",
        max_url_length: int = 8000,
    ) -> None:
        self.client = client
        self.url = url
        self.registry = registry
        self.timeout = timeout
        self.approved_host = approved_host
        self.max_url_length = max_url_length

    def build_url(self, envelope: RequestEnvelope, callback_name: str) -> str:
        params = flatten_params(envelope)
        params["callback"] = callback_name
        sep = "&" if urllib.parse.urlsplit(self.url).query else "?"
        return f"{self.url}{sep}{urllib.parse.urlencode(params)}"

    async def send(self, envelope: RequestEnvelope) -> Outcome:
        prefix = CALLBACK_PREFIXES.get(envelope.action, "callback")
        callback_name = self.registry.new_callback_name(prefix)
        script_url = self.build_url(envelope, callback_name)

        if len(script_url) > self.max_url_length:
            return Outcome.failure(
                "payload_too_large",
                f"payload needs a {len(script_url)}-character URL (limit {self.max_url_length})",
                transport=self.name,
            )
        if not is_valid_endpoint(script_url, self.approved_host):
            return Outcome.failure("network", "Invalid script URL", transport=self.name)

        loop = asyncio.get_running_loop()
        done: asyncio.Future = loop.create_future()

        def _on_complete(outcome: CallbackOutcome) -> None:
            if not done.done():
                done.set_result(outcome)

        tag = ScriptTag(script_url)
        self.registry.register(callback_name, _on_complete, deadline=loop.time() + self.timeout)
        self.registry.attach(callback_name, timer=loop.call_later(self.timeout, self.registry.expire, callback_name))
        tag.task = loop.create_task(self._load(tag, callback_name))
        self.registry.attach(callback_name, transport_handle=tag)
        log.debug("Injected %s for %s", callback_name, envelope.action)

        outcome: CallbackOutcome = await done
        return self._to_outcome(outcome)

    async def _load(self, tag: ScriptTag, callback_name: str) -> None:
        """Fetch the script and evaluate it by invoking the named callback."""
        try:
            await self._evaluate(tag, callback_name)
        except httpx.HTTPError as e:
            self.registry.fail(callback_name, f"Network error - please check your connection ({e.__class__.__name__})")
        except Exception as e:
            log.warning("Callback script %s failed: %s", callback_name, e.__class__.__name__)
            self.registry.fail(callback_name, f"callback script could not be evaluated ({e.__class__.__name__})")

    async def _evaluate(self, tag: ScriptTag, callback_name: str) -> None:
        r = await self.client.get(tag.url, follow_redirects=True)
        if not r.is_success:
            self.registry.fail(callback_name, f"Network error - script load returned HTTP {r.status_code}")
            return

        call = parse_jsonp(r.text)
        if call is None or call[0] != callback_name:
            self.registry.fail(callback_name, "callback script did not invoke the expected callback")
            return
        self.registry.resolve(callback_name, call[1])

    def _to_outcome(self, outcome: CallbackOutcome) -> Outcome:
        if outcome.status == "expired":
            return Outcome.failure("timeout", outcome.error or "Request timeout", transport=self.name)
        if outcome.status == "failed":
            return Outcome.failure("network", outcome.error or "Network error", transport=self.name)
        body = outcome.response
        if response_failed(body):
            return Outcome.failure("application", str(body.get("error") or "Request failed"), transport=self.name, data=body)
        return Outcome.ok(body, transport=self.name)
