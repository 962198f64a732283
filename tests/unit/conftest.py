from __future__ import annotations

import json
from typing import Any, Callable, Dict, List

import httpx
import pytest

from reservation_client.core.settings import Settings
from reservation_client.transport.registry import CallbackRegistry


API_URL = "https://script.google.com/macros/s/AKfy-test/exec"
ADMIN_URL = "https://script.google.com/macros/s/AKfy-admin/exec"


class FakeClock:
    def __init__(self, now: float = 0.0) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


def jsonp(request: httpx.Request, body: Dict[str, Any]) -> httpx.Response:
    name = request.url.params["callback"]
    return httpx.Response(200, text=f"{name}({json.dumps(body)});", headers={"content-type": "application/javascript"})


def good_form() -> Dict[str, Any]:
    return {
        "firstName": "Ann",
        "lastName": "Lee",
        "email": "a@b.com",
        "phone": "123-456-7890",
        "grade": "10",
        "gender": "F",
        "englishLevel": "intermediate",
        "preferredDays": "Mon",
        "preferredTime": "PM",
        "sessionLength": "60",
    }


@pytest.fixture
def settings() -> Settings:
    return Settings(
        RESERVATION_API_URL=API_URL,
        REQUEST_TIMEOUT_SECONDS=2.0,
        ORIGIN="https://reserve.example.org",
        _env_file=None,
    )


@pytest.fixture
def registry() -> CallbackRegistry:
    return CallbackRegistry()


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def recorded() -> List[httpx.Request]:
    return []


@pytest.fixture
def mock_http(recorded: List[httpx.Request]) -> Callable[[Callable[[httpx.Request], Any]], httpx.AsyncClient]:
    def _build(handler: Callable[[httpx.Request], Any]) -> httpx.AsyncClient:
        async def _recording(request: httpx.Request) -> httpx.Response:
            recorded.append(request)
            out = handler(request)
            if not isinstance(out, httpx.Response):
                out = await out
            return out

        return httpx.AsyncClient(transport=httpx.MockTransport(_recording))

    return _build
