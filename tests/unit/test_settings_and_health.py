import asyncio

import httpx
import pytest

from conftest import API_URL, FakeClock

from reservation_client import ops_check
from reservation_client.client import ReservationClient
from reservation_client.core.errors import (
    BackendApplicationError,
    ConfigurationError,
    PayloadTooLarge,
    TransportNetworkError,
    TransportTimeout,
)
from reservation_client.core.models import Outcome, normalize_reservation_id
from reservation_client.core.settings import Settings, collect_config_issues, is_valid_endpoint
from reservation_client.pipeline.form_pipeline import FormSubmissionPipeline
from reservation_client.services.health_service import check_environment, run_health_check


def test_placeholder_endpoint_blocks_client_construction() -> None:
    s = Settings(_env_file=None)
    with pytest.raises(ConfigurationError) as exc:
        ReservationClient(s)
    assert "API URL not configured" in exc.value.issues


def test_structural_endpoint_checks() -> None:
    assert is_valid_endpoint(API_URL)
    assert not is_valid_endpoint("http://script.google.com/macros/s/x/exec")
    assert not is_valid_endpoint("https://script.google.com.evil.io/macros/s/x/exec")
    assert not is_valid_endpoint("https://script.google.com/a/b")
    assert not is_valid_endpoint(None)


def test_config_issues_are_collected_together() -> None:
    s = Settings(
        RESERVATION_API_URL="https://example.com/macros/s/x/exec",
        RESERVATION_ADMIN_API_URL="ftp://nowhere",
        REQUEST_TIMEOUT_SECONDS=0,
        MAX_RETRIES=-1,
        ORIGIN="http://site.example",
        ALLOWED_ORIGINS=["https://site.example"],
        IS_PRODUCTION=True,
        _env_file=None,
    )
    issues = collect_config_issues(s)
    assert len(issues) == 6
    assert "Insecure context detected" in issues


def test_settings_read_environment(monkeypatch) -> None:
    monkeypatch.setenv("RESERVATION_API_URL", API_URL)
    monkeypatch.setenv("ALLOWED_ORIGINS", '["https://a.example", "https://b.example"]')
    monkeypatch.setenv("ORIGIN", "https://b.example")
    s = Settings(_env_file=None)
    assert s.ALLOWED_ORIGINS == ["https://a.example", "https://b.example"]
    assert collect_config_issues(s) == []


def test_environment_report_does_not_raise() -> None:
    report = check_environment(Settings(_env_file=None))
    assert not report.ok
    assert report.issues == ["API URL not configured"]
    assert report.details["direct_transport"] is True


def test_raise_for_error_maps_kinds() -> None:
    expected = {
        "timeout": TransportTimeout,
        "network": TransportNetworkError,
        "application": BackendApplicationError,
        "payload_too_large": PayloadTooLarge,
    }
    for kind, exc_cls in expected.items():
        with pytest.raises(exc_cls) as exc:
            Outcome.failure(kind, f"{kind} happened").raise_for_error()
        assert str(exc.value) == f"{kind} happened"
    ok = Outcome.ok({"success": True})
    assert ok.raise_for_error() is ok


def test_reservation_id_normalization() -> None:
    assert normalize_reservation_id("res-00a1") == "RES00A1"
    assert normalize_reservation_id("x" * 40) == "X" * 20
    assert normalize_reservation_id(None) == ""
    assert normalize_reservation_id("ſtraße") == "STRASSE"


def test_backend_health_round_trip(settings) -> None:
    http = httpx.AsyncClient(transport=httpx.MockTransport(lambda req: httpx.Response(200, json={"success": True, "status": "ok"})))
    pipeline = FormSubmissionPipeline(ReservationClient(settings, http_client=http), clock=FakeClock())
    health = asyncio.run(run_health_check(pipeline))
    assert health.ok and health.transport == "direct"
    assert health.response["status"] == "ok"


def test_ops_check_stops_on_configuration_issues() -> None:
    report = ops_check.run_ops_check(Settings(_env_file=None))
    assert report["ok"] is False
    assert "backend" not in report


def test_ops_check_skip_backend(settings) -> None:
    report = ops_check.run_ops_check(settings, skip_backend=True)
    assert report["ok"] is True
    assert report["environment"]["ok"] is True


def test_ops_check_reports_malformed_environment(monkeypatch) -> None:
    monkeypatch.setenv("RESERVATION_API_URL", API_URL)
    monkeypatch.setenv("REQUEST_TIMEOUT_SECONDS", "abc")
    assert ops_check.main(["--skip-backend"]) == 2


def test_endpoint_needs_deployment_id_and_exec() -> None:
    assert not is_valid_endpoint("https://script.google.com/macros/s/")
    assert not is_valid_endpoint("https://script.google.com/macros/s//exec")
    assert not is_valid_endpoint("https://script.google.com/macros/s/AKfy-test/dev")
    assert is_valid_endpoint(API_URL + "?callback=cb_1")
