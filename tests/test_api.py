from __future__ import annotations

from dataclasses import replace

import pytest
from fastapi.testclient import TestClient

from roster_sync.api import create_app
from roster_sync.config import Settings
from roster_sync.models import MemberName, Period, RegistryMember
from roster_sync.service import RosterSyncService
from tests.helpers import Clock, FakeRegistry, FakeSheet, make_row, make_sheet


@pytest.fixture
def sheet() -> FakeSheet:
    return FakeSheet(make_sheet(make_row("Ms", "Jane", "Doe", periods=[Period.P2])))


@pytest.fixture
def registry() -> FakeRegistry:
    return FakeRegistry([RegistryMember(id="r-1", name=MemberName.normalized("Ms", "Jane", "Doe"))])


def client_for(settings: Settings, clock: Clock, sheet: FakeSheet, registry: FakeRegistry) -> TestClient:
    service = RosterSyncService(settings, sheet, registry, clock=clock)  # type: ignore[arg-type]
    return TestClient(create_app(settings, service))


def test_healthcheck_and_ping(settings: Settings, clock: Clock, sheet: FakeSheet, registry: FakeRegistry) -> None:
    client = client_for(settings, clock, sheet, registry)

    assert client.get("/healthz").json() == {"status": "ok"}
    response = client.get("/ping")
    assert response.status_code == 200
    assert response.text == "pong"


def test_routes_live_under_base_path(settings: Settings, clock: Clock, sheet: FakeSheet, registry: FakeRegistry) -> None:
    settings = replace(settings, base_path="/passthrough/roster")
    client = client_for(settings, clock, sheet, registry)

    assert client.get("/passthrough/roster/ping").text == "pong"
    assert client.get("/ping").status_code == 404


@pytest.mark.parametrize(
    ("api_key", "headers", "expected"),
    [
        (None, {"X-API-Key": "anything"}, 500),
        ("letmein", {}, 400),
        ("letmein", {"X-API-Key": "wrong"}, 403),
    ],
)
def test_manual_confirm_checks_api_key(
    settings: Settings,
    clock: Clock,
    sheet: FakeSheet,
    registry: FakeRegistry,
    api_key: str | None,
    headers: dict[str, str],
    expected: int,
) -> None:
    client = client_for(replace(settings, api_key=api_key), clock, sheet, registry)

    response = client.put("/manual-confirm", headers=headers)

    assert response.status_code == expected
    assert sheet.requested == []


def test_manual_confirm_forces_a_write(settings: Settings, clock: Clock, sheet: FakeSheet, registry: FakeRegistry) -> None:
    client = client_for(settings, clock, sheet, registry)

    response = client.put("/manual-confirm", headers={"X-API-Key": "letmein"})

    assert response.status_code == 200
    body = response.json()
    assert body["status"] == "written"
    assert body["actions"] == 1
    assert registry.calls == [("absence", "r-1")]


def test_manual_confirm_reports_failed_pass(settings: Settings, clock: Clock, sheet: FakeSheet, registry: FakeRegistry) -> None:
    sheet.error = RuntimeError("quota exceeded")
    client = client_for(settings, clock, sheet, registry)

    response = client.put("/manual-confirm", headers={"X-API-Key": "letmein"})

    assert response.status_code == 500
    assert response.json()["detail"] == "quota exceeded"


def test_sheet_summary_and_status(settings: Settings, clock: Clock, sheet: FakeSheet, registry: FakeRegistry) -> None:
    client = client_for(settings, clock, sheet, registry)
    assert client.get("/sheet-summary").text == ""

    client.put("/manual-confirm", headers={"X-API-Key": "letmein"})

    assert client.get("/sheet-summary").text == "Ms. Jane Doe - out P2\n"
    status = client.get("/status").json()
    assert status["members"] == 1
    assert status["last_report"]["status"] == "written"
