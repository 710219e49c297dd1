"""Tests for admin statistics endpoints."""

from __future__ import annotations

from fastapi.testclient import TestClient

from turnline.models import Window

from tests.conftest import ManualClock

PHRASE = "I am sure I want to delete."


def test_today_counts_live_tickets(
    client: TestClient,
    admin_headers: dict[str, str],
    operator_headers: dict[str, str],
    windows: dict[int, Window],
    clock: ManualClock,
) -> None:
    client.post("/api/v1/windows/sessions", json={"window_number": 1}, headers=operator_headers)
    client.post("/api/v1/tickets", json={}, headers=operator_headers)
    client.post("/api/v1/tickets", json={"kind": "PRIORITY"}, headers=operator_headers)
    clock.advance(seconds=20)
    client.post("/api/v1/windows/1/next", headers=operator_headers)

    response = client.get("/api/v1/stats/today", headers=admin_headers)

    assert response.status_code == 200
    body = response.json()
    assert body["date_from"] == body["date_to"] == "2026-10-19"
    assert body["summary"]["total_tickets"] == 2
    assert body["summary"]["by_priority_class"] == {"PRIORITY": 1, "STANDARD": 1}
    assert body["summary"]["avg_wait_to_call_sec"] == 20
    assert body["series"][0]["is_today"] is True
    assert body["by_window"][0]["window_number"] == 1


def test_range_includes_archived_days(
    client: TestClient,
    admin_headers: dict[str, str],
    operator_headers: dict[str, str],
    windows: dict[int, Window],
    clock: ManualClock,
) -> None:
    client.post("/api/v1/windows/sessions", json={"window_number": 1}, headers=operator_headers)
    ticket = client.post("/api/v1/tickets", json={}, headers=operator_headers).json()
    client.post("/api/v1/windows/1/next", headers=operator_headers)
    client.post(f"/api/v1/windows/1/complete/{ticket['id']}", headers=operator_headers)
    client.post("/api/v1/admin/rollover", json={"confirmation": PHRASE}, headers=admin_headers)
    clock.advance(days=1)
    client.post("/api/v1/tickets", json={}, headers=operator_headers)

    response = client.get(
        "/api/v1/stats/range",
        params={"from": "2026-10-19", "to": "2026-10-20"},
        headers=admin_headers,
    )

    body = response.json()
    assert [point["service_date"] for point in body["series"]] == ["2026-10-19", "2026-10-20"]
    assert body["summary"]["done_count"] == 1
    assert body["by_operator"][0]["operator_name"] == "Operator One"

    aggregates = client.get(
        "/api/v1/stats/operators",
        params={"from": "2026-10-19", "to": "2026-10-19"},
        headers=admin_headers,
    ).json()
    assert len(aggregates) == 1
    assert aggregates[0]["served_count"] == 1


def test_reversed_range_is_bad_request(client: TestClient, admin_headers: dict[str, str]) -> None:
    response = client.get(
        "/api/v1/stats/range",
        params={"from": "2026-10-20", "to": "2026-10-19"},
        headers=admin_headers,
    )
    assert response.status_code == 400


def test_stats_are_admin_only(client: TestClient, operator_headers: dict[str, str]) -> None:
    assert client.get("/api/v1/stats/today", headers=operator_headers).status_code == 403
