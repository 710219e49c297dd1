"""Tests for window session and ticket action endpoints."""

from __future__ import annotations

from fastapi.testclient import TestClient

from turnline.models import Window
from turnline.services.notifications import WINDOW_BELL, Event


def _open(client: TestClient, headers: dict[str, str], window_number: int | None):
    return client.post(
        "/api/v1/windows/sessions",
        json={"window_number": window_number},
        headers=headers,
    )


def _issue(client: TestClient, headers: dict[str, str], kind: str | None = None) -> dict:
    return client.post("/api/v1/tickets", json={"kind": kind}, headers=headers).json()


def test_open_and_read_session(
    client: TestClient,
    operator_headers: dict[str, str],
    windows: dict[int, Window],
) -> None:
    opened = _open(client, operator_headers, 2)
    mine = client.get("/api/v1/windows/sessions/me", headers=operator_headers)

    assert opened.status_code == 200
    assert opened.json()["window_number"] == 2
    assert opened.json()["mode"] == "WINDOW"
    assert mine.json()["id"] == opened.json()["id"]


def test_busy_window_returns_conflict(
    client: TestClient,
    operator_headers: dict[str, str],
    other_headers: dict[str, str],
    windows: dict[int, Window],
) -> None:
    _open(client, operator_headers, 1)

    response = _open(client, other_headers, 1)

    assert response.status_code == 409
    assert response.json()["code"] == "window_busy"


def test_inactive_and_invalid_windows(
    client: TestClient,
    operator_headers: dict[str, str],
    windows: dict[int, Window],
) -> None:
    assert _open(client, operator_headers, 9).status_code == 404
    assert _open(client, operator_headers, 0).json()["code"] == "invalid_input"


def test_close_session_is_idempotent(
    client: TestClient,
    operator_headers: dict[str, str],
    windows: dict[int, Window],
) -> None:
    _open(client, operator_headers, 1)

    first = client.delete("/api/v1/windows/sessions", headers=operator_headers)
    second = client.delete("/api/v1/windows/sessions", headers=operator_headers)
    mine = client.get("/api/v1/windows/sessions/me", headers=operator_headers)

    assert first.json()["closed"] is True
    assert first.json()["session"]["ended_at"] is not None
    assert second.json() == {"closed": False, "session": None}
    assert mine.json() is None


def test_full_ticket_flow(
    client: TestClient,
    operator_headers: dict[str, str],
    windows: dict[int, Window],
) -> None:
    _open(client, operator_headers, 1)
    _issue(client, operator_headers)
    priority = _issue(client, operator_headers, "PRIORITY")

    called = client.post("/api/v1/windows/1/next", headers=operator_headers)
    assert called.status_code == 200
    assert called.json()["id"] == priority["id"]
    assert called.json()["status"] == "CALLED"
    assert called.json()["window_number"] == 1

    ticket_id = priority["id"]
    served = client.post(f"/api/v1/windows/1/serve/{ticket_id}", headers=operator_headers)
    done = client.post(f"/api/v1/windows/1/complete/{ticket_id}", headers=operator_headers)

    assert served.json()["status"] == "SERVING"
    assert done.json()["status"] == "DONE"
    assert done.json()["completed_at"] is not None


def test_completing_a_done_ticket_reports_transition(
    client: TestClient,
    operator_headers: dict[str, str],
    windows: dict[int, Window],
) -> None:
    _open(client, operator_headers, 1)
    ticket = _issue(client, operator_headers)
    client.post("/api/v1/windows/1/next", headers=operator_headers)
    client.post(f"/api/v1/windows/1/skip/{ticket['id']}", headers=operator_headers)

    response = client.post(f"/api/v1/windows/1/complete/{ticket['id']}", headers=operator_headers)

    assert response.status_code == 409
    body = response.json()
    assert body["code"] == "invalid_transition"
    assert body["current"] == "SKIPPED"
    assert body["requested"] == "DONE"


def test_actions_require_window_ownership(
    client: TestClient,
    operator_headers: dict[str, str],
    other_headers: dict[str, str],
    windows: dict[int, Window],
) -> None:
    _open(client, operator_headers, 1)
    ticket = _issue(client, operator_headers)
    client.post("/api/v1/windows/1/next", headers=operator_headers)

    next_call = client.post("/api/v1/windows/1/next", headers=other_headers)
    serve = client.post(f"/api/v1/windows/1/serve/{ticket['id']}", headers=other_headers)

    assert next_call.status_code == 403
    assert serve.status_code == 403
    assert serve.json()["code"] == "forbidden"


def test_empty_queue(
    client: TestClient,
    operator_headers: dict[str, str],
    windows: dict[int, Window],
) -> None:
    _open(client, operator_headers, 1)

    response = client.post("/api/v1/windows/1/next", headers=operator_headers)

    assert response.status_code == 404
    assert response.json()["code"] == "queue_empty"


def test_unknown_ticket(
    client: TestClient,
    operator_headers: dict[str, str],
    windows: dict[int, Window],
) -> None:
    _open(client, operator_headers, 1)

    response = client.post("/api/v1/windows/1/serve/missing", headers=operator_headers)

    assert response.status_code == 404


def test_bell_reports_current_ticket(
    client: TestClient,
    operator_headers: dict[str, str],
    windows: dict[int, Window],
    events: list[Event],
) -> None:
    _open(client, operator_headers, 3)
    idle = client.post("/api/v1/windows/3/bell", headers=operator_headers)
    _issue(client, operator_headers)
    client.post("/api/v1/windows/3/next", headers=operator_headers)
    busy = client.post("/api/v1/windows/3/bell", headers=operator_headers)

    assert idle.json() == {"window_number": 3, "ticket_number": None}
    assert busy.json() == {"window_number": 3, "ticket_number": 1}
    bells = [event.payload for event in events if event.name == WINDOW_BELL]
    assert bells == [
        {"windowNumber": 3, "ticketNumber": None},
        {"windowNumber": 3, "ticketNumber": 1},
    ]


def test_bell_on_foreign_window_is_forbidden(
    client: TestClient,
    operator_headers: dict[str, str],
    windows: dict[int, Window],
) -> None:
    response = client.post("/api/v1/windows/2/bell", headers=operator_headers)
    assert response.status_code == 403


def test_overview_for_staff(
    client: TestClient,
    operator_headers: dict[str, str],
    windows: dict[int, Window],
) -> None:
    _open(client, operator_headers, 1)
    _issue(client, operator_headers)
    _issue(client, operator_headers, "PRIORITY")
    client.post("/api/v1/windows/1/next", headers=operator_headers)

    response = client.get("/api/v1/windows/overview?upcoming=5", headers=operator_headers)

    assert response.status_code == 200
    body = response.json()
    assert [item["window_number"] for item in body["windows"]] == [1, 2, 3]
    assert body["windows"][0]["operator_name"] == "Operator One"
    assert body["windows"][0]["current"]["number"] == 2
    assert body["upcoming_priority"] == []
    assert body["upcoming_standard"] == [1]


def test_overview_requires_authentication(
    client: TestClient,
    operator_headers: dict[str, str],
    windows: dict[int, Window],
) -> None:
    _issue(client, operator_headers, "EXEMPT")
    _issue(client, operator_headers)

    anonymous = client.get("/api/v1/windows/overview")
    staff = client.get("/api/v1/windows/overview", headers=operator_headers)

    assert anonymous.status_code in (401, 403)
    assert staff.json()["upcoming_standard"] == [1, 2]
