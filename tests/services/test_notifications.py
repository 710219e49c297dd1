"""Tests for the notification hub."""

from __future__ import annotations

import pytest
from sqlalchemy.orm import Session

from turnline.models import Ticket
from turnline.services.notifications import (
    QUEUE_RESET,
    TICKET_UPDATED,
    WINDOW_BELL,
    Event,
    NotificationHub,
    ticket_updated_payload,
)


def test_publish_fans_out_to_every_subscriber() -> None:
    hub = NotificationHub()
    first: list[Event] = []
    second: list[Event] = []
    hub.subscribe(first.append)
    hub.subscribe(second.append)

    hub.queue_reset()

    assert [event.name for event in first] == [QUEUE_RESET]
    assert first == second


def test_unsubscribe_stops_delivery() -> None:
    hub = NotificationHub()
    received: list[Event] = []
    unsubscribe = hub.subscribe(received.append)
    unsubscribe()
    unsubscribe()

    hub.window_state_changed()

    assert received == []
    assert hub.subscriber_count == 0


def test_failing_subscriber_does_not_block_others(caplog) -> None:
    hub = NotificationHub()
    received: list[Event] = []

    def _broken(event: Event) -> None:
        raise RuntimeError("socket closed")

    hub.subscribe(_broken)
    hub.subscribe(received.append)

    with caplog.at_level("WARNING"):
        hub.window_bell(3, 17)

    assert received[0].payload == {"windowNumber": 3, "ticketNumber": 17}
    assert received[0].name == WINDOW_BELL
    assert "Subscriber failed" in caplog.text


def test_unknown_event_names_are_rejected() -> None:
    with pytest.raises(ValueError):
        NotificationHub().publish("ticket-deleted")


def test_event_message_shape() -> None:
    assert Event(QUEUE_RESET).to_message() == {"event": QUEUE_RESET, "data": {}}


def test_ticket_updated_payload_shape(called_ticket: Ticket, db_session: Session) -> None:
    payload = ticket_updated_payload(called_ticket)

    assert set(payload) == {
        "id",
        "number",
        "status",
        "windowNumber",
        "calledAt",
        "servedAt",
        "completedAt",
        "skippedAt",
        "priorityClass",
    }
    assert payload["windowNumber"] == 1
    assert payload["servedAt"] is None
    assert payload["priorityClass"] == "STANDARD"
    assert TICKET_UPDATED == "ticket-updated"
