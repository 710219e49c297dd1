"""Notification fan-out for ticket, window and queue changes.

Only the event names and payload shapes are owned here; how subscribers
deliver them (WebSocket, push, message bus) is their own concern. Events
are published after the transition that produced them has committed.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime
from threading import Lock
from typing import Any

from turnline.models import Ticket

TICKET_CREATED = "ticket-created"
TICKET_UPDATED = "ticket-updated"
QUEUE_RESET = "queue-reset"
WINDOW_STATE_CHANGED = "window-state-changed"
WINDOW_BELL = "window-bell"

EVENT_NAMES = frozenset(
    {TICKET_CREATED, TICKET_UPDATED, QUEUE_RESET, WINDOW_STATE_CHANGED, WINDOW_BELL}
)

logger = logging.getLogger(__name__)

Subscriber = Callable[["Event"], None]


@dataclass(frozen=True)
class Event:
    name: str
    payload: dict[str, Any] = field(default_factory=dict)

    def to_message(self) -> dict[str, Any]:
        return {"event": self.name, "data": self.payload}


def _iso(value: datetime | None) -> str | None:
    return value.isoformat() if value is not None else None


def ticket_created_payload(ticket: Ticket) -> dict[str, Any]:
    return {
        "id": ticket.id,
        "number": ticket.number,
        "status": ticket.status,
        "createdAt": _iso(ticket.created_at),
    }


def ticket_updated_payload(ticket: Ticket) -> dict[str, Any]:
    return {
        "id": ticket.id,
        "number": ticket.number,
        "status": ticket.status,
        "windowNumber": ticket.window_number,
        "calledAt": _iso(ticket.called_at),
        "servedAt": _iso(ticket.served_at),
        "completedAt": _iso(ticket.completed_at),
        "skippedAt": _iso(ticket.skipped_at),
        "priorityClass": ticket.kind,
    }


class NotificationHub:
    """Synchronous fan-out to registered subscribers.

    Subscribers are called on the publishing thread and must not block; a
    subscriber that raises is logged and skipped so one bad consumer cannot
    fail a committed operation.
    """

    def __init__(self) -> None:
        self._lock = Lock()
        self._subscribers: list[Subscriber] = []

    def subscribe(self, subscriber: Subscriber) -> Callable[[], None]:
        """Register ``subscriber`` and return a callable that removes it."""
        with self._lock:
            self._subscribers.append(subscriber)

        def _unsubscribe() -> None:
            with self._lock:
                if subscriber in self._subscribers:
                    self._subscribers.remove(subscriber)

        return _unsubscribe

    def publish(self, name: str, payload: dict[str, Any] | None = None) -> Event:
        if name not in EVENT_NAMES:
            raise ValueError(f"Unknown event name: {name}")
        event = Event(name=name, payload=payload or {})
        with self._lock:
            subscribers = list(self._subscribers)
        for subscriber in subscribers:
            try:
                subscriber(event)
            except Exception:
                logger.warning("Subscriber failed to handle %s", name, exc_info=True)
        return event

    def ticket_created(self, ticket: Ticket) -> Event:
        return self.publish(TICKET_CREATED, ticket_created_payload(ticket))

    def ticket_updated(self, ticket: Ticket) -> Event:
        return self.publish(TICKET_UPDATED, ticket_updated_payload(ticket))

    def queue_reset(self) -> Event:
        return self.publish(QUEUE_RESET)

    def window_state_changed(self) -> Event:
        return self.publish(WINDOW_STATE_CHANGED)

    def window_bell(self, window_number: int, ticket_number: int | None) -> Event:
        return self.publish(
            WINDOW_BELL,
            {"windowNumber": window_number, "ticketNumber": ticket_number},
        )

    @property
    def subscriber_count(self) -> int:
        with self._lock:
            return len(self._subscribers)


_HUB = NotificationHub()


def get_notification_hub() -> NotificationHub:
    """Return the process-wide notification hub."""
    return _HUB
