"""Ticket lifecycle: creation and every status transition.

    PENDING --call--> CALLED --serve--> SERVING --complete--> DONE
                        |  \\____________complete__________/^
                        +--skip--> SKIPPED

DONE and SKIPPED are terminal. Every successful transition commits and then
publishes exactly one ``ticket-updated`` event.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from enum import StrEnum

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError, OperationalError
from sqlalchemy.orm import Session

from turnline.core.clock import Clock, get_clock
from turnline.core.errors import (
    ForbiddenError,
    InvalidTransitionError,
    NotFoundError,
    RaceLostError,
)
from turnline.db.time import ensure_utc
from turnline.models import PriorityClass, Ticket, TicketStatus, Window
from turnline.services.locks import KeyedLocks, day_key, get_locks, ticket_key, window_key
from turnline.services.notifications import NotificationHub, get_notification_hub
from turnline.services.sequence import SequenceAllocator
from turnline.services.windows import WindowOwnershipManager, validate_window_number

logger = logging.getLogger(__name__)


class TicketAction(StrEnum):
    CALL = "call"
    SERVE = "serve"
    COMPLETE = "complete"
    SKIP = "skip"


@dataclass(frozen=True)
class Transition:
    sources: frozenset[TicketStatus]
    target: TicketStatus


TRANSITIONS: dict[TicketAction, Transition] = {
    TicketAction.CALL: Transition(frozenset({TicketStatus.PENDING}), TicketStatus.CALLED),
    TicketAction.SERVE: Transition(frozenset({TicketStatus.CALLED}), TicketStatus.SERVING),
    TicketAction.COMPLETE: Transition(
        frozenset({TicketStatus.CALLED, TicketStatus.SERVING}),
        TicketStatus.DONE,
    ),
    # Serving tickets must be completed, never skipped.
    TicketAction.SKIP: Transition(frozenset({TicketStatus.CALLED}), TicketStatus.SKIPPED),
}


def check_transition(current: str, action: TicketAction) -> TicketStatus:
    """Return the target status, or raise if ``action`` is not allowed from ``current``."""
    transition = TRANSITIONS[action]
    if current not in transition.sources:
        raise InvalidTransitionError(current=current, requested=transition.target.value)
    return transition.target


def _latest_timestamp(ticket: Ticket) -> datetime:
    stamps = [
        ensure_utc(value)
        for value in (
            ticket.created_at,
            ticket.called_at,
            ticket.served_at,
            ticket.completed_at,
            ticket.skipped_at,
        )
        if value is not None
    ]
    return max(stamps)


class TicketStateMachine:
    """Creates tickets and applies transitions under window ownership."""

    def __init__(
        self,
        clock: Clock | None = None,
        hub: NotificationHub | None = None,
        locks: KeyedLocks | None = None,
        allocator: SequenceAllocator | None = None,
        ownership: WindowOwnershipManager | None = None,
    ) -> None:
        self.clock = clock or get_clock()
        self.hub = hub or get_notification_hub()
        self.locks = locks if locks is not None else get_locks()
        self.allocator = allocator or SequenceAllocator(self.locks)
        self.ownership = ownership or WindowOwnershipManager(self.clock, self.hub, self.locks)

    # --- creation --------------------------------------------------------------
    def create(
        self,
        db: Session,
        kind: PriorityClass = PriorityClass.STANDARD,
        start_override: int | None = None,
    ) -> Ticket:
        """Allocate a number for today and persist a PENDING ticket.

        The day lock spans allocation and insert, so a rollover of the same
        day sees either both or neither.
        """
        now = self.clock.now()
        service_day = self.clock.service_day(now)
        with self.locks.hold(day_key(service_day)):
            number = self.allocator.allocate_next(db, service_day, start_override)

            ticket = Ticket(
                number=number,
                kind=PriorityClass(kind).value,
                status=TicketStatus.PENDING.value,
                service_date=service_day,
                created_at=now,
            )
            db.add(ticket)
            try:
                db.commit()
            except (IntegrityError, OperationalError) as err:
                db.rollback()
                # The number stays consumed; numbering tolerates gaps.
                logger.warning(
                    "Ticket insert failed after allocating %d for %s", number, service_day
                )
                raise RaceLostError("Ticket could not be stored; retry") from err

        self.hub.ticket_created(ticket)
        return ticket

    # --- window-gated transitions ---------------------------------------------
    def mark_serving(self, db: Session, window_number: int, ticket_id: str, operator_id: str) -> Ticket:
        return self._act(db, TicketAction.SERVE, window_number, ticket_id, operator_id)

    def complete(self, db: Session, window_number: int, ticket_id: str, operator_id: str) -> Ticket:
        return self._act(db, TicketAction.COMPLETE, window_number, ticket_id, operator_id)

    def skip(self, db: Session, window_number: int, ticket_id: str, operator_id: str) -> Ticket:
        return self._act(db, TicketAction.SKIP, window_number, ticket_id, operator_id)

    def call(self, db: Session, ticket: Ticket, window: Window, operator_id: str) -> Ticket:
        """Move a PENDING ticket to CALLED at ``window``.

        The caller must already hold the queue and window locks and have
        verified ownership; the queue selector does all three. PENDING
        tickets are only ever mutated under the queue lock, so no ticket
        lock is taken here.
        """
        self._apply(ticket, TicketAction.CALL, window, operator_id)
        self._commit(db)
        self.hub.ticket_updated(ticket)
        return ticket

    def get(self, db: Session, ticket_id: str, *, for_update: bool = False) -> Ticket:
        query = select(Ticket).where(Ticket.id == ticket_id)
        if for_update:
            query = query.with_for_update(of=Ticket)
        ticket = db.execute(
            query.execution_options(populate_existing=True)
        ).unique().scalar_one_or_none()
        if ticket is None:
            raise NotFoundError("Ticket not found")
        return ticket

    def _act(
        self,
        db: Session,
        action: TicketAction,
        window_number: int,
        ticket_id: str,
        operator_id: str,
    ) -> Ticket:
        validate_window_number(window_number)
        with self.locks.hold(window_key(window_number), ticket_key(ticket_id)):
            window = self.ownership.require_ownership(db, operator_id, window_number)
            ticket = self.get(db, ticket_id, for_update=True)
            self._apply(ticket, action, window, operator_id)
            self._commit(db)

        logger.debug("Ticket %s -> %s at window %d", ticket.number, ticket.status, window_number)
        self.hub.ticket_updated(ticket)
        return ticket

    def _apply(self, ticket: Ticket, action: TicketAction, window: Window, operator_id: str) -> None:
        """Validate and mutate in memory. Nothing is touched if validation fails."""
        target = check_transition(ticket.status, action)
        if action is not TicketAction.CALL and ticket.window_id != window.id:
            raise ForbiddenError(
                f"Ticket {ticket.number} is assigned to window {ticket.window_number}, "
                f"not {window.number}"
            )

        # Never record a timestamp earlier than one already on the ticket.
        now = max(self.clock.now(), _latest_timestamp(ticket))
        if action is TicketAction.CALL:
            ticket.window_id = window.id
            ticket.window = window
            ticket.called_at = now
            ticket.called_by = operator_id
        elif action is TicketAction.SERVE:
            ticket.served_at = now
            ticket.served_by = operator_id
        elif action is TicketAction.COMPLETE:
            ticket.completed_at = now
            ticket.completed_by = operator_id
        elif action is TicketAction.SKIP:
            ticket.skipped_at = now
        ticket.status = target.value

    @staticmethod
    def _commit(db: Session) -> None:
        try:
            db.commit()
        except (IntegrityError, OperationalError) as err:
            db.rollback()
            raise RaceLostError("Ticket changed concurrently; retry") from err
