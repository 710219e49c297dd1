"""End-of-day rollover: archive, purge and reset.

Both variants run the same sequence in one transaction:

1. close every open worker session;
2. ARCHIVE only: project the day's tickets into TicketFacts and rebuild the
   day's per-operator aggregates;
3. delete live tickets (the day's tickets for ARCHIVE, all of them for PURGE);
4. reset the day's counter to the start value and drop older counters;
5. purge TicketFacts older than the retention horizon;
6. after commit, publish ``queue-reset`` and ``window-state-changed``.
"""

from __future__ import annotations

import logging
from collections import defaultdict
from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from datetime import date, datetime, timedelta
from enum import StrEnum
from statistics import fmean

from sqlalchemy import delete, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from turnline.core.clock import Clock, get_clock
from turnline.core.errors import ConfirmationMismatchError, RaceLostError
from turnline.core.settings import settings
from turnline.db.time import ensure_utc
from turnline.models import (
    DayCounter,
    OperatorDailyAggregate,
    SystemState,
    Ticket,
    TicketFact,
    TicketStatus,
)
from turnline.services.locks import (
    QUEUE_KEY,
    ROLLOVER_KEY,
    KeyedLocks,
    day_key,
    get_locks,
    window_key,
)
from turnline.services.notifications import NotificationHub, get_notification_hub
from turnline.services.sequence import SequenceAllocator
from turnline.services.windows import WindowOwnershipManager

logger = logging.getLogger(__name__)


class RolloverMode(StrEnum):
    ARCHIVE = "archive"
    PURGE = "purge"


class RolloverTrigger(StrEnum):
    MANUAL = "manual"
    SCHEDULED = "scheduled"


@dataclass(frozen=True)
class RolloverResult:
    service_day: date
    mode: RolloverMode
    archived_count: int
    new_start_number: int
    deleted_count: int = 0
    sessions_closed: int = 0
    aggregates_written: int = 0
    facts_purged: int = 0
    skipped: bool = False


def interval_seconds(later: datetime | None, earlier: datetime | None) -> int | None:
    """Whole seconds from ``earlier`` to ``later``, floored at zero; None if either is missing."""
    if later is None or earlier is None:
        return None
    delta = ensure_utc(later) - ensure_utc(earlier)
    return max(0, int(delta.total_seconds()))


def build_fact(ticket: Ticket) -> TicketFact:
    """Project a live ticket into its archive row."""
    last_progress = ticket.completed_at or ticket.served_at or ticket.called_at
    return TicketFact(
        ticket_id=ticket.id,
        service_date=ticket.service_date,
        number=ticket.number,
        kind=ticket.kind,
        final_status=ticket.status,
        window_number=ticket.window_number,
        operator_id=ticket.operator_id,
        created_at=ticket.created_at,
        called_at=ticket.called_at,
        served_at=ticket.served_at,
        completed_at=ticket.completed_at,
        skipped_at=ticket.skipped_at,
        wait_to_call_sec=interval_seconds(ticket.called_at, ticket.created_at),
        call_to_serve_sec=interval_seconds(ticket.served_at, ticket.called_at),
        serve_to_complete_sec=interval_seconds(ticket.completed_at, ticket.served_at),
        total_lead_time_sec=interval_seconds(last_progress, ticket.created_at),
    )


def mean_or_none(values: Iterable[int | None]) -> float | None:
    present = [value for value in values if value is not None]
    return fmean(present) if present else None


def build_operator_aggregates(
    service_day: date,
    facts: Sequence[TicketFact],
) -> list[OperatorDailyAggregate]:
    """Group facts by credited operator and roll them up."""
    by_operator: dict[str, list[TicketFact]] = defaultdict(list)
    for fact in facts:
        if fact.operator_id is not None:
            by_operator[fact.operator_id].append(fact)

    aggregates = []
    for operator_id, group in sorted(by_operator.items()):
        windows = [fact.window_number for fact in group if fact.window_number is not None]
        aggregates.append(
            OperatorDailyAggregate(
                service_date=service_day,
                operator_id=operator_id,
                served_count=sum(1 for fact in group if fact.final_status == TicketStatus.DONE),
                handled_count=len(group),
                avg_wait_to_call_sec=mean_or_none(fact.wait_to_call_sec for fact in group),
                avg_serve_to_complete_sec=mean_or_none(fact.serve_to_complete_sec for fact in group),
                avg_total_lead_time_sec=mean_or_none(fact.total_lead_time_sec for fact in group),
                window_min=min(windows) if windows else None,
                window_max=max(windows) if windows else None,
            )
        )
    return aggregates


def get_system_state(db: Session) -> SystemState:
    state = db.get(SystemState, 1)
    if state is None:
        state = SystemState(id=1)
        db.add(state)
    return state


class RolloverCoordinator:
    """Runs the daily rollover for manual and scheduled triggers alike."""

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

    @staticmethod
    def check_confirmation(confirmation: str | None) -> None:
        """Require the exact configured phrase, ignoring surrounding whitespace."""
        expected = settings.reset_confirmation_phrase
        if confirmation is None or confirmation.strip() != expected:
            raise ConfirmationMismatchError(f"Type exactly: {expected}")

    def run(
        self,
        db: Session,
        service_day: date | None = None,
        *,
        mode: RolloverMode = RolloverMode.ARCHIVE,
        confirmation: str | None = None,
        trigger: RolloverTrigger = RolloverTrigger.MANUAL,
    ) -> RolloverResult:
        """Roll over ``service_day`` (default: today).

        Manual runs must carry the confirmation phrase. Scheduled runs are
        suppressed when any rollover finished within the cooldown window.

        Raises:
            ConfirmationMismatchError: Manual run without the exact phrase.
            RaceLostError: The transaction failed and was rolled back.
        """
        if trigger is RolloverTrigger.MANUAL:
            self.check_confirmation(confirmation)

        now = self.clock.now()
        day = service_day or self.clock.service_day(now)
        window_keys = [window_key(number) for number in self.ownership.open_window_numbers(db)]

        with self.locks.hold(ROLLOVER_KEY, QUEUE_KEY, day_key(day), *window_keys):
            state = get_system_state(db)
            if trigger is RolloverTrigger.SCHEDULED and self._in_cooldown(state, now):
                logger.info("Skipping scheduled rollover for %s: ran at %s", day, state.last_rollover_at)
                db.rollback()
                return RolloverResult(
                    service_day=day,
                    mode=mode,
                    archived_count=0,
                    new_start_number=self.allocator.peek(db, day),
                    skipped=True,
                )

            try:
                result, deleted_ids = self._apply(db, day, mode, now)
                state.last_rollover_date = day
                state.last_rollover_at = now
                state.last_rollover_trigger = trigger.value
                db.commit()
            except SQLAlchemyError as err:
                db.rollback()
                logger.error("Rollover for %s failed and was rolled back", day, exc_info=True)
                raise RaceLostError("Rollover could not be completed; nothing was changed") from err

        self._evict_stale_locks(day, deleted_ids)
        logger.info(
            "Rollover %s (%s, %s): archived=%d deleted=%d sessions_closed=%d start=%d",
            day,
            mode.value,
            trigger.value,
            result.archived_count,
            result.deleted_count,
            result.sessions_closed,
            result.new_start_number,
        )
        self.hub.queue_reset()
        self.hub.window_state_changed()
        return result

    def purge(self, db: Session, confirmation: str | None = None) -> RolloverResult:
        """Delete every live ticket without archiving. Manual only."""
        return self.run(db, mode=RolloverMode.PURGE, confirmation=confirmation)

    def _apply(
        self,
        db: Session,
        day: date,
        mode: RolloverMode,
        now: datetime,
    ) -> tuple[RolloverResult, set[str]]:
        sessions_closed = self.ownership.close_all_open(db, now)

        archived = 0
        aggregates_written = 0
        if mode is RolloverMode.ARCHIVE:
            tickets = list(
                db.execute(
                    select(Ticket).where(Ticket.service_date == day).order_by(Ticket.number)
                ).scalars()
            )
            deleted_ids = {ticket.id for ticket in tickets}
            already = set(
                db.execute(
                    select(TicketFact.ticket_id).where(TicketFact.ticket_id.in_(deleted_ids))
                ).scalars()
            ) if deleted_ids else set()
            facts = [build_fact(ticket) for ticket in tickets if ticket.id not in already]
            archived = len(facts)
            if facts:
                db.add_all(facts)
                aggregates_written = self._rebuild_aggregates(db, day, facts)
            if deleted_ids:
                db.execute(
                    delete(Ticket)
                    .where(Ticket.id.in_(deleted_ids))
                    .execution_options(synchronize_session="fetch")
                )
            deleted = len(deleted_ids)
        else:
            deleted_ids = set(db.execute(select(Ticket.id)).scalars())
            db.execute(delete(Ticket).execution_options(synchronize_session="fetch"))
            deleted = len(deleted_ids)

        new_start = self.allocator.reset(db, day)
        db.execute(delete(DayCounter).where(DayCounter.service_date < day))

        horizon = day - timedelta(days=settings.fact_retention_days)
        facts_purged = db.execute(
            delete(TicketFact).where(TicketFact.service_date < horizon)
        ).rowcount or 0

        result = RolloverResult(
            service_day=day,
            mode=mode,
            archived_count=archived,
            new_start_number=new_start,
            deleted_count=deleted,
            sessions_closed=sessions_closed,
            aggregates_written=aggregates_written,
            facts_purged=facts_purged,
        )
        return result, deleted_ids

    @staticmethod
    def _rebuild_aggregates(db: Session, day: date, new_facts: list[TicketFact]) -> int:
        """Replace the day's aggregates with ones computed over all of its facts."""
        earlier = list(
            db.execute(select(TicketFact).where(TicketFact.service_date == day)).scalars()
        )
        day_facts = earlier + [fact for fact in new_facts if fact.service_date == day]
        db.execute(
            delete(OperatorDailyAggregate).where(OperatorDailyAggregate.service_date == day)
        )
        aggregates = build_operator_aggregates(day, day_facts)
        db.add_all(aggregates)
        return len(aggregates)

    @staticmethod
    def _in_cooldown(state: SystemState, now: datetime) -> bool:
        if state.last_rollover_at is None:
            return False
        elapsed = now - ensure_utc(state.last_rollover_at)
        return elapsed < timedelta(seconds=settings.rollover_cooldown_seconds)

    def _evict_stale_locks(self, day: date, deleted_ids: set[str]) -> None:
        stale_tickets = {f"ticket:{ticket_id}" for ticket_id in deleted_ids}
        current_day = day_key(day)

        def _is_stale(key: str) -> bool:
            if key in stale_tickets:
                return True
            return key.startswith("day:") and key < current_day

        evicted = self.locks.evict(_is_stale)
        if evicted:
            logger.debug("Evicted %d idle locks after rollover", evicted)
