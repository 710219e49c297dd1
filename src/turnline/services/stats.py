"""Read-only statistics over archived facts and today's live tickets.

Live tickets are projected through the same function the rollover uses,
so today's numbers match what will be archived tonight. Nothing here
takes a lock; readers accept a slightly stale snapshot.
"""

from __future__ import annotations

from collections import Counter, defaultdict
from collections.abc import Callable, Iterable, Sequence
from dataclasses import dataclass, field
from datetime import date

from sqlalchemy import select
from sqlalchemy.orm import Session

from turnline.core.clock import Clock, get_clock
from turnline.core.errors import InvalidInputError
from turnline.models import (
    OperatorDailyAggregate,
    Ticket,
    TicketFact,
    TicketStatus,
    User,
)
from turnline.services.rollover import build_fact, mean_or_none


@dataclass
class StatsSummary:
    total_tickets: int = 0
    done_count: int = 0
    skipped_count: int = 0
    by_priority_class: dict[str, int] = field(default_factory=dict)
    avg_wait_to_call_sec: float | None = None
    avg_call_to_serve_sec: float | None = None
    avg_serve_to_complete_sec: float | None = None
    avg_total_lead_time_sec: float | None = None


@dataclass
class DailyStatsPoint:
    service_date: date
    total_tickets: int
    done_count: int
    skipped_count: int
    avg_wait_to_call_sec: float | None
    avg_call_to_serve_sec: float | None
    avg_serve_to_complete_sec: float | None
    avg_total_lead_time_sec: float | None
    is_today: bool


@dataclass
class OperatorStats:
    operator_id: str
    operator_name: str | None
    served_count: int
    avg_serve_to_complete_sec: float | None
    avg_total_lead_time_sec: float | None


@dataclass
class WindowStats:
    window_number: int
    served_count: int
    avg_serve_to_complete_sec: float | None
    avg_total_lead_time_sec: float | None


@dataclass
class StatsReport:
    date_from: date
    date_to: date
    summary: StatsSummary
    series: list[DailyStatsPoint]
    by_operator: list[OperatorStats]
    by_window: list[WindowStats]


def _was_served(fact: TicketFact) -> bool:
    return fact.served_at is not None or fact.final_status == TicketStatus.DONE


def _ranking_key(served_count: int, avg_serve: float | None) -> tuple[int, float]:
    return (-served_count, avg_serve if avg_serve is not None else float("inf"))


def _averages(rows: Sequence[TicketFact]) -> dict[str, float | None]:
    return {
        "avg_wait_to_call_sec": mean_or_none(row.wait_to_call_sec for row in rows),
        "avg_call_to_serve_sec": mean_or_none(row.call_to_serve_sec for row in rows),
        "avg_serve_to_complete_sec": mean_or_none(row.serve_to_complete_sec for row in rows),
        "avg_total_lead_time_sec": mean_or_none(row.total_lead_time_sec for row in rows),
    }


def _count_status(rows: Iterable[TicketFact], status: TicketStatus) -> int:
    return sum(1 for row in rows if row.final_status == status)


def build_stats(
    rows: Sequence[TicketFact],
    date_from: date,
    date_to: date,
    today: date,
    operator_names: Callable[[Iterable[str]], dict[str, str]] | None = None,
) -> StatsReport:
    """Summarize ``rows`` into totals, a per-day series and rankings."""
    summary = StatsSummary(
        total_tickets=len(rows),
        done_count=_count_status(rows, TicketStatus.DONE),
        skipped_count=_count_status(rows, TicketStatus.SKIPPED),
        by_priority_class=dict(sorted(Counter(row.kind for row in rows).items())),
        **_averages(rows),
    )

    by_day: dict[date, list[TicketFact]] = defaultdict(list)
    by_operator: dict[str, list[TicketFact]] = defaultdict(list)
    by_window: dict[int, list[TicketFact]] = defaultdict(list)
    for row in rows:
        by_day[row.service_date].append(row)
        if row.operator_id is not None:
            by_operator[row.operator_id].append(row)
        if row.window_number is not None:
            by_window[row.window_number].append(row)

    series = [
        DailyStatsPoint(
            service_date=day,
            total_tickets=len(group),
            done_count=_count_status(group, TicketStatus.DONE),
            skipped_count=_count_status(group, TicketStatus.SKIPPED),
            is_today=day == today,
            **_averages(group),
        )
        for day, group in sorted(by_day.items())
    ]

    names = operator_names(by_operator.keys()) if operator_names and by_operator else {}
    operators = [
        OperatorStats(
            operator_id=operator_id,
            operator_name=names.get(operator_id),
            served_count=sum(1 for row in group if _was_served(row)),
            avg_serve_to_complete_sec=mean_or_none(row.serve_to_complete_sec for row in group),
            avg_total_lead_time_sec=mean_or_none(row.total_lead_time_sec for row in group),
        )
        for operator_id, group in by_operator.items()
    ]
    operators.sort(key=lambda item: _ranking_key(item.served_count, item.avg_serve_to_complete_sec))

    windows = [
        WindowStats(
            window_number=number,
            served_count=sum(1 for row in group if _was_served(row)),
            avg_serve_to_complete_sec=mean_or_none(row.serve_to_complete_sec for row in group),
            avg_total_lead_time_sec=mean_or_none(row.total_lead_time_sec for row in group),
        )
        for number, group in by_window.items()
    ]
    windows.sort(key=lambda item: _ranking_key(item.served_count, item.avg_serve_to_complete_sec))

    return StatsReport(
        date_from=date_from,
        date_to=date_to,
        summary=summary,
        series=series,
        by_operator=operators,
        by_window=windows,
    )


class StatsService:
    """Builds admin statistics for a date range."""

    def __init__(self, db: Session, clock: Clock | None = None) -> None:
        self.db = db
        self.clock = clock or get_clock()

    def rows(self, date_from: date, date_to: date) -> list[TicketFact]:
        """Archived facts in the range, plus today's live tickets if today is covered."""
        rows = list(
            self.db.execute(
                select(TicketFact)
                .where(TicketFact.service_date >= date_from, TicketFact.service_date <= date_to)
                .order_by(TicketFact.service_date, TicketFact.number)
            ).scalars()
        )
        today = self.clock.service_day()
        if date_from <= today <= date_to:
            archived = {row.ticket_id for row in rows}
            live = self.db.execute(
                select(Ticket).where(Ticket.service_date == today).order_by(Ticket.number)
            ).scalars()
            rows.extend(build_fact(ticket) for ticket in live if ticket.id not in archived)
        return rows

    def today(self) -> StatsReport:
        day = self.clock.service_day()
        return self.range(day, day)

    def range(self, date_from: date, date_to: date) -> StatsReport:
        """Raises InvalidInputError if ``date_to`` precedes ``date_from``."""
        if date_to < date_from:
            raise InvalidInputError("'to' must be on or after 'from'")
        return build_stats(
            self.rows(date_from, date_to),
            date_from,
            date_to,
            today=self.clock.service_day(),
            operator_names=self._operator_names,
        )

    def operator_aggregates(self, date_from: date, date_to: date) -> list[OperatorDailyAggregate]:
        if date_to < date_from:
            raise InvalidInputError("'to' must be on or after 'from'")
        return list(
            self.db.execute(
                select(OperatorDailyAggregate)
                .where(
                    OperatorDailyAggregate.service_date >= date_from,
                    OperatorDailyAggregate.service_date <= date_to,
                )
                .order_by(OperatorDailyAggregate.service_date, OperatorDailyAggregate.operator_id)
            ).scalars()
        )

    def _operator_names(self, operator_ids: Iterable[str]) -> dict[str, str]:
        users = self.db.execute(select(User.id, User.name).where(User.id.in_(list(operator_ids))))
        return {user_id: name for user_id, name in users}
