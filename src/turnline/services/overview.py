"""Read-only queue snapshot for internal operator panels."""

from __future__ import annotations

from dataclasses import dataclass

from sqlalchemy import select
from sqlalchemy.orm import Session

from turnline.models import PriorityClass, Ticket, TicketStatus, User, Window, WorkerSession
from turnline.models.priority import Audience, is_visible

ACTIVE_STATUSES = (TicketStatus.CALLED.value, TicketStatus.SERVING.value)
UPCOMING_MAX = 50


@dataclass
class WindowSnapshot:
    window_number: int
    operator_id: str | None
    operator_name: str | None
    current: Ticket | None


@dataclass
class QueueOverview:
    windows: list[WindowSnapshot]
    upcoming_priority: list[int]
    upcoming_standard: list[int]


def current_ticket(db: Session, window: Window) -> Ticket | None:
    """Return the most recently called ticket still active at ``window``."""
    return db.execute(
        select(Ticket)
        .where(Ticket.window_id == window.id, Ticket.status.in_(ACTIVE_STATUSES))
        .order_by(Ticket.called_at.desc())
        .limit(1)
    ).scalars().first()


def _upcoming(db: Session, priority: bool, limit: int, audience: Audience) -> list[int]:
    query = select(Ticket.number, Ticket.kind).where(Ticket.status == TicketStatus.PENDING.value)
    if priority:
        query = query.where(Ticket.kind == PriorityClass.PRIORITY.value)
    else:
        query = query.where(Ticket.kind != PriorityClass.PRIORITY.value)
    rows = db.execute(query.order_by(Ticket.number, Ticket.created_at)).all()
    numbers = [number for number, kind in rows if is_visible(kind, audience)]
    return numbers[:limit]


def build_overview(
    db: Session,
    upcoming: int = 10,
    audience: Audience = Audience.INTERNAL,
) -> QueueOverview:
    """Snapshot active windows and the next ``upcoming`` numbers per lane.

    ``upcoming`` is clamped to 1..50. Tickets hidden from ``audience`` are
    left out of the upcoming lists.
    """
    limit = min(max(upcoming, 1), UPCOMING_MAX)
    windows = db.execute(
        select(Window).where(Window.active.is_(True)).order_by(Window.number)
    ).scalars().all()

    holders = {
        session.window_id: (session.user_id, name)
        for session, name in db.execute(
            select(WorkerSession, User.name)
            .join(User, User.id == WorkerSession.user_id)
            .where(WorkerSession.ended_at.is_(None), WorkerSession.window_id.is_not(None))
        ).all()
    }

    snapshots = []
    for window in windows:
        operator_id, operator_name = holders.get(window.id, (None, None))
        snapshots.append(
            WindowSnapshot(
                window_number=window.number,
                operator_id=operator_id,
                operator_name=operator_name,
                current=current_ticket(db, window),
            )
        )

    return QueueOverview(
        windows=snapshots,
        upcoming_priority=_upcoming(db, True, limit, audience),
        upcoming_standard=_upcoming(db, False, limit, audience),
    )
