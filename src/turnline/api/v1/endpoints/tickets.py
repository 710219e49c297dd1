"""Ticket issuing and queue listing endpoints."""

from fastapi import APIRouter, Query, status
from sqlalchemy import select

from turnline.api.v1.dependencies import (
    ClockDep,
    CurrentUserDep,
    SessionDep,
    TicketMachineDep,
)
from turnline.core.settings import settings
from turnline.models import PriorityClass, Ticket
from turnline.models.priority import parse_priority_class
from turnline.schemas.ticket import TicketCreate, TicketResponse
from turnline.services.queue import pending_query

router = APIRouter(prefix="/tickets", tags=["tickets"])


@router.post("", response_model=TicketResponse, status_code=status.HTTP_201_CREATED)
def create_ticket(
    payload: TicketCreate,
    db: SessionDep,
    machine: TicketMachineDep,
    current_user: CurrentUserDep,
) -> Ticket:
    """Issue the next PENDING ticket for today.

    ``start_override`` raises today's counter first when it is ahead of it,
    so an assigner can continue from a number handed out on paper.
    """
    kind = parse_priority_class(payload.kind) or PriorityClass.STANDARD
    return machine.create(db, kind, payload.start_override)


@router.get("/recent", response_model=list[TicketResponse])
def list_recent_tickets(
    db: SessionDep,
    clock: ClockDep,
    current_user: CurrentUserDep,
    limit: int = Query(10, description="Number of tickets, clamped to 1..RECENT_LIMIT_MAX"),
) -> list[Ticket]:
    """Return today's most recently issued tickets, newest first."""
    limit = min(max(limit, 1), settings.recent_limit_max)
    return list(
        db.execute(
            select(Ticket)
            .where(Ticket.service_date == clock.service_day())
            .order_by(Ticket.number.desc())
            .limit(limit)
        ).scalars()
    )


@router.get("/pending", response_model=list[TicketResponse])
def list_pending_tickets(
    db: SessionDep,
    current_user: CurrentUserDep,
    kind: str | None = Query(None, description="Restrict to one priority class"),
) -> list[Ticket]:
    """Return pending tickets in the order windows will call them."""
    return list(db.execute(pending_query(parse_priority_class(kind))).scalars())
