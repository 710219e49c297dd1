"""Window session, ticket action and overview endpoints."""

from fastapi import APIRouter, Query

from turnline.api.v1.dependencies import (
    CurrentUserDep,
    OwnershipDep,
    QueueSelectorDep,
    SessionDep,
    TicketMachineDep,
)
from turnline.models import Ticket, WorkerSession
from turnline.models.priority import parse_priority_class
from turnline.schemas.ticket import TicketResponse
from turnline.schemas.window import (
    BellResponse,
    CurrentTicket,
    OverviewResponse,
    SessionCloseResponse,
    SessionOpen,
    SessionResponse,
    WindowOverviewItem,
)
from turnline.services.overview import build_overview

router = APIRouter(prefix="/windows", tags=["windows"])


@router.post("/sessions", response_model=SessionResponse)
def open_session(
    payload: SessionOpen,
    db: SessionDep,
    ownership: OwnershipDep,
    current_user: CurrentUserDep,
) -> WorkerSession:
    """Take over a window, closing any session the caller already had open."""
    return ownership.open_session(db, current_user.id, payload.window_number)


@router.delete("/sessions", response_model=SessionCloseResponse)
def close_session(
    db: SessionDep,
    ownership: OwnershipDep,
    current_user: CurrentUserDep,
) -> SessionCloseResponse:
    closed = ownership.close_session(db, current_user.id)
    if closed is None:
        return SessionCloseResponse(closed=False)
    return SessionCloseResponse(closed=True, session=SessionResponse.model_validate(closed))


@router.get("/sessions/me", response_model=SessionResponse | None)
def get_my_session(
    db: SessionDep,
    ownership: OwnershipDep,
    current_user: CurrentUserDep,
) -> WorkerSession | None:
    return ownership.get_open_session(db, current_user.id)


@router.get("/overview", response_model=OverviewResponse)
def get_overview(
    db: SessionDep,
    current_user: CurrentUserDep,
    upcoming: int = Query(10, description="Upcoming numbers per lane, clamped to 1..50"),
) -> OverviewResponse:
    """Current ticket per active window and the next numbers in each lane.

    Staff only: the snapshot includes operator names and display-exempt tickets.
    """
    overview = build_overview(db, upcoming)
    return OverviewResponse(
        windows=[
            WindowOverviewItem(
                window_number=item.window_number,
                operator_id=item.operator_id,
                operator_name=item.operator_name,
                current=CurrentTicket.model_validate(item.current) if item.current else None,
            )
            for item in overview.windows
        ],
        upcoming_priority=overview.upcoming_priority,
        upcoming_standard=overview.upcoming_standard,
    )


@router.post("/{window_number}/next", response_model=TicketResponse)
def take_next(
    window_number: int,
    db: SessionDep,
    selector: QueueSelectorDep,
    current_user: CurrentUserDep,
    kind: str | None = Query(None, description="Only call tickets of this priority class"),
) -> Ticket:
    """Call the next pending ticket to the caller's window."""
    return selector.take_next(db, window_number, current_user.id, parse_priority_class(kind))


@router.post("/{window_number}/serve/{ticket_id}", response_model=TicketResponse)
def serve_ticket(
    window_number: int,
    ticket_id: str,
    db: SessionDep,
    machine: TicketMachineDep,
    current_user: CurrentUserDep,
) -> Ticket:
    return machine.mark_serving(db, window_number, ticket_id, current_user.id)


@router.post("/{window_number}/complete/{ticket_id}", response_model=TicketResponse)
def complete_ticket(
    window_number: int,
    ticket_id: str,
    db: SessionDep,
    machine: TicketMachineDep,
    current_user: CurrentUserDep,
) -> Ticket:
    return machine.complete(db, window_number, ticket_id, current_user.id)


@router.post("/{window_number}/skip/{ticket_id}", response_model=TicketResponse)
def skip_ticket(
    window_number: int,
    ticket_id: str,
    db: SessionDep,
    machine: TicketMachineDep,
    current_user: CurrentUserDep,
) -> Ticket:
    return machine.skip(db, window_number, ticket_id, current_user.id)


@router.post("/{window_number}/bell", response_model=BellResponse)
def ring_bell(
    window_number: int,
    db: SessionDep,
    ownership: OwnershipDep,
    current_user: CurrentUserDep,
) -> BellResponse:
    """Alert the display for the caller's window. Changes no state."""
    ticket_number = ownership.ring_bell(db, current_user.id, window_number)
    return BellResponse(window_number=window_number, ticket_number=ticket_number)
