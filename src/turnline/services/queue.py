"""Next-ticket selection for a window."""

from __future__ import annotations

from sqlalchemy import Select, select
from sqlalchemy.orm import Session

from turnline.core.errors import QueueEmptyError
from turnline.models import PriorityClass, Ticket, TicketStatus
from turnline.models.priority import rank_expression
from turnline.services.locks import QUEUE_KEY, window_key
from turnline.services.tickets import TicketStateMachine
from turnline.services.windows import validate_window_number


def pending_query(kind: PriorityClass | None = None) -> Select[tuple[Ticket]]:
    """Pending tickets in service order.

    Lower priority rank first, then ticket number (arrival order even if
    clocks skew), then creation time as a last tie-break.
    """
    query = select(Ticket).where(Ticket.status == TicketStatus.PENDING.value)
    if kind is not None:
        query = query.where(Ticket.kind == kind.value)
    return query.order_by(
        rank_expression(Ticket.kind),
        Ticket.number,
        Ticket.created_at,
    )


class QueueSelector:
    """Picks the next pending ticket and calls it to a window."""

    def __init__(self, machine: TicketStateMachine | None = None) -> None:
        self.machine = machine or TicketStateMachine()
        self.locks = self.machine.locks
        self.ownership = self.machine.ownership

    def peek(self, db: Session, kind: PriorityClass | None = None) -> Ticket | None:
        return db.execute(pending_query(kind).limit(1)).scalars().first()

    def take_next(
        self,
        db: Session,
        window_number: int,
        operator_id: str,
        kind: PriorityClass | None = None,
    ) -> Ticket:
        """Call the next eligible pending ticket to ``window_number``.

        The queue lock makes selection and the PENDING -> CALLED update one
        step, so two windows never receive the same ticket.

        Raises:
            InvalidInputError: If the window number is not positive.
            NotFoundError: If the window does not exist or is inactive.
            ForbiddenError: If the operator does not own the window.
            QueueEmptyError: If nothing eligible is pending.
        """
        validate_window_number(window_number)
        with self.locks.hold(QUEUE_KEY, window_key(window_number)):
            window = self.ownership.require_ownership(db, operator_id, window_number)
            ticket = db.execute(
                pending_query(kind)
                .limit(1)
                .with_for_update(of=Ticket)
                .execution_options(populate_existing=True)
            ).scalars().first()
            if ticket is None:
                suffix = f" of class {kind.value}" if kind is not None else ""
                raise QueueEmptyError(f"No pending tickets{suffix}")
            return self.machine.call(db, ticket, window, operator_id)
