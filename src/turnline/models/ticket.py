# src/turnline/models/ticket.py
"""SQLAlchemy models for live tickets and the per-day number counter."""

from __future__ import annotations

import uuid
from datetime import date, datetime
from enum import StrEnum
from typing import TYPE_CHECKING

from sqlalchemy import Date, DateTime, ForeignKey, Integer, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from turnline.db.session import Base
from turnline.models.priority import PriorityClass

if TYPE_CHECKING:
    from turnline.models.window import Window


class TicketStatus(StrEnum):
    PENDING = "PENDING"
    CALLED = "CALLED"
    SERVING = "SERVING"
    DONE = "DONE"
    SKIPPED = "SKIPPED"


def _new_id() -> str:
    return str(uuid.uuid4())


class DayCounter(Base):
    """Next number to hand out for one service day.

    One row per service day, created lazily on the first ticket of the day
    and reset (never removed) by the rollover that covers that day.
    """

    __tablename__ = "day_counter"

    service_date: Mapped[date] = mapped_column(Date, primary_key=True)
    next_number: Mapped[int] = mapped_column(Integer, nullable=False)


class Ticket(Base):
    """One visitor's place in the queue.

    Created by the sequence allocator in PENDING, then mutated only by the
    ticket state machine until rollover archives and removes it.
    """

    __tablename__ = "ticket"
    __table_args__ = (
        UniqueConstraint("service_date", "number", name="uq_ticket_service_date_number"),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_id)
    number: Mapped[int] = mapped_column(Integer, nullable=False)
    kind: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        default=PriorityClass.STANDARD.value,
    )
    status: Mapped[str] = mapped_column(
        String(10),
        nullable=False,
        default=TicketStatus.PENDING.value,
        index=True,
    )
    # Service day in the configured zone; fixed at creation.
    service_date: Mapped[date] = mapped_column(Date, nullable=False, index=True)

    window_id: Mapped[str | None] = mapped_column(
        String(36),
        ForeignKey("service_window.id"),
        nullable=True,
    )
    window: Mapped[Window | None] = relationship("Window", lazy="joined")

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    called_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    served_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    completed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    skipped_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    called_by: Mapped[str | None] = mapped_column(
        String(36),
        ForeignKey("app_user.id"),
        nullable=True,
    )
    served_by: Mapped[str | None] = mapped_column(
        String(36),
        ForeignKey("app_user.id"),
        nullable=True,
    )
    completed_by: Mapped[str | None] = mapped_column(
        String(36),
        ForeignKey("app_user.id"),
        nullable=True,
    )

    @property
    def window_number(self) -> int | None:
        return self.window.number if self.window is not None else None

    @property
    def operator_id(self) -> str | None:
        """Operator credited with the ticket: completer, else server, else caller."""
        return self.completed_by or self.served_by or self.called_by
