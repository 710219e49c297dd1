# src/turnline/models/facts.py
"""Immutable archive rows written by the daily rollover."""

from __future__ import annotations

import uuid
from datetime import date, datetime

from sqlalchemy import Date, DateTime, Float, Integer, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from turnline.db.session import Base


def _new_id() -> str:
    return str(uuid.uuid4())


class TicketFact(Base):
    """Archived projection of a ticket with precomputed interval metrics.

    Durations are whole seconds; each is NULL unless both of its
    timestamps were recorded.
    """

    __tablename__ = "ticket_fact"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_id)
    # One fact per live ticket, so a repeated rollover cannot archive twice.
    ticket_id: Mapped[str] = mapped_column(String(36), nullable=False, unique=True)
    service_date: Mapped[date] = mapped_column(Date, nullable=False, index=True)
    number: Mapped[int] = mapped_column(Integer, nullable=False)
    kind: Mapped[str] = mapped_column(String(20), nullable=False)
    final_status: Mapped[str] = mapped_column(String(10), nullable=False)
    window_number: Mapped[int | None] = mapped_column(Integer, nullable=True)
    operator_id: Mapped[str | None] = mapped_column(String(36), nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    called_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    served_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    completed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    skipped_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    wait_to_call_sec: Mapped[int | None] = mapped_column(Integer, nullable=True)
    call_to_serve_sec: Mapped[int | None] = mapped_column(Integer, nullable=True)
    serve_to_complete_sec: Mapped[int | None] = mapped_column(Integer, nullable=True)
    total_lead_time_sec: Mapped[int | None] = mapped_column(Integer, nullable=True)


class OperatorDailyAggregate(Base):
    """Per-operator rollup for one service day, derived from that day's facts."""

    __tablename__ = "operator_daily_aggregate"
    __table_args__ = (
        UniqueConstraint("service_date", "operator_id", name="uq_operator_daily_aggregate"),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_id)
    service_date: Mapped[date] = mapped_column(Date, nullable=False, index=True)
    operator_id: Mapped[str] = mapped_column(String(36), nullable=False)
    served_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    handled_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    avg_wait_to_call_sec: Mapped[float | None] = mapped_column(Float, nullable=True)
    avg_serve_to_complete_sec: Mapped[float | None] = mapped_column(Float, nullable=True)
    avg_total_lead_time_sec: Mapped[float | None] = mapped_column(Float, nullable=True)
    window_min: Mapped[int | None] = mapped_column(Integer, nullable=True)
    window_max: Mapped[int | None] = mapped_column(Integer, nullable=True)
