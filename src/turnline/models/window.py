# src/turnline/models/window.py
"""Service windows and the operator sessions bound to them."""

from __future__ import annotations

import uuid
from datetime import datetime
from enum import StrEnum

from sqlalchemy import Boolean, DateTime, ForeignKey, Index, Integer, String, text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from turnline.db.session import Base


class SessionMode(StrEnum):
    WINDOW = "WINDOW"
    ASSIGNER = "ASSIGNER"


def _new_id() -> str:
    return str(uuid.uuid4())


class Window(Base):
    """A counter where tickets are served.

    Managed by the admin surface; the queue core only reads it.
    """

    __tablename__ = "service_window"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_id)
    number: Mapped[int] = mapped_column(Integer, nullable=False, unique=True)
    active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)


class WorkerSession(Base):
    """Binding of one operator to one window (or to assigner duty).

    A session is open while ``ended_at`` is NULL. The partial unique
    indexes keep at most one open session per window and per user even if
    two writers slip past the in-process locks.
    """

    __tablename__ = "worker_session"
    __table_args__ = (
        Index(
            "uq_worker_session_open_window",
            "window_id",
            unique=True,
            sqlite_where=text("ended_at IS NULL AND window_id IS NOT NULL"),
            postgresql_where=text("ended_at IS NULL AND window_id IS NOT NULL"),
        ),
        Index(
            "uq_worker_session_open_user",
            "user_id",
            unique=True,
            sqlite_where=text("ended_at IS NULL"),
            postgresql_where=text("ended_at IS NULL"),
        ),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_id)
    user_id: Mapped[str] = mapped_column(String(36), ForeignKey("app_user.id"), nullable=False)
    mode: Mapped[str] = mapped_column(String(10), nullable=False, default=SessionMode.WINDOW.value)
    window_id: Mapped[str | None] = mapped_column(
        String(36),
        ForeignKey("service_window.id"),
        nullable=True,
    )
    window: Mapped[Window | None] = relationship("Window", lazy="joined")
    started_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    ended_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    @property
    def window_number(self) -> int | None:
        return self.window.number if self.window is not None else None
