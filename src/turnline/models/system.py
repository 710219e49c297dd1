# src/turnline/models/system.py
"""System-level bookkeeping models."""

from datetime import date, datetime

from sqlalchemy import Date, DateTime, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from turnline.db.session import Base


class ServiceSettings(Base):
    """Singleton settings record maintained by the admin surface."""

    __tablename__ = "service_settings"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, default=1)
    # NULL defers to the START_NUMBER_DEFAULT environment value.
    start_number_default: Mapped[int | None] = mapped_column(Integer, nullable=True)


class SystemState(Base):
    """Singleton row remembering the most recent rollover."""

    __tablename__ = "system_state"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, default=1)
    last_rollover_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    last_rollover_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    last_rollover_trigger: Mapped[str | None] = mapped_column(String(20), nullable=True)
