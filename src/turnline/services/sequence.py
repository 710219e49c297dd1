"""Per-day ticket number allocation."""

from __future__ import annotations

import logging
from datetime import date

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError, OperationalError
from sqlalchemy.orm import Session

from turnline.core.errors import InvalidInputError, RaceLostError
from turnline.core.settings import settings
from turnline.models import DayCounter, ServiceSettings
from turnline.services.locks import KeyedLocks, day_key, get_locks

FALLBACK_START_NUMBER = 1

logger = logging.getLogger(__name__)


def resolve_start_number(db: Session) -> int:
    """Return the configured first number of a service day.

    Precedence: the settings record, then ``START_NUMBER_DEFAULT``, then 1.
    """
    record = db.get(ServiceSettings, 1)
    if record is not None and record.start_number_default is not None:
        return record.start_number_default
    if settings.start_number_default is not None:
        return settings.start_number_default
    return FALLBACK_START_NUMBER


class SequenceAllocator:
    """Hands out strictly increasing numbers per service day.

    The read-modify-write of a day's counter runs under that day's lock and
    a row lock, and is committed before the lock is released. A number is
    therefore never observed twice; a caller that fails after allocation
    leaves a gap, which is accepted.
    """

    def __init__(self, locks: KeyedLocks | None = None) -> None:
        self.locks = locks if locks is not None else get_locks()

    def allocate_next(
        self,
        db: Session,
        service_day: date,
        start_override: int | None = None,
    ) -> int:
        """Return the next number for ``service_day`` and advance the counter.

        Args:
            db: Database session; its pending work is committed.
            service_day: Day whose counter is used.
            start_override: Raise the counter to this value first when it is
                ahead of the counter. Lower values are ignored.

        Raises:
            InvalidInputError: If ``start_override`` is negative.
            RaceLostError: If the counter write conflicts with another writer.
        """
        if start_override is not None and start_override < 0:
            raise InvalidInputError("start_override must be zero or positive")

        with self.locks.hold(day_key(service_day)):
            try:
                counter = self._load_counter(db, service_day)
                if counter is None:
                    counter = DayCounter(
                        service_date=service_day,
                        next_number=resolve_start_number(db),
                    )
                    db.add(counter)
                    logger.info(
                        "Initialized counter for %s at %d", service_day, counter.next_number
                    )

                if start_override is not None and start_override > counter.next_number:
                    logger.info(
                        "Raising counter for %s from %d to %d",
                        service_day,
                        counter.next_number,
                        start_override,
                    )
                    counter.next_number = start_override

                number = counter.next_number
                counter.next_number = number + 1
                db.commit()
            except (IntegrityError, OperationalError) as err:
                db.rollback()
                raise RaceLostError(
                    "Ticket number allocation conflicted with another request; retry",
                ) from err
        return number

    def peek(self, db: Session, service_day: date) -> int:
        """Return the number the next allocation would hand out."""
        counter = db.get(DayCounter, service_day)
        if counter is None:
            return resolve_start_number(db)
        return counter.next_number

    def reset(self, db: Session, service_day: date) -> int:
        """Set the day's counter back to the start value without committing."""
        start = resolve_start_number(db)
        counter = self._load_counter(db, service_day)
        if counter is None:
            db.add(DayCounter(service_date=service_day, next_number=start))
        else:
            counter.next_number = start
        return start

    @staticmethod
    def _load_counter(db: Session, service_day: date) -> DayCounter | None:
        return db.execute(
            select(DayCounter)
            .where(DayCounter.service_date == service_day)
            .with_for_update()
            .execution_options(populate_existing=True)
        ).scalar_one_or_none()
