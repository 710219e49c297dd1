"""Window ownership: which operator session holds which window."""

from __future__ import annotations

import logging
from datetime import datetime

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError, OperationalError
from sqlalchemy.orm import Session

from turnline.core.clock import Clock, get_clock
from turnline.core.errors import (
    ForbiddenError,
    InvalidInputError,
    NotFoundError,
    RaceLostError,
    WindowBusyError,
)
from turnline.models import SessionMode, Window, WorkerSession
from turnline.services.locks import KeyedLocks, get_locks, user_key, window_key
from turnline.services.notifications import NotificationHub, get_notification_hub
from turnline.services.overview import current_ticket

logger = logging.getLogger(__name__)


def validate_window_number(window_number: int) -> None:
    if window_number <= 0:
        raise InvalidInputError("Window number must be a positive integer")


class WindowOwnershipManager:
    """Sole writer of worker sessions.

    Opening and closing serialize on the user's lock and on the lock of
    every window involved. Operations gated by ownership take the same
    window lock, so a session cannot be closed between the check and the
    mutation it guards.
    """

    def __init__(
        self,
        clock: Clock | None = None,
        hub: NotificationHub | None = None,
        locks: KeyedLocks | None = None,
    ) -> None:
        self.clock = clock or get_clock()
        self.hub = hub or get_notification_hub()
        self.locks = locks if locks is not None else get_locks()

    # --- reads -----------------------------------------------------------------
    def get_active_window(self, db: Session, window_number: int) -> Window:
        """Return the active window with ``window_number``.

        Raises:
            InvalidInputError: If the number is not positive.
            NotFoundError: If no active window has that number.
        """
        validate_window_number(window_number)
        window = db.execute(
            select(Window).where(Window.number == window_number, Window.active.is_(True))
        ).scalar_one_or_none()
        if window is None:
            raise NotFoundError(f"Window {window_number} does not exist or is inactive")
        return window

    def get_open_session(self, db: Session, user_id: str) -> WorkerSession | None:
        """Return the caller's open session, if any."""
        return db.execute(
            select(WorkerSession)
            .where(WorkerSession.user_id == user_id, WorkerSession.ended_at.is_(None))
            .order_by(WorkerSession.started_at.desc())
            .limit(1)
            .execution_options(populate_existing=True)
        ).scalars().first()

    def window_holder(self, db: Session, window: Window) -> WorkerSession | None:
        return db.execute(
            select(WorkerSession)
            .where(WorkerSession.window_id == window.id, WorkerSession.ended_at.is_(None))
            .execution_options(populate_existing=True)
        ).scalars().first()

    def has_ownership(self, db: Session, user_id: str, window_number: int) -> bool:
        """Return True if the user's single open session is bound to the window."""
        session = self.get_open_session(db, user_id)
        return session is not None and session.window_number == window_number

    def require_ownership(self, db: Session, user_id: str, window_number: int) -> Window:
        """Return the window if ``user_id`` owns it.

        Callers must hold the window's lock for as long as they rely on the
        answer.

        Raises:
            NotFoundError: If the window does not exist or is inactive.
            ForbiddenError: If the caller holds no open session on the window.
        """
        window = self.get_active_window(db, window_number)
        if not self.has_ownership(db, user_id, window_number):
            raise ForbiddenError(f"You do not hold an active session on window {window_number}")
        return window

    # --- writes ----------------------------------------------------------------
    def open_session(self, db: Session, user_id: str, window_number: int | None) -> WorkerSession:
        """Bind ``user_id`` to a window, or to assigner duty when no window is given.

        Any session the user already has open is closed first, so a user holds
        at most one open session.

        Raises:
            InvalidInputError: If the window number is not positive.
            NotFoundError: If the window does not exist or is inactive.
            WindowBusyError: If another user holds the window.
            RaceLostError: If a concurrent open won at the database level.
        """
        if window_number is not None:
            validate_window_number(window_number)

        keys = [user_key(user_id)]
        if window_number is not None:
            keys.append(window_key(window_number))
        previous = self.get_open_session(db, user_id)
        if previous is not None and previous.window_number is not None:
            keys.append(window_key(previous.window_number))

        with self.locks.hold(*keys):
            window = None
            if window_number is not None:
                window = self.get_active_window(db, window_number)
                holder = self.window_holder(db, window)
                if holder is not None and holder.user_id != user_id:
                    raise WindowBusyError(f"Window {window_number} is already taken")

            now = self.clock.now()
            try:
                closed = self._close_open_sessions(db, user_id, now)
                session = WorkerSession(
                    user_id=user_id,
                    mode=SessionMode.WINDOW.value if window else SessionMode.ASSIGNER.value,
                    window_id=window.id if window else None,
                    window=window,
                    started_at=now,
                )
                db.add(session)
                db.commit()
            except (IntegrityError, OperationalError) as err:
                db.rollback()
                raise RaceLostError(
                    "Window session changed concurrently; retry",
                ) from err

        logger.info(
            "Opened %s session for user %s on window %s (closed %d previous)",
            session.mode,
            user_id,
            window_number,
            closed,
        )
        self.hub.window_state_changed()
        return session

    def close_session(self, db: Session, user_id: str) -> WorkerSession | None:
        """Close the caller's open session.

        Returns the closed session, or None when there was nothing to close.
        """
        current = self.get_open_session(db, user_id)
        if current is None:
            return None

        keys = [user_key(user_id)]
        if current.window_number is not None:
            keys.append(window_key(current.window_number))

        with self.locks.hold(*keys):
            current = self.get_open_session(db, user_id)
            if current is None:
                return None
            current.ended_at = self.clock.now()
            try:
                db.commit()
            except OperationalError as err:
                db.rollback()
                raise RaceLostError("Window session changed concurrently; retry") from err

        logger.info("Closed session for user %s on window %s", user_id, current.window_number)
        self.hub.window_state_changed()
        return current

    def ring_bell(self, db: Session, user_id: str, window_number: int) -> int | None:
        """Publish a bell for the owner's window; returns the ticket currently there, if any.

        Not a state transition: nothing is written.
        """
        with self.locks.hold(window_key(window_number)):
            window = self.require_ownership(db, user_id, window_number)
            ticket = current_ticket(db, window)
        ticket_number = ticket.number if ticket is not None else None
        self.hub.window_bell(window_number, ticket_number)
        return ticket_number

    def close_all_open(self, db: Session, ended_at: datetime) -> int:
        """End every open session without committing. Used by rollover."""
        result = db.execute(
            update(WorkerSession)
            .where(WorkerSession.ended_at.is_(None))
            .values(ended_at=ended_at)
            .execution_options(synchronize_session="fetch")
        )
        return result.rowcount or 0

    def open_window_numbers(self, db: Session) -> list[int]:
        return list(
            db.execute(
                select(Window.number)
                .join(WorkerSession, WorkerSession.window_id == Window.id)
                .where(WorkerSession.ended_at.is_(None))
            ).scalars()
        )

    @staticmethod
    def _close_open_sessions(db: Session, user_id: str, ended_at: datetime) -> int:
        result = db.execute(
            update(WorkerSession)
            .where(WorkerSession.user_id == user_id, WorkerSession.ended_at.is_(None))
            .values(ended_at=ended_at)
            .execution_options(synchronize_session="fetch")
        )
        return result.rowcount or 0
