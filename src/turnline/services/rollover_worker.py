"""Background task that fires the daily rollover at the configured local time."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from datetime import time

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from turnline.core.clock import Clock, get_clock
from turnline.core.errors import TurnlineError
from turnline.core.settings import settings
from turnline.db.session import SessionLocal
from turnline.services.rollover import RolloverCoordinator, RolloverResult, RolloverTrigger

logger = logging.getLogger(__name__)


class DailyRolloverWorker:
    """Sleeps until the next rollover instant, runs it, and repeats.

    Stopping interrupts the wait immediately. A rollover that has already
    started runs on a worker thread and is awaited to completion, so
    shutdown never abandons it half-way.
    """

    def __init__(
        self,
        coordinator: RolloverCoordinator | None = None,
        clock: Clock | None = None,
        session_factory: Callable[[], Session] | None = None,
        run_at: time | None = None,
    ) -> None:
        self.clock = clock or get_clock()
        self.coordinator = coordinator or RolloverCoordinator(clock=self.clock)
        self.session_factory = session_factory or SessionLocal
        self.run_at = run_at or settings.rollover_time
        self._task: asyncio.Task[None] | None = None
        self._stopping = asyncio.Event()

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def start(self) -> None:
        """Start the scheduling loop."""
        if not self.running:
            self._stopping.clear()
            self._task = asyncio.create_task(self._run())

    async def stop(self) -> None:
        """Stop the scheduling loop."""
        if self._task is None:
            return

        self._stopping.set()
        await self._task
        self._task = None

    def seconds_until_next_run(self) -> float:
        next_run = self.clock.next_run_at(self.run_at)
        return max(0.0, (next_run - self.clock.now()).total_seconds())

    def run_once(self) -> RolloverResult:
        """Run a scheduled rollover for the current service day in a fresh session."""
        with self.session_factory() as db:
            return self.coordinator.run(
                db,
                self.clock.service_day(),
                trigger=RolloverTrigger.SCHEDULED,
            )

    async def _run(self) -> None:
        cooldown = max(1.0, float(settings.rollover_cooldown_seconds))
        retry = max(1.0, float(settings.rollover_retry_seconds))

        while not self._stopping.is_set():
            delay = self.seconds_until_next_run()
            logger.info("Next scheduled rollover in %.0f seconds", delay)
            if await self._wait(delay):
                return

            try:
                result = await asyncio.to_thread(self.run_once)
            except (TurnlineError, SQLAlchemyError) as e:
                logger.error("Scheduled rollover failed: %s", e, exc_info=True)
                if await self._wait(retry):
                    return
                continue

            if not result.skipped:
                logger.info(
                    "Scheduled rollover archived %d tickets; next number %d",
                    result.archived_count,
                    result.new_start_number,
                )

            # Step past the trigger minute before computing the next instant.
            if await self._wait(cooldown):
                return

    async def _wait(self, seconds: float) -> bool:
        """Sleep up to ``seconds``; return True if a stop was requested meanwhile."""
        try:
            await asyncio.wait_for(self._stopping.wait(), timeout=seconds)
        except TimeoutError:
            return False
        return True
