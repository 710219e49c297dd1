"""Tests for the scheduled rollover worker."""

from __future__ import annotations

import asyncio
from datetime import UTC, datetime, time
from unittest.mock import MagicMock

import pytest

from turnline.core.errors import RaceLostError
from turnline.services.rollover import RolloverMode, RolloverResult, RolloverTrigger
from turnline.services.rollover_worker import DailyRolloverWorker

from tests.conftest import ManualClock


def _result(skipped: bool = False) -> RolloverResult:
    return RolloverResult(
        service_day=datetime(2026, 10, 19).date(),
        mode=RolloverMode.ARCHIVE,
        archived_count=0,
        new_start_number=1,
        skipped=skipped,
    )


@pytest.fixture()
def mock_session_factory(mocker):
    factory = mocker.MagicMock()
    factory.return_value.__enter__.return_value = mocker.sentinel.db
    factory.return_value.__exit__.return_value = None
    return factory


def test_seconds_until_next_run_uses_local_time() -> None:
    # 23:58:30 in Panama.
    clock = ManualClock(datetime(2026, 10, 20, 4, 58, 30, tzinfo=UTC))
    worker = DailyRolloverWorker(MagicMock(), clock, MagicMock(), run_at=time(23, 59))
    assert worker.seconds_until_next_run() == 30


def test_run_after_trigger_time_waits_for_tomorrow() -> None:
    # 23:59:10 in Panama, just past the trigger.
    clock = ManualClock(datetime(2026, 10, 20, 4, 59, 10, tzinfo=UTC))
    worker = DailyRolloverWorker(MagicMock(), clock, MagicMock(), run_at=time(23, 59))
    assert worker.seconds_until_next_run() == 24 * 3600 - 10


def test_run_once_uses_scheduled_trigger(mock_session_factory, mocker) -> None:
    coordinator = mocker.MagicMock()
    coordinator.run.return_value = _result()
    clock = ManualClock()
    worker = DailyRolloverWorker(coordinator, clock, mock_session_factory)

    worker.run_once()

    coordinator.run.assert_called_once_with(
        mocker.sentinel.db,
        clock.service_day(),
        trigger=RolloverTrigger.SCHEDULED,
    )


@pytest.mark.asyncio
async def test_worker_fires_when_due_and_stops_cleanly(mock_session_factory, mocker) -> None:
    coordinator = mocker.MagicMock()
    coordinator.run.return_value = _result()
    worker = DailyRolloverWorker(coordinator, ManualClock(), mock_session_factory)
    mocker.patch.object(worker, "seconds_until_next_run", return_value=0.0)

    await worker.start()
    for _ in range(50):
        if coordinator.run.called:
            break
        await asyncio.sleep(0.01)
    await worker.stop()

    assert coordinator.run.call_count == 1
    assert not worker.running


@pytest.mark.asyncio
async def test_stop_interrupts_wait_without_running(mock_session_factory, mocker) -> None:
    coordinator = mocker.MagicMock()
    worker = DailyRolloverWorker(coordinator, ManualClock(), mock_session_factory)
    mocker.patch.object(worker, "seconds_until_next_run", return_value=3600.0)

    await worker.start()
    await asyncio.sleep(0)
    await asyncio.wait_for(worker.stop(), timeout=1.0)

    coordinator.run.assert_not_called()


@pytest.mark.asyncio
async def test_failure_is_logged_and_retried(mock_session_factory, mocker, caplog) -> None:
    outcomes = [RaceLostError("busy")]

    def _run(*args, **kwargs) -> RolloverResult:
        if outcomes:
            raise outcomes.pop()
        return _result()

    coordinator = mocker.MagicMock()
    coordinator.run.side_effect = _run
    worker = DailyRolloverWorker(coordinator, ManualClock(), mock_session_factory)
    mocker.patch.object(worker, "seconds_until_next_run", return_value=0.0)

    waits: list[float] = []
    real_wait = worker._wait

    async def _short_wait(seconds: float) -> bool:
        waits.append(seconds)
        return await real_wait(0)

    mocker.patch.object(worker, "_wait", side_effect=_short_wait)

    with caplog.at_level("ERROR", logger="turnline.services.rollover_worker"):
        await worker.start()
        for _ in range(100):
            if coordinator.run.call_count >= 2:
                break
            await asyncio.sleep(0.01)
        await worker.stop()

    assert coordinator.run.call_count >= 2
    assert "Scheduled rollover failed" in caplog.text
    assert any(seconds >= 1.0 for seconds in waits)
