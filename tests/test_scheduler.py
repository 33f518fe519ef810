# tests/test_scheduler.py
import asyncio
import pytest
from datetime import timedelta
from unittest.mock import AsyncMock, MagicMock

from uptime_monitor.scheduler import RefreshScheduler


def mock_coordinator(with_list=True):
    coordinator = MagicMock()
    coordinator.tick = AsyncMock(return_value=True)
    coordinator.refresh = AsyncMock(return_value=True)
    coordinator.drain = AsyncMock()
    coordinator.validator_list = MagicMock() if with_list else None
    return coordinator


@pytest.mark.asyncio
async def test_ticks_repeat_until_stopped():
    coordinator = mock_coordinator()
    scheduler = RefreshScheduler(coordinator, step=timedelta(milliseconds=10))
    scheduler.start()
    await asyncio.sleep(0.05)
    await scheduler.stop()

    assert coordinator.tick.await_count >= 2
    coordinator.refresh.assert_not_awaited()
    coordinator.drain.assert_awaited_once()
    assert not scheduler.running


@pytest.mark.asyncio
async def test_refresh_runs_immediately_when_configured():
    coordinator = mock_coordinator()
    scheduler = RefreshScheduler(
        coordinator, step=timedelta(seconds=60), refresh_interval=timedelta(seconds=60)
    )
    scheduler.start()
    await asyncio.sleep(0.01)
    await scheduler.stop()
    coordinator.refresh.assert_awaited_once()
    coordinator.tick.assert_awaited_once()


@pytest.mark.asyncio
async def test_refresh_skipped_without_list_source():
    coordinator = mock_coordinator(with_list=False)
    scheduler = RefreshScheduler(
        coordinator, step=timedelta(seconds=60), refresh_interval=timedelta(seconds=60)
    )
    scheduler.start()
    await asyncio.sleep(0.01)
    await scheduler.stop()
    coordinator.refresh.assert_not_awaited()


@pytest.mark.asyncio
async def test_loop_survives_unexpected_error():
    coordinator = mock_coordinator()
    calls = []

    async def flaky_tick():
        calls.append(1)
        if len(calls) == 1:
            raise RuntimeError("boom")
        return True

    coordinator.tick = AsyncMock(side_effect=flaky_tick)
    scheduler = RefreshScheduler(coordinator, step=timedelta(milliseconds=5))
    scheduler.start()
    await asyncio.sleep(0.05)
    await scheduler.stop()
    assert coordinator.tick.await_count >= 2
