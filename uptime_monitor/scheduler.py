# scheduler.py
# Background loops driving metric ticks and validator list refreshes

import asyncio
import time
from datetime import timedelta
from typing import Awaitable, Callable, List

from .coordinator import UpdateCoordinator
from .logger import get_logger

logger = get_logger(__name__)


class RefreshScheduler:
    def __init__(
        self,
        coordinator: UpdateCoordinator,
        step: timedelta,
        refresh_interval: timedelta | None = None,
    ):
        self.coordinator = coordinator
        self.step = step
        self.refresh_interval = refresh_interval
        self._tasks: List[asyncio.Task] = []

    @property
    def running(self) -> bool:
        return any(not task.done() for task in self._tasks)

    async def _loop(
        self, name: str, job: Callable[[], Awaitable[bool]], interval: timedelta
    ) -> None:
        """Run job at a fixed cadence; a slow run delays the next one instead of overlapping it."""
        period = interval.total_seconds()
        while True:
            started = time.monotonic()
            try:
                await job()
            except Exception as e:
                logger.error(f"[{name}] Unexpected error: {e}", exc_info=True)
            elapsed = time.monotonic() - started
            await asyncio.sleep(max(0.0, period - elapsed))

    def start(self) -> None:
        if self.running:
            return
        if self.refresh_interval is not None and self.coordinator.validator_list is not None:
            self._tasks.append(
                asyncio.create_task(
                    self._loop("refresh", self.coordinator.refresh, self.refresh_interval)
                )
            )
            logger.info(f"Validator list refresh task started, every {self.refresh_interval}")
        self._tasks.append(
            asyncio.create_task(self._loop("tick", self.coordinator.tick, self.step))
        )
        logger.info(f"Metrics update task started, every {self.step}")

    async def stop(self) -> None:
        for task in self._tasks:
            task.cancel()
        await asyncio.gather(*self._tasks, return_exceptions=True)
        self._tasks = []
        await self.coordinator.drain()
