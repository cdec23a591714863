"""
Background refresh scheduler
Runs the refresh on a fixed wall-clock cadence (every 5 minutes by default,
like cron `*/5 * * * *`) independently of HTTP traffic.
"""

import asyncio
import logging
import time
from typing import Awaitable, Callable, Optional, Set

logger = logging.getLogger(__name__)


def seconds_until_next_tick(interval: int, now: Optional[float] = None) -> float:
    """Delay until the next wall-clock multiple of `interval` seconds"""
    now = time.time() if now is None else now
    remaining = interval - (now % interval)
    return remaining if remaining > 0 else float(interval)


class RefreshScheduler:
    """
    Periodic trigger for a refresh job.

    Each tick spawns the job without waiting for the previous one, so a slow
    provider can lead to overlapping runs. Failures are logged and the
    schedule keeps going.
    """

    def __init__(self, job: Callable[[], Awaitable[object]], interval: int = 300):
        if interval <= 0:
            raise ValueError("interval must be positive")
        self._job = job
        self.interval = interval
        self._loop_task: Optional[asyncio.Task] = None
        self._runs: Set[asyncio.Task] = set()
        self.run_count = 0

    @property
    def is_running(self) -> bool:
        return self._loop_task is not None and not self._loop_task.done()

    def start(self) -> None:
        if self.is_running:
            return
        self._loop_task = asyncio.create_task(self._tick_loop())
        logger.info(f"📅 Scheduled automatic updates every {self.interval}s")

    async def stop(self) -> None:
        tasks = list(self._runs)
        if self._loop_task is not None:
            tasks.append(self._loop_task)
            self._loop_task = None
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
        self._runs.clear()
        logger.info("Refresh scheduler stopped")

    async def run_once(self) -> None:
        self.run_count += 1
        try:
            await self._job()
        except Exception as exc:
            logger.error(f"❌ Scheduled update failed: {exc}", exc_info=True)

    def trigger(self) -> asyncio.Task:
        """Spawn one run without waiting for it"""
        task = asyncio.create_task(self.run_once())
        self._runs.add(task)
        task.add_done_callback(self._runs.discard)
        return task

    async def _tick_loop(self) -> None:
        while True:
            await asyncio.sleep(seconds_until_next_tick(self.interval))
            logger.info("⏰ Scheduled update: fetching latest cryptocurrency data...")
            self.trigger()
