"""In-process background loop running the recurrence sweep."""
from __future__ import annotations

import asyncio
import logging
from typing import Optional

from taskmarket.config import settings
from taskmarket.services.recurrence_service import SweepReport
from taskmarket.services.task_engine import TaskEngine

logger = logging.getLogger(__name__)


class RecurrenceSweeper:
    """Runs ``TaskEngine.sweep_due_recurring_tasks`` on a fixed interval.

    ``stop()`` ends the loop between iterations; a sweep already in flight
    is allowed to finish.
    """

    def __init__(self, engine: Optional[TaskEngine] = None, interval_seconds: Optional[float] = None):
        self.engine = engine or TaskEngine()
        interval = settings.RECURRENCE_SWEEP_INTERVAL_SECONDS if interval_seconds is None else interval_seconds
        self.interval_seconds = max(0.01, float(interval))
        self.iterations = 0
        self.last_report: Optional[SweepReport] = None
        self._stopping = asyncio.Event()
        self._task: Optional[asyncio.Task] = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        """Schedule the loop on the running event loop."""
        if self.running:
            return
        self._stopping = asyncio.Event()
        self._task = asyncio.create_task(self._loop(), name="recurrence-sweeper")
        logger.info(f"Recurrence sweeper started (interval {self.interval_seconds}s)")

    async def stop(self) -> None:
        """Request shutdown and wait for the current iteration to finish."""
        if self._task is None:
            return
        self._stopping.set()
        await self._task
        self._task = None
        logger.info(f"Recurrence sweeper stopped after {self.iterations} iterations")

    async def run_once(self) -> SweepReport:
        report = await self.engine.sweep_due_recurring_tasks()
        self.iterations += 1
        self.last_report = report
        return report

    async def _loop(self) -> None:
        while not self._stopping.is_set():
            try:
                await self.run_once()
            except Exception:
                logger.exception("Recurrence sweep iteration failed")
            try:
                await asyncio.wait_for(self._stopping.wait(), timeout=self.interval_seconds)
            except asyncio.TimeoutError:
                pass
