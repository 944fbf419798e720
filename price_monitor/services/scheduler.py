# price_monitor/services/scheduler.py

"""In-process cron trigger for the daily monitoring cycle."""

import asyncio
import logging
from collections.abc import Awaitable, Callable
from datetime import datetime
from zoneinfo import ZoneInfo

from croniter import croniter

from price_monitor.config.settings import Settings

logger = logging.getLogger("price_monitor.scheduler")


class CronScheduler:
    """Invokes *job* every time the cron expression fires.

    Job failures are logged and the loop keeps going, so a broken cycle
    is retried on the next trigger.
    """

    def __init__(
        self,
        job: Callable[[], Awaitable[object]],
        cron_expr: str | None = None,
        timezone: str | None = None,
    ) -> None:
        self.job = job
        self.cron_expr = cron_expr or Settings.SCHEDULE_CRON
        self.tz = ZoneInfo(timezone or Settings.TIMEZONE)
        if not croniter.is_valid(self.cron_expr):
            raise ValueError(f"Invalid cron expression: {self.cron_expr!r}")
        self._running = False
        self._task: asyncio.Task[None] | None = None

    def next_run(self, now: datetime | None = None) -> datetime:
        """Return the next firing time after *now*, in the configured timezone."""
        base = now.astimezone(self.tz) if now else datetime.now(self.tz)
        next_time: datetime = croniter(self.cron_expr, base).get_next(datetime)
        return next_time

    async def start(self) -> None:
        """Start the scheduler background loop."""
        if self._running:
            logger.warning("Scheduler already running")
            return
        self._running = True
        self._task = asyncio.create_task(self._run_loop())
        logger.info(
            "Scheduler started (cron '%s', next run %s)",
            self.cron_expr,
            self.next_run().isoformat(),
        )

    async def stop(self) -> None:
        """Stop the scheduler gracefully."""
        self._running = False
        if self._task:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
        logger.info("Scheduler stopped")

    async def run_job(self) -> None:
        """Run the job once, logging instead of propagating failures."""
        logger.info("Scheduled run triggered")
        try:
            await self.job()
        except Exception as exc:
            logger.error("Scheduled run failed: %s", exc, exc_info=True)

    async def _run_loop(self) -> None:
        while self._running:
            target = self.next_run()
            delay = (target - datetime.now(self.tz)).total_seconds()
            logger.debug("Sleeping %.0fs until %s", delay, target.isoformat())
            await asyncio.sleep(max(delay, 0.0))
            await self.run_job()
