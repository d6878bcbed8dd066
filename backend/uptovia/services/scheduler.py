"""Scheduler service - decides which monitors are due and dispatches checks.

Design:
- One APScheduler interval job ticks on a fixed cadence (default 60s)
- A tick reads the active monitors, selects the due ones and launches one
  asyncio task per monitor; it never waits for probe I/O
- A single-flight guard skips monitors whose previous check is still running
- A semaphore shared across ticks caps the number of probes in flight

The cadence bounds the due granularity from below: a monitor whose interval
is shorter than the tick is checked at most once per tick.
"""
import asyncio
import logging
from datetime import datetime
from typing import Optional, Set

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger

from ..store import MonitorStore
from ..utils.clock import utcnow
from .checker import CheckerService
from .notifier import TransitionNotifier
from .recorder import ResultRecorder
from .single_flight import SingleFlightGuard

logger = logging.getLogger(__name__)

DEFAULT_TICK_SECONDS = 60
DEFAULT_MAX_CONCURRENT_CHECKS = 20


def is_monitor_due(check_interval: int, last_check: Optional[datetime], now: datetime) -> bool:
    """A monitor is due if never checked or its interval has fully elapsed."""
    if last_check is None:
        return True
    return (now - last_check).total_seconds() >= check_interval


class SchedulerService:
    """Periodic driver for the check pipeline: probe, record, notify."""

    def __init__(
        self,
        store: MonitorStore,
        checker: CheckerService,
        recorder: ResultRecorder,
        notifier: TransitionNotifier,
        tick_seconds: int = DEFAULT_TICK_SECONDS,
        max_concurrent_checks: int = DEFAULT_MAX_CONCURRENT_CHECKS,
        shutdown_grace_seconds: float = 10.0,
    ):
        if max_concurrent_checks < 1:
            raise ValueError("max_concurrent_checks must be at least 1")

        self.store = store
        self.checker = checker
        self.recorder = recorder
        self.notifier = notifier
        self.tick_seconds = tick_seconds
        self.max_concurrent_checks = max_concurrent_checks
        self.shutdown_grace_seconds = shutdown_grace_seconds

        self.guard = SingleFlightGuard()
        self._semaphore = asyncio.Semaphore(max_concurrent_checks)
        self._tasks: Set[asyncio.Task] = set()
        self.scheduler: Optional[AsyncIOScheduler] = None
        self._running = False

    def start(self):
        """Start ticking; the first tick fires immediately."""
        if self._running:
            return

        self.scheduler = AsyncIOScheduler()
        self.scheduler.add_job(
            self.run_tick,
            trigger=IntervalTrigger(seconds=self.tick_seconds),
            id="run_checks",
            replace_existing=True,
            max_instances=1,
            coalesce=True,
            misfire_grace_time=self.tick_seconds,
            next_run_time=datetime.now(),
        )
        self.scheduler.start()
        self._running = True
        logger.info(
            f"Scheduler started (tick={self.tick_seconds}s, max_concurrent={self.max_concurrent_checks})"
        )

    async def stop(self):
        """Stop ticking, give in-flight checks a grace period, cancel the rest."""
        if self.scheduler and self._running:
            self.scheduler.shutdown(wait=False)
            self._running = False

        pending = await self.drain(timeout=self.shutdown_grace_seconds)
        if pending:
            logger.warning(f"Cancelling {pending} check(s) still running at shutdown")
            tasks = list(self._tasks)
            for task in tasks:
                task.cancel()
            await asyncio.gather(*tasks, return_exceptions=True)
        logger.info("Scheduler stopped")

    async def drain(self, timeout: Optional[float] = None) -> int:
        """Wait for dispatched checks to finish; returns how many are still running."""
        tasks = list(self._tasks)
        if tasks:
            await asyncio.wait(tasks, timeout=timeout)
        return sum(1 for task in tasks if not task.done())

    def status(self) -> dict:
        return {
            "running": self._running,
            "tick_seconds": self.tick_seconds,
            "max_concurrent_checks": self.max_concurrent_checks,
            "in_flight": sorted(self.guard.held()),
        }

    async def run_tick(self) -> int:
        """Dispatch every due monitor that is not already being checked.

        Returns the number of checks dispatched. Store errors are logged and
        the scan is simply retried on the next tick.
        """
        try:
            async with self.store.session() as session:
                monitors = await self.store.list_active_monitors(session)
        except Exception as e:
            logger.error(f"Error loading monitors for scheduling: {e}")
            return 0

        now = utcnow()
        dispatched = 0
        skipped = 0
        for monitor in monitors:
            if not is_monitor_due(monitor.check_interval or DEFAULT_TICK_SECONDS, monitor.last_check, now):
                continue
            if not self.guard.try_acquire(monitor.id):
                skipped += 1
                continue

            task = asyncio.create_task(self._run_worker(monitor), name=f"check-monitor-{monitor.id}")
            self._tasks.add(task)
            task.add_done_callback(self._tasks.discard)
            dispatched += 1

        if dispatched or skipped:
            logger.debug(
                f"Dispatched {dispatched} check(s), {skipped} still in flight, "
                f"{len(monitors)} active monitor(s)"
            )
        return dispatched

    async def _run_worker(self, monitor):
        """Run one check under the concurrency cap; always frees the monitor's slot."""
        try:
            async with self._semaphore:
                await self._check_monitor(monitor)
        except asyncio.CancelledError:
            logger.warning(f"Check for monitor {monitor.id} cancelled")
            raise
        except Exception as e:
            logger.error(f"Error checking monitor {monitor.id}: {e}")
        finally:
            self.guard.release(monitor.id)

    async def _check_monitor(self, monitor):
        """Probe, record, then notify; the prior status comes from the scan snapshot."""
        old_status = monitor.current_status or "unknown"

        outcome = await self.checker.check(monitor)
        if outcome.status == "down":
            logger.debug(f"Monitor {monitor.name}: down ({outcome.error_message})")
        else:
            logger.debug(f"Monitor {monitor.name}: up ({outcome.response_time}ms)")

        recorded = await self.recorder.record(monitor.id, outcome)
        if not recorded:
            return

        await self.notifier.handle_transition(
            monitor, old_status, outcome.status, outcome.error_message
        )
