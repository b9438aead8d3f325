"""Interval runner using APScheduler."""

from datetime import datetime
from typing import Any, Callable, Optional
from zoneinfo import ZoneInfo

import structlog
from apscheduler.events import EVENT_JOB_ERROR, EVENT_JOB_MAX_INSTANCES
from apscheduler.schedulers.blocking import BlockingScheduler
from apscheduler.triggers.interval import IntervalTrigger

log = structlog.get_logger()

JOB_ID = "monitor_cycle"


class SchedulerError(Exception):
    """Raised when scheduler configuration fails."""

    pass


class ScheduledRunner:
    """APScheduler-based cycle runner.

    Runs the monitor cycle every ``interval_seconds``. At most one cycle is
    ever in flight: a tick that arrives while the previous cycle is still
    running is skipped, and missed ticks are coalesced into one run.
    """

    def __init__(
        self,
        timezone: str = "UTC",
        misfire_grace_time: int = 30,
    ) -> None:
        """Initialize scheduler.

        Args:
            timezone: IANA timezone for the scheduler clock
            misfire_grace_time: Seconds after a tick to still run a late cycle
        """
        self.timezone = timezone
        self.misfire_grace_time = misfire_grace_time
        self._scheduler: Optional[BlockingScheduler] = None

    def _create_scheduler(self) -> BlockingScheduler:
        """Create configured BlockingScheduler."""
        job_defaults = {
            "coalesce": True,  # Combine missed runs into one
            "misfire_grace_time": self.misfire_grace_time,
            "max_instances": 1,  # Prevent concurrent cycles
        }
        return BlockingScheduler(
            timezone=self.timezone,
            job_defaults=job_defaults,
        )

    def _add_interval_job(
        self,
        scheduler: BlockingScheduler,
        func: Callable[[], None],
        interval_seconds: int,
    ) -> None:
        """Add the cycle job, with the first run due immediately."""
        trigger = IntervalTrigger(seconds=interval_seconds, timezone=self.timezone)
        scheduler.add_job(
            func,
            trigger,
            id=JOB_ID,
            next_run_time=datetime.now(ZoneInfo(self.timezone)),
        )
        log.info(
            "job_scheduled",
            schedule_type="interval",
            interval_seconds=interval_seconds,
            timezone=self.timezone,
        )

    def run(self, func: Callable[[], None], interval_seconds: int) -> None:
        """Start the scheduler and block until interrupted.

        Args:
            func: Function executed once per tick
            interval_seconds: Seconds between ticks

        Raises:
            SchedulerError: If interval_seconds is not positive
        """
        if interval_seconds <= 0:
            raise SchedulerError(f"Interval must be positive, got {interval_seconds}")

        self._scheduler = self._create_scheduler()
        self._add_interval_job(self._scheduler, func, interval_seconds)

        def on_job_error(event: Any) -> None:
            log.error("job_failed", error=str(event.exception))

        def on_max_instances(event: Any) -> None:
            log.warning("cycle_skipped", reason="previous cycle still running")

        self._scheduler.add_listener(on_job_error, EVENT_JOB_ERROR)
        self._scheduler.add_listener(on_max_instances, EVENT_JOB_MAX_INSTANCES)

        log.info("scheduler_starting", timezone=self.timezone)
        try:
            self._scheduler.start()
        except KeyboardInterrupt:
            log.info("scheduler_shutdown", reason="keyboard interrupt")

    def shutdown(self) -> None:
        """Gracefully shutdown the scheduler."""
        if self._scheduler and self._scheduler.running:
            self._scheduler.shutdown(wait=True)
            log.info("scheduler_shutdown", reason="explicit shutdown")
