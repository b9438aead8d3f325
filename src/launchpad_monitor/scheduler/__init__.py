"""Scheduler subsystem for periodic monitor cycles."""

from launchpad_monitor.scheduler.runner import ScheduledRunner, SchedulerError

__all__ = [
    "ScheduledRunner",
    "SchedulerError",
]
