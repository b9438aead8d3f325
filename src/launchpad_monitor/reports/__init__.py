"""Cycle reporting: status file, per-cycle logs and the reboot audit trail."""

from launchpad_monitor.reports.writer import CycleReporter, ReportError

__all__ = ["CycleReporter", "ReportError"]
