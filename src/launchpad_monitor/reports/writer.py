"""Cycle reporter: status file, per-cycle log files and the reboot audit trail."""

import shlex
import shutil
import subprocess
import tempfile
from datetime import datetime, timedelta
from pathlib import Path
from typing import Any, Dict, List, Optional
from zoneinfo import ZoneInfo

import structlog
from jinja2 import Environment, PackageLoader

from launchpad_monitor.models import CycleResult, CycleStatus

log = structlog.get_logger()

# Status file values read by the dashboard that watches the monitor
STATUS_CODES = {
    CycleStatus.HEALTHY: "1",
    CycleStatus.ALERTED: "2",
}

LOG_PREFIX = "monitor_log_"
ALERT_COMMAND_TIMEOUT = 30


class ReportError(Exception):
    """Raised when the cycle log cannot be written."""

    pass


class CycleReporter:
    """Turns a CycleResult into files on disk and an optional audible alert."""

    def __init__(
        self,
        status_path: Path,
        logs_dir: Path,
        reboot_log_path: Path,
        alert_command: Optional[str] = None,
        retention_days: int = 30,
        timezone: str = "UTC",
    ) -> None:
        """Initialize the reporter.

        Args:
            status_path: Status file rewritten every cycle
            logs_dir: Directory for per-cycle log files
            reboot_log_path: Append-only record of queued soft resets
            alert_command: Command run when a cycle raises alerts
            retention_days: Days to retain cycle logs (0 = keep forever)
            timezone: Timezone for timestamps and file names
        """
        self.status_path = Path(status_path)
        self.logs_dir = Path(logs_dir)
        self.reboot_log_path = Path(reboot_log_path)
        self.alert_command = alert_command
        self.retention_days = retention_days
        self.timezone = timezone
        self.env = Environment(
            loader=PackageLoader("launchpad_monitor.reports", "templates"),
            autoescape=False,
            trim_blocks=True,
            lstrip_blocks=True,
        )

    def _local(self, moment: datetime) -> datetime:
        return moment.astimezone(ZoneInfo(self.timezone))

    def _atomic_write(self, path: Path, content: str) -> None:
        """Write file atomically (write to temp, then rename)."""
        path.parent.mkdir(parents=True, exist_ok=True)
        temp_fd, temp_path = tempfile.mkstemp(
            dir=path.parent,
            prefix=".tmp-",
            suffix=path.suffix,
        )
        try:
            with open(temp_fd, "w", encoding="utf-8") as f:
                f.write(content)
            shutil.move(temp_path, path)
        except Exception:
            Path(temp_path).unlink(missing_ok=True)
            raise

    def begin_cycle(self) -> None:
        """Remove the previous status so a crashed cycle leaves none behind."""
        self.status_path.unlink(missing_ok=True)

    def write_status(self, result: CycleResult) -> None:
        if result.status is CycleStatus.FAILED:
            content = f"❌ {result.failure}\n"
        else:
            content = STATUS_CODES[result.status] + "\n"
        self._atomic_write(self.status_path, content)
        log.debug("status_written", path=str(self.status_path), status=result.status.value)

    def render(self, result: CycleResult) -> str:
        """Render the human-readable cycle log."""
        template = self.env.get_template("cycle_log.txt.j2")
        context: Dict[str, Any] = {
            "timestamp": self._local(result.started_at).strftime("%Y-%m-%d_%H-%M-%S"),
            "dry_run": result.dry_run,
            "device_count": result.device_count,
            "alerts": result.alerts,
            "queued": result.queued,
            "serial_count": len(result.serials),
            "bulk": result.bulk_result,
            "remediation_error": result.remediation_error,
            "unremediable": result.unremediable,
            "errors": result.errors,
        }
        return template.render(**context)

    def write_cycle_log(self, result: CycleResult) -> Path:
        """Write the cycle log to ``logs/monitor_log_<timestamp>.txt``.

        Raises:
            ReportError: If the log cannot be written
        """
        stamp = self._local(result.started_at).strftime("%Y-%m-%d_%H-%M-%S")
        path = self.logs_dir / f"{LOG_PREFIX}{stamp}.txt"
        try:
            self._atomic_write(path, self.render(result))
        except OSError as e:
            log.error("cycle_log_write_failed", path=str(path), error=str(e))
            raise ReportError(f"Failed to write cycle log {path}: {e}") from e
        log.info("cycle_log_written", path=str(path))
        return path

    def append_reboot_log(self, result: CycleResult) -> int:
        """Append one line per queued soft reset. Returns lines written."""
        if result.dry_run or not result.queued:
            return 0

        when = self._local(result.started_at).strftime("%a %b %d %H:%M:%S %Z %Y")
        lines = [
            f"🔁 Reboot ({item.condition.label}) for {item.device} (Serial: {item.serial}) at {when}\n"
            for item in result.queued
        ]
        self.reboot_log_path.parent.mkdir(parents=True, exist_ok=True)
        with open(self.reboot_log_path, "a", encoding="utf-8") as f:
            f.writelines(lines)
        return len(lines)

    def sound_alert(self) -> bool:
        """Run the configured alert command. Failures are logged, not raised."""
        if not self.alert_command:
            return False
        try:
            subprocess.run(
                shlex.split(self.alert_command),
                check=True,
                capture_output=True,
                timeout=ALERT_COMMAND_TIMEOUT,
            )
        except (OSError, ValueError, subprocess.SubprocessError) as e:
            log.warning("alert_command_failed", command=self.alert_command, error=str(e))
            return False
        return True

    def cleanup_old_logs(self) -> int:
        """Delete cycle logs older than retention_days.

        Returns count of files deleted.
        """
        if self.retention_days <= 0 or not self.logs_dir.exists():
            return 0

        cutoff = datetime.now() - timedelta(days=self.retention_days)
        deleted_count = 0

        for file_path in self.logs_dir.glob(f"{LOG_PREFIX}*.txt"):
            try:
                mtime = datetime.fromtimestamp(file_path.stat().st_mtime)
                if mtime < cutoff:
                    file_path.unlink()
                    deleted_count += 1
            except OSError as e:
                log.warning("cleanup_failed", path=str(file_path), error=str(e))

        if deleted_count > 0:
            log.info(
                "cleanup_complete",
                deleted=deleted_count,
                retention_days=self.retention_days,
            )
        return deleted_count

    def report(self, result: CycleResult) -> List[Path]:
        """Publish a completed or failed cycle.

        Returns:
            Paths written (status file and, for completed cycles, the cycle log).
        """
        self.write_status(result)
        written = [self.status_path]

        if result.status is CycleStatus.FAILED:
            return written

        written.append(self.write_cycle_log(result))
        self.append_reboot_log(result)

        if result.status is CycleStatus.ALERTED:
            log.warning("alert_triggered", alerts=len(result.alerts))
            self.sound_alert()
        else:
            log.info("all_healthy", devices=result.device_count)

        self.cleanup_old_logs()
        return written
