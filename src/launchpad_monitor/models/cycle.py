"""Result objects produced by one evaluation cycle."""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import List, Optional

from launchpad_monitor.models.enums import ConditionKind, CycleStatus

_ALERT_TEMPLATES = {
    ConditionKind.NO_HUB: "🚨 {device} is disconnected (count: {count})",
    ConditionKind.NO_DEVICES: "🚨 {device} has no devices connected (count: {count})",
}


@dataclass(frozen=True)
class Alert:
    """A condition observed true for a device in the current cycle."""

    device: str
    condition: ConditionKind
    count: Optional[int]

    @property
    def message(self) -> str:
        count = "unknown" if self.count is None else self.count
        return _ALERT_TEMPLATES[self.condition].format(device=self.device, count=count)


@dataclass(frozen=True)
class QueuedRemediation:
    """A serial queued for soft reset, with the condition that caused it."""

    device: str
    condition: ConditionKind
    serial: str


@dataclass(frozen=True)
class BulkResult:
    """Item accounting returned by the bulk command endpoint.

    Any count the gateway omitted is None.
    """

    total_items: Optional[int] = None
    accepted_items: Optional[int] = None
    failed_items: Optional[int] = None

    @property
    def is_complete(self) -> bool:
        return None not in (self.total_items, self.accepted_items, self.failed_items)


@dataclass
class CycleResult:
    """Everything the reporter needs to describe a cycle."""

    started_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    device_count: int = 0
    alerts: List[Alert] = field(default_factory=list)
    queued: List[QueuedRemediation] = field(default_factory=list)
    unremediable: List[Alert] = field(default_factory=list)
    errors: List[str] = field(default_factory=list)
    bulk_result: Optional[BulkResult] = None
    remediation_error: Optional[str] = None
    failure: Optional[str] = None
    dry_run: bool = False

    @property
    def status(self) -> CycleStatus:
        if self.failure is not None:
            return CycleStatus.FAILED
        if self.alerts:
            return CycleStatus.ALERTED
        return CycleStatus.HEALTHY

    @property
    def serials(self) -> List[str]:
        """Distinct queued serials in submission order."""
        return list(dict.fromkeys(q.serial for q in self.queued))
