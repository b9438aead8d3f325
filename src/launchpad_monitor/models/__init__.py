"""Data models for Launchpad Monitor."""

from .cycle import Alert, BulkResult, CycleResult, QueuedRemediation
from .debounce import DebounceRecord
from .enums import ConditionKind, CycleStatus
from .snapshot import DeviceSnapshot

__all__ = [
    "Alert",
    "BulkResult",
    "ConditionKind",
    "CycleResult",
    "CycleStatus",
    "DebounceRecord",
    "DeviceSnapshot",
    "QueuedRemediation",
]
