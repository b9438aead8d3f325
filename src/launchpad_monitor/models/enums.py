"""Shared enumerations for the Launchpad Monitor models."""

from enum import Enum


class ConditionKind(str, Enum):
    """Unhealthy condition tracked independently for every Launchpad."""

    NO_HUB = "no_hub"
    NO_DEVICES = "no_devices"

    @property
    def label(self) -> str:
        """Short label used in the reboot log."""
        return _LABELS[self]


_LABELS = {
    ConditionKind.NO_HUB: "No SmartHub",
    ConditionKind.NO_DEVICES: "No devices",
}


class CycleStatus(str, Enum):
    """Outcome of one evaluation cycle, as written to the status file."""

    HEALTHY = "healthy"
    ALERTED = "alerted"
    FAILED = "failed"
