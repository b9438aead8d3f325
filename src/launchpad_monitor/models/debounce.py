"""Persistent debounce record for one (device, condition) pair."""

from dataclasses import dataclass, replace


@dataclass(frozen=True)
class DebounceRecord:
    """Consecutive-occurrence counter plus the remediation flag for a streak.

    Attributes:
        occurrence_count: Consecutive cycles the condition has been observed.
        remediated: A soft reset was already queued for this streak.
    """

    occurrence_count: int = 1
    remediated: bool = False

    def __post_init__(self) -> None:
        if self.occurrence_count < 0:
            raise ValueError("occurrence_count cannot be negative")

    def incremented(self) -> "DebounceRecord":
        return replace(self, occurrence_count=self.occurrence_count + 1)

    def mark_remediated(self) -> "DebounceRecord":
        return replace(self, remediated=True)
