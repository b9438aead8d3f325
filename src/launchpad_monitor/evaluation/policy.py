"""Debounce and remediation policy.

Defines the tunable knobs that decide when a sustained condition turns
into a soft reset.
"""

from dataclasses import dataclass


@dataclass(frozen=True)
class DebouncePolicy:
    """Policy applied to every (device, condition) streak.

    Attributes:
        occurrences_before_action: Consecutive unhealthy cycles required
            before a remediation is queued. Uses >= comparison.
        strict_serial_required: Record a due remediation with no serial
            mapping as a cycle error instead of a warning-level skip.
    """

    occurrences_before_action: int = 2
    strict_serial_required: bool = False

    def __post_init__(self) -> None:
        if self.occurrences_before_action < 1:
            raise ValueError("occurrences_before_action must be at least 1")


DEFAULT_POLICY = DebouncePolicy()
