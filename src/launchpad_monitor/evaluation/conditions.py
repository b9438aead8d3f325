"""Condition evaluators.

Each evaluator is a pure function of a device snapshot and the persisted
record for its (device, condition) key. Nothing here touches storage or
the network; the cycle applies the returned record.
"""

from dataclasses import dataclass
from typing import Callable, Dict, List, Optional

from launchpad_monitor.evaluation.policy import DEFAULT_POLICY, DebouncePolicy
from launchpad_monitor.models import ConditionKind, DebounceRecord, DeviceSnapshot


@dataclass(frozen=True)
class Evaluation:
    """Outcome of evaluating one condition for one device.

    Attributes:
        condition: The condition evaluated.
        condition_met: The condition holds this cycle.
        record: Record to persist, or None when the streak is reset.
        should_remediate: Threshold reached and no remediation issued yet.
    """

    condition: ConditionKind
    condition_met: bool
    record: Optional[DebounceRecord]
    should_remediate: bool


def is_hub_missing(snapshot: DeviceSnapshot) -> bool:
    """Hub presence is inferred from overall connectivity."""
    return not snapshot.connected


def has_no_devices(snapshot: DeviceSnapshot) -> bool:
    return snapshot.connected and snapshot.docked_device_count < 1


CONDITION_CHECKS: Dict[ConditionKind, Callable[[DeviceSnapshot], bool]] = {
    ConditionKind.NO_HUB: is_hub_missing,
    ConditionKind.NO_DEVICES: has_no_devices,
}


def evaluate(
    condition: ConditionKind,
    snapshot: DeviceSnapshot,
    record: Optional[DebounceRecord],
    policy: DebouncePolicy = DEFAULT_POLICY,
) -> Evaluation:
    """Advance the debounce streak for one (device, condition) pair.

    A true observation creates the record at count 1 or increments it. A
    false observation resets the streak completely. Remediation is due
    once the count reaches the policy threshold, at most once per streak.
    """
    if not CONDITION_CHECKS[condition](snapshot):
        return Evaluation(
            condition=condition,
            condition_met=False,
            record=None,
            should_remediate=False,
        )

    updated = DebounceRecord() if record is None else record.incremented()
    due = (
        updated.occurrence_count >= policy.occurrences_before_action
        and not updated.remediated
    )
    return Evaluation(
        condition=condition,
        condition_met=True,
        record=updated,
        should_remediate=due,
    )


def evaluate_no_hub(
    snapshot: DeviceSnapshot,
    record: Optional[DebounceRecord],
    policy: DebouncePolicy = DEFAULT_POLICY,
) -> Evaluation:
    return evaluate(ConditionKind.NO_HUB, snapshot, record, policy)


def evaluate_no_devices(
    snapshot: DeviceSnapshot,
    record: Optional[DebounceRecord],
    policy: DebouncePolicy = DEFAULT_POLICY,
) -> Evaluation:
    return evaluate(ConditionKind.NO_DEVICES, snapshot, record, policy)


def conditions() -> List[ConditionKind]:
    """Conditions in evaluation order."""
    return list(CONDITION_CHECKS)
