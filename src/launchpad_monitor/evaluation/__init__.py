"""Condition evaluation and debounce policy."""

from launchpad_monitor.evaluation.conditions import (
    CONDITION_CHECKS,
    Evaluation,
    conditions,
    evaluate,
    evaluate_no_devices,
    evaluate_no_hub,
)
from launchpad_monitor.evaluation.policy import DEFAULT_POLICY, DebouncePolicy

__all__ = [
    "CONDITION_CHECKS",
    "DEFAULT_POLICY",
    "DebouncePolicy",
    "Evaluation",
    "conditions",
    "evaluate",
    "evaluate_no_devices",
    "evaluate_no_hub",
]
