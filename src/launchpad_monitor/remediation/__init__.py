"""Per-cycle remediation batching."""

from launchpad_monitor.remediation.batch import (
    RemediationBatch,
    RemediationBatcher,
    RemediationGateway,
)

__all__ = ["RemediationBatch", "RemediationBatcher", "RemediationGateway"]
