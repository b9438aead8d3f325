"""Remediation batching.

Serials queued by every evaluator during a cycle are collected here and
sent to the gateway in one request at the end of the cycle.

Submission is optimistic. Once a serial is queued its ``remediated`` flag
is already persisted, and a failed or malformed gateway response does not
undo it. The request has most likely reached the gateway, and re-sending
resets to a device that may already be rebooting is worse than skipping
one retry. A new streak (after the device recovers) remediates again.
"""

from typing import Dict, Iterator, List, Optional, Protocol, Sequence, Tuple

import structlog

from launchpad_monitor.api.exceptions import LaunchpadMonitorError
from launchpad_monitor.models import BulkResult, ConditionKind, QueuedRemediation

log = structlog.get_logger(__name__)


class RemediationGateway(Protocol):
    """Anything that can soft reset a batch of serials in one call."""

    def bulk_soft_reset(self, serials: Sequence[str]) -> BulkResult: ...


class RemediationBatch:
    """Ordered, de-duplicated set of serials queued during one cycle.

    The same serial queued twice (one device flagged by two conditions) is
    submitted once; every queuing reason is kept for the audit trail.
    """

    def __init__(self) -> None:
        self._reasons: Dict[str, List[QueuedRemediation]] = {}
        self._entries: List[QueuedRemediation] = []

    def add(self, device: str, condition: ConditionKind, serial: str) -> bool:
        """Queue a serial.

        Returns:
            True if the serial is new to the batch, False if it was a duplicate.
        """
        entry = QueuedRemediation(device=device, condition=condition, serial=serial)
        reasons = self._reasons.setdefault(serial, [])
        reasons.append(entry)
        self._entries.append(entry)
        if len(reasons) > 1:
            log.debug("serial_already_queued", device=device, serial=serial, condition=condition.value)
            return False
        return True

    def __len__(self) -> int:
        return len(self._reasons)

    def __bool__(self) -> bool:
        return bool(self._reasons)

    def __iter__(self) -> Iterator[str]:
        return iter(self._reasons)

    @property
    def serials(self) -> List[str]:
        return list(self._reasons)

    @property
    def entries(self) -> List[QueuedRemediation]:
        """Every queuing reason, in the order they were added."""
        return list(self._entries)


class RemediationBatcher:
    """Submits a cycle's batch to the gateway, at most once."""

    def __init__(self, gateway: RemediationGateway) -> None:
        self.gateway = gateway

    def submit(self, batch: RemediationBatch) -> Tuple[Optional[BulkResult], Optional[str]]:
        """Send the batch if it is non-empty.

        An empty batch makes no call at all, so no token is requested.

        Returns:
            (result, error). Both are None for an empty batch; on failure
            the result is None and error describes what went wrong.
        """
        if not batch:
            log.debug("remediation_batch_empty")
            return None, None

        serials = batch.serials
        log.info("remediation_batch_sending", count=len(serials), serials=serials)

        try:
            result = self.gateway.bulk_soft_reset(serials)
        except LaunchpadMonitorError as e:
            log.error(
                "remediation_batch_failed",
                count=len(serials),
                error=e.message,
                hint=e.hint,
            )
            return None, e.message

        if not result.is_complete:
            log.warning(
                "remediation_response_incomplete",
                total_items=result.total_items,
                accepted_items=result.accepted_items,
                failed_items=result.failed_items,
            )
        elif result.failed_items:
            log.warning(
                "remediation_partial_failure",
                total_items=result.total_items,
                accepted_items=result.accepted_items,
                failed_items=result.failed_items,
            )
        else:
            log.info(
                "remediation_batch_accepted",
                total_items=result.total_items,
                accepted_items=result.accepted_items,
            )
        return result, None
