"""One monitoring cycle: fetch, evaluate, batch-remediate.

The cycle is a single sequential pass. It holds no locks, so callers must
make sure only one cycle runs at a time (the scheduler enforces this with
``max_instances=1``).
"""

from __future__ import annotations

from functools import partial
from typing import TYPE_CHECKING, Callable, List, Optional, Protocol

import structlog

from launchpad_monitor.api.exceptions import ConnectivityError
from launchpad_monitor.evaluation import DEFAULT_POLICY, DebouncePolicy, conditions, evaluate
from launchpad_monitor.lookup import SerialLookup, SerialLookupError
from launchpad_monitor.models import Alert, ConditionKind, CycleResult, DeviceSnapshot
from launchpad_monitor.remediation import RemediationBatch, RemediationBatcher
from launchpad_monitor.state import DebounceStore, DebounceStoreError

if TYPE_CHECKING:
    from launchpad_monitor.config import MonitorSettings

log = structlog.get_logger(__name__)


class SnapshotSource(Protocol):
    def fetch_devices(self) -> List[DeviceSnapshot]: ...


class MonitorCycle:
    """Evaluates every device against every condition and remediates once.

    Args:
        source: Supplies the device snapshot; failures abort the cycle.
        store: Debounce state, read and written per (device, condition).
        load_lookup: Loads the serial mapping once per cycle.
        batcher: Submits the cycle's remediation batch.
        policy: Threshold and serial policy.
        connectivity_check: Optional preflight; False aborts the cycle.
        dry_run: Evaluate and report only; no state writes, no remediation.
    """

    def __init__(
        self,
        source: SnapshotSource,
        store: DebounceStore,
        load_lookup: Callable[[], SerialLookup],
        batcher: RemediationBatcher,
        policy: DebouncePolicy = DEFAULT_POLICY,
        connectivity_check: Optional[Callable[[], bool]] = None,
        dry_run: bool = False,
    ) -> None:
        self.source = source
        self.store = store
        self.load_lookup = load_lookup
        self.batcher = batcher
        self.policy = policy
        self.connectivity_check = connectivity_check
        self.dry_run = dry_run

    def run(self) -> CycleResult:
        """Run one cycle to completion.

        Raises:
            SetupError: Connectivity or snapshot failure. Raised before any
                debounce state is touched.
        """
        result = CycleResult(dry_run=self.dry_run)

        if self.connectivity_check is not None and not self.connectivity_check():
            raise ConnectivityError()

        devices = self.source.fetch_devices()
        result.device_count = len(devices)

        lookup = self._load_lookup(result)
        batch = RemediationBatch()

        for device in devices:
            for condition in conditions():
                self._evaluate_device(device, condition, lookup, batch, result)

        result.queued = batch.entries

        if self.dry_run:
            if batch:
                log.info("dry_run_skipping_remediation", serials=batch.serials)
        else:
            result.bulk_result, result.remediation_error = self.batcher.submit(batch)

        log.info(
            "cycle_complete",
            status=result.status.value,
            devices=result.device_count,
            alerts=len(result.alerts),
            queued=len(batch),
            errors=len(result.errors),
        )
        return result

    def close(self) -> None:
        """Release the snapshot source's connections, if it holds any."""
        close = getattr(self.source, "close", None)
        if callable(close):
            close()

    def _load_lookup(self, result: CycleResult) -> SerialLookup:
        """Missing mappings block remediation, never alerting."""
        try:
            return self.load_lookup()
        except SerialLookupError as e:
            log.error("serial_lookup_unavailable", error=str(e))
            result.errors.append(str(e))
            return SerialLookup()

    def _evaluate_device(
        self,
        device: DeviceSnapshot,
        condition: ConditionKind,
        lookup: SerialLookup,
        batch: RemediationBatch,
        result: CycleResult,
    ) -> None:
        name = device.name

        try:
            record = self.store.get(name, condition)
        except DebounceStoreError as e:
            # Alert on what the snapshot shows; never act on unknown state
            if evaluate(condition, device, None, self.policy).condition_met:
                self._emit_alert(Alert(name, condition, None), result)
            self._store_failed(e, result)
            return

        evaluation = evaluate(condition, device, record, self.policy)

        if not evaluation.condition_met:
            if self.dry_run:
                return
            try:
                self.store.clear(name, condition)
            except DebounceStoreError as e:
                self._store_failed(e, result)
            return

        updated = evaluation.record
        assert updated is not None  # For type checker
        alert = Alert(name, condition, updated.occurrence_count)
        self._emit_alert(alert, result)

        serial: Optional[str] = None
        if evaluation.should_remediate:
            serial = lookup.lookup(name)
            if serial is None:
                self._serial_missing(alert, result)
            else:
                updated = updated.mark_remediated()

        if not self.dry_run:
            try:
                self.store.put(name, condition, updated)
            except DebounceStoreError as e:
                self._store_failed(e, result)
                return

        if serial is not None:
            batch.add(name, condition, serial)
            log.info(
                "remediation_queued",
                device=name,
                condition=condition.value,
                serial=serial,
                count=updated.occurrence_count,
            )

    def _emit_alert(self, alert: Alert, result: CycleResult) -> None:
        result.alerts.append(alert)
        log.warning(
            "condition_detected",
            device=alert.device,
            condition=alert.condition.value,
            count=alert.count,
        )

    def _serial_missing(self, alert: Alert, result: CycleResult) -> None:
        result.unremediable.append(alert)
        fields = dict(device=alert.device, condition=alert.condition.value, count=alert.count)
        if self.policy.strict_serial_required:
            log.error("serial_not_found", **fields)
            result.errors.append(
                f"No serial mapping for {alert.device}; {alert.condition.label} remediation blocked"
            )
        else:
            log.warning("serial_not_found", **fields)

    def _store_failed(self, error: DebounceStoreError, result: CycleResult) -> None:
        log.error(
            "debounce_state_unavailable",
            device=error.device,
            condition=error.condition.value,
            error=error.reason,
        )
        result.errors.append(str(error))


def build_cycle(settings: "MonitorSettings", dry_run: bool = False) -> MonitorCycle:
    """Wire a MonitorCycle to the real collaborators described by settings."""
    from launchpad_monitor.api import (
        GroundControlClient,
        TokenProvider,
        WorkspaceOneClient,
        check_connectivity,
    )
    from launchpad_monitor.state import FileDebounceStore

    tokens = TokenProvider(
        token_url=settings.ws1_token_url,
        client_id=settings.ws1_client_id,
        client_secret=settings.ws1_client_secret,
        cache_path=settings.token_cache,
        lifetime_seconds=settings.token_lifetime_seconds,
        timeout=settings.request_timeout,
    )
    gateway = WorkspaceOneClient(
        env_url=settings.ws1_env_url,
        tokens=tokens,
        timeout=settings.request_timeout,
        attempts=settings.remediation_attempts,
    )

    connectivity_check: Optional[Callable[[], bool]] = None
    if settings.connectivity_check_url:
        connectivity_check = partial(
            check_connectivity,
            settings.connectivity_check_url,
            timeout=min(settings.request_timeout, 5.0),
        )

    return MonitorCycle(
        source=GroundControlClient(
            url=settings.groundcontrol_url,
            scope_email=settings.scope_email,
            timeout=settings.request_timeout,
        ),
        store=FileDebounceStore(str(settings.state_dir)),
        load_lookup=lambda: SerialLookup.load(settings.serial_csv),
        batcher=RemediationBatcher(gateway),
        policy=DebouncePolicy(
            occurrences_before_action=settings.occurrences_before_action,
            strict_serial_required=settings.strict_serial_required,
        ),
        connectivity_check=connectivity_check,
        dry_run=dry_run,
    )
