"""Tests for the monitoring cycle: evaluation, debounce and batched remediation."""

from typing import Dict, Optional
from unittest.mock import MagicMock

import pytest

from launchpad_monitor.api.exceptions import ConnectivityError, GatewayError, SnapshotError
from launchpad_monitor.cycle import MonitorCycle
from launchpad_monitor.evaluation import DebouncePolicy
from launchpad_monitor.lookup import SerialLookup, SerialLookupError
from launchpad_monitor.models import ConditionKind, CycleStatus, DebounceRecord
from launchpad_monitor.remediation import RemediationBatcher
from launchpad_monitor.state import DebounceStoreError

from conftest import MemoryDebounceStore, RecordingGateway, StaticSource, make_device

NO_HUB = ConditionKind.NO_HUB
NO_DEVICES = ConditionKind.NO_DEVICES


class Harness:
    """A cycle wired to in-memory collaborators that persist across runs."""

    def __init__(
        self,
        serials: Optional[Dict[str, str]] = None,
        policy: Optional[DebouncePolicy] = None,
    ) -> None:
        self.source = StaticSource()
        self.store = MemoryDebounceStore()
        self.gateway = RecordingGateway()
        self.serials = dict(serials or {})
        self.policy = policy or DebouncePolicy()

    def cycle(self, dry_run: bool = False, connectivity_check=None) -> MonitorCycle:
        return MonitorCycle(
            source=self.source,
            store=self.store,
            load_lookup=lambda: SerialLookup(self.serials),
            batcher=RemediationBatcher(self.gateway),
            policy=self.policy,
            connectivity_check=connectivity_check,
            dry_run=dry_run,
        )

    def run(self, *devices, **kwargs):
        self.source.devices = list(devices)
        return self.cycle(**kwargs).run()


@pytest.fixture
def harness() -> Harness:
    return Harness(serials={"A": "SER-A", "B": "SER-B", "C": "SER-C"})


class TestDisconnectScenario:
    """A Launchpad that goes offline, stays offline, then partially recovers."""

    def test_full_streak(self, harness: Harness) -> None:
        offline = make_device("A", connected=False)

        # Cycle 1: alert, no remediation
        result = harness.run(offline)
        assert [a.message for a in result.alerts] == ["🚨 A is disconnected (count: 1)"]
        assert result.queued == []
        assert harness.gateway.calls == []
        assert harness.store.get("A", NO_HUB) == DebounceRecord(1, False)

        # Cycle 2: threshold reached, serial submitted
        result = harness.run(offline)
        assert [a.count for a in result.alerts] == [2]
        assert result.serials == ["SER-A"]
        assert harness.gateway.calls == [["SER-A"]]
        assert harness.store.get("A", NO_HUB) == DebounceRecord(2, True)

        # Cycle 3: still alerting, nothing new submitted
        result = harness.run(offline)
        assert [a.count for a in result.alerts] == [3]
        assert result.queued == []
        assert harness.gateway.calls == [["SER-A"]]

        # Cycle 4: reconnected with nothing docked
        result = harness.run(make_device("A", connected=True, docked=0))
        assert harness.store.get("A", NO_HUB) is None
        assert harness.store.get("A", NO_DEVICES) == DebounceRecord(1, False)
        assert [a.message for a in result.alerts] == [
            "🚨 A has no devices connected (count: 1)"
        ]
        assert result.queued == []

    def test_recovery_restarts_the_streak(self, harness: Harness) -> None:
        """After recovery the next failure remediates again at threshold."""
        offline = make_device("A", connected=False)
        harness.run(offline)
        harness.run(offline)
        harness.run(make_device("A"))
        harness.run(offline)

        result = harness.run(offline)

        assert result.serials == ["SER-A"]
        assert harness.gateway.calls == [["SER-A"], ["SER-A"]]


class TestMissingSerialScenario:
    """A Launchpad past threshold with no serial mapping."""

    def test_alerts_but_never_remediates_until_mapped(self) -> None:
        harness = Harness(serials={})
        empty = make_device("B", connected=True, docked=0)

        for expected in (1, 2, 3):
            result = harness.run(empty)
            assert [a.count for a in result.alerts] == [expected]
            assert result.queued == []
        assert harness.store.get("B", NO_DEVICES) == DebounceRecord(3, False)
        assert harness.gateway.calls == []

        harness.serials["B"] = "SER-B"
        result = harness.run(empty)

        assert result.serials == ["SER-B"]
        assert harness.store.get("B", NO_DEVICES) == DebounceRecord(4, True)

    def test_lenient_policy_is_warning(self, capsys: pytest.CaptureFixture[str]) -> None:
        harness = Harness(serials={}, policy=DebouncePolicy(occurrences_before_action=1))

        result = harness.run(make_device("B", connected=False))

        assert result.errors == []
        assert [a.device for a in result.unremediable] == ["B"]
        assert result.status is CycleStatus.ALERTED
        assert "serial_not_found" in capsys.readouterr().out

    def test_strict_policy_records_error(self) -> None:
        policy = DebouncePolicy(occurrences_before_action=1, strict_serial_required=True)
        harness = Harness(serials={}, policy=policy)

        result = harness.run(make_device("B", connected=False))

        assert len(result.errors) == 1
        assert "B" in result.errors[0]
        assert [a.message for a in result.alerts] == ["🚨 B is disconnected (count: 1)"]

    def test_unreadable_lookup_blocks_remediation_only(self) -> None:
        harness = Harness(policy=DebouncePolicy(occurrences_before_action=1))

        def broken_lookup() -> SerialLookup:
            raise SerialLookupError("Serial mapping file not found: launchpads.csv")

        cycle = MonitorCycle(
            source=StaticSource([make_device("A", connected=False)]),
            store=harness.store,
            load_lookup=broken_lookup,
            batcher=RemediationBatcher(harness.gateway),
            policy=harness.policy,
        )
        result = cycle.run()

        assert len(result.alerts) == 1
        assert result.queued == []
        assert any("not found" in e for e in result.errors)
        assert harness.gateway.calls == []


class TestBatching:
    """One deduplicated gateway call per cycle."""

    def test_gateway_called_once_for_many_devices(self, harness: Harness) -> None:
        policy = DebouncePolicy(occurrences_before_action=1)
        harness.policy = policy

        result = harness.run(
            make_device("A", connected=False),
            make_device("B", connected=True, docked=0),
            make_device("C", connected=True, docked=4),
        )

        assert harness.gateway.calls == [["SER-A", "SER-B"]]
        assert result.device_count == 3

    def test_same_serial_for_two_devices_sent_once(self) -> None:
        harness = Harness(
            serials={"A": "SHARED", "A2": "SHARED"},
            policy=DebouncePolicy(occurrences_before_action=1),
        )

        result = harness.run(make_device("A", connected=False), make_device("A2", connected=False))

        assert harness.gateway.calls == [["SHARED"]]
        assert len(result.queued) == 2

    def test_healthy_fleet_makes_no_gateway_call(self, harness: Harness) -> None:
        result = harness.run(make_device("A"), make_device("B"))

        assert result.status is CycleStatus.HEALTHY
        assert result.alerts == []
        assert harness.gateway.calls == []

    def test_below_threshold_makes_no_gateway_call(self, harness: Harness) -> None:
        gateway = MagicMock()
        cycle = MonitorCycle(
            source=StaticSource([make_device("A", connected=False)]),
            store=harness.store,
            load_lookup=lambda: SerialLookup({"A": "SER-A"}),
            batcher=RemediationBatcher(gateway),
        )

        cycle.run()

        gateway.bulk_soft_reset.assert_not_called()

    def test_gateway_failure_keeps_remediated_flag(self, harness: Harness) -> None:
        """Failed submissions are not rolled back; the streak stays remediated."""
        gateway = MagicMock()
        gateway.bulk_soft_reset.side_effect = GatewayError(message="Bulk soft reset returned 503")
        harness.policy = DebouncePolicy(occurrences_before_action=1)
        cycle = MonitorCycle(
            source=StaticSource([make_device("A", connected=False)]),
            store=harness.store,
            load_lookup=lambda: SerialLookup({"A": "SER-A"}),
            batcher=RemediationBatcher(gateway),
            policy=harness.policy,
        )

        result = cycle.run()

        assert result.remediation_error == "Bulk soft reset returned 503"
        assert result.status is CycleStatus.ALERTED
        assert harness.store.get("A", NO_HUB) == DebounceRecord(1, True)


class TestStoreFailures:
    """Debounce store errors isolate the affected key."""

    def test_read_failure_alerts_without_remediating(self, harness: Harness) -> None:
        harness.policy = DebouncePolicy(occurrences_before_action=1)
        original_get = harness.store.get

        def flaky_get(device, condition):
            if device == "A":
                raise DebounceStoreError(device, condition, "read failed: I/O error")
            return original_get(device, condition)

        harness.store.get = flaky_get

        result = harness.run(make_device("A", connected=False), make_device("B", connected=False))

        assert [(a.device, a.count) for a in result.alerts] == [("A", None), ("B", 1)]
        assert "🚨 A is disconnected (count: unknown)" in [a.message for a in result.alerts]
        assert harness.gateway.calls == [["SER-B"]]
        assert any("'A'" in e for e in result.errors)

    def test_write_failure_does_not_queue(self, harness: Harness) -> None:
        """A remediation is only sent once its flag is durably recorded."""
        harness.policy = DebouncePolicy(occurrences_before_action=1)

        def failing_put(device, condition, record):
            raise DebounceStoreError(device, condition, "write failed: disk full")

        harness.store.put = failing_put

        result = harness.run(make_device("A", connected=False))

        assert len(result.alerts) == 1
        assert result.queued == []
        assert harness.gateway.calls == []
        assert len(result.errors) == 1


class TestSetupFailures:
    """Fatal errors abort before any state is touched."""

    def test_no_connectivity(self, harness: Harness) -> None:
        harness.source.devices = [make_device("A", connected=False)]
        cycle = harness.cycle(connectivity_check=lambda: False)

        with pytest.raises(ConnectivityError, match="No internet connection detected"):
            cycle.run()

        assert harness.source.calls == 0
        assert harness.store.writes == []

    def test_snapshot_failure(self, harness: Harness) -> None:
        source = MagicMock()
        source.fetch_devices.side_effect = SnapshotError(message="GroundControl returned 503")
        cycle = MonitorCycle(
            source=source,
            store=harness.store,
            load_lookup=lambda: SerialLookup(),
            batcher=RemediationBatcher(harness.gateway),
        )

        with pytest.raises(SnapshotError):
            cycle.run()

        assert harness.store.writes == []
        assert harness.gateway.calls == []


class TestDryRun:
    """Dry runs evaluate and report without side effects."""

    def test_no_writes_and_no_gateway(self, harness: Harness) -> None:
        harness.store.put("A", NO_HUB, DebounceRecord(1, False))
        harness.store.writes.clear()

        result = harness.run(make_device("A", connected=False), dry_run=True)

        assert result.dry_run is True
        assert result.serials == ["SER-A"]
        assert harness.gateway.calls == []
        assert harness.store.writes == []
        assert harness.store.get("A", NO_HUB) == DebounceRecord(1, False)


class TestClose:
    def test_close_releases_source(self) -> None:
        source = MagicMock()
        cycle = MonitorCycle(
            source=source,
            store=MemoryDebounceStore(),
            load_lookup=SerialLookup,
            batcher=RemediationBatcher(RecordingGateway()),
        )

        cycle.close()

        source.close.assert_called_once()
