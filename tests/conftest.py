"""Shared fixtures and in-memory collaborators for monitor tests."""

from typing import Dict, List, Optional, Sequence, Tuple

import pytest

from launchpad_monitor.models import BulkResult, ConditionKind, DebounceRecord, DeviceSnapshot


def make_device(
    name: str = "LP-01",
    connected: bool = True,
    docked: int = 2,
) -> DeviceSnapshot:
    """Build a snapshot the way GroundControl reports it."""
    return DeviceSnapshot.from_api_response(
        {
            "name": name,
            "connected": connected,
            "connectedDeviceCount": docked,
        }
    )


class MemoryDebounceStore:
    """Dict-backed debounce store that records every write."""

    def __init__(self) -> None:
        self.records: Dict[Tuple[str, ConditionKind], DebounceRecord] = {}
        self.writes: List[Tuple[str, str, ConditionKind]] = []

    def get(self, device: str, condition: ConditionKind) -> Optional[DebounceRecord]:
        return self.records.get((device, condition))

    def put(self, device: str, condition: ConditionKind, record: DebounceRecord) -> None:
        self.writes.append(("put", device, condition))
        self.records[(device, condition)] = record

    def clear(self, device: str, condition: ConditionKind) -> None:
        self.writes.append(("clear", device, condition))
        self.records.pop((device, condition), None)


class StaticSource:
    """Snapshot source returning whatever the test sets on ``devices``."""

    def __init__(self, devices: Optional[List[DeviceSnapshot]] = None) -> None:
        self.devices = devices or []
        self.calls = 0

    def fetch_devices(self) -> List[DeviceSnapshot]:
        self.calls += 1
        return list(self.devices)


class RecordingGateway:
    """Remediation gateway that records each bulk call."""

    def __init__(self, result: Optional[BulkResult] = None) -> None:
        self.calls: List[List[str]] = []
        self.result = result

    def bulk_soft_reset(self, serials: Sequence[str]) -> BulkResult:
        self.calls.append(list(serials))
        if self.result is not None:
            return self.result
        return BulkResult(
            total_items=len(serials),
            accepted_items=len(serials),
            failed_items=0,
        )


@pytest.fixture
def store() -> MemoryDebounceStore:
    return MemoryDebounceStore()


@pytest.fixture
def gateway() -> RecordingGateway:
    return RecordingGateway()
