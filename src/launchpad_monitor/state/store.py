"""Debounce state persistence with atomic writes for crash-safe updates."""

import hashlib
import json
import re
import shutil
import tempfile
from pathlib import Path
from typing import Optional, Protocol

import structlog

from launchpad_monitor.models import ConditionKind, DebounceRecord

log = structlog.get_logger()

SCHEMA_VERSION = "1.0"

_UNSAFE_CHARS = re.compile(r"[^A-Za-z0-9._-]+")


class DebounceStoreError(Exception):
    """Raised when a debounce record cannot be read or persisted."""

    def __init__(self, device: str, condition: ConditionKind, reason: str) -> None:
        self.device = device
        self.condition = condition
        self.reason = reason
        super().__init__(
            f"Debounce state for '{device}' ({condition.value}) unavailable: {reason}"
        )


class DebounceStore(Protocol):
    """Keyed store of debounce records, keyed by (device name, condition)."""

    def get(self, device: str, condition: ConditionKind) -> Optional[DebounceRecord]: ...

    def put(self, device: str, condition: ConditionKind, record: DebounceRecord) -> None: ...

    def clear(self, device: str, condition: ConditionKind) -> None: ...


class FileDebounceStore:
    """One JSON file per (device, condition) key.

    The counter and the remediated flag live in the same file and are
    replaced together via temp file + rename, so an interrupted cycle never
    leaves one updated without the other.
    """

    def __init__(self, state_dir: str) -> None:
        """Initialize the store.

        Args:
            state_dir: Directory holding the record files
        """
        self.state_dir = Path(state_dir)

    def path_for(self, device: str, condition: ConditionKind) -> Path:
        """File path for a key.

        The readable prefix is sanitized; the hash suffix keeps names that
        sanitize identically (``"LP 1"`` and ``"LP/1"``) apart.
        """
        safe = _UNSAFE_CHARS.sub("_", device).strip("_") or "device"
        digest = hashlib.sha1(device.encode("utf-8")).hexdigest()[:10]
        return self.state_dir / f"{safe[:64]}-{digest}.{condition.value}.json"

    def get(self, device: str, condition: ConditionKind) -> Optional[DebounceRecord]:
        """Read the record for a key.

        Returns:
            The stored record, or None if there is none or the file is
            corrupt (a corrupt record is treated as a fresh streak).

        Raises:
            DebounceStoreError: If the file exists but cannot be read
        """
        path = self.path_for(device, condition)
        try:
            content = path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return None
        except OSError as e:
            raise DebounceStoreError(device, condition, f"read failed: {e}") from e

        try:
            data = json.loads(content)
            if data.get("device") not in (None, device):
                raise ValueError(f"record belongs to {data.get('device')!r}")
            count, remediated = data["occurrence_count"], data["remediated"]
            if isinstance(count, bool) or not isinstance(count, int) or not isinstance(remediated, bool):
                raise TypeError("occurrence_count/remediated have the wrong type")
            record = DebounceRecord(occurrence_count=count, remediated=remediated)
        except (json.JSONDecodeError, AttributeError, KeyError, TypeError, ValueError) as e:
            log.warning(
                "debounce_record_corrupted",
                path=str(path),
                device=device,
                condition=condition.value,
                error=str(e),
            )
            return None

        return record

    def put(self, device: str, condition: ConditionKind, record: DebounceRecord) -> None:
        """Replace the record for a key atomically.

        Raises:
            DebounceStoreError: If the record cannot be written
        """
        path = self.path_for(device, condition)
        content = json.dumps(
            {
                "device": device,
                "condition": condition.value,
                "occurrence_count": record.occurrence_count,
                "remediated": record.remediated,
                "schema_version": SCHEMA_VERSION,
            },
            indent=2,
        ) + "\n"

        try:
            self.state_dir.mkdir(parents=True, exist_ok=True)
            temp_fd, temp_path = tempfile.mkstemp(
                dir=self.state_dir,
                prefix=".tmp-state-",
                suffix=".json",
            )
        except OSError as e:
            raise DebounceStoreError(device, condition, f"write failed: {e}") from e

        try:
            with open(temp_fd, "w", encoding="utf-8") as f:
                f.write(content)
            shutil.move(temp_path, path)
        except OSError as e:
            Path(temp_path).unlink(missing_ok=True)
            log.error(
                "debounce_write_failed",
                path=str(path),
                device=device,
                condition=condition.value,
                error=str(e),
            )
            raise DebounceStoreError(device, condition, f"write failed: {e}") from e

        log.debug(
            "debounce_record_saved",
            device=device,
            condition=condition.value,
            count=record.occurrence_count,
            remediated=record.remediated,
        )

    def clear(self, device: str, condition: ConditionKind) -> None:
        """Delete the record for a key. Missing records are not an error.

        Raises:
            DebounceStoreError: If an existing record cannot be removed
        """
        path = self.path_for(device, condition)
        try:
            path.unlink()
        except FileNotFoundError:
            return
        except OSError as e:
            raise DebounceStoreError(device, condition, f"delete failed: {e}") from e

        log.info("debounce_record_cleared", device=device, condition=condition.value)
