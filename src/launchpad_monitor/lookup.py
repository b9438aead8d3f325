"""Read-only Launchpad name to serial number lookup.

The mapping lives in a two-column CSV (``DeviceFriendlyName,SerialNumber``)
maintained by a separate sync job. It is loaded once per cycle and never
written here.
"""

import csv
from pathlib import Path
from typing import Dict, Iterable, Optional, Tuple

import structlog

log = structlog.get_logger(__name__)

HEADER = ("DeviceFriendlyName", "SerialNumber")


class SerialLookupError(Exception):
    """Raised when the mapping file cannot be read."""

    pass


def _clean(value: str) -> str:
    return value.replace("\r", "").strip()


class SerialLookup:
    """Exact-match mapping of display name to hardware serial."""

    def __init__(self, entries: Optional[Dict[str, str]] = None) -> None:
        self._entries: Dict[str, str] = dict(entries or {})

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, name: object) -> bool:
        return name in self._entries

    def lookup(self, name: str) -> Optional[str]:
        """Serial for a display name, or None if unmapped."""
        return self._entries.get(name.strip())

    @classmethod
    def from_rows(cls, rows: Iterable[Tuple[str, ...]], source: str = "<rows>") -> "SerialLookup":
        """Build a lookup from CSV rows, skipping the header and invalid rows.

        Rows without both a name and a serial are rejected with a warning.
        When a name appears twice with different serials the first one wins.
        """
        entries: Dict[str, str] = {}
        for line_no, row in enumerate(rows, start=1):
            if not row or all(not _clean(cell) for cell in row):
                continue
            cells = tuple(_clean(cell) for cell in row)
            if line_no == 1 and cells[:2] == HEADER:
                continue
            if len(cells) < 2 or not cells[0] or not cells[1]:
                log.warning("serial_row_rejected", source=source, line=line_no, row=list(cells))
                continue

            name, serial = cells[0], cells[1]
            existing = entries.get(name)
            if existing is not None and existing != serial:
                log.warning(
                    "serial_duplicate_name",
                    source=source,
                    line=line_no,
                    device=name,
                    kept=existing,
                    ignored=serial,
                )
                continue
            entries[name] = serial

        return cls(entries)

    @classmethod
    def load(cls, path: Path) -> "SerialLookup":
        """Load the mapping file.

        Raises:
            SerialLookupError: If the file is missing or unreadable
        """
        try:
            with open(path, newline="", encoding="utf-8-sig") as f:
                lookup = cls.from_rows(csv.reader(f), source=str(path))
        except FileNotFoundError as e:
            raise SerialLookupError(f"Serial mapping file not found: {path}") from e
        except (OSError, UnicodeDecodeError, csv.Error) as e:
            raise SerialLookupError(f"Cannot read serial mapping file {path}: {e}") from e

        log.debug("serial_lookup_loaded", path=str(path), entries=len(lookup))
        return lookup
