"""Persistent per-device debounce state."""

from launchpad_monitor.state.store import (
    DebounceStore,
    DebounceStoreError,
    FileDebounceStore,
)

__all__ = ["DebounceStore", "DebounceStoreError", "FileDebounceStore"]
