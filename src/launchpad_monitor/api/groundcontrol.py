"""GroundControl client: the per-cycle Launchpad snapshot source.

Example usage:
    with GroundControlClient(url, scope_email="svc@example.org") as client:
        devices = client.fetch_devices()
"""

from __future__ import annotations

import json
from typing import Any, Dict, List, Optional

import httpx
import structlog
from pydantic import ValidationError

from launchpad_monitor.models import DeviceSnapshot

from .exceptions import SnapshotError
from .session import create_http_client

logger = structlog.get_logger(__name__)


def in_scope(record: Dict[str, Any], scope_email: str) -> bool:
    """True if the account appears anywhere in the record.

    GroundControl has no owner filter on the list endpoint, so ownership
    is matched against the serialized record. An empty scope matches all.
    """
    if not scope_email:
        return True
    return scope_email in json.dumps(record, ensure_ascii=False, default=str)


class GroundControlClient:
    """Fetches and decodes the Launchpad list for one cycle."""

    def __init__(
        self,
        url: str,
        scope_email: str = "",
        timeout: float = 15.0,
        transport: Optional[httpx.BaseTransport] = None,
    ) -> None:
        """Initialize the client.

        Args:
            url: Full launchpads endpoint, including the api_key parameter.
            scope_email: Ownership scope; records not mentioning it are ignored.
            timeout: Request timeout in seconds.
            transport: Optional transport override (used by tests).
        """
        self.url = url
        self.scope_email = scope_email
        self.timeout = timeout
        self._transport = transport
        self._http_client: Optional[httpx.Client] = None

    @property
    def http_client(self) -> httpx.Client:
        """Lazy-initialize HTTP client."""
        if self._http_client is None:
            self._http_client = create_http_client(self.timeout, transport=self._transport)
        return self._http_client

    def close(self) -> None:
        """Close HTTP client and release resources."""
        if self._http_client is not None:
            self._http_client.close()
            self._http_client = None

    def __enter__(self) -> "GroundControlClient":
        return self

    def __exit__(self, *args: Any) -> None:
        self.close()

    def fetch_raw(self) -> List[Dict[str, Any]]:
        """Fetch the unfiltered Launchpad records.

        Raises:
            SnapshotError: Network failure, timeout, error status or a
                payload that is not a JSON list of objects.
        """
        try:
            response = self.http_client.get(self.url, headers={"accept": "application/json"})
        except httpx.TimeoutException as e:
            raise SnapshotError(
                message=f"GroundControl request timed out after {self.timeout}s",
            ) from e
        except httpx.RequestError as e:
            raise SnapshotError(message=f"GroundControl request failed: {e}") from e

        if response.status_code >= 400:
            raise SnapshotError(
                message=f"GroundControl returned {response.status_code} {response.reason_phrase}",
            )

        try:
            data = response.json()
        except ValueError as e:
            raise SnapshotError(message=f"GroundControl returned invalid JSON: {e}") from e

        if not isinstance(data, list) or not all(isinstance(item, dict) for item in data):
            raise SnapshotError(
                message="GroundControl returned an unexpected payload",
                hint="Expected a JSON array of Launchpad objects.",
            )

        logger.debug("launchpads_retrieved", count=len(data))
        return data

    def fetch_devices(self) -> List[DeviceSnapshot]:
        """Fetch the in-scope Launchpads as typed snapshots.

        Decoding is all-or-nothing: one invalid record or a duplicated name
        fails the whole snapshot so no cycle runs against partial data.

        Raises:
            SnapshotError: If the fetch fails or any record is invalid.
        """
        raw = self.fetch_raw()
        records = [r for r in raw if in_scope(r, self.scope_email)]

        devices: List[DeviceSnapshot] = []
        seen: set[str] = set()
        for index, record in enumerate(records):
            try:
                device = DeviceSnapshot.from_api_response(record)
            except ValidationError as e:
                label = record.get("name", f"#{index}")
                raise SnapshotError(
                    message=f"Invalid Launchpad record {label}: {e.error_count()} error(s)",
                    hint=str(e),
                ) from e
            if device.name in seen:
                raise SnapshotError(
                    message=f"Launchpad name '{device.name}' appears more than once",
                    hint="Names key the debounce state and must be unique.",
                )
            seen.add(device.name)
            devices.append(device)

        logger.info("launchpads_in_scope", count=len(devices), total=len(raw))
        return devices
