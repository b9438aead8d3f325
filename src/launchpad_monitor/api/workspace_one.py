"""Workspace ONE UEM client: the remediation gateway.

Issues one bulk soft reset per cycle, addressing devices by serial number.
"""

from __future__ import annotations

from typing import Any, Optional, Sequence

import httpx
import structlog

from launchpad_monitor.models import BulkResult

from .auth import TokenProvider
from .exceptions import AuthenticationError, GatewayError
from .session import create_http_client, create_retry_decorator

logger = structlog.get_logger(__name__)

BULK_COMMAND_PATH = "/api/mdm/devices/commands/bulk"


def _as_count(value: Any) -> Optional[int]:
    """Item counts arrive as ints or numeric strings; anything else is missing."""
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, str) and value.strip().isdigit():
        return int(value.strip())
    return None


def parse_bulk_response(data: Any) -> BulkResult:
    """Extract TotalItems/AcceptedItems/FailedItems from a bulk command response."""
    if not isinstance(data, dict):
        return BulkResult()
    return BulkResult(
        total_items=_as_count(data.get("TotalItems")),
        accepted_items=_as_count(data.get("AcceptedItems")),
        failed_items=_as_count(data.get("FailedItems")),
    )


class WorkspaceOneClient:
    """Sends bulk device commands to Workspace ONE.

    Attributes:
        env_url: API base URL of the Workspace ONE environment.
        tokens: Provider of bearer tokens.
    """

    def __init__(
        self,
        env_url: str,
        tokens: TokenProvider,
        timeout: float = 15.0,
        attempts: int = 1,
        transport: Optional[httpx.BaseTransport] = None,
    ) -> None:
        """Initialize the client.

        Args:
            env_url: API base URL (e.g. https://as1234.awmdm.com).
            tokens: TokenProvider used for the Authorization header.
            timeout: Request timeout in seconds.
            attempts: Attempts on transport errors; 1 sends the command once.
            transport: Optional transport override (used by tests).
        """
        self.env_url = env_url.rstrip("/")
        self.tokens = tokens
        self.timeout = timeout
        self._transport = transport
        self._retry = create_retry_decorator(attempts=attempts)

    def _post(self, client: httpx.Client, token: str, body: dict) -> httpx.Response:
        return client.post(
            f"{self.env_url}{BULK_COMMAND_PATH}",
            params={"command": "Softreset", "searchby": "Serialnumber"},
            headers={
                "Authorization": f"Bearer {token}",
                "Accept": "application/json",
                "Content-Type": "application/json",
            },
            json=body,
        )

    def bulk_soft_reset(self, serials: Sequence[str]) -> BulkResult:
        """Soft reset every device in ``serials`` with a single request.

        The command is sent once. A 401 means it was not accepted; the cached
        token is dropped so the next cycle authenticates afresh.

        Args:
            serials: Distinct serial numbers, in submission order.

        Returns:
            BulkResult with the gateway's item accounting.

        Raises:
            ValueError: If serials is empty.
            AuthenticationError: No token could be obtained or it was rejected.
            GatewayError: Transport failure, error status or non-JSON response.
        """
        if not serials:
            raise ValueError("bulk_soft_reset requires at least one serial")

        body = {"BulkValues": {"Value": list(serials)}}
        send = self._retry(self._post)

        try:
            with create_http_client(self.timeout, transport=self._transport) as client:
                response = send(client, self.tokens.get_token(), body)
        except httpx.TimeoutException as e:
            raise GatewayError(
                message=f"Bulk soft reset timed out after {self.timeout}s",
                hint="The command may still have been delivered.",
            ) from e
        except httpx.RequestError as e:
            raise GatewayError(message=f"Bulk soft reset request failed: {e}") from e

        if response.status_code == 401:
            logger.warning("token_rejected", requested=len(serials))
            self.tokens.invalidate()
            raise AuthenticationError(
                message="Workspace ONE rejected the access token",
                hint="The cached token was dropped; the next cycle requests a new one.",
            )

        if response.status_code >= 400:
            raise GatewayError(
                message=f"Bulk soft reset returned {response.status_code} {response.reason_phrase}",
            )

        try:
            data = response.json()
        except ValueError as e:
            raise GatewayError(message=f"Bulk soft reset returned invalid JSON: {e}") from e

        result = parse_bulk_response(data)
        logger.info(
            "bulk_soft_reset_response",
            requested=len(serials),
            total_items=result.total_items,
            accepted_items=result.accepted_items,
            failed_items=result.failed_items,
        )
        return result
