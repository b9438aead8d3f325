"""Clients for the external collaborators of a monitoring cycle.

- GroundControlClient: Launchpad snapshot source
- TokenProvider: Workspace ONE OAuth tokens with an on-disk cache
- WorkspaceOneClient: bulk soft reset gateway
"""

from launchpad_monitor.api.auth import TokenProvider
from launchpad_monitor.api.exceptions import (
    AuthenticationError,
    ConnectivityError,
    GatewayError,
    LaunchpadMonitorError,
    SetupError,
    SnapshotError,
)
from launchpad_monitor.api.groundcontrol import GroundControlClient, in_scope
from launchpad_monitor.api.session import (
    check_connectivity,
    create_http_client,
    create_retry_decorator,
)
from launchpad_monitor.api.workspace_one import WorkspaceOneClient, parse_bulk_response

__all__ = [
    # Clients
    "GroundControlClient",
    "TokenProvider",
    "WorkspaceOneClient",
    # Exceptions
    "AuthenticationError",
    "ConnectivityError",
    "GatewayError",
    "LaunchpadMonitorError",
    "SetupError",
    "SnapshotError",
    # Helpers
    "check_connectivity",
    "create_http_client",
    "create_retry_decorator",
    "in_scope",
    "parse_bulk_response",
]
