"""Custom exceptions for Launchpad Monitor API operations.

All exceptions inherit from LaunchpadMonitorError for consistent error
handling. Each exception carries a hint for the operator.
"""

from typing import Optional


class LaunchpadMonitorError(Exception):
    """Base exception for all collaborator errors.

    Attributes:
        message: Human-readable error message.
        hint: Optional troubleshooting hint.
        exit_code: Suggested exit code for the CLI.
    """

    exit_code: int = 1

    def __init__(
        self,
        message: str,
        hint: Optional[str] = None,
        exit_code: Optional[int] = None,
    ) -> None:
        self.message = message
        self.hint = hint
        if exit_code is not None:
            self.exit_code = exit_code
        super().__init__(self._format_message())

    def _format_message(self) -> str:
        """Format the exception message with optional hint."""
        if self.hint:
            return f"{self.message}\n\nHint: {self.hint}"
        return self.message


class SetupError(LaunchpadMonitorError):
    """A precondition for the cycle failed; nothing was evaluated."""

    exit_code: int = 2


class ConnectivityError(SetupError):
    """The host has no usable network connection."""

    def __init__(
        self,
        message: str = "No internet connection detected",
        hint: Optional[str] = None,
    ) -> None:
        if hint is None:
            hint = "Check the network link of the monitoring host."
        super().__init__(message=message, hint=hint)


class SnapshotError(SetupError):
    """The GroundControl device list could not be fetched or decoded.

    This typically occurs when:
    - GroundControl is unreachable or times out
    - The API key in the URL is wrong or revoked
    - A Launchpad record is missing a required field
    """

    def __init__(
        self,
        message: str = "Failed to fetch data from GroundControl",
        hint: Optional[str] = None,
    ) -> None:
        if hint is None:
            hint = "Verify groundcontrol_url, including its api_key parameter."
        super().__init__(message=message, hint=hint)


class AuthenticationError(LaunchpadMonitorError):
    """Workspace ONE did not issue or accept an access token."""

    exit_code: int = 3

    def __init__(
        self,
        message: str = "Workspace ONE authentication failed",
        hint: Optional[str] = None,
    ) -> None:
        if hint is None:
            hint = (
                "Check ws1_client_id and ws1_client_secret, and that the OAuth "
                "client has the device command role."
            )
        super().__init__(message=message, hint=hint, exit_code=3)


class GatewayError(LaunchpadMonitorError):
    """The bulk soft reset request failed or returned an unusable response."""

    pass
