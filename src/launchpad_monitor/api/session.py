"""HTTP session helpers: bounded-timeout clients and retry policy.

Example usage:
    from launchpad_monitor.api.session import create_retry_decorator

    retry = create_retry_decorator(attempts=3)

    @retry
    def send():
        return client.post(url, json=body)
"""

import logging
from typing import Any, Callable, Optional

import httpx
import structlog
from tenacity import (
    before_sleep_log,
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from launchpad_monitor import __version__

logger = structlog.get_logger(__name__)

USER_AGENT = f"launchpad-monitor/{__version__}"


def create_retry_decorator(
    attempts: int = 1,
    min_wait: float = 1,
    max_wait: float = 10,
    log_level: int = logging.WARNING,
) -> Callable[[Callable[..., Any]], Callable[..., Any]]:
    """Create a tenacity retry decorator with exponential backoff.

    Only transport failures (connect errors and timeouts) are retried;
    HTTP error responses are returned to the caller untouched.

    Args:
        attempts: Total attempts including the first (1 disables retrying).
        min_wait: Minimum wait time in seconds between attempts.
        max_wait: Maximum wait time in seconds between attempts.
        log_level: Log level for retry attempt messages.

    Returns:
        A tenacity retry decorator.
    """
    stdlib_logger = logging.getLogger(__name__)

    return retry(
        stop=stop_after_attempt(attempts),
        wait=wait_exponential(multiplier=1, min=min_wait, max=max_wait),
        retry=retry_if_exception_type((httpx.ConnectError, httpx.TimeoutException)),
        before_sleep=before_sleep_log(stdlib_logger, log_level),
        reraise=True,
    )


def create_http_client(
    timeout: float,
    transport: Optional[httpx.BaseTransport] = None,
) -> httpx.Client:
    """Build an httpx client with the monitor's timeout and user agent."""
    return httpx.Client(
        timeout=timeout,
        headers={"User-Agent": USER_AGENT},
        transport=transport,
    )


def check_connectivity(
    url: str,
    timeout: float = 5.0,
    transport: Optional[httpx.BaseTransport] = None,
) -> bool:
    """Probe a well-known URL to confirm the host is online.

    Any HTTP response, whatever its status, counts as connected.

    Args:
        url: URL to probe with a HEAD request.
        timeout: Probe timeout in seconds.
        transport: Optional transport override (used by tests).

    Returns:
        True if the URL answered, False on any transport error.
    """
    try:
        with create_http_client(timeout, transport=transport) as client:
            response = client.head(url)
    except httpx.RequestError as e:
        logger.warning("connectivity_check_failed", url=url, error=str(e))
        return False

    logger.debug("connectivity_ok", url=url, status_code=response.status_code)
    return True
