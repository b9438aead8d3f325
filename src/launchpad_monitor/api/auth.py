"""Workspace ONE OAuth client-credentials token provider.

This module handles:
- Requesting access tokens from the Workspace ONE token endpoint
- Caching the token on disk so per-minute cycles reuse it
- Invalidating the cache when the gateway rejects a token
"""

import json
import shutil
import tempfile
import time
from pathlib import Path
from typing import Any, Callable, Dict, Optional

import httpx
import structlog

from .exceptions import AuthenticationError
from .session import create_http_client

logger = structlog.get_logger(__name__)


class TokenProvider:
    """Returns a usable bearer token, fetching a new one when the cache is stale.

    The cache file holds the token response plus the time it was fetched.
    A cached token is reused while younger than ``lifetime_seconds`` or the
    server's ``expires_in``, whichever is shorter.
    """

    def __init__(
        self,
        token_url: str,
        client_id: str,
        client_secret: str,
        cache_path: Optional[Path] = None,
        lifetime_seconds: int = 3600,
        timeout: float = 15.0,
        transport: Optional[httpx.BaseTransport] = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.token_url = token_url
        self.client_id = client_id
        self.client_secret = client_secret
        self.cache_path = cache_path
        self.lifetime_seconds = lifetime_seconds
        self.timeout = timeout
        self._transport = transport
        self._clock = clock

    def get_token(self) -> str:
        """Return a cached token if still valid, otherwise request a new one.

        Raises:
            AuthenticationError: The token endpoint failed or returned no token.
        """
        cached = self._read_cache()
        if cached is not None:
            logger.debug("token_cache_hit")
            return cached

        return self._request_token()

    def invalidate(self) -> None:
        """Drop the cached token so the next call fetches a fresh one."""
        if self.cache_path is not None:
            self.cache_path.unlink(missing_ok=True)
            logger.info("token_cache_invalidated")

    def _read_cache(self) -> Optional[str]:
        if self.cache_path is None or not self.cache_path.exists():
            return None

        try:
            data = json.loads(self.cache_path.read_text(encoding="utf-8"))
            token = data["access_token"]
            fetched_at = float(data["fetched_at"])
        except (OSError, json.JSONDecodeError, KeyError, TypeError, ValueError) as e:
            logger.warning("token_cache_unreadable", path=str(self.cache_path), error=str(e))
            return None

        if not isinstance(token, str) or not token:
            return None

        lifetime = float(self.lifetime_seconds)
        expires_in = data.get("expires_in")
        if isinstance(expires_in, (int, float)) and expires_in > 0:
            lifetime = min(lifetime, float(expires_in))

        age = self._clock() - fetched_at
        if age < 0 or age >= lifetime:
            logger.debug("token_cache_expired", age_seconds=int(age))
            return None
        return token

    def _request_token(self) -> str:
        logger.info("requesting_access_token", token_url=self.token_url)

        try:
            with create_http_client(self.timeout, transport=self._transport) as client:
                response = client.post(
                    self.token_url,
                    data={
                        "grant_type": "client_credentials",
                        "client_id": self.client_id,
                        "client_secret": self.client_secret,
                    },
                )
        except httpx.RequestError as e:
            raise AuthenticationError(
                message=f"Token request failed: {e}",
                hint="Check connectivity to the Workspace ONE token endpoint.",
            ) from e

        if response.status_code >= 400:
            detail = ""
            try:
                detail = response.json().get("error", "")
            except (ValueError, AttributeError):
                pass
            message = f"Token request rejected with status {response.status_code}"
            if detail:
                message = f"{message}: {detail}"
            raise AuthenticationError(message=message)

        try:
            payload: Dict[str, Any] = response.json()
            token = payload["access_token"]
        except (ValueError, KeyError, TypeError) as e:
            raise AuthenticationError(message="Token response did not contain an access_token") from e

        if not isinstance(token, str) or not token:
            raise AuthenticationError(message="Token response contained an empty access_token")

        self._write_cache(payload)
        logger.info("access_token_obtained", expires_in=payload.get("expires_in"))
        return token

    def _write_cache(self, payload: Dict[str, Any]) -> None:
        """Persist the token response; a cache write failure is not fatal."""
        if self.cache_path is None:
            return

        content = json.dumps({**payload, "fetched_at": self._clock()})
        cache_dir = self.cache_path.parent
        try:
            cache_dir.mkdir(parents=True, exist_ok=True)
            # mkstemp creates the file 0600, which the rename preserves
            temp_fd, temp_path = tempfile.mkstemp(dir=cache_dir, prefix=".tmp-token-", suffix=".json")
        except OSError as e:
            logger.warning("token_cache_write_failed", path=str(self.cache_path), error=str(e))
            return

        try:
            with open(temp_fd, "w", encoding="utf-8") as f:
                f.write(content)
            shutil.move(temp_path, self.cache_path)
        except OSError as e:
            Path(temp_path).unlink(missing_ok=True)
            logger.warning("token_cache_write_failed", path=str(self.cache_path), error=str(e))
