"""
Status Backend Client

Async client for the ranking/status backend (MCP server) that owns the
Google Search Console OAuth connection.

Usage:
    client = StatusClient(base_url="https://api.seobandwagon.dev")

    status = await client.get_auth_status("user@example.com")
    # status = {"connected": True, "sites": [...]}

    await client.close()
"""

import logging
from typing import Any, Dict, Optional

import httpx

logger = logging.getLogger(__name__)


class StatusClientError(Exception):
    """Raised when the status backend cannot be reached or returns bad data."""

    def __init__(self, message: str, status_code: int = None):
        super().__init__(message)
        self.status_code = status_code


class StatusClient:
    """
    Thin async wrapper over the status backend.

    Timeouts and network failures surface as StatusClientError; the
    backend's JSON body is returned as-is whatever its status code.
    """

    def __init__(
        self,
        base_url: str,
        timeout: float = 10.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """
        Initialize status client.

        Args:
            base_url: Backend base URL (no trailing slash needed)
            timeout: Request timeout in seconds
            transport: Custom httpx transport (tests use httpx.MockTransport)
        """
        self.base_url = base_url.rstrip("/")
        self._client = httpx.AsyncClient(
            base_url=self.base_url,
            timeout=httpx.Timeout(timeout),
            transport=transport,
        )
        self._closed = False

    async def get_auth_status(self, email: str) -> Any:
        """
        Ask the backend whether this email has a connected Search Console account.

        Returns:
            Parsed JSON body of GET /auth/status?email=<email>

        Raises:
            StatusClientError: On network failure, timeout or a non-JSON body
        """
        if self._closed:
            raise StatusClientError("Client has been closed")

        try:
            response = await self._client.get("/auth/status", params={"email": email})
        except httpx.HTTPError as e:
            raise StatusClientError(f"Status backend request failed: {e}")

        if response.status_code >= 400:
            logger.warning(f"Status backend returned {response.status_code} for /auth/status")

        try:
            return response.json()
        except ValueError as e:
            raise StatusClientError(
                f"Status backend returned invalid JSON: {e}",
                status_code=response.status_code,
            )

    async def close(self):
        """Close the underlying HTTP client."""
        if not self._closed:
            await self._client.aclose()
            self._closed = True

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()


def create_status_client(settings=None) -> StatusClient:
    """Build a client from application settings."""
    from src.utils.config import get_settings

    settings = settings or get_settings()
    return StatusClient(
        base_url=settings.status_base_url,
        timeout=settings.STATUS_TIMEOUT,
    )
