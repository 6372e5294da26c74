"""
External API Integrations

- Status backend: Search Console connection status for signed-in users
"""

from .status_client import StatusClient, StatusClientError, create_status_client

__all__ = [
    "StatusClient",
    "StatusClientError",
    "create_status_client",
]
