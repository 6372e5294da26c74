"""
Google Search Console API

Endpoints:
- GET /api/gsc/status   - Proxy the connection status from the status backend
- GET /api/gsc/callback - Land the browser after the OAuth flow completes

The OAuth exchange itself happens on the status backend; this service only
relays status and redirects back into the dashboard.
"""

import logging
from typing import Optional
from urllib.parse import urlencode

from fastapi import APIRouter, Depends, Query, Request
from fastapi.responses import JSONResponse, RedirectResponse

from src.auth.config import AuthConfig, get_auth_config
from src.auth.dependencies import get_current_session_optional, require_session_email
from src.auth.models import UserSession
from src.integrations.status_client import StatusClient, StatusClientError

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/gsc", tags=["Search Console"])

CONNECTED_PATH = "/dashboard/search-console"
FAILED_PATH = "/dashboard"


def get_status_client(request: Request) -> StatusClient:
    """The status backend client the application was built with."""
    return request.app.state.status_client


def _redirect(request: Request, path: str, params: dict) -> RedirectResponse:
    target = request.url.replace(path=path, query=urlencode(params), fragment="")
    return RedirectResponse(str(target), status_code=307)


# =============================================================================
# ENDPOINTS
# =============================================================================

@router.get("/status")
async def gsc_status(
    session: UserSession = Depends(require_session_email),
    client: StatusClient = Depends(get_status_client),
):
    """
    Whether the signed-in user has connected Search Console.

    Relays the backend's JSON body unchanged.
    """
    try:
        return await client.get_auth_status(session.email)
    except StatusClientError as e:
        logger.error(f"GSC status check failed: {e}")
        return JSONResponse(status_code=500, content={"error": "Failed to check status"})


@router.get("/callback")
def gsc_callback(
    request: Request,
    email: Optional[str] = Query(None),
    session: Optional[UserSession] = Depends(get_current_session_optional),
    config: AuthConfig = Depends(get_auth_config),
):
    """
    OAuth landing redirect.

    The email parameter comes from the backend redirect and is not verified.
    With GSC_CALLBACK_REQUIRE_SESSION on, it must match the signed-in user.
    """
    email = (email or "").strip()
    if not email:
        return _redirect(request, FAILED_PATH, {"error": "oauth_failed"})

    if config.gsc_callback_require_session:
        session_email = session.email if session else None
        if not session_email or session_email.lower() != email.lower():
            logger.warning("GSC callback email does not match the signed-in user")
            return _redirect(request, FAILED_PATH, {"error": "oauth_failed"})
    else:
        logger.warning(f"GSC connected for unverified email {email}")

    return _redirect(request, CONNECTED_PATH, {"connected": "true"})
