"""
FastAPI Authentication Dependencies

Provides dependency injection for session resolution in API handlers.
The resolver lives on app.state, so tests can build the app with a fake.
"""

import logging
from typing import Optional

from fastapi import Depends, HTTPException, Request, status

from src.auth.models import UserSession
from src.auth.resolver import SessionResolver, resolve_session

logger = logging.getLogger(__name__)


def get_session_resolver(request: Request) -> SessionResolver:
    """The resolver the application was built with."""
    return request.app.state.session_resolver


def get_current_session_optional(
    request: Request,
    resolver: SessionResolver = Depends(get_session_resolver),
) -> Optional[UserSession]:
    """
    Get the caller's session if signed in, None otherwise.

    Reuses the session the route gate already resolved for this request.
    """
    session = getattr(request.state, "session", None)
    if session is not None:
        return session
    return resolve_session(resolver, request)


def get_current_user_session(
    session: Optional[UserSession] = Depends(get_current_session_optional),
) -> UserSession:
    """
    Require a session that identifies a user.

    Raises:
        HTTPException 401: If not signed in or the session has no user id
    """
    if session is None or not session.user_id:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Unauthorized",
        )
    return session


def require_session_email(
    session: Optional[UserSession] = Depends(get_current_session_optional),
) -> UserSession:
    """
    Require a session that carries an email address.

    Raises:
        HTTPException 401: If not signed in or the session has no email
    """
    if session is None or not session.email:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
        )
    return session
