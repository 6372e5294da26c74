"""
Authentication Module

Session resolution and the dashboard route gate.

Session strategies (SESSION_STRATEGY):
- database: session cookie looked up in the sessions table (default)
- jwt:      session cookie is a JWT signed with AUTH_SECRET
- cookie:   presence-only check, no identity

Usage:
    # Gate dashboard pages
    app.add_middleware(RouteGateMiddleware, resolver=build_session_resolver())

    # Endpoints that need a signed-in user
    @router.get("/history")
    def history(session: UserSession = Depends(get_current_user_session)):
        ...
"""

from .config import AuthConfig, get_auth_config
from .jwt import verify_session_token, extract_user_info, JWTError
from .models import User, SessionRecord, UserSession
from .resolver import (
    SessionResolver,
    CookiePresenceResolver,
    JWTSessionResolver,
    DatabaseSessionResolver,
    build_session_resolver,
    get_session_token,
    resolve_session,
)
from .middleware import (
    RouteGateMiddleware,
    EXCLUDED_PATH_PATTERN,
    PROTECTED_PREFIXES,
    is_excluded,
    is_protected,
    build_signin_redirect,
)
from .dependencies import (
    get_session_resolver,
    get_current_session_optional,
    get_current_user_session,
    require_session_email,
)

__all__ = [
    # Config
    "AuthConfig",
    "get_auth_config",
    # JWT validation
    "verify_session_token",
    "extract_user_info",
    "JWTError",
    # Models
    "User",
    "SessionRecord",
    "UserSession",
    # Resolution
    "SessionResolver",
    "CookiePresenceResolver",
    "JWTSessionResolver",
    "DatabaseSessionResolver",
    "build_session_resolver",
    "get_session_token",
    "resolve_session",
    # Route gate
    "RouteGateMiddleware",
    "EXCLUDED_PATH_PATTERN",
    "PROTECTED_PREFIXES",
    "is_excluded",
    "is_protected",
    "build_signin_redirect",
    # FastAPI dependencies
    "get_session_resolver",
    "get_current_session_optional",
    "get_current_user_session",
    "require_session_email",
]
