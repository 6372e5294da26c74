"""
Session Resolution

Decides whether an incoming request carries a signed-in identity.

Three strategies, selected with SESSION_STRATEGY:
- cookie:   session cookie is present (no identity, no validation)
- jwt:      session token is a signed JWT
- database: session token is looked up in the sessions table

A missing, malformed or expired credential resolves to None. That is the
normal "signed out" outcome, not an error.
"""

import logging
from abc import ABC, abstractmethod
from datetime import datetime
from typing import Callable, Iterable, Optional

from sqlalchemy.orm import Session
from starlette.requests import HTTPConnection

from src.auth.config import AuthConfig, get_auth_config, SESSION_COOKIE_NAMES
from src.auth.jwt import verify_session_token, extract_user_info, JWTError
from src.auth.models import SessionRecord, User, UserSession
from src.database.session import get_session_factory, is_database_configured

logger = logging.getLogger(__name__)


def get_session_token(
    request: HTTPConnection,
    cookie_names: Iterable[str] = SESSION_COOKIE_NAMES,
) -> Optional[str]:
    """
    Pull the session token from the request.

    Session cookie first (Secure-prefixed name used in production), then an
    Authorization: Bearer header for programmatic callers.
    """
    for name in cookie_names:
        token = request.cookies.get(name)
        if token:
            return token

    authorization = request.headers.get("Authorization", "")
    scheme, _, credentials = authorization.partition(" ")
    if scheme.lower() == "bearer" and credentials.strip():
        return credentials.strip()

    return None


class SessionResolver(ABC):
    """Resolves the caller's session from request credentials."""

    @abstractmethod
    def resolve(self, request: HTTPConnection) -> Optional[UserSession]:
        """Return the caller's session, or None if not signed in."""


class CookiePresenceResolver(SessionResolver):
    """
    Lightweight check: a session cookie exists.

    Does not validate the token, so the resulting session carries no identity.
    Real validation happens in handlers that need a user id or email.
    """

    def __init__(self, cookie_names: Iterable[str] = SESSION_COOKIE_NAMES):
        self.cookie_names = tuple(cookie_names)

    def resolve(self, request: HTTPConnection) -> Optional[UserSession]:
        if any(request.cookies.get(name) for name in self.cookie_names):
            return UserSession()
        return None


class JWTSessionResolver(SessionResolver):
    """Validates the session token as a signed JWT."""

    def __init__(self, config: AuthConfig):
        self.config = config

    def resolve(self, request: HTTPConnection) -> Optional[UserSession]:
        token = get_session_token(request, self.config.cookie_names)
        if not token:
            return None

        try:
            payload = verify_session_token(token, self.config)
        except JWTError as e:
            logger.debug(f"Session token rejected: {e}")
            return None

        info = extract_user_info(payload)
        return UserSession(
            user_id=info["id"],
            email=info["email"],
            name=info["name"],
            image=info["image"],
        )


class DatabaseSessionResolver(SessionResolver):
    """
    Looks the session token up in the sessions table.

    Database errors propagate; resolve_session() turns them into None.
    """

    def __init__(
        self,
        session_factory: Optional[Callable[[], Session]] = None,
        cookie_names: Iterable[str] = SESSION_COOKIE_NAMES,
    ):
        self._session_factory = session_factory
        self.cookie_names = tuple(cookie_names)

    def _get_factory(self) -> Optional[Callable[[], Session]]:
        if self._session_factory is not None:
            return self._session_factory
        if not is_database_configured():
            return None
        return get_session_factory()

    def resolve(self, request: HTTPConnection) -> Optional[UserSession]:
        token = get_session_token(request, self.cookie_names)
        if not token:
            return None

        factory = self._get_factory()
        if factory is None:
            return None

        db = factory()
        try:
            user = (
                db.query(User)
                .join(SessionRecord, SessionRecord.user_id == User.id)
                .filter(
                    SessionRecord.session_token == token,
                    SessionRecord.expires > datetime.utcnow(),
                )
                .first()
            )
            return user.to_session() if user else None
        finally:
            db.close()


def resolve_session(resolver: SessionResolver, request: HTTPConnection) -> Optional[UserSession]:
    """
    Resolve without ever raising.

    Any resolver failure is logged and treated as signed out (fail closed).
    """
    try:
        return resolver.resolve(request)
    except Exception as e:
        logger.warning(f"Session resolution failed for {request.url.path}: {e}")
        return None


def build_session_resolver(config: AuthConfig = None) -> SessionResolver:
    """Create the resolver selected by SESSION_STRATEGY."""
    config = config or get_auth_config()
    strategy = config.session_strategy

    if strategy == "cookie":
        return CookiePresenceResolver(config.cookie_names)
    if strategy == "jwt":
        if not config.auth_secret:
            logger.warning("SESSION_STRATEGY=jwt but AUTH_SECRET is empty - every session will be rejected")
        return JWTSessionResolver(config)
    if strategy != "database":
        logger.warning(f"Unknown SESSION_STRATEGY '{strategy}', falling back to database sessions")
    return DatabaseSessionResolver(cookie_names=config.cookie_names)
