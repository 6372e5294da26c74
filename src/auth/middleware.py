"""
Route Gate Middleware

Starlette middleware that keeps dashboard pages behind sign-in.

Order of checks for every request:
1. Excluded paths (API routes, framework assets, well-known files, static
   file extensions) pass straight through.
2. Paths under a protected prefix need a resolved session; without one the
   caller is redirected to sign-in with ?callbackUrl=<path>.
3. Everything else passes through unmodified.
"""

import logging
import re
from typing import Iterable, Optional
from urllib.parse import urlencode

from fastapi import Request
from fastapi.responses import RedirectResponse
from starlette.concurrency import run_in_threadpool
from starlette.middleware.base import BaseHTTPMiddleware

from src.auth.config import DEFAULT_PROTECTED_PREFIXES, parse_prefixes
from src.auth.resolver import SessionResolver, resolve_session

logger = logging.getLogger(__name__)

PROTECTED_PREFIXES = tuple(parse_prefixes(DEFAULT_PROTECTED_PREFIXES))

# API routes, framework asset prefixes, well-known files, static file types
EXCLUDED_PATH_PATTERN = re.compile(
    r"^/(?:api(?:/|$)|_next/(?:static|image)/|static/|favicon\.ico$|sitemap\.xml$|robots\.txt$)"
    r"|\.(?:svg|png|jpe?g|gif|webp|ico|avif|bmp|woff2?|ttf|otf|eot|js|mjs|css|map)$",
    re.IGNORECASE,
)


def is_excluded(path: str) -> bool:
    """True for paths the gate never intercepts."""
    return EXCLUDED_PATH_PATTERN.search(path) is not None


def is_protected(path: str, prefixes: Iterable[str] = PROTECTED_PREFIXES) -> bool:
    """
    True if the path sits under a protected prefix.

    "/dashboard" and "/dashboard/site-health" match "/dashboard";
    "/dashboards" does not.
    """
    return any(path == prefix or path.startswith(prefix + "/") for prefix in prefixes)


def build_signin_redirect(request: Request, signin_path: str) -> RedirectResponse:
    """Redirect to sign-in, remembering where the caller was going."""
    target = request.url.replace(
        path=signin_path,
        query=urlencode({"callbackUrl": request.url.path}),
        fragment="",
    )
    return RedirectResponse(str(target), status_code=307)


class RouteGateMiddleware(BaseHTTPMiddleware):
    """
    Redirects unauthenticated requests for protected pages to sign-in.

    The resolver is injected so tests can swap in a fake. Resolver failures
    count as signed out.
    """

    def __init__(
        self,
        app,
        resolver: SessionResolver,
        protected_prefixes: Optional[Iterable[str]] = None,
        signin_path: str = "/auth/signin",
    ):
        super().__init__(app)
        self.resolver = resolver
        self.protected_prefixes = tuple(protected_prefixes) if protected_prefixes else PROTECTED_PREFIXES
        self.signin_path = signin_path

    async def dispatch(self, request: Request, call_next):
        path = request.url.path

        if is_excluded(path) or not is_protected(path, self.protected_prefixes):
            return await call_next(request)

        # Database resolver blocks, keep it off the event loop
        session = await run_in_threadpool(resolve_session, self.resolver, request)

        if session is None:
            logger.debug(f"Redirecting unauthenticated request for {path} to sign-in")
            return build_signin_redirect(request, self.signin_path)

        request.state.session = session
        return await call_next(request)
