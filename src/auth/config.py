"""
Authentication Configuration

Settings for session resolution and the dashboard route gate.
"""

import os
from functools import lru_cache
from pydantic_settings import BaseSettings


DEFAULT_PROTECTED_PREFIXES = "/dashboard,/history,/saved-searches,/captures"

SESSION_COOKIE_NAMES = ("__Secure-authjs.session-token", "authjs.session-token")


def parse_prefixes(raw: str) -> list[str]:
    """Parse a comma-separated prefix list into normalized path prefixes."""
    prefixes = []
    for prefix in raw.split(","):
        prefix = prefix.strip().rstrip("/")
        if prefix:
            prefixes.append(prefix if prefix.startswith("/") else f"/{prefix}")
    return prefixes


class AuthConfig(BaseSettings):
    """Authentication configuration loaded from environment."""

    # Session resolution
    session_strategy: str = "database"  # cookie | jwt | database
    auth_secret: str = ""
    jwt_algorithm: str = "HS256"

    # Route gate
    signin_path: str = "/auth/signin"
    # Comma-separated, e.g. "/dashboard,/history"
    protected_prefixes: str = DEFAULT_PROTECTED_PREFIXES

    # Search Console OAuth callback
    gsc_callback_require_session: bool = False

    class Config:
        env_prefix = ""
        extra = "ignore"

    @property
    def protected_prefix_list(self) -> list[str]:
        return parse_prefixes(self.protected_prefixes)

    @property
    def cookie_names(self) -> tuple[str, ...]:
        return SESSION_COOKIE_NAMES


@lru_cache()
def get_auth_config() -> AuthConfig:
    """Get cached auth configuration."""
    return AuthConfig(
        session_strategy=os.getenv("SESSION_STRATEGY", "database").lower(),
        auth_secret=os.getenv("AUTH_SECRET", ""),
        jwt_algorithm=os.getenv("JWT_ALGORITHM", "HS256"),
        signin_path=os.getenv("SIGNIN_PATH", "/auth/signin"),
        protected_prefixes=os.getenv("PROTECTED_PREFIXES", DEFAULT_PROTECTED_PREFIXES),
        gsc_callback_require_session=os.getenv("GSC_CALLBACK_REQUIRE_SESSION", "false").lower() == "true",
    )
