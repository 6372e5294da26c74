"""
Configuration Management

Uses Pydantic Settings for environment-based configuration.
Loads from .env file automatically.
"""

from typing import Optional
from functools import lru_cache
from pydantic_settings import BaseSettings


DEFAULT_STATUS_BASE_URL = "https://api.seobandwagon.dev"


class Settings(BaseSettings):
    """Application settings loaded from environment."""

    # Database (optional - endpoints degrade when unset)
    DATABASE_URL: Optional[str] = None
    POSTGRES_URL: Optional[str] = None
    SQL_DEBUG: bool = False

    # Ranking/status backend
    MCP_SERVER_URL: str = DEFAULT_STATUS_BASE_URL
    STATUS_TIMEOUT: float = 10.0

    # Logging
    LOG_LEVEL: str = "INFO"

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        extra = "ignore"  # Ignore extra fields in .env file
        case_sensitive = False  # Allow both UPPERCASE and lowercase

    @property
    def database_url(self) -> Optional[str]:
        """
        Resolved database URL.

        Priority:
        1. DATABASE_URL
        2. POSTGRES_URL (alternative)

        Hosted PostgreSQL URLs use postgres:// but SQLAlchemy needs postgresql://
        """
        url = self.DATABASE_URL or self.POSTGRES_URL
        if not url:
            return None
        if url.startswith("postgres://"):
            url = url.replace("postgres://", "postgresql://", 1)
        return url

    @property
    def status_base_url(self) -> str:
        return (self.MCP_SERVER_URL or DEFAULT_STATUS_BASE_URL).rstrip("/")


@lru_cache
def get_settings() -> Settings:
    """Get or create cached settings instance."""
    return Settings()
