"""Utility modules for the SEO Search Box backend."""

from .config import Settings, get_settings
from .normalize import normalize_domain, normalize_keyword

__all__ = [
    "Settings",
    "get_settings",
    # Rank tracking keys
    "normalize_domain",
    "normalize_keyword",
]
