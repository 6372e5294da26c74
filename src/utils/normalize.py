"""
Keyword and Domain Normalization

Rank history rows are stored under normalized keys, so every caller that
reads or writes serp_history must normalize first.
"""

import re

_PROTOCOL_WWW = re.compile(r"^(https?://)?(www\.)?")
_TRAILING_SLASHES = re.compile(r"/+$")


def normalize_keyword(keyword: str) -> str:
    """
    Normalize a search keyword.

    Example:
        " Best Pizza " -> "best pizza"
    """
    return keyword.lower().strip()


def normalize_domain(domain: str) -> str:
    """
    Normalize a domain for rank tracking lookups.

    Lowercases, trims, strips the protocol, a leading www. and trailing slashes.
    Repeats until nothing changes, so "www.www.example.com" and
    "https:// example.com" also reduce to "example.com".

    Example:
        "https://www.Example.com/" -> "example.com"
    """
    cleaned = domain.lower().strip()
    while True:
        stripped = _TRAILING_SLASHES.sub("", _PROTOCOL_WWW.sub("", cleaned)).strip()
        if stripped == cleaned:
            return cleaned
        cleaned = stripped
