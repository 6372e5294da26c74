"""
Wiki Analysis API

Read-only views over the cached Wikipedia link/Wayback analysis tables.

Endpoints:
- GET /api/wiki-analysis        - All pages, aggregate stats, top linked domains
- GET /api/wiki-analysis/{slug} - One page with its snapshot timeline

Unlike the list endpoints elsewhere, these fail with 500 when the
database is not configured: the page has nothing to show without it.
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session

from src.database.repository import (
    get_wiki_page_detail,
    get_wiki_pages,
    get_wiki_stats,
    get_wiki_top_domains,
)
from src.database.session import get_optional_db

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/wiki-analysis", tags=["Wiki Analysis"])


def _error(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": message})


@router.get("")
def wiki_overview(db: Optional[Session] = Depends(get_optional_db)):
    """Pages ordered by monthly captures, plus stats and the top 20 domains."""
    if db is None:
        return _error(500, "Database not configured")

    try:
        pages = get_wiki_pages(db)
        stats = get_wiki_stats(db)
        top_domains = get_wiki_top_domains(db)
    except Exception as e:
        logger.error(f"Wiki analysis query failed: {e}")
        return _error(500, "Failed to fetch data")

    return {
        "pages": pages,
        "stats": stats,
        "topDomains": top_domains,
    }


@router.get("/{slug}")
def wiki_page(slug: str, db: Optional[Session] = Depends(get_optional_db)):
    """Cached analysis of one article with its snapshots, link changes and page history."""
    if db is None:
        return _error(500, "Database not configured")

    try:
        detail = get_wiki_page_detail(db, slug)
    except Exception as e:
        logger.error(f"Wiki page query failed for {slug}: {e}")
        return _error(500, "Failed to fetch data")

    if detail is None:
        return _error(404, "Page not found")

    return detail
