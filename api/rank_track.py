"""
Rank Tracking API

Endpoints:
- GET /api/rank-track/history         - SERP position history for a keyword/domain pair
- GET /api/rank-track/domain-history  - Domain rank and organic traffic over time
- GET /api/rank-track/keyword-history - Search volume and CPC trend for a keyword
- GET /api/rank-track/tracked         - Keyword/domain pairs on the watch list

All degrade to an empty list when the database is not configured.
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session

from src.database.repository import (
    DEFAULT_HISTORY_DAYS,
    get_domain_rank_history,
    get_keyword_history,
    get_serp_history,
    get_tracked_keywords,
)
from src.database.session import get_optional_db
from src.utils.normalize import normalize_domain, normalize_keyword

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/rank-track", tags=["Rank Tracking"])

NOT_CONFIGURED_MESSAGE = "Database not configured"
INVALID_DAYS_MESSAGE = "days must be a positive integer"


def parse_days(raw: Optional[str]) -> Optional[int]:
    """Parse the ?days window; None means invalid."""
    if raw is None or raw.strip() == "":
        return DEFAULT_HISTORY_DAYS
    try:
        days = int(raw)
    except ValueError:
        return None
    return days if days > 0 else None


# =============================================================================
# ENDPOINTS
# =============================================================================

@router.get("/history")
def rank_history(
    keyword: Optional[str] = Query(None),
    domain: Optional[str] = Query(None),
    days: Optional[str] = Query(None, description="Trailing window in days (default 90)"),
    db: Optional[Session] = Depends(get_optional_db),
):
    """
    Position history for a keyword/domain pair, oldest first.

    keyword and domain are normalized before lookup, so
    "https://www.Example.com/" and "example.com" hit the same rows.
    A value that normalizes to nothing ("https://", "www.") is rejected.
    """
    clean_keyword = normalize_keyword(keyword or "")
    clean_domain = normalize_domain(domain or "")
    if not clean_keyword or not clean_domain:
        return JSONResponse(
            status_code=400,
            content={"error": "keyword and domain query params are required"},
        )

    window = parse_days(days)
    if window is None:
        return JSONResponse(status_code=400, content={"error": INVALID_DAYS_MESSAGE})

    if db is None:
        return {"history": [], "message": NOT_CONFIGURED_MESSAGE}

    try:
        history = get_serp_history(db, clean_keyword, clean_domain, window)
    except Exception as e:
        logger.error(f"Rank history query failed for {clean_keyword!r}/{clean_domain}: {e}")
        return JSONResponse(
            status_code=500,
            content={"error": "Failed to fetch rank history"},
        )

    return {
        "keyword": clean_keyword,
        "domain": clean_domain,
        "history": [
            {
                "position": point["position"],
                "url": point["url"],
                "recordedAt": point["recorded_at"],
            }
            for point in history
        ],
    }


@router.get("/domain-history")
def domain_history(
    domain: Optional[str] = Query(None),
    days: Optional[str] = Query(None),
    db: Optional[Session] = Depends(get_optional_db),
):
    """Domain rank and organic traffic snapshots, oldest first."""
    clean_domain = normalize_domain(domain or "")
    if not clean_domain:
        return JSONResponse(status_code=400, content={"error": "domain query param is required"})

    window = parse_days(days)
    if window is None:
        return JSONResponse(status_code=400, content={"error": INVALID_DAYS_MESSAGE})

    if db is None:
        return {"history": [], "message": NOT_CONFIGURED_MESSAGE}

    try:
        history = get_domain_rank_history(db, clean_domain, window)
    except Exception as e:
        logger.error(f"Domain rank history query failed for {clean_domain}: {e}")
        return JSONResponse(
            status_code=500,
            content={"error": "Failed to fetch domain history"},
        )

    return {
        "domain": clean_domain,
        "history": [
            {
                "domainRank": point["domain_rank"],
                "organicTraffic": point["organic_traffic"],
                "recordedAt": point["recorded_at"],
            }
            for point in history
        ],
    }


@router.get("/keyword-history")
def keyword_history(
    keyword: Optional[str] = Query(None),
    days: Optional[str] = Query(None),
    db: Optional[Session] = Depends(get_optional_db),
):
    clean_keyword = normalize_keyword(keyword or "")
    if not clean_keyword:
        return JSONResponse(status_code=400, content={"error": "keyword query param is required"})

    window = parse_days(days)
    if window is None:
        return JSONResponse(status_code=400, content={"error": INVALID_DAYS_MESSAGE})

    if db is None:
        return {"history": [], "message": NOT_CONFIGURED_MESSAGE}

    try:
        history = get_keyword_history(db, clean_keyword, window)
    except Exception as e:
        logger.error(f"Keyword history query failed for {clean_keyword!r}: {e}")
        return JSONResponse(
            status_code=500,
            content={"error": "Failed to fetch keyword history"},
        )

    return {
        "keyword": clean_keyword,
        "history": [
            {
                "searchVolume": point["search_volume"],
                "cpcAvg": point["cpc_avg"],
                "competition": point["competition"],
                "createdAt": point["created_at"],
            }
            for point in history
        ],
    }


@router.get("/tracked")
def tracked_keywords(db: Optional[Session] = Depends(get_optional_db)):
    """
    Every tracked keyword/domain pair, most recently checked first.

    The rank tracker is shared: pairs are added without an owner, so the
    list is the same whether or not the caller is signed in.
    """
    if db is None:
        return {"tracked": [], "message": NOT_CONFIGURED_MESSAGE}

    try:
        tracked = get_tracked_keywords(db)
    except Exception as e:
        logger.error(f"Failed to get tracked keywords: {e}")
        return JSONResponse(
            status_code=500,
            content={"error": "Failed to fetch tracked keywords"},
        )

    return {
        "tracked": [
            {
                "id": t["id"],
                "keyword": t["keyword"],
                "domain": t["domain"],
                "lastPosition": t["last_position"],
                "lastCheckedAt": t["last_checked_at"],
                "createdAt": t["created_at"],
            }
            for t in tracked
        ]
    }
