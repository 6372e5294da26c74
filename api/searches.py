"""
Search History API

Endpoints:
- GET /api/history        - The signed-in user's past searches (optionally filtered)
- GET /api/history/stats  - Search counts per input type, top keywords and domains
- GET /api/saved-searches - The signed-in user's bookmarked searches

All endpoints need a session that identifies a user.
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session

from src.auth.dependencies import get_current_user_session
from src.auth.models import UserSession
from src.database.repository import (
    get_top_domains,
    get_top_keywords,
    get_user_saved_searches,
    get_user_search_stats,
    get_user_searches,
    search_user_history,
)
from src.database.session import get_optional_db

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api", tags=["Search History"])

NOT_CONFIGURED_MESSAGE = "Database not configured"


@router.get("/history")
def search_history(
    limit: int = Query(50, ge=1, le=200),
    offset: int = Query(0, ge=0),
    q: Optional[str] = Query(None, description="Case-insensitive filter on the input value"),
    session: UserSession = Depends(get_current_user_session),
    db: Optional[Session] = Depends(get_optional_db),
):
    """
    Past searches, newest first.

    With q, returns matching searches only (offset is ignored).
    """
    if db is None:
        return {"searches": [], "message": NOT_CONFIGURED_MESSAGE}

    try:
        if q and q.strip():
            searches = search_user_history(db, session.user_id, q.strip(), limit=limit)
        else:
            searches = get_user_searches(db, session.user_id, limit=limit, offset=offset)
    except Exception as e:
        logger.error(f"Failed to get search history for user {session.user_id}: {e}")
        return JSONResponse(status_code=500, content={"error": "Failed to fetch search history"})

    return {"searches": searches}


@router.get("/history/stats")
def search_history_stats(
    session: UserSession = Depends(get_current_user_session),
    db: Optional[Session] = Depends(get_optional_db),
):
    """
    Dashboard summary of the user's searching.

    stats counts searches per input type; topKeywords and topDomains list
    the most looked-up keywords and domains.
    """
    if db is None:
        return {"stats": [], "topKeywords": [], "topDomains": [], "message": NOT_CONFIGURED_MESSAGE}

    try:
        stats = get_user_search_stats(db, session.user_id)
        top_keywords = get_top_keywords(db, session.user_id)
        top_domains = get_top_domains(db, session.user_id)
    except Exception as e:
        logger.error(f"Failed to get search stats for user {session.user_id}: {e}")
        return JSONResponse(status_code=500, content={"error": "Failed to fetch search stats"})

    return {
        "stats": stats,
        "total": sum(s["count"] for s in stats),
        "topKeywords": [
            {
                "keyword": k["keyword"],
                "searchCount": k["search_count"],
                "avgSearchVolume": k["avg_search_volume"],
            }
            for k in top_keywords
        ],
        "topDomains": [
            {
                "domain": d["domain"],
                "searchCount": d["search_count"],
                "latestRank": d["latest_rank"],
            }
            for d in top_domains
        ],
    }


@router.get("/saved-searches")
def saved_searches(
    limit: int = Query(50, ge=1, le=200),
    session: UserSession = Depends(get_current_user_session),
    db: Optional[Session] = Depends(get_optional_db),
):
    """Bookmarked searches, newest first, each with the search it points at."""
    if db is None:
        return {"savedSearches": [], "message": NOT_CONFIGURED_MESSAGE}

    try:
        saved = get_user_saved_searches(db, session.user_id, limit=limit)
    except Exception as e:
        logger.error(f"Failed to get saved searches for user {session.user_id}: {e}")
        return JSONResponse(status_code=500, content={"error": "Failed to fetch saved searches"})

    return {"savedSearches": saved}
