"""
Export API

Endpoints:
- GET /api/export?id=<searchId>         - One search with its result data, as CSV
- GET /api/export?bulk=true&limit=<n>   - The user's search history, as CSV

Both need a signed-in user; a single export only finds the user's own searches.
"""

import csv
import io
import logging
import re
from datetime import datetime
from typing import Any, Dict, List, Optional, Sequence

from fastapi import APIRouter, Depends, Query
from fastapi.responses import JSONResponse, Response
from sqlalchemy.orm import Session

from src.auth.dependencies import get_current_user_session
from src.auth.models import UserSession
from src.database.repository import get_search_with_data, get_user_searches
from src.database.session import get_optional_db

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api", tags=["Export"])

DEFAULT_BULK_LIMIT = 500
MAX_BULK_LIMIT = 1000

CSV_MEDIA_TYPE = "text/csv; charset=utf-8"

_UNSAFE_FILENAME_CHARS = re.compile(r"[^a-zA-Z0-9.-]")


# =============================================================================
# CSV HELPERS
# =============================================================================

def to_csv(headers: Sequence[str], rows: Sequence[Sequence[Any]]) -> str:
    """
    Render a header row plus data rows.

    None becomes an empty cell; fields containing a comma, quote or newline
    are quoted.
    """
    buf = io.StringIO()
    writer = csv.writer(buf, lineterminator="\n")
    writer.writerow(headers)
    writer.writerows(rows)
    return buf.getvalue()


def csv_response(content: str, filename: str) -> Response:
    return Response(
        content=content,
        media_type=CSV_MEDIA_TYPE,
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


def export_filename(search: Dict[str, Any]) -> str:
    """<input type>-<input value, unsafe chars as _>-<YYYY-MM-DD>.csv"""
    value = _UNSAFE_FILENAME_CHARS.sub("_", search["input_value"])
    return f"{search['input_type']}-{value}-{search['created_at'].date().isoformat()}.csv"


def _as_text(value: Any) -> Any:
    return value.isoformat() if isinstance(value, datetime) else value


# =============================================================================
# RENDERERS
# =============================================================================

def render_search(search: Dict[str, Any]) -> str:
    """
    CSV for one search, shaped by its input type.

    Only the first captured payload is exported. A search with no payload
    for its type gets a one-line summary.
    """
    input_type = search["input_type"]

    if input_type == "keyword" and search["keyword_data"]:
        kd = search["keyword_data"][0]
        rows: List[List[Any]] = [[
            kd["keyword"], kd["search_volume"], kd["cpc_low"], kd["cpc_high"],
            kd["cpc_avg"], kd["competition"], kd["difficulty"], kd["search_intent"],
        ]]
        if kd["related_keywords"]:
            rows.append([])
            rows.append(["Related Keywords", "Search Volume", "CPC", "Type"])
            rows.extend(
                [rk["keyword"], rk["search_volume"], rk["cpc"], rk["keyword_type"]]
                for rk in kd["related_keywords"]
            )
        return to_csv(
            ["Keyword", "Search Volume", "CPC Low", "CPC High", "CPC Avg",
             "Competition", "Difficulty", "Intent"],
            rows,
        )

    if input_type in ("domain", "url") and search["domain_data"]:
        dd = search["domain_data"][0]
        rows = [[
            dd["domain"], dd["domain_rank"], dd["backlink_count"],
            dd["referring_domains"], dd["organic_traffic"], dd["organic_keywords_count"],
        ]]
        if dd["ranked_keywords"]:
            rows.append([])
            rows.append(["Ranked Keywords", "Position", "Search Volume", "URL"])
            rows.extend(
                [rk["keyword"], rk["position"], rk["search_volume"], rk["url"]]
                for rk in dd["ranked_keywords"]
            )
        return to_csv(
            ["Domain", "Domain Rank", "Backlinks", "Referring Domains",
             "Organic Traffic", "Organic Keywords"],
            rows,
        )

    if input_type in ("business", "phone") and search["business_data"]:
        bd = search["business_data"][0]
        return to_csv(
            ["Business Name", "Address", "City", "State", "Zip", "Phone",
             "Website", "Category", "Rating", "Review Count"],
            [[
                bd["business_name"], bd["address"], bd["city"], bd["state"], bd["zip"],
                bd["phone"], bd["website"], bd["category"], bd["google_rating"],
                bd["google_review_count"],
            ]],
        )

    return to_csv(
        ["Type", "Query", "Date"],
        [[input_type, search["input_value"], _as_text(search["created_at"])]],
    )


def render_history(searches: List[Dict[str, Any]]) -> str:
    return to_csv(
        ["ID", "Type", "Query", "Normalized", "Date"],
        [
            [s["id"], s["input_type"], s["input_value"], s["normalized_value"], _as_text(s["created_at"])]
            for s in searches
        ],
    )


# =============================================================================
# ENDPOINT
# =============================================================================

@router.get("/export")
def export_searches(
    search_id: Optional[str] = Query(None, alias="id", description="Search to export"),
    bulk: Optional[str] = Query(None, description="'true' to export the whole history"),
    limit: int = Query(DEFAULT_BULK_LIMIT, ge=1, description="Bulk row cap (at most 1000)"),
    session: UserSession = Depends(get_current_user_session),
    db: Optional[Session] = Depends(get_optional_db),
):
    """
    Download search data as CSV.

    id takes precedence over bulk. Unlike the list endpoints there is no
    empty fallback when the database is missing: an export always has rows.
    """
    if not search_id and bulk != "true":
        return JSONResponse(status_code=400, content={"error": "Provide ?id=<searchId> or ?bulk=true"})

    if db is None:
        return JSONResponse(status_code=500, content={"error": "Database not configured"})

    try:
        if search_id:
            search = get_search_with_data(db, search_id, user_id=session.user_id)
            if search is None:
                return JSONResponse(status_code=404, content={"error": "Search not found"})
            return csv_response(render_search(search), export_filename(search))

        searches = get_user_searches(db, session.user_id, limit=min(limit, MAX_BULK_LIMIT))
        filename = f"search-history-{datetime.utcnow().date().isoformat()}.csv"
        return csv_response(render_history(searches), filename)
    except Exception as e:
        logger.error(f"Export failed for user {session.user_id}: {e}")
        return JSONResponse(status_code=500, content={"error": "Export failed"})
