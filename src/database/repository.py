"""
Repository Layer - Read-only Query Boundary

Named, parameterized reads over the search, rank tracking and wiki analysis
tables. Every function takes an open Session plus typed parameters and
returns a list of plain dicts (or a single dict / None for lookups).

Nothing here writes: search submission and rank checks belong to the
collectors that populate these tables. Database errors propagate to the
caller; an empty result is always an empty list.
"""

import logging
from datetime import datetime, timedelta
from typing import Any, Dict, List, Optional

from sqlalchemy import func, text
from sqlalchemy.orm import Session

from .models import (
    Search,
    SavedSearch,
    KeywordData,
    DomainData,
    BusinessData,
    SerpHistory,
    TrackedKeyword,
    DomainRankHistory,
)

logger = logging.getLogger(__name__)

DEFAULT_HISTORY_DAYS = 90
TOP_DOMAINS_LIMIT = 20
TOP_SEARCHED_LIMIT = 10


def _require_positive(name: str, value: int) -> None:
    if not isinstance(value, int) or isinstance(value, bool) or value <= 0:
        raise ValueError(f"{name} must be a positive integer, got {value!r}")


def _require_non_negative(name: str, value: int) -> None:
    if not isinstance(value, int) or isinstance(value, bool) or value < 0:
        raise ValueError(f"{name} must be a non-negative integer, got {value!r}")


# =============================================================================
# SEARCHES
# =============================================================================

def get_user_searches(
    db: Session,
    user_id: str,
    limit: int = 50,
    offset: int = 0,
) -> List[Dict[str, Any]]:
    """
    Get searches for a user, newest first.

    Paginated with limit/offset.
    """
    _require_positive("limit", limit)
    _require_non_negative("offset", offset)

    searches = (
        db.query(Search)
        .filter(Search.user_id == user_id)
        .order_by(Search.created_at.desc())
        .limit(limit)
        .offset(offset)
        .all()
    )
    return [_search_to_dict(s) for s in searches]


def get_recent_searches(db: Session, limit: int = 10) -> List[Dict[str, Any]]:
    """Newest searches across all users."""
    _require_positive("limit", limit)

    searches = db.query(Search).order_by(Search.created_at.desc()).limit(limit).all()
    return [_search_to_dict(s) for s in searches]


def search_user_history(
    db: Session,
    user_id: str,
    query: str,
    limit: int = 20,
) -> List[Dict[str, Any]]:
    """
    Case-insensitive substring search over a user's past inputs.

    LIKE wildcards in the query are matched literally.
    """
    _require_positive("limit", limit)

    searches = (
        db.query(Search)
        .filter(
            Search.user_id == user_id,
            func.lower(Search.input_value).contains(query.lower(), autoescape=True),
        )
        .order_by(Search.created_at.desc())
        .limit(limit)
        .all()
    )
    return [_search_to_dict(s) for s in searches]


def get_user_search_stats(db: Session, user_id: str) -> List[Dict[str, Any]]:
    """Number of searches per input type for a user."""
    rows = (
        db.query(Search.input_type, func.count(Search.id))
        .filter(Search.user_id == user_id)
        .group_by(Search.input_type)
        .order_by(Search.input_type)
        .all()
    )
    return [{"input_type": input_type, "count": int(count)} for input_type, count in rows]


# =============================================================================
# SEARCH RESULTS
# =============================================================================

def get_search_with_data(
    db: Session,
    search_id: str,
    user_id: Optional[str] = None,
) -> Optional[Dict[str, Any]]:
    """
    One search with every result payload stored for it.

    keyword_data embeds its related keywords and domain_data its ranked
    keywords. With user_id the search must belong to that user; a search
    owned by someone else is reported as missing (None).
    """
    query = db.query(Search).filter(Search.id == search_id)
    if user_id:
        query = query.filter(Search.user_id == user_id)

    search = query.first()
    if search is None:
        return None

    result = _search_to_dict(search)
    result["keyword_data"] = [
        _keyword_data_to_dict(k)
        for k in sorted(search.keyword_data, key=lambda k: k.created_at)
    ]
    result["domain_data"] = [
        _domain_data_to_dict(d)
        for d in sorted(search.domain_data, key=lambda d: d.created_at)
    ]
    result["business_data"] = [
        _business_data_to_dict(b)
        for b in sorted(search.business_data, key=lambda b: b.created_at)
    ]
    return result


def get_top_keywords(
    db: Session,
    user_id: str,
    limit: int = TOP_SEARCHED_LIMIT,
) -> List[Dict[str, Any]]:
    """Keywords a user has looked up most often, with their average volume."""
    _require_positive("limit", limit)

    search_count = func.count(KeywordData.id)
    rows = (
        db.query(
            KeywordData.keyword,
            search_count.label("search_count"),
            func.avg(KeywordData.search_volume).label("avg_search_volume"),
        )
        .join(Search, KeywordData.search_id == Search.id)
        .filter(Search.user_id == user_id)
        .group_by(KeywordData.keyword)
        .order_by(search_count.desc(), KeywordData.keyword.asc())
        .limit(limit)
        .all()
    )
    return [
        {
            "keyword": keyword,
            "search_count": int(count),
            "avg_search_volume": int(avg) if avg is not None else None,
        }
        for keyword, count, avg in rows
    ]


def get_top_domains(
    db: Session,
    user_id: str,
    limit: int = TOP_SEARCHED_LIMIT,
) -> List[Dict[str, Any]]:
    """
    Domains a user has looked up most often.

    latest_rank is the domain rank from that user's newest capture of the
    domain.
    """
    _require_positive("limit", limit)

    search_count = func.count(DomainData.id)
    rows = (
        db.query(DomainData.domain, search_count.label("search_count"))
        .join(Search, DomainData.search_id == Search.id)
        .filter(Search.user_id == user_id)
        .group_by(DomainData.domain)
        .order_by(search_count.desc(), DomainData.domain.asc())
        .limit(limit)
        .all()
    )
    if not rows:
        return []

    captures = (
        db.query(DomainData.domain, DomainData.domain_rank)
        .join(Search, DomainData.search_id == Search.id)
        .filter(
            Search.user_id == user_id,
            DomainData.domain.in_([domain for domain, _ in rows]),
        )
        .order_by(DomainData.created_at.desc())
        .all()
    )
    latest_rank: Dict[str, Optional[int]] = {}
    for domain, rank in captures:
        latest_rank.setdefault(domain, rank)

    return [
        {
            "domain": domain,
            "search_count": int(count),
            "latest_rank": latest_rank.get(domain),
        }
        for domain, count in rows
    ]


# =============================================================================
# SAVED SEARCHES
# =============================================================================

def get_user_saved_searches(
    db: Session,
    user_id: str,
    limit: int = 50,
) -> List[Dict[str, Any]]:
    """
    Get a user's saved searches, newest first.

    Each entry embeds the search it references (inner join, so a bookmark
    whose search is gone never shows up).
    """
    _require_positive("limit", limit)

    rows = (
        db.query(SavedSearch, Search)
        .join(Search, SavedSearch.search_id == Search.id)
        .filter(SavedSearch.user_id == user_id)
        .order_by(SavedSearch.created_at.desc())
        .limit(limit)
        .all()
    )
    return [
        {
            "id": saved.id,
            "name": saved.name,
            "created_at": saved.created_at,
            "search": _search_to_dict(search),
        }
        for saved, search in rows
    ]


# =============================================================================
# RANK TRACKING
# =============================================================================

def get_serp_history(
    db: Session,
    keyword: str,
    domain: str,
    days: int = DEFAULT_HISTORY_DAYS,
) -> List[Dict[str, Any]]:
    """
    Get SERP positions for a keyword/domain pair over the trailing window.

    Keyword and domain must already be normalized (see src.utils.normalize);
    rows are stored under normalized keys. Ordered oldest first.
    """
    _require_positive("days", days)

    since = datetime.utcnow() - timedelta(days=days)

    points = (
        db.query(SerpHistory)
        .filter(
            SerpHistory.keyword == keyword,
            SerpHistory.domain == domain,
            SerpHistory.recorded_at >= since,
        )
        .order_by(SerpHistory.recorded_at.asc())
        .all()
    )
    return [_serp_point_to_dict(p) for p in points]


def get_tracked_keywords(db: Session, user_id: Optional[str] = None) -> List[Dict[str, Any]]:
    """
    Tracked keyword/domain pairs, most recently checked first.

    Without a user, every tracked pair is returned (public rank tracker).
    """
    query = db.query(TrackedKeyword)
    if user_id:
        query = query.filter(TrackedKeyword.user_id == user_id)

    tracked = query.order_by(
        TrackedKeyword.last_checked_at.desc().nullslast(),
        TrackedKeyword.created_at.desc(),
    ).all()
    return [_tracked_to_dict(t) for t in tracked]


def get_domain_rank_history(
    db: Session,
    domain: str,
    days: int = DEFAULT_HISTORY_DAYS,
) -> List[Dict[str, Any]]:
    """Domain rank snapshots for a normalized domain, oldest first."""
    _require_positive("days", days)

    since = datetime.utcnow() - timedelta(days=days)

    points = (
        db.query(DomainRankHistory)
        .filter(
            DomainRankHistory.domain == domain,
            DomainRankHistory.recorded_at >= since,
        )
        .order_by(DomainRankHistory.recorded_at.asc())
        .all()
    )
    return [
        {
            "domain": p.domain,
            "domain_rank": p.domain_rank,
            "organic_traffic": p.organic_traffic,
            "recorded_at": p.recorded_at,
        }
        for p in points
    ]


def get_keyword_history(
    db: Session,
    keyword: str,
    days: int = DEFAULT_HISTORY_DAYS,
) -> List[Dict[str, Any]]:
    """
    Volume and CPC of every capture of a keyword, oldest first.

    Captures from all users count; keyword metrics are not personal.
    """
    _require_positive("days", days)

    since = datetime.utcnow() - timedelta(days=days)

    rows = (
        db.query(KeywordData)
        .filter(
            KeywordData.keyword == keyword,
            KeywordData.created_at >= since,
        )
        .order_by(KeywordData.created_at.asc())
        .all()
    )
    return [
        {
            "search_volume": k.search_volume,
            "cpc_avg": _as_float(k.cpc_avg),
            "competition": _as_float(k.competition),
            "created_at": k.created_at,
        }
        for k in rows
    ]


# =============================================================================
# WIKI ANALYSIS
# =============================================================================

def get_wiki_pages(db: Session) -> List[Dict[str, Any]]:
    """All cached wiki analysis rows, most captured first."""
    result = db.execute(text("""
        SELECT
            slug, url, title,
            serp_keywords, keyword_count, est_traffic,
            external_links, external_link_count, internal_link_count,
            wayback_monthly_captures, wayback_first_capture, wayback_last_capture,
            wayback_first_url, wayback_latest_url, wayback_captures_by_year,
            created_at, updated_at
        FROM wiki_analysis_pages
        ORDER BY wayback_monthly_captures DESC
    """))
    return [dict(row) for row in result.mappings().all()]


def get_wiki_stats(db: Session) -> Dict[str, Any]:
    """Aggregate stats over pages that have at least one capture."""
    row = db.execute(text("""
        SELECT
            COUNT(*) AS total_pages,
            SUM(wayback_monthly_captures) AS total_captures,
            SUM(external_link_count) AS total_external_links,
            SUM(keyword_count) AS total_keywords,
            MIN(wayback_first_capture) AS oldest_capture,
            AVG(wayback_monthly_captures) AS avg_captures
        FROM wiki_analysis_pages
        WHERE wayback_monthly_captures > 0
    """)).mappings().first()

    stats = dict(row) if row else {}
    return {
        "total_pages": _as_int(stats.get("total_pages")) or 0,
        "total_captures": _as_int(stats.get("total_captures")),
        "total_external_links": _as_int(stats.get("total_external_links")),
        "total_keywords": _as_int(stats.get("total_keywords")),
        "oldest_capture": stats.get("oldest_capture"),
        "avg_captures": _as_float(stats.get("avg_captures")),
    }


_TOP_DOMAINS_SQL = {
    "postgresql": """
        SELECT
            link->>'domain' AS domain,
            COUNT(*) AS count
        FROM wiki_analysis_pages,
            jsonb_array_elements(external_links) AS link
        WHERE jsonb_typeof(external_links) = 'array'
            AND jsonb_array_length(external_links) > 0
        GROUP BY link->>'domain'
        ORDER BY count DESC, domain ASC
        LIMIT :limit
    """,
    # Local development and tests: JSON stored as text, read with json1
    "sqlite": """
        SELECT
            json_extract(link.value, '$.domain') AS domain,
            COUNT(*) AS count
        FROM wiki_analysis_pages,
            json_each(wiki_analysis_pages.external_links) AS link
        WHERE json_type(wiki_analysis_pages.external_links) = 'array'
        GROUP BY json_extract(link.value, '$.domain')
        ORDER BY count DESC, domain ASC
        LIMIT :limit
    """,
}


def get_wiki_top_domains(db: Session, limit: int = TOP_DOMAINS_LIMIT) -> List[Dict[str, Any]]:
    """
    Most linked external domains across all cached pages.

    Ties are broken alphabetically so the cut at `limit` is stable.
    """
    _require_positive("limit", limit)

    dialect = db.get_bind().dialect.name
    if dialect not in _TOP_DOMAINS_SQL:
        raise NotImplementedError(f"Top domain aggregation is not available on {dialect}")

    result = db.execute(text(_TOP_DOMAINS_SQL[dialect]), {"limit": limit})
    return [
        {"domain": row["domain"], "count": int(row["count"])}
        for row in result.mappings().all()
    ]


def get_wiki_page_detail(db: Session, slug: str) -> Optional[Dict[str, Any]]:
    """
    One cached page with its snapshot timeline.

    Returns None if the slug is unknown.
    """
    page = db.execute(
        text("SELECT * FROM wiki_analysis_pages WHERE slug = :slug"),
        {"slug": slug},
    ).mappings().first()
    if page is None:
        return None

    snapshots = db.execute(text("""
        SELECT
            snapshot_date, snapshot_timestamp, wayback_url,
            external_link_count, internal_link_count,
            external_domains, title, word_count, h1, h2,
            meta_description, text_preview
        FROM wiki_link_snapshots
        WHERE slug = :slug
        ORDER BY snapshot_date ASC
    """), {"slug": slug}).mappings().all()

    changes = db.execute(text("""
        SELECT
            from_date, to_date, from_timestamp, to_timestamp,
            links_added, links_removed, domains_added, domains_removed,
            links_added_count, links_removed_count,
            word_count_before, word_count_after,
            h2_before, h2_after
        FROM wiki_link_changes
        WHERE slug = :slug
        ORDER BY from_date ASC
    """), {"slug": slug}).mappings().all()

    history = db.execute(text("""
        SELECT
            snapshot_date, snapshot_timestamp, wayback_url,
            title, word_count, h1, h2,
            link_count_internal, link_count_external, text_preview
        FROM wiki_page_history
        WHERE slug = :slug
        ORDER BY snapshot_date ASC
    """), {"slug": slug}).mappings().all()

    return {
        "page": dict(page),
        "snapshots": [dict(r) for r in snapshots],
        "changes": [dict(r) for r in changes],
        "history": [dict(r) for r in history],
    }


# =============================================================================
# ROW CONVERSION
# =============================================================================

def _search_to_dict(s: Search) -> Dict:
    return {
        "id": s.id,
        "input_type": s.input_type,
        "input_value": s.input_value,
        "normalized_value": s.normalized_value,
        "created_at": s.created_at,
    }


def _keyword_data_to_dict(k: KeywordData) -> Dict:
    return {
        "keyword": k.keyword,
        "search_volume": k.search_volume,
        "cpc_low": _as_float(k.cpc_low),
        "cpc_high": _as_float(k.cpc_high),
        "cpc_avg": _as_float(k.cpc_avg),
        "competition": _as_float(k.competition),
        "difficulty": k.difficulty,
        "search_intent": k.search_intent,
        "created_at": k.created_at,
        "related_keywords": [
            {
                "keyword": r.keyword,
                "search_volume": r.search_volume,
                "cpc": _as_float(r.cpc),
                "keyword_type": r.keyword_type,
            }
            for r in sorted(k.related_keywords, key=lambda r: -(r.search_volume or 0))
        ],
    }


def _domain_data_to_dict(d: DomainData) -> Dict:
    return {
        "domain": d.domain,
        "domain_rank": d.domain_rank,
        "backlink_count": d.backlink_count,
        "referring_domains": d.referring_domains,
        "organic_traffic": d.organic_traffic,
        "organic_keywords_count": d.organic_keywords_count,
        "created_at": d.created_at,
        "ranked_keywords": [
            {
                "keyword": r.keyword,
                "position": r.position,
                "search_volume": r.search_volume,
                "url": r.url,
            }
            for r in sorted(d.ranked_keywords, key=lambda r: (r.position is None, r.position or 0))
        ],
    }


def _business_data_to_dict(b: BusinessData) -> Dict:
    return {
        "business_name": b.business_name,
        "address": b.address,
        "city": b.city,
        "state": b.state,
        "zip": b.zip,
        "phone": b.phone,
        "website": b.website,
        "category": b.category,
        "google_rating": _as_float(b.google_rating),
        "google_review_count": b.google_review_count,
        "created_at": b.created_at,
    }


def _serp_point_to_dict(p: SerpHistory) -> Dict:
    return {
        "keyword": p.keyword,
        "domain": p.domain,
        "position": p.position,
        "url": p.url,
        "recorded_at": p.recorded_at,
    }


def _tracked_to_dict(t: TrackedKeyword) -> Dict:
    return {
        "id": t.id,
        "keyword": t.keyword,
        "domain": t.domain,
        "last_position": t.last_position,
        "last_checked_at": t.last_checked_at,
        "created_at": t.created_at,
    }


def _as_int(value: Any) -> Optional[int]:
    return int(value) if value is not None else None


def _as_float(value: Any) -> Optional[float]:
    # Numeric columns and AVG come back as Decimal
    return float(value) if value is not None else None
