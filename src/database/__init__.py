"""
SEO Search Box Database Layer

Read-only access to the tables the web application writes.

Usage:
    from src.database import get_optional_db, get_serp_history

    @router.get("/history")
    def history(db: Optional[Session] = Depends(get_optional_db)):
        if db is None:
            return {"history": [], "message": "Database not configured"}
        return {"history": get_serp_history(db, "best pizza", "example.com")}
"""

# Models
from .models import (
    Base,
    Search,
    SavedSearch,
    KeywordData,
    RelatedKeyword,
    DomainData,
    RankedKeyword,
    BusinessData,
    SerpHistory,
    TrackedKeyword,
    DomainRankHistory,
    WikiAnalysisPage,
    WikiLinkSnapshot,
    WikiLinkChange,
    WikiPageHistory,
)

# Session management
from .session import (
    get_db,
    get_optional_db,
    get_engine,
    get_session_factory,
    init_db,
    check_db_connection,
    is_database_configured,
)

# Repository (read-only query boundary)
from .repository import (
    get_user_searches,
    get_recent_searches,
    search_user_history,
    get_user_search_stats,
    get_search_with_data,
    get_top_keywords,
    get_top_domains,
    get_user_saved_searches,
    get_serp_history,
    get_tracked_keywords,
    get_domain_rank_history,
    get_keyword_history,
    get_wiki_pages,
    get_wiki_stats,
    get_wiki_top_domains,
    get_wiki_page_detail,
)

__all__ = [
    # Models
    "Base",
    "Search",
    "SavedSearch",
    "KeywordData",
    "RelatedKeyword",
    "DomainData",
    "RankedKeyword",
    "BusinessData",
    "SerpHistory",
    "TrackedKeyword",
    "DomainRankHistory",
    "WikiAnalysisPage",
    "WikiLinkSnapshot",
    "WikiLinkChange",
    "WikiPageHistory",
    # Session
    "get_db",
    "get_optional_db",
    "get_engine",
    "get_session_factory",
    "init_db",
    "check_db_connection",
    "is_database_configured",
    # Repository
    "get_user_searches",
    "get_recent_searches",
    "search_user_history",
    "get_user_search_stats",
    "get_search_with_data",
    "get_top_keywords",
    "get_top_domains",
    "get_user_saved_searches",
    "get_serp_history",
    "get_tracked_keywords",
    "get_domain_rank_history",
    "get_keyword_history",
    "get_wiki_pages",
    "get_wiki_stats",
    "get_wiki_top_domains",
    "get_wiki_page_detail",
]
