"""
SQLAlchemy Models for the SEO Search Box

These tables are owned by the web application's migrations; the backend only
reads them. The models describe the shapes the query layer relies on and let
local development create the schema on SQLite or PostgreSQL.

Identifiers are stored as UUID strings so user ids stay opaque to callers.
"""

from datetime import datetime
from uuid import uuid4

from sqlalchemy import (
    Column, String, Integer, Numeric, DateTime, Text, ForeignKey, Index, JSON,
)
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import declarative_base, relationship

Base = declarative_base()

# JSONB on PostgreSQL, plain JSON elsewhere (SQLite in tests)
JSONType = JSON().with_variant(JSONB(), "postgresql")


def _uuid_str() -> str:
    return str(uuid4())


# =============================================================================
# SEARCHES
# =============================================================================

class Search(Base):
    """A past query made by a user"""
    __tablename__ = "searches"

    id = Column(String(36), primary_key=True, default=_uuid_str)
    user_id = Column(String(36), ForeignKey("users.id", ondelete="SET NULL"), nullable=True)

    # domain, keyword, url, phone, business or address
    input_type = Column(String(20), nullable=False)
    input_value = Column(Text, nullable=False)
    normalized_value = Column(Text)  # cleaned/standardized input

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    saved_by = relationship("SavedSearch", back_populates="search", cascade="all, delete-orphan")
    keyword_data = relationship("KeywordData", back_populates="search", cascade="all, delete-orphan")
    domain_data = relationship("DomainData", back_populates="search", cascade="all, delete-orphan")
    business_data = relationship("BusinessData", back_populates="search", cascade="all, delete-orphan")

    __table_args__ = (
        Index("searches_user_id_idx", "user_id"),
        Index("searches_input_type_idx", "input_type"),
        Index("searches_created_at_idx", "created_at"),
        Index("searches_user_created_idx", "user_id", "created_at"),
    )


class SavedSearch(Base):
    """Named bookmark pointing at exactly one search"""
    __tablename__ = "saved_searches"

    id = Column(String(36), primary_key=True, default=_uuid_str)
    user_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    search_id = Column(String(36), ForeignKey("searches.id", ondelete="CASCADE"), nullable=False)
    name = Column(Text)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    search = relationship("Search", back_populates="saved_by")

    __table_args__ = (
        Index("saved_searches_user_id_idx", "user_id"),
        Index("saved_searches_search_id_idx", "search_id"),
    )


# =============================================================================
# SEARCH RESULTS - one provider payload per search, keyed by input type
# =============================================================================

class KeywordData(Base):
    """Keyword metrics captured for a keyword search"""
    __tablename__ = "keyword_data"

    id = Column(String(36), primary_key=True, default=_uuid_str)
    search_id = Column(String(36), ForeignKey("searches.id", ondelete="CASCADE"), nullable=False)
    keyword = Column(Text, nullable=False)
    search_volume = Column(Integer)
    cpc_low = Column(Numeric(10, 2))
    cpc_high = Column(Numeric(10, 2))
    cpc_avg = Column(Numeric(10, 2))
    competition = Column(Numeric(5, 4))  # 0-1
    difficulty = Column(Integer)         # 0-100
    search_intent = Column(String(50))
    trend_data = Column(JSONType)        # [{"month": ..., "volume": ...}, ...]
    serp_features = Column(JSONType)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    search = relationship("Search", back_populates="keyword_data")
    related_keywords = relationship("RelatedKeyword", back_populates="keyword_data",
                                    cascade="all, delete-orphan")

    __table_args__ = (
        Index("keyword_data_search_id_idx", "search_id"),
        Index("keyword_data_keyword_idx", "keyword"),
    )


class RelatedKeyword(Base):
    """Suggestion attached to a keyword result"""
    __tablename__ = "related_keywords"

    id = Column(String(36), primary_key=True, default=_uuid_str)
    keyword_data_id = Column(String(36), ForeignKey("keyword_data.id", ondelete="CASCADE"), nullable=False)
    keyword = Column(Text, nullable=False)
    search_volume = Column(Integer)
    cpc = Column(Numeric(10, 2))
    relevance_score = Column(Numeric(5, 4))
    keyword_type = Column(String(50))  # related, question, long_tail

    keyword_data = relationship("KeywordData", back_populates="related_keywords")

    __table_args__ = (
        Index("related_keywords_keyword_data_id_idx", "keyword_data_id"),
    )


class DomainData(Base):
    """Domain overview captured for a domain or url search"""
    __tablename__ = "domain_data"

    id = Column(String(36), primary_key=True, default=_uuid_str)
    search_id = Column(String(36), ForeignKey("searches.id", ondelete="CASCADE"), nullable=False)
    domain = Column(Text, nullable=False)
    domain_rank = Column(Integer)
    backlink_count = Column(Integer)
    referring_domains = Column(Integer)
    organic_traffic = Column(Integer)
    organic_keywords_count = Column(Integer)
    competitor_domains = Column(JSONType)
    whois_data = Column(JSONType)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    search = relationship("Search", back_populates="domain_data")
    ranked_keywords = relationship("RankedKeyword", back_populates="domain_data",
                                   cascade="all, delete-orphan")

    __table_args__ = (
        Index("domain_data_search_id_idx", "search_id"),
        Index("domain_data_domain_idx", "domain"),
    )


class RankedKeyword(Base):
    """Keyword a domain ranks for at capture time"""
    __tablename__ = "ranked_keywords"

    id = Column(String(36), primary_key=True, default=_uuid_str)
    domain_data_id = Column(String(36), ForeignKey("domain_data.id", ondelete="CASCADE"), nullable=False)
    keyword = Column(Text, nullable=False)
    position = Column(Integer)
    search_volume = Column(Integer)
    url = Column(Text)
    previous_position = Column(Integer)

    domain_data = relationship("DomainData", back_populates="ranked_keywords")

    __table_args__ = (
        Index("ranked_keywords_domain_data_id_idx", "domain_data_id"),
    )


class BusinessData(Base):
    """Business listing captured for a business or phone search"""
    __tablename__ = "business_data"

    id = Column(String(36), primary_key=True, default=_uuid_str)
    search_id = Column(String(36), ForeignKey("searches.id", ondelete="CASCADE"), nullable=False)
    business_name = Column(Text)
    address = Column(Text)
    city = Column(String(100))
    state = Column(String(50))
    zip = Column(String(20))
    country = Column(String(50))
    phone = Column(String(50))
    website = Column(Text)
    category = Column(String(100))
    google_rating = Column(Numeric(2, 1))
    google_review_count = Column(Integer)
    recent_reviews = Column(JSONType)
    review_sentiment = Column(JSONType)
    linkedin_url = Column(Text)
    social_profiles = Column(JSONType)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    search = relationship("Search", back_populates="business_data")

    __table_args__ = (
        Index("business_data_search_id_idx", "search_id"),
        Index("business_data_phone_idx", "phone"),
    )


# =============================================================================
# RANK TRACKING
# =============================================================================

class SerpHistory(Base):
    """One observed SERP position for a (keyword, domain) pair"""
    __tablename__ = "serp_history"

    id = Column(String(36), primary_key=True, default=_uuid_str)
    keyword = Column(Text, nullable=False)  # normalized
    domain = Column(Text, nullable=False)   # normalized
    position = Column(Integer)              # NULL when not ranked
    url = Column(Text)
    recorded_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    __table_args__ = (
        Index("serp_history_keyword_domain_idx", "keyword", "domain"),
        Index("serp_history_recorded_at_idx", "recorded_at"),
    )


class TrackedKeyword(Base):
    """Keyword+domain pair on the rank tracker watch list"""
    __tablename__ = "tracked_keywords"

    id = Column(String(36), primary_key=True, default=_uuid_str)
    keyword = Column(Text, nullable=False)
    domain = Column(Text, nullable=False)
    user_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=True)
    last_position = Column(Integer)
    last_checked_at = Column(DateTime)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    __table_args__ = (
        Index("tracked_keywords_keyword_domain_idx", "keyword", "domain"),
        Index("tracked_keywords_user_id_idx", "user_id"),
    )


class DomainRankHistory(Base):
    """Periodic domain rank / organic traffic snapshot"""
    __tablename__ = "domain_rank_history"

    id = Column(String(36), primary_key=True, default=_uuid_str)
    domain = Column(Text, nullable=False)  # normalized
    domain_rank = Column(Integer)
    organic_traffic = Column(Integer)
    recorded_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    __table_args__ = (
        Index("domain_rank_history_domain_idx", "domain"),
        Index("domain_rank_history_recorded_at_idx", "recorded_at"),
    )


# =============================================================================
# WIKI ANALYSIS CACHE - populated by the offline Wayback crawler
# =============================================================================

class WikiAnalysisPage(Base):
    """Cached analysis of one Wikipedia article"""
    __tablename__ = "wiki_analysis_pages"

    slug = Column(String(500), primary_key=True)
    url = Column(Text)
    title = Column(Text)

    # Ranking data
    serp_keywords = Column(JSONType)
    keyword_count = Column(Integer, default=0)
    est_traffic = Column(Integer, default=0)

    # Links: [{"url": ..., "domain": ..., "anchor": ...}, ...]
    external_links = Column(JSONType)
    external_link_count = Column(Integer, default=0)
    internal_link_count = Column(Integer, default=0)

    # Wayback Machine captures
    wayback_monthly_captures = Column(Integer, default=0)
    wayback_first_capture = Column(DateTime)
    wayback_last_capture = Column(DateTime)
    wayback_first_url = Column(Text)
    wayback_latest_url = Column(Text)
    wayback_captures_by_year = Column(JSONType)  # {"2004": 12, "2005": 40, ...}

    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)


class WikiLinkSnapshot(Base):
    """External link state of an article at one Wayback capture"""
    __tablename__ = "wiki_link_snapshots"

    id = Column(Integer, primary_key=True, autoincrement=True)
    slug = Column(String(500), ForeignKey("wiki_analysis_pages.slug"), nullable=False)
    snapshot_date = Column(DateTime)
    snapshot_timestamp = Column(String(14))  # Wayback yyyymmddhhmmss
    wayback_url = Column(Text)
    external_link_count = Column(Integer)
    internal_link_count = Column(Integer)
    external_domains = Column(JSONType)
    title = Column(Text)
    word_count = Column(Integer)
    h1 = Column(Text)
    h2 = Column(JSONType)
    meta_description = Column(Text)
    text_preview = Column(Text)

    __table_args__ = (
        Index("wiki_link_snapshots_slug_idx", "slug", "snapshot_date"),
    )


class WikiLinkChange(Base):
    """Links added/removed between two consecutive snapshots"""
    __tablename__ = "wiki_link_changes"

    id = Column(Integer, primary_key=True, autoincrement=True)
    slug = Column(String(500), ForeignKey("wiki_analysis_pages.slug"), nullable=False)
    from_date = Column(DateTime)
    to_date = Column(DateTime)
    from_timestamp = Column(String(14))
    to_timestamp = Column(String(14))
    links_added = Column(JSONType)
    links_removed = Column(JSONType)
    domains_added = Column(JSONType)
    domains_removed = Column(JSONType)
    links_added_count = Column(Integer)
    links_removed_count = Column(Integer)
    word_count_before = Column(Integer)
    word_count_after = Column(Integer)
    h2_before = Column(JSONType)
    h2_after = Column(JSONType)

    __table_args__ = (
        Index("wiki_link_changes_slug_idx", "slug", "from_date"),
    )


class WikiPageHistory(Base):
    """Earlier content history of an article"""
    __tablename__ = "wiki_page_history"

    id = Column(Integer, primary_key=True, autoincrement=True)
    slug = Column(String(500), ForeignKey("wiki_analysis_pages.slug"), nullable=False)
    snapshot_date = Column(DateTime)
    snapshot_timestamp = Column(String(14))
    wayback_url = Column(Text)
    title = Column(Text)
    word_count = Column(Integer)
    h1 = Column(Text)
    h2 = Column(JSONType)
    link_count_internal = Column(Integer)
    link_count_external = Column(Integer)
    text_preview = Column(Text)

    __table_args__ = (
        Index("wiki_page_history_slug_idx", "slug", "snapshot_date"),
    )
