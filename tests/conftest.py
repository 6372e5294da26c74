"""
Pytest Configuration and Shared Fixtures

Provides an in-memory database, seed data and an application factory
with a fake session resolver for all test modules.
"""

import pytest
from datetime import datetime, timedelta
from decimal import Decimal
from typing import Optional

import httpx
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from src.auth.models import SessionRecord, User, UserSession
from src.auth.resolver import SessionResolver
from src.database.models import (
    Base,
    Search,
    SavedSearch,
    KeywordData,
    RelatedKeyword,
    DomainData,
    RankedKeyword,
    SerpHistory,
    TrackedKeyword,
    DomainRankHistory,
    WikiAnalysisPage,
    WikiLinkSnapshot,
)
from src.database.session import get_optional_db, init_db
from src.integrations.status_client import StatusClient


USER_ID = "11111111-1111-1111-1111-111111111111"
OTHER_USER_ID = "22222222-2222-2222-2222-222222222222"
SESSION_TOKEN = "valid-session-token"
IN_MEMORY = object()


# ============================================================================
# Fake Collaborators
# ============================================================================

class FakeResolver(SessionResolver):
    """Resolver that returns a fixed session (or raises)."""

    def __init__(self, session: Optional[UserSession] = None, error: Exception = None):
        self.session = session
        self.error = error
        self.calls = 0

    def resolve(self, request):
        self.calls += 1
        if self.error is not None:
            raise self.error
        return self.session


def make_status_client(handler=None) -> StatusClient:
    """Status client backed by httpx.MockTransport."""
    if handler is None:
        def handler(request):
            return httpx.Response(200, json={"connected": False})
    return StatusClient(
        base_url="https://status.test",
        transport=httpx.MockTransport(handler),
    )


# ============================================================================
# Database Fixtures
# ============================================================================

@pytest.fixture
def engine():
    """Fresh in-memory SQLite database per test."""
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    init_db(engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(bind=engine, autocommit=False, autoflush=False)


@pytest.fixture
def db_session(session_factory):
    db = session_factory()
    yield db
    db.close()


@pytest.fixture
def users(db_session):
    """Two users, the first with a live session token."""
    now = datetime.utcnow()
    alice = User(id=USER_ID, email="alice@example.com", name="Alice")
    bob = User(id=OTHER_USER_ID, email="bob@example.com", name="Bob")
    db_session.add_all([alice, bob])
    db_session.flush()
    db_session.add_all([
        SessionRecord(session_token=SESSION_TOKEN, user_id=USER_ID, expires=now + timedelta(days=1)),
        SessionRecord(session_token="expired-token", user_id=OTHER_USER_ID, expires=now - timedelta(days=1)),
    ])
    db_session.commit()
    return alice, bob


@pytest.fixture
def seeded_searches(db_session, users):
    """Three searches for Alice (oldest first), one for Bob, one saved search."""
    now = datetime.utcnow()
    searches = [
        Search(id="s1", user_id=USER_ID, input_type="domain", input_value="example.com",
               normalized_value="example.com", created_at=now - timedelta(days=3)),
        Search(id="s2", user_id=USER_ID, input_type="keyword", input_value="Best Pizza 100%",
               normalized_value="best pizza 100%", created_at=now - timedelta(days=2)),
        Search(id="s3", user_id=USER_ID, input_type="keyword", input_value="pizza near me",
               normalized_value="pizza near me", created_at=now - timedelta(days=1)),
        Search(id="s4", user_id=OTHER_USER_ID, input_type="url", input_value="https://bob.dev/pizza",
               normalized_value="bob.dev/pizza", created_at=now),
    ]
    db_session.add_all(searches)
    db_session.flush()
    db_session.add(SavedSearch(id="saved1", user_id=USER_ID, search_id="s2",
                               name="Pizza research", created_at=now))
    db_session.commit()
    return searches


@pytest.fixture
def seeded_rank_history(db_session):
    """Positions for (best pizza, example.com) plus noise outside the key/window."""
    now = datetime.utcnow()
    db_session.add_all([
        SerpHistory(keyword="best pizza", domain="example.com", position=7,
                    url="https://example.com/pizza", recorded_at=now - timedelta(days=10)),
        SerpHistory(keyword="best pizza", domain="example.com", position=None,
                    url=None, recorded_at=now - timedelta(days=5)),
        SerpHistory(keyword="best pizza", domain="example.com", position=3,
                    url="https://example.com/pizza", recorded_at=now - timedelta(days=1)),
        SerpHistory(keyword="best pizza", domain="example.com", position=15,
                    url="https://example.com/old", recorded_at=now - timedelta(days=200)),
        SerpHistory(keyword="best pizza", domain="other.com", position=1,
                    url="https://other.com/", recorded_at=now - timedelta(days=2)),
    ])
    db_session.commit()


@pytest.fixture
def seeded_tracked(db_session, users):
    now = datetime.utcnow()
    db_session.add_all([
        TrackedKeyword(id="t1", keyword="best pizza", domain="example.com", user_id=USER_ID,
                       last_position=3, last_checked_at=now - timedelta(hours=1),
                       created_at=now - timedelta(days=30)),
        TrackedKeyword(id="t2", keyword="pizza oven", domain="example.com", user_id=USER_ID,
                       last_position=None, last_checked_at=None,
                       created_at=now - timedelta(days=1)),
        TrackedKeyword(id="t3", keyword="rust jobs", domain="bob.dev", user_id=OTHER_USER_ID,
                       last_position=12, last_checked_at=now,
                       created_at=now - timedelta(days=2)),
    ])
    db_session.commit()


@pytest.fixture
def seeded_search_results(db_session, seeded_searches):
    """
    Result payloads for the seeded searches.

    Alice looked up "best pizza" twice and "pizza near me" once, and
    example.com twice (rank 40 then 45) and other.com once. Bob's only
    capture is bob.dev.
    """
    now = datetime.utcnow()

    best_pizza = KeywordData(
        id="kd1", search_id="s2", keyword="best pizza", search_volume=1000,
        cpc_low=Decimal("0.50"), cpc_high=Decimal("2.50"), cpc_avg=Decimal("1.25"),
        competition=Decimal("0.4200"), difficulty=55, search_intent="commercial",
        created_at=now - timedelta(days=2),
    )
    best_pizza.related_keywords = [
        RelatedKeyword(keyword="pizza, near me", search_volume=500, cpc=Decimal("0.90"),
                       keyword_type="related"),
        RelatedKeyword(keyword='best "new york" pizza', search_volume=90, cpc=None,
                       keyword_type="long_tail"),
    ]
    example = DomainData(
        id="dd1", search_id="s1", domain="example.com", domain_rank=40,
        backlink_count=1200, referring_domains=300, organic_traffic=5000,
        organic_keywords_count=800, created_at=now - timedelta(days=3),
    )
    example.ranked_keywords = [
        RankedKeyword(keyword="pizza oven", position=12, search_volume=300,
                      url="https://example.com/ovens"),
        RankedKeyword(keyword="best pizza", position=3, search_volume=1000,
                      url="https://example.com/pizza"),
    ]
    db_session.add_all([
        best_pizza,
        example,
        KeywordData(id="kd2", search_id="s3", keyword="best pizza", search_volume=1400,
                    cpc_avg=Decimal("1.75"), competition=Decimal("0.5000"),
                    created_at=now - timedelta(hours=20)),
        KeywordData(id="kd3", search_id="s3", keyword="pizza near me", search_volume=800,
                    created_at=now - timedelta(hours=20)),
        DomainData(id="dd2", search_id="s3", domain="example.com", domain_rank=45,
                   created_at=now - timedelta(hours=20)),
        DomainData(id="dd3", search_id="s2", domain="other.com", domain_rank=10,
                   created_at=now - timedelta(days=2)),
        DomainData(id="dd4", search_id="s4", domain="bob.dev", domain_rank=7,
                   created_at=now),
    ])
    db_session.commit()


@pytest.fixture
def seeded_domain_ranks(db_session):
    now = datetime.utcnow()
    db_session.add_all([
        DomainRankHistory(domain="example.com", domain_rank=40, organic_traffic=4000,
                          recorded_at=now - timedelta(days=100)),
        DomainRankHistory(domain="example.com", domain_rank=42, organic_traffic=4500,
                          recorded_at=now - timedelta(days=30)),
        DomainRankHistory(domain="example.com", domain_rank=45, organic_traffic=5000,
                          recorded_at=now - timedelta(days=1)),
        DomainRankHistory(domain="other.com", domain_rank=10, organic_traffic=100,
                          recorded_at=now - timedelta(days=5)),
    ])
    db_session.commit()


@pytest.fixture
def seeded_wiki(db_session):
    db_session.add_all([
        WikiAnalysisPage(
            slug="Pizza", url="https://en.wikipedia.org/wiki/Pizza", title="Pizza",
            keyword_count=40, est_traffic=9000,
            external_links=[{"domain": "nytimes.com"}, {"domain": "bbc.co.uk"}],
            external_link_count=2, internal_link_count=300,
            wayback_monthly_captures=120,
            wayback_first_capture=datetime(2003, 5, 1),
            wayback_captures_by_year={"2003": 4, "2004": 30},
        ),
        WikiAnalysisPage(
            slug="Calzone", url="https://en.wikipedia.org/wiki/Calzone", title="Calzone",
            keyword_count=10, est_traffic=800,
            external_links=[{"domain": "nytimes.com"}],
            external_link_count=1, internal_link_count=50,
            wayback_monthly_captures=30,
            wayback_first_capture=datetime(2005, 1, 1),
        ),
        WikiAnalysisPage(
            slug="Stromboli", title="Stromboli",
            keyword_count=0, external_link_count=0, internal_link_count=5,
            wayback_monthly_captures=0,
        ),
    ])
    db_session.flush()
    db_session.add_all([
        WikiLinkSnapshot(slug="Pizza", snapshot_date=datetime(2010, 1, 1), external_link_count=1),
        WikiLinkSnapshot(slug="Pizza", snapshot_date=datetime(2008, 1, 1), external_link_count=0),
    ])
    db_session.commit()


# ============================================================================
# Application Fixtures
# ============================================================================

@pytest.fixture
def alice_session() -> UserSession:
    return UserSession(user_id=USER_ID, email="alice@example.com", name="Alice")


@pytest.fixture
def make_client(db_session):
    """
    Factory for a TestClient around a fresh app.

    db: omitted for the in-memory database, None for "not configured", or
    any object to inject as the database session.
    """
    from api.main import create_app

    def _make(session=None, resolver=None, status_handler=None, db=IN_MEMORY):
        app = create_app(
            session_resolver=resolver or FakeResolver(session),
            status_client=make_status_client(status_handler),
        )
        injected = db_session if db is IN_MEMORY else db
        app.dependency_overrides[get_optional_db] = lambda: injected
        return TestClient(app)

    return _make


# ============================================================================
# Test Markers
# ============================================================================

def pytest_configure(config):
    """Configure custom markers."""
    config.addinivalue_line(
        "markers", "integration: marks tests as integration tests"
    )
    config.addinivalue_line(
        "markers", "unit: marks tests as unit tests"
    )
