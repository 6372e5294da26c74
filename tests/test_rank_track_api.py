"""
Rank Tracking API Tests

Tests for the /api/rank-track endpoints.
"""

import pytest
from unittest.mock import MagicMock, patch

from src.auth.models import UserSession
from src.database.models import TrackedKeyword

from tests.conftest import USER_ID


# =============================================================================
# HISTORY
# =============================================================================

class TestRankHistoryValidation:
    """Parameter validation happens before any database access."""

    @pytest.mark.parametrize("query", [
        "",
        "?keyword=pizza",
        "?domain=example.com",
        "?keyword=&domain=example.com",
        "?keyword=pizza&domain=",
        "?keyword=pizza&domain=https://",
        "?keyword=pizza&domain=www.",
        "?keyword=%20%20&domain=example.com",
    ])
    def test_missing_params(self, make_client, query):
        db = MagicMock()
        client = make_client(db=db)
        response = client.get(f"/api/rank-track/history{query}")

        assert response.status_code == 400
        assert "error" in response.json()
        assert not db.mock_calls

    @pytest.mark.parametrize("days", ["0", "-3", "abc", "1.5"])
    def test_invalid_days(self, make_client, days):
        client = make_client()
        response = client.get(f"/api/rank-track/history?keyword=pizza&domain=example.com&days={days}")

        assert response.status_code == 400
        assert response.json() == {"error": "days must be a positive integer"}

    def test_validation_before_configuration_check(self, make_client):
        """Missing params are a 400 even when the database is not configured."""
        client = make_client(db=None)
        response = client.get("/api/rank-track/history?keyword=pizza")

        assert response.status_code == 400


class TestRankHistory:
    """Tests for the rank history lookup."""

    def test_database_not_configured(self, make_client):
        client = make_client(db=None)
        response = client.get("/api/rank-track/history?keyword=pizza&domain=example.com")

        assert response.status_code == 200
        assert response.json() == {"history": [], "message": "Database not configured"}

    def test_normalized_lookup(self, make_client, seeded_rank_history):
        """Raw keyword/domain input hits the normalized rows."""
        client = make_client()
        response = client.get(
            "/api/rank-track/history",
            params={"keyword": "  Best Pizza ", "domain": "https://www.Example.com/"},
        )

        assert response.status_code == 200
        data = response.json()
        assert data["keyword"] == "best pizza"
        assert data["domain"] == "example.com"
        assert [p["position"] for p in data["history"]] == [7, None, 3]
        assert set(data["history"][0]) == {"position", "url", "recordedAt"}

    def test_days_param(self, make_client, seeded_rank_history):
        client = make_client()
        response = client.get(
            "/api/rank-track/history",
            params={"keyword": "best pizza", "domain": "example.com", "days": "365"},
        )

        assert [p["position"] for p in response.json()["history"]] == [15, 7, None, 3]

    def test_no_history(self, make_client, seeded_rank_history):
        client = make_client()
        response = client.get("/api/rank-track/history?keyword=calzone&domain=example.com")

        assert response.status_code == 200
        assert response.json()["history"] == []

    def test_query_failure(self, make_client):
        """Database errors are logged and hidden behind a generic 500."""
        client = make_client()
        with patch("api.rank_track.get_serp_history", side_effect=RuntimeError("connection reset")):
            response = client.get("/api/rank-track/history?keyword=pizza&domain=example.com")

        assert response.status_code == 500
        assert response.json() == {"error": "Failed to fetch rank history"}


# =============================================================================
# DOMAIN AND KEYWORD HISTORY
# =============================================================================

class TestDomainHistory:
    """Tests for GET /api/rank-track/domain-history."""

    def test_normalized_lookup(self, make_client, seeded_domain_ranks):
        response = make_client().get(
            "/api/rank-track/domain-history", params={"domain": "https://www.Example.com/"},
        )

        assert response.status_code == 200
        data = response.json()
        assert data["domain"] == "example.com"
        assert [p["domainRank"] for p in data["history"]] == [42, 45]
        assert set(data["history"][0]) == {"domainRank", "organicTraffic", "recordedAt"}

    def test_days_param(self, make_client, seeded_domain_ranks):
        response = make_client().get("/api/rank-track/domain-history?domain=example.com&days=365")
        assert [p["domainRank"] for p in response.json()["history"]] == [40, 42, 45]

    @pytest.mark.parametrize("query", ["", "?domain=", "?domain=https://", "?domain=www."])
    def test_missing_domain(self, make_client, query):
        db = MagicMock()
        response = make_client(db=db).get(f"/api/rank-track/domain-history{query}")

        assert response.status_code == 400
        assert response.json() == {"error": "domain query param is required"}
        assert not db.mock_calls

    def test_invalid_days(self, make_client):
        response = make_client().get("/api/rank-track/domain-history?domain=example.com&days=0")
        assert response.status_code == 400

    def test_database_not_configured(self, make_client):
        response = make_client(db=None).get("/api/rank-track/domain-history?domain=example.com")
        assert response.json() == {"history": [], "message": "Database not configured"}

    def test_query_failure(self, make_client):
        with patch("api.rank_track.get_domain_rank_history", side_effect=RuntimeError("boom")):
            response = make_client().get("/api/rank-track/domain-history?domain=example.com")

        assert response.status_code == 500
        assert response.json() == {"error": "Failed to fetch domain history"}


class TestKeywordHistory:
    """Tests for GET /api/rank-track/keyword-history."""

    def test_trend(self, make_client, seeded_search_results):
        response = make_client().get("/api/rank-track/keyword-history", params={"keyword": " Best Pizza "})

        assert response.status_code == 200
        data = response.json()
        assert data["keyword"] == "best pizza"
        assert [p["searchVolume"] for p in data["history"]] == [1000, 1400]
        assert data["history"][0]["cpcAvg"] == pytest.approx(1.25)
        assert set(data["history"][0]) == {"searchVolume", "cpcAvg", "competition", "createdAt"}

    @pytest.mark.parametrize("query", ["", "?keyword=", "?keyword=%20"])
    def test_missing_keyword(self, make_client, query):
        response = make_client(db=None).get(f"/api/rank-track/keyword-history{query}")

        assert response.status_code == 400
        assert response.json() == {"error": "keyword query param is required"}

    def test_database_not_configured(self, make_client):
        response = make_client(db=None).get("/api/rank-track/keyword-history?keyword=pizza")
        assert response.json()["history"] == []

    def test_query_failure(self, make_client):
        with patch("api.rank_track.get_keyword_history", side_effect=RuntimeError("boom")):
            response = make_client().get("/api/rank-track/keyword-history?keyword=pizza")

        assert response.status_code == 500
        assert response.json() == {"error": "Failed to fetch keyword history"}


# =============================================================================
# TRACKED
# =============================================================================

class TestTrackedKeywords:
    """Tests for the tracked keyword list."""

    def test_database_not_configured(self, make_client):
        client = make_client(db=None)
        response = client.get("/api/rank-track/tracked")

        assert response.status_code == 200
        assert response.json()["tracked"] == []
        assert response.json()["message"] == "Database not configured"

    def test_same_list_signed_in_and_out(self, make_client, db_session, seeded_tracked):
        """The tracker is shared: a session does not narrow the list."""
        db_session.add(TrackedKeyword(id="t4", keyword="calzone", domain="example.com",
                                      user_id=None, last_checked_at=None))
        db_session.commit()

        signed_in = make_client(session=UserSession(user_id=USER_ID)).get("/api/rank-track/tracked")
        signed_out = make_client(session=None).get("/api/rank-track/tracked")

        ids = [t["id"] for t in signed_in.json()["tracked"]]
        assert ids == [t["id"] for t in signed_out.json()["tracked"]]
        assert set(ids) == {"t1", "t2", "t3", "t4"}
        assert ids[:2] == ["t3", "t1"]

    def test_record_shape(self, make_client, seeded_tracked):
        response = make_client().get("/api/rank-track/tracked")

        first = response.json()["tracked"][0]
        assert set(first) == {"id", "keyword", "domain", "lastPosition", "lastCheckedAt", "createdAt"}
        assert first["lastPosition"] == 12

    def test_query_failure(self, make_client):
        client = make_client()
        with patch("api.rank_track.get_tracked_keywords", side_effect=RuntimeError("boom")):
            response = client.get("/api/rank-track/tracked")

        assert response.status_code == 500
        assert "error" in response.json()


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
