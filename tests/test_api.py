"""
API Integration Tests — Endpoint Verification

Tests every public API endpoint using FastAPI's TestClient, against a
throwaway history database and a fresh result cache.

These tests catch:
  - Schema mismatches (response model vs actual data)
  - Route registration issues
  - Middleware bugs
  - Response format regressions
"""

from __future__ import annotations

import pytest
from fastapi.testclient import TestClient

from reviewtrust.cache import AnalysisCache
from reviewtrust.history import AnalysisHistory


POLARIZED = {
    "ratings": {"1": 40, "2": 2, "3": 2, "4": 2, "5": 54},
    "total_reviews": 100,
    "recent_reviews": [
        {"text": "Absolutely wonderful dinner with friends", "date_text": "3 months ago"},
    ],
    "place_name": "Sample Cafe",
}

NATURAL = {
    "ratings": {"1": 5, "2": 5, "3": 15, "4": 35, "5": 40},
    "total_reviews": 100,
    "place_name": "Quiet Bistro",
}


# --- Fixtures ---

@pytest.fixture(scope="module")
def client(tmp_path_factory):
    """Test client wired to a temporary history store."""
    import api.main as main

    db_path = tmp_path_factory.mktemp("history") / "history.db"
    with pytest.MonkeyPatch.context() as mp:
        mp.setattr(main, "_history", AnalysisHistory(db_path=str(db_path)))
        mp.setattr(main, "analysis_cache", AnalysisCache(ttl_seconds=60))
        with TestClient(main.app) as c:
            yield c


# ============================================================
# HEALTH & META
# ============================================================

class TestHealth:

    def test_health_returns_200(self, client):
        assert client.get("/health").status_code == 200

    def test_health_fields(self, client):
        data = client.get("/health").json()
        assert data["status"] == "operational"
        assert data["version"]
        assert data["rules_version"]
        assert "history_entries" in data
        assert "hit_rate" in data["cache"]

    def test_version_headers(self, client):
        r = client.get("/health")
        assert "X-ReviewTrust-Version" in r.headers
        assert "X-Rules-Version" in r.headers
        assert r.headers["X-Content-Type-Options"] == "nosniff"


# ============================================================
# ANALYZE
# ============================================================

class TestAnalyze:

    def test_polarized_listing(self, client):
        r = client.post("/analyze", json={"dataset": POLARIZED})
        assert r.status_code == 200
        data = r.json()
        assert data["status"] == "completed"
        assert data["analysis"]["score"] == 10
        assert data["analysis"]["level"] == "very_low"
        assert data["patterns"][0]["type"] == "polarized_ratings"
        assert data["patterns"][0]["severity"] == "high"
        assert data["analysis"]["breakdown"]["final_score"] == 10

    def test_natural_listing(self, client):
        data = client.post("/analyze", json={"dataset": NATURAL}).json()
        assert data["analysis"]["score"] == 100
        assert data["analysis"]["level"] == "high"
        assert data["patterns"] == []

    def test_strict_mode(self, client):
        dataset = {"ratings": {"1": 5, "2": 5, "3": 15, "4": 10, "5": 15}, "total_reviews": 50}
        data = client.post("/analyze", json={
            "dataset": dataset, "settings": {"analysis_mode": "strict"},
        }).json()
        assert data["analysis"]["score"] == 95

    def test_insufficient_data(self, client):
        data = client.post("/analyze", json={
            "dataset": {"ratings": {"1": 3}, "total_reviews": 3},
        }).json()
        assert data["status"] == "insufficient_data"
        assert data["analysis"] is None
        assert data["minimum_reviews"] == 5

    def test_details_hidden(self, client):
        data = client.post("/analyze", json={
            "dataset": POLARIZED, "settings": {"show_detailed_analysis": False},
        }).json()
        assert data["analysis"]["breakdown"] is None
        assert data["patterns"][0]["metadata"] == {}

    def test_repeat_request_is_cached(self, client):
        body = {"dataset": {**NATURAL, "place_name": "Cache Corner"}}
        first = client.post("/analyze", json=body).json()
        second = client.post("/analyze", json=body).json()
        assert first["cached"] is False
        assert second["cached"] is True
        assert second["analysis"] == first["analysis"]

    def test_invalid_rating_key_rejected(self, client):
        r = client.post("/analyze", json={"dataset": {"ratings": {"6": 10}, "total_reviews": 10}})
        assert r.status_code == 422

    def test_negative_total_rejected(self, client):
        r = client.post("/analyze", json={"dataset": {"total_reviews": -1}})
        assert r.status_code == 422

    def test_missing_dataset_rejected(self, client):
        assert client.post("/analyze", json={}).status_code == 422


# ============================================================
# DETECT & SCORE
# ============================================================

class TestDetect:

    def test_detect_returns_all_factors(self, client):
        data = client.post("/patterns/detect", json={"dataset": POLARIZED}).json()
        assert set(data["suspicion_factors"]) == {
            "polarized_ratings", "burst_posting", "short_reviews",
            "duplicate_patterns", "new_accounts",
        }
        assert data["suspicion_factors"]["polarized_ratings"] == 90
        assert len(data["suspicious_patterns"]) == 1

    def test_detect_duplicates(self, client):
        text = "The food was great and the staff were friendly"
        dataset = {
            "total_reviews": 50,
            "recent_reviews": [
                {"text": text}, {"text": text},
                {"text": "Parking was difficult to find on weekends"},
            ],
        }
        data = client.post("/patterns/detect", json={"dataset": dataset}).json()
        assert data["suspicion_factors"]["duplicate_patterns"] == pytest.approx(18.0)


class TestScore:

    def test_score_supplied_factors(self, client):
        r = client.post("/score", json={
            "suspicion_factors": {"polarized_ratings": 90},
            "suspicious_patterns": [{"type": "polarized_ratings", "severity": "high"}],
            "dataset": {"ratings": POLARIZED["ratings"], "total_reviews": 100},
        })
        assert r.status_code == 200
        data = r.json()
        assert data["score"] == 10
        assert data["breakdown"]["adjustments"] == -5

    def test_unknown_pattern_type_rejected(self, client):
        r = client.post("/score", json={
            "suspicious_patterns": [{"type": "sock_puppets", "severity": "high"}],
            "dataset": {"total_reviews": 100},
        })
        assert r.status_code == 422


# ============================================================
# HISTORY
# ============================================================

class TestHistory:

    def test_history_lifecycle(self, client):
        client.delete("/history")
        url = "https://www.google.com/maps/place/sample-cafe"
        client.post("/analyze", json={"dataset": {**POLARIZED, "url": url}})

        data = client.get("/history").json()
        assert data["total_count"] == 1
        assert data["entries"][0]["url"] == url
        assert data["entries"][0]["trust_score"] == 10

        r = client.delete("/history")
        assert r.json() == {"cleared": 1}
        assert client.get("/history").json()["total_count"] == 0

    def test_limit_validated(self, client):
        assert client.get("/history?limit=0").status_code == 422

    def test_export_then_import(self, client):
        client.delete("/history")
        url = "https://www.google.com/maps/place/export-cafe"
        client.post("/analyze", json={"dataset": {**NATURAL, "url": url}})

        snapshot = client.get("/history/export").json()
        assert snapshot["version"]
        assert [e["url"] for e in snapshot["analysis_history"]] == [url]

        client.delete("/history")
        r = client.post("/history/import", json=snapshot)
        assert r.status_code == 200
        assert r.json() == {"imported": 1}
        assert client.get("/history").json()["entries"][0]["url"] == url

    def test_import_rejects_bad_snapshot(self, client):
        r = client.post("/history/import", json={"analysis_history": []})
        assert r.status_code == 400


# ============================================================
# SETTINGS
# ============================================================

class TestSettings:

    def test_defaults(self, client):
        data = client.get("/settings/defaults").json()
        assert data["analysis_mode"] == "standard"
        assert data["minimum_reviews_for_analysis"] == 5

    def test_validate_good(self, client):
        data = client.post("/settings/validate", json={"analysisMode": "lenient"}).json()
        assert data["valid"] is True
        assert data["settings"]["analysis_mode"] == "lenient"

    def test_validate_bad(self, client):
        data = client.post("/settings/validate", json={
            "analysis_mode": "bogus", "suspicion_threshold": 500,
        }).json()
        assert data["valid"] is False
        assert len(data["errors"]) == 2
        assert data["settings"]["analysis_mode"] == "standard"
        assert data["settings"]["suspicion_threshold"] == 40
