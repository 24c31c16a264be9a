"""
API Integration Tests — Endpoint Verification

Tests every public API endpoint using FastAPI's TestClient.

These tests catch:
  - Schema mismatches (response model vs actual data)
  - Route registration issues
  - Request validation regressions
  - Response format regressions
"""

from __future__ import annotations

import pytest
from fastapi.testclient import TestClient


# --- Fixtures ---

@pytest.fixture(scope="module")
def client():
    """Create a test client for the MedCheck API."""
    from api.main import app
    with TestClient(app) as c:
        yield c


# ============================================================
# HEALTH
# ============================================================

class TestHealth:
    """Verify /health returns correct structure."""

    def test_health_returns_200(self, client):
        r = client.get("/health")
        assert r.status_code == 200

    def test_health_fields(self, client):
        data = client.get("/health").json()
        assert data["status"] == "operational"
        assert data["version"]
        assert data["core_version"]
        assert data["dictionary_version"]
        assert data["rule_counts"]["patterns"] == 26
        assert data["rule_counts"]["compound_rules"] == 10


# ============================================================
# ANALYZE
# ============================================================

class TestAnalyze:
    """Verify /analyze runs the whole pipeline."""

    def test_guarantee_copy(self, client):
        r = client.post("/analyze", json={"text": "이 시술은 100% 완치를 보장합니다"})
        assert r.status_code == 200
        data = r.json()
        assert data["id"].startswith("vd_")
        assert data["no_input"] is False
        assert data["judgment"]["score"]["clean_score"] == 71
        assert data["judgment"]["score"]["grade"] == "D"
        assert data["judgment"]["violations"][0]["severity"] == "critical"
        assert data["impression"]["risk_level"] in ("safe", "low", "medium", "high", "critical")
        assert data["mandatory_check"]["is_complete"] is False

    def test_compound_violation_serialized(self, client):
        data = client.post("/analyze", json={"text": "오늘만 50% 할인! 100% 효과 보장합니다"}).json()
        rules = {v["rule_id"]: v for v in data["compound_violations"]}
        assert rules["CPD-001"]["severity"] == "critical"
        assert "P-56-01-002" in rules["CPD-001"]["related_pattern_ids"]
        assert data["section_type"] == "default"

    def test_empty_text_is_no_input(self, client):
        data = client.post("/analyze", json={"text": ""}).json()
        assert data["no_input"] is True
        assert data["judgment"]["score"]["grade"] == "S"
        assert data["compound_violations"] is None
        assert data["impression"] is None

    def test_stage_flags(self, client):
        data = client.post("/analyze", json={
            "text": "100% 완치",
            "enable_mandatory": False,
            "enable_impression": False,
        }).json()
        assert data["mandatory_check"] is None
        assert data["impression"] is None
        assert data["overall_risk_score"] is None
        assert data["department_detection"] is not None

    def test_pinned_department(self, client):
        data = client.post("/analyze", json={
            "text": "임플란트 평생 보장",
            "department": "dental",
        }).json()
        assert data["department_detection"]["pinned"] is True
        assert data["department_violations"][0]["rule_id"] == "DENT-001"

    def test_options_filter_categories(self, client):
        data = client.post("/analyze", json={
            "text": "100% 완치. 국내 최고",
            "options": {"categories": ["최상급표현"]},
        }).json()
        assert [m["pattern_id"] for m in data["matches"]] == ["P-56-03-001"]

    def test_missing_text_rejected(self, client):
        r = client.post("/analyze", json={})
        assert r.status_code == 422

    def test_invalid_department_rejected(self, client):
        r = client.post("/analyze", json={"text": "100% 완치", "department": "cardiology"})
        assert r.status_code == 422


# ============================================================
# BATCH
# ============================================================

class TestBatch:

    def test_batch_results_in_order(self, client):
        r = client.post("/analyze/batch", json={"items": [
            {"text": "보톡스 가격 안내"},
            {"text": "이 시술은 100% 완치를 보장합니다"},
        ]})
        assert r.status_code == 200
        data = r.json()
        assert data["total"] == 2
        assert data["analyzed"] == 2
        assert [item["index"] for item in data["results"]] == [0, 1]
        assert data["results"][0]["result"]["matches"] == []
        assert data["results"][1]["result"]["judgment"]["score"]["grade"] == "D"

    def test_batch_empty_rejected(self, client):
        r = client.post("/analyze/batch", json={"items": []})
        assert r.status_code == 422

    def test_batch_too_large_rejected(self, client):
        r = client.post("/analyze/batch", json={"items": [{"text": "안내"}] * 51})
        assert r.status_code == 422


# ============================================================
# CATALOGUE
# ============================================================

class TestPatterns:

    def test_all_patterns(self, client):
        data = client.get("/patterns").json()
        assert data["total"] == 26
        assert data["category"] is None
        assert len(data["patterns"]) == 26

    def test_category_filter(self, client):
        data = client.get("/patterns", params={"category": "치료효과보장"}).json()
        assert data["category"] == "치료효과보장"
        assert data["total"] == 6
        absolute = [p["id"] for p in data["patterns"] if p["absolute"]]
        assert absolute == ["P-56-01-001"]

    def test_unknown_category_rejected(self, client):
        r = client.get("/patterns", params={"category": "없는분류"})
        assert r.status_code == 422


class TestDepartments:

    def test_departments_listed(self, client):
        data = client.get("/departments").json()
        by_dept = {d["department"]: d for d in data["departments"]}
        assert len(by_dept) == 9
        assert by_dept["dermatology"]["name"] == "피부과"
        assert by_dept["dermatology"]["rule_count"] == 3
        assert by_dept["general"]["rule_count"] == 1
