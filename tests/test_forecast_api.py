"""
Tests for the Forecast API endpoints.
"""
import pytest

from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from forecast_engine.main import app, get_db
from forecast_engine.models import (
    Base, ForecastRecordEntity, ForecastAcknowledgmentEntity, ForecastPreviousMethodEntity,
)


# Test database setup
TEST_DATABASE_URL = "sqlite:///./test_forecast_api.db"
engine = create_engine(TEST_DATABASE_URL, connect_args={"check_same_thread": False})
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

BASE = "/api/v1/projects/proj-1/forecasts"


def override_get_db():
    """Override database dependency for testing."""
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()


@pytest.fixture(scope="module")
def client():
    """Create test client with test database."""
    Base.metadata.create_all(bind=engine)
    app.dependency_overrides[get_db] = override_get_db

    with TestClient(app) as c:
        yield c

    app.dependency_overrides.clear()
    Base.metadata.drop_all(bind=engine)


@pytest.fixture(autouse=True)
def cleanup_tables():
    """Clear forecast tables before each test."""
    db = TestingSessionLocal()
    try:
        db.query(ForecastRecordEntity).delete()
        db.query(ForecastAcknowledgmentEntity).delete()
        db.query(ForecastPreviousMethodEntity).delete()
        db.commit()
    finally:
        db.close()
    yield


def put_gc(client, record_id="gc-1", **overrides):
    payload = {
        "forecast_type": "GC_GR",
        "cost_code": "01-01-100",
        "cost_code_description": "Superintendent",
        "budget": 500_000,
        "estimated_at_completion": 510_000,
        "method": "LINEAR",
        "weight": 10,
    }
    payload.update(overrides)
    return client.put(f"{BASE}/{record_id}", json=payload)


def put_draw(client, record_id="draw-1", **overrides):
    payload = {
        "forecast_type": "DRAW",
        "csi_code": "03 30 00",
        "csi_description": "Cast-in-Place Concrete",
        "budget": 300_000,
        "method": "MANUAL",
    }
    payload.update(overrides)
    return client.put(f"{BASE}/{record_id}", json=payload)


class TestUpsertForecast:
    """Tests for PUT /api/v1/projects/{project_id}/forecasts/{record_id}"""

    def test_create_record(self, client):
        response = put_gc(client)
        assert response.status_code == 200

        data = response.json()
        record = data["record"]
        assert record["id"] == "gc-1"
        assert record["project_id"] == "proj-1"
        assert len(record["monthly_distribution"]) == 12
        assert sum(record["monthly_distribution"].values()) == pytest.approx(500_000, abs=0.01)
        assert record["variance"] == 10_000
        assert data["review_opened"] is False
        assert data["state"] == "NONE"

    def test_invalid_inputs_coerced(self, client):
        response = put_gc(client, budget=-50, weight="heavy")
        assert response.status_code == 200
        record = response.json()["record"]
        assert record["budget"] == 0
        assert record["weight"] == 1
        assert all(v == 0 for v in record["monthly_distribution"].values())

    def test_infinite_budget_coerced(self, client):
        response = put_gc(client, budget="inf", estimated_at_completion="-inf")
        assert response.status_code == 200
        record = response.json()["record"]
        assert record["budget"] == 0
        assert record["estimated_at_completion"] == 0
        assert client.get(f"{BASE}/totals").json()["budget"] == 0

    def test_very_large_budget_accepted(self, client):
        response = put_gc(client, budget=1e15, method="S_CURVE")
        assert response.status_code == 200
        assert response.json()["record"]["budget"] == 1e15

    def test_omitted_method_and_weight_use_defaults(self, client):
        from forecast_engine.config import get_config

        response = client.put(f"{BASE}/gc-5", json={
            "forecast_type": "GC_GR", "cost_code": "01-20", "budget": 1_200,
        })
        record = response.json()["record"]
        assert record["method"] == get_config().default_method
        assert record["weight"] == get_config().default_weight

        put_gc(client, "gc-6", method="BELL_CURVE", weight=4)
        response = client.put(f"{BASE}/gc-6", json={
            "forecast_type": "GC_GR", "cost_code": "01-01-100", "budget": 600_000,
        })
        record = response.json()["record"]
        assert record["method"] == "BELL_CURVE"
        assert record["weight"] == 4

    def test_missing_code_rejected(self, client):
        response = client.put(f"{BASE}/gc-9", json={"forecast_type": "GC_GR", "budget": 10})
        assert response.status_code == 422
        assert response.json()["detail"]["code"] == "VALIDATION_ERROR"

    def test_unknown_method_rejected(self, client):
        response = put_gc(client, method="ZIGZAG")
        assert response.status_code == 422

    def test_update_without_distribution_keeps_edits(self, client):
        put_gc(client, budget=120_000)
        month = list(put_gc(client, budget=120_000).json()["record"]["monthly_distribution"])[0]
        client.patch(f"{BASE}/gc-1/months/{month}", json={"amount": 1.0})

        response = put_gc(client, budget=120_000, estimated_at_completion=130_000)
        record = response.json()["record"]
        assert record["monthly_distribution"][month] == 1.0
        assert record["estimated_at_completion"] == 130_000


class TestListAndTotals:
    """Tests for list and totals endpoints."""

    def test_list_by_type(self, client):
        put_gc(client)
        put_draw(client)

        assert len(client.get(BASE).json()) == 2
        draws = client.get(BASE, params={"forecast_type": "DRAW"}).json()
        assert [r["id"] for r in draws] == ["draw-1"]

    def test_invalid_type(self, client):
        response = client.get(BASE, params={"forecast_type": "OTHER"})
        assert response.status_code == 422

    def test_totals(self, client):
        put_gc(client, "gc-1", budget=500_000)
        put_gc(client, "gc-2", budget=300_000, estimated_at_completion=280_000)
        put_draw(client)

        data = client.get(f"{BASE}/totals", params={"forecast_type": "GC_GR"}).json()
        assert data["record_count"] == 2
        assert data["budget"] == 800_000
        assert sum(data["monthly_actual"].values()) == pytest.approx(800_000, abs=0.02)

        assert client.get(f"{BASE}/totals").json()["budget"] == 1_100_000

    def test_get_missing_record(self, client):
        response = client.get(f"{BASE}/missing")
        assert response.status_code == 404
        assert response.json()["detail"]["code"] == "RECORD_NOT_FOUND"


class TestMonthEdit:
    """Tests for PATCH .../months/{month_key}"""

    def test_edit_month(self, client):
        record = put_gc(client, budget=120_000).json()["record"]
        month = list(record["monthly_distribution"])[2]

        response = client.patch(f"{BASE}/gc-1/months/{month}", json={"amount": 0})
        assert response.status_code == 200
        data = response.json()
        assert data["monthly_distribution"][month] == 0
        assert sum(data["monthly_distribution"].values()) == pytest.approx(110_000)

    def test_edit_unknown_month(self, client):
        put_gc(client)
        response = client.patch(f"{BASE}/gc-1/months/1999-01", json={"amount": 5})
        assert response.status_code == 404
        assert response.json()["detail"]["code"] == "UNKNOWN_MONTH"

    def test_commit_then_variance(self, client):
        record = put_gc(client, budget=120_000).json()["record"]
        month = list(record["monthly_distribution"])[0]

        response = client.post(f"{BASE}/commit", json={})
        assert response.json()["committed"] == ["gc-1"]

        data = client.patch(f"{BASE}/gc-1/months/{month}", json={"amount": 13_000}).json()
        assert data["monthly_variance"][month] == pytest.approx(3_000)


class TestReviewWorkflow:
    """Tests for the AI forecast review endpoints."""

    def test_switch_to_ai_requires_review(self, client):
        put_draw(client)
        response = put_draw(client, method="AI_FORECAST")
        data = response.json()
        assert data["review_opened"] is True
        assert data["state"] == "PENDING"
        assert data["previous_method"] == "MANUAL"

        review = client.get(f"{BASE}/draw-1/review").json()
        assert review["state"] == "PENDING"
        assert review["close_allowed"] is False
        assert "concrete" in review["rationale"]["reasoning"].lower()

        close = client.post(f"{BASE}/draw-1/close")
        assert close.status_code == 409
        assert close.json()["detail"]["code"] == "ACKNOWLEDGMENT_REQUIRED"

    def test_acknowledge(self, client):
        put_draw(client)
        put_draw(client, method="AI_FORECAST")

        response = client.post(f"{BASE}/draw-1/acknowledge", json={"user_id": "pm@example.com"})
        assert response.status_code == 200
        entry = response.json()
        assert entry["accepted"] is True
        assert entry["previous_method"] == "MANUAL"

        assert client.post(f"{BASE}/draw-1/close").status_code == 200
        assert client.get(f"{BASE}/draw-1").json()["method"] == "AI_FORECAST"

    def test_reject_reverts_method(self, client):
        put_draw(client, method="LINEAR")
        put_draw(client, method="AI_FORECAST")

        response = client.post(f"{BASE}/draw-1/reject", json={"user_id": "pm@example.com"})
        assert response.status_code == 200
        assert response.json()["reasoning"] == "User rejected HBI forecast recommendation"

        record = client.get(f"{BASE}/draw-1").json()
        assert record["method"] == "LINEAR"
        assert client.get(f"{BASE}/draw-1/review").json()["state"] == "REJECTED"

    def test_acknowledge_without_review(self, client):
        put_draw(client)
        response = client.post(f"{BASE}/draw-1/acknowledge", json={})
        assert response.status_code == 409
        assert response.json()["detail"]["code"] == "INVALID_ACKNOWLEDGMENT_STATE"

    def test_method_locked_while_pending(self, client):
        put_draw(client)
        put_draw(client, method="AI_FORECAST")
        response = put_draw(client, method="S_CURVE")
        assert response.status_code == 409
        assert response.json()["detail"]["code"] == "RECORD_LOCKED"

    def test_acknowledgment_log(self, client):
        put_draw(client, "draw-1")
        put_draw(client, "draw-2", csi_code="26 05 00")
        put_draw(client, "draw-1", method="AI_FORECAST")
        put_draw(client, "draw-2", csi_code="26 05 00", method="AI_FORECAST")
        client.post(f"{BASE}/draw-1/acknowledge", json={"user_id": "a"})
        client.post(f"{BASE}/draw-2/reject", json={"user_id": "b"})

        log = client.get(f"{BASE}/acknowledgments").json()
        assert [(e["record_id"], e["accepted"]) for e in log] == [("draw-1", True), ("draw-2", False)]
        only_two = client.get(f"{BASE}/acknowledgments", params={"record_id": "draw-2"}).json()
        assert len(only_two) == 1


class TestExport:
    """Tests for GET .../export.csv"""

    def test_export_csv(self, client):
        put_gc(client)
        response = client.get(f"{BASE}/export.csv")
        assert response.status_code == 200
        assert response.headers["content-type"].startswith("text/csv")
        lines = response.text.strip().splitlines()
        assert lines[0].startswith("record_id,")
        assert len(lines) == 1 + 3 + 1
