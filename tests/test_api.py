"""
ShopPulse Risk Engine — HTTP Adapter Tests
Exercises the FastAPI routers end to end with fixed evaluation instants.
"""

from __future__ import annotations

import pytest
from fastapi.testclient import TestClient

from shoppulse.main import app

AS_OF = "2024-02-20T12:00:00Z"


@pytest.fixture(scope="module")
def client():
    return TestClient(app)


class TestSystemEndpoints:

    def test_root(self, client):
        response = client.get("/")
        assert response.status_code == 200
        assert response.json()["agents"] == 5

    def test_health(self, client):
        response = client.get("/health")
        assert response.status_code == 200
        assert response.json()["status"] == "healthy"
        assert "risk_scoring" in response.json()["agents"]

    def test_list_agents(self, client):
        names = [a["name"] for a in client.get("/agents").json()["agents"]]
        assert "RiskScoringAgent" in names
        assert "CompletionForecastAgent" in names

    def test_metrics_exposition(self, client):
        client.post("/api/v1/risk/score", json={"job": {"job_id": "JOB-M"}, "as_of": AS_OF})
        response = client.get("/metrics/")
        assert response.status_code == 200
        assert "agent_requests_total" in response.text


class TestRiskEndpoints:

    def test_score_overdue_job(self, client):
        response = client.post(
            "/api/v1/risk/score",
            json={
                "job": {"job_id": "JOB-1", "due_date": "2026-02-01", "remaining_work": 10},
                "as_of": "2026-02-05T00:00:00Z",
            },
        )
        assert response.status_code == 200
        body = response.json()
        assert body["risk_score"] == 60
        assert body["risk_reason"] == "past_due"
        assert body["days_until_due"] == -4

    def test_score_with_explicit_capacity(self, client):
        response = client.post(
            "/api/v1/risk/score",
            json={
                "job": {"job_id": "JOB-2", "due_date": "2024-03-06T00:00:00Z", "remaining_work": 50},
                "as_of": AS_OF,
                "available_capacity": 20,
            },
        )
        assert response.status_code == 200
        assert response.json()["risk_score"] == 65

    def test_empty_job_id_rejected(self, client):
        response = client.post("/api/v1/risk/score", json={"job": {"job_id": "  "}})
        assert response.status_code == 422

    @pytest.mark.parametrize("value", ["Infinity", "NaN"])
    def test_non_finite_remaining_work_rejected(self, client, value):
        body = (
            '{"job": {"job_id": "JOB-INF", "due_date": "2024-03-06", "remaining_work": '
            + value
            + '}, "as_of": "' + AS_OF + '", "available_capacity": 20}'
        )
        response = client.post(
            "/api/v1/risk/score",
            content=body,
            headers={"Content-Type": "application/json"},
        )
        assert response.status_code == 422

    def test_rank(self, client):
        response = client.post(
            "/api/v1/risk/rank",
            json={
                "jobs": [
                    {"job_id": "LATER", "due_date": "2024-04-20T12:00:00Z"},
                    {"job_id": "OVERDUE", "due_date": "2024-02-18T12:00:00Z"},
                ],
                "as_of": AS_OF,
            },
        )
        assert response.status_code == 200
        assert [j["job_id"] for j in response.json()] == ["OVERDUE", "LATER"]


class TestForecastEndpoint:

    def test_on_time_forecast(self, client):
        response = client.post(
            "/api/v1/forecast/completion",
            json={
                "job": {
                    "job_id": "JOB-001",
                    "due_date": "2024-02-27T00:00:00Z",
                    "status": "On Track",
                    "remaining_work": 20,
                },
                "snapshots": [
                    {"snapshot_date": "2024-02-10T12:00:00Z", "hours_to_go": 60, "qty_completed": 0},
                    {"snapshot_date": "2024-02-13T12:00:00Z", "hours_to_go": 45, "qty_completed": 15},
                    {"snapshot_date": "2024-02-16T12:00:00Z", "hours_to_go": 30, "qty_completed": 30},
                    {"snapshot_date": "2024-02-19T12:00:00Z", "hours_to_go": 20, "qty_completed": 40},
                ],
                "as_of": AS_OF,
            },
        )
        assert response.status_code == 200
        body = response.json()
        assert body["predicted_lateness_days"] <= 1
        assert body["confidence_score"] > 0.7
        assert "hrs/day" in body["basis"]

    def test_insufficient_history(self, client):
        response = client.post(
            "/api/v1/forecast/completion",
            json={"job": {"job_id": "JOB-002", "remaining_work": 10}, "snapshots": [], "as_of": AS_OF},
        )
        assert response.status_code == 200
        body = response.json()
        assert body["predicted_completion_date"] is None
        assert body["confidence_score"] < 0.5


class TestAnomalyEndpoints:

    SLOWING = [
        {"metric_date": "2024-01-22T12:00:00Z", "throughput": 100},
        {"metric_date": "2024-01-31T12:00:00Z", "throughput": 95},
        {"metric_date": "2024-02-10T12:00:00Z", "throughput": 90},
        {"metric_date": "2024-02-15T12:00:00Z", "throughput": 50},
    ]

    def test_detect_slowdown(self, client):
        response = client.post(
            "/api/v1/anomalies/detect",
            json={"work_center": "CNC-01", "metrics": self.SLOWING, "as_of": AS_OF, "std_dev_threshold": 1},
        )
        assert response.status_code == 200
        alerts = response.json()
        assert len(alerts) == 1
        assert alerts[0]["type"] == "slowdown"
        assert alerts[0]["severity"] == "high"

    def test_detect_empty_history(self, client):
        response = client.post(
            "/api/v1/anomalies/detect",
            json={"work_center": "CNC-02", "metrics": [], "as_of": AS_OF},
        )
        assert response.status_code == 200
        assert response.json() == []

    def test_blank_work_center_rejected(self, client):
        response = client.post("/api/v1/anomalies/detect", json={"work_center": " ", "metrics": []})
        assert response.status_code == 422

    def test_scrap_rate_out_of_range_rejected(self, client):
        response = client.post(
            "/api/v1/anomalies/detect",
            json={"work_center": "PAINT-01", "metrics": [{"metric_date": AS_OF, "scrap_rate": 2}]},
        )
        assert response.status_code == 422

    def test_detect_all(self, client):
        response = client.post(
            "/api/v1/anomalies/detect_all",
            json={
                "metrics_by_work_center": {"CNC-01": self.SLOWING, "CNC-09": []},
                "as_of": AS_OF,
                "std_dev_threshold": 1,
            },
        )
        assert response.status_code == 200
        assert list(response.json()) == ["CNC-01"]


class TestIssueAndJobEndpoints:

    def test_detect_issues_for_late_stalled_job(self, client):
        response = client.post(
            "/api/v1/issues/detect",
            json={
                "job": {"job_id": "JOB-002", "due_date": "2024-02-19", "status": "Late", "remaining_work": 25},
                "latest_snapshot": {"snapshot_date": "2024-02-20T12:00:00Z", "hours_to_go": 50},
                "previous_snapshot": {"snapshot_date": "2024-02-19T12:00:00Z", "hours_to_go": 50},
                "as_of": AS_OF,
            },
        )
        assert response.status_code == 200
        kinds = {issue["kind"] for issue in response.json()}
        assert kinds == {"stalled", "late"}

    def test_enrich(self, client):
        response = client.post(
            "/api/v1/jobs/enrich",
            json={
                "job": {"job_id": "JOB-003", "due_date": "2024-02-22T12:00:00Z", "remaining_work": 30},
                "snapshots": [
                    {"snapshot_date": "2024-02-18T12:00:00Z", "hours_to_go": 40},
                    {"snapshot_date": "2024-02-19T12:00:00Z", "hours_to_go": 30},
                ],
                "as_of": AS_OF,
            },
        )
        assert response.status_code == 200
        body = response.json()
        assert body["job"]["risk_score"] == 85
        assert body["risk_level"] == "critical"
        assert body["forecast"]["predicted_lateness_days"] == 1

    def test_summary(self, client):
        response = client.post(
            "/api/v1/jobs/summary",
            json={
                "jobs": [
                    {"job_id": "A", "due_date": "2024-02-18T12:00:00Z"},
                    {"job_id": "B", "due_date": "2024-02-25T12:00:00Z"},
                    {"job_id": "C", "due_date": "not-a-date"},
                ],
                "as_of": AS_OF,
            },
        )
        assert response.status_code == 200
        assert response.json() == {
            "total_jobs": 3,
            "at_risk_count": 0,
            "due_next_7_days": 1,
            "past_due_count": 1,
        }
