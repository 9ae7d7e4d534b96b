"""
Integration tests for the insights routes
"""
from unittest.mock import patch

import pytest


def _green_flag_week():
    return [
        {"emoji": "😐", "tags": ["Green Flag"], "createdAt": f"2024-01-0{day}T09:00:00"}
        for day in range(1, 7)
    ]


@pytest.fixture
def mock_db():
    with patch("kindra.routes.insights.db_service") as mock_service:
        mock_service.is_configured = True
        yield mock_service


class TestHealth:
    """Test liveness endpoints"""

    def test_root(self, test_client):
        response = test_client.get("/")
        assert response.status_code == 200
        assert response.json()["message"] == "Kindra Insights API is running"

    def test_health(self, test_client):
        response = test_client.get("/health")
        assert response.status_code == 200
        assert response.json()["status"] == "healthy"


class TestAnalyzeEndpoint:
    """Test POST /api/insights/analyze"""

    def test_zero_moments(self, test_client):
        response = test_client.post("/api/insights/analyze", json={"moments": [], "connections": []})

        assert response.status_code == 200
        insights = response.json()["insights"]
        assert len(insights) == 1
        assert insights[0]["title"] == "Building Analytics Foundation"
        assert insights[0]["confidence"] == 100

    def test_with_cycles(self, test_client):
        body = {
            "moments": [dict(m, connectionId=1, emoji="😊") for m in _green_flag_week()],
            "connections": [{"id": 1, "name": "Alex", "relationshipStage": "Dating"}],
            "cycles": [{"startDate": "2024-01-01"}],
            "now": "2024-01-10T00:00:00",
        }
        response = test_client.post("/api/insights/analyze", json=body)

        assert response.status_code == 200
        titles = [i["title"] for i in response.json()["insights"]]
        assert titles[:2] == ["Positive Momentum Detection", "Cycle Phase Correlation"]

    def test_service_error(self, test_client):
        with patch("kindra.routes.insights.relationship_analytics_service") as mock_service:
            mock_service.generate_analytics_insights.side_effect = Exception("boom")
            response = test_client.post("/api/insights/analyze", json={"moments": []})

        assert response.status_code == 500


class TestConnectionAnalyzeEndpoint:
    """Test POST /api/insights/connections/analyze"""

    def test_foundation(self, test_client):
        body = {
            "connection": {"id": 1, "name": "Alex", "relationshipStage": "Dating"},
            "moments": [{"emoji": "😊", "connectionId": 1, "createdAt": "2024-01-01"}],
        }
        response = test_client.post("/api/insights/connections/analyze", json=body)

        assert response.status_code == 200
        assert response.json()["insights"][0]["title"] == "Relationship Foundation"

    def test_connection_name_required(self, test_client):
        response = test_client.post(
            "/api/insights/connections/analyze",
            json={"connection": {"id": 1}, "moments": []},
        )
        assert response.status_code == 422


class TestCycleCorrelationEndpoint:
    """Test POST /api/insights/cycle-correlation"""

    def test_menstrual_green_flags(self, test_client):
        body = {
            "moments": _green_flag_week(),
            "cycles": [{"startDate": "2024-01-01"}],
            "now": "2024-03-01T12:00:00",
        }
        response = test_client.post("/api/insights/cycle-correlation", json=body)

        assert response.status_code == 200
        data = response.json()
        assert data["has_data"] is True
        assert data["phases"][0]["phase"] == "menstrual"
        assert data["phases"][0]["positive_ratio"] == 1.0
        assert data["insight"]["category"] == "correlation"
        assert data["prediction"]["next_optimal_date"].startswith("2024-01-01")

    def test_bad_records_are_skipped(self, test_client):
        body = {
            "moments": _green_flag_week() + [{"createdAt": "2024-01-02"}],
            "cycles": [{"startDate": "2024-01-01"}, {"startDate": "2024-01-10", "endDate": "2024-01-01"}],
        }
        response = test_client.post("/api/insights/cycle-correlation", json=body)

        assert response.status_code == 200
        assert response.json()["phases"][0]["stats"]["count"] == 6

    def test_no_cycles(self, test_client):
        response = test_client.post(
            "/api/insights/cycle-correlation", json={"moments": _green_flag_week(), "cycles": []}
        )
        assert response.status_code == 200
        assert response.json()["has_data"] is False
        assert response.json()["insight"] is None


class TestStoredRecordEndpoints:
    """Test the database-backed endpoints with a mocked db_service"""

    def test_user_insights(self, test_client, mock_db):
        mock_db.get_moments.return_value = [
            {"id": i, "connection_id": 1, "emoji": "😊", "tags": None, "is_intimate": False,
             "created_at": f"2024-01-0{i}T10:00:00"}
            for i in range(1, 7)
        ]
        mock_db.get_connections.return_value = [{"id": 1, "name": "Alex", "relationship_stage": "Dating"}]
        mock_db.get_menstrual_cycles.return_value = []

        response = test_client.get("/api/insights/users/7")

        assert response.status_code == 200
        assert response.json()["insights"][0]["title"] == "Positive Momentum Detection"
        mock_db.get_moments.assert_called_once_with(7)

    def test_connection_insights(self, test_client, mock_db):
        mock_db.get_connection_record.return_value = {"id": 3, "name": "Sam", "relationship_stage": "Best Friend"}
        mock_db.get_moments.return_value = []
        mock_db.get_menstrual_cycles.return_value = []

        response = test_client.get("/api/insights/users/7/connections/3")

        assert response.status_code == 200
        assert response.json()["insights"][0]["title"] == "Relationship Foundation"
        mock_db.get_moments.assert_called_once_with(7, 3)

    def test_unknown_connection(self, test_client, mock_db):
        mock_db.get_connection_record.return_value = None
        response = test_client.get("/api/insights/users/7/connections/99")
        assert response.status_code == 404

    def test_database_error(self, test_client, mock_db):
        mock_db.get_moments.side_effect = Exception("connection refused")
        response = test_client.get("/api/insights/users/7")
        assert response.status_code == 500

    def test_database_not_configured(self, test_client):
        with patch("kindra.routes.insights.db_service") as mock_service:
            mock_service.is_configured = False
            response = test_client.get("/api/insights/users/7")

        assert response.status_code == 503
        mock_service.get_moments.assert_not_called()
