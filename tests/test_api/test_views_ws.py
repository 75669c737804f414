"""
Live View WebSocket and Health Tests.
"""

from uuid import uuid4

import pytest
from fastapi import status


@pytest.mark.api
class TestHealthEndpoints:
    """Test health and root endpoints."""

    def test_health(self, client):
        response = client.get("/health")

        assert response.status_code == status.HTTP_200_OK
        body = response.json()
        assert body["status"] == "healthy"
        assert body["service"] == "healthcover-api"
        assert body["checks"]["database"] == "healthy"

    def test_root(self, client):
        body = client.get("/").json()

        assert body["name"] == "HealthCover API"
        assert body["environment"] == "testing"


@pytest.mark.api
class TestLiveViewWebSocket:
    """Test /ws/views/{kind}."""

    def test_initial_snapshot_and_ping(self, client):
        with client.websocket_connect("/ws/views/claims?status=soumis") as websocket:
            snapshot = websocket.receive_json()
            assert snapshot["type"] == "snapshot"
            assert snapshot["kind"] == "claims"
            assert snapshot["version"] == 1
            assert snapshot["filters"] == {"status": "soumis"}
            assert all(c["status"] == "soumis" for c in snapshot["items"])
            assert "total" in snapshot["stats"]

            websocket.send_json({"type": "ping"})
            assert websocket.receive_json()["type"] == "pong"

    def test_change_pushes_new_snapshot(self, client):
        category = f"optique-{uuid4().hex[:8]}"

        with client.websocket_connect("/ws/views/policies") as websocket:
            first = websocket.receive_json()

            response = client.post(
                "/api/v1/policies",
                json={"category": category, "rate": "75", "ceiling_amount": "8000"},
            )
            assert response.status_code == status.HTTP_201_CREATED

            pushed = websocket.receive_json()
            assert pushed["type"] == "snapshot"
            assert pushed["version"] > first["version"]
            assert category in [p["category"] for p in pushed["items"]]

    def test_filters_message_replaces_view(self, client):
        with client.websocket_connect("/ws/views/contracts") as websocket:
            websocket.receive_json()

            websocket.send_json({"type": "filters", "filters": {"status": "validee"}})
            snapshot = websocket.receive_json()

            assert snapshot["filters"] == {"status": "validee"}
            assert all(c["status"] == "validee" for c in snapshot["items"])

    def test_bad_messages_get_errors(self, client):
        with client.websocket_connect("/ws/views/insured") as websocket:
            websocket.receive_json()

            websocket.send_text("not json")
            assert websocket.receive_json()["type"] == "error"

            websocket.send_json({"type": "subscribe"})
            assert "Unknown message type" in websocket.receive_json()["error"]

            websocket.send_json({"type": "filters", "filters": {"colour": "red"}})
            assert websocket.receive_json()["type"] == "error"

    def test_unknown_kind_is_refused(self, client):
        with client.websocket_connect("/ws/views/invoices") as websocket:
            message = websocket.receive_json()

            assert message["type"] == "error"
            assert "Unknown view kind" in message["error"]
