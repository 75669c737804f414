"""
Provider and Notification Routes Tests.
Coverage for provider maintenance, provider-linked claims and staff alerts.
"""

from uuid import uuid4

import pytest
from fastapi import status

from conftest import subscribe_contract


def _provider_body(provider_type: str = "clinique", **kwargs) -> dict:
    return {"name": f"Prestataire {uuid4().hex[:8]}", "provider_type": provider_type, **kwargs}


@pytest.mark.api
class TestProviderEndpoints:
    """Test /api/v1/providers."""

    def test_create_get_and_update(self, client):
        response = client.post(
            "/api/v1/providers",
            json=_provider_body("laboratoire", city="Fomboni"),
            headers={"X-User-Id": "admin-1", "X-User-Name": "Admin"},
        )

        assert response.status_code == status.HTTP_201_CREATED
        provider = response.json()
        assert provider["provider_type"] == "laboratoire"
        assert provider["is_conventioned"] is False

        response = client.patch(
            f"/api/v1/providers/{provider['id']}",
            json={"is_conventioned": True, "convention_number": "CONV-9"},
        )
        assert response.status_code == status.HTTP_200_OK
        assert response.json()["convention_number"] == "CONV-9"

        fetched = client.get(f"/api/v1/providers/{provider['id']}").json()
        assert fetched["is_conventioned"] is True
        assert fetched["city"] == "Fomboni"

    def test_list_is_ordered_with_type_stats(self, client):
        before = client.get("/api/v1/providers").json()["stats"]
        client.post("/api/v1/providers", json=_provider_body("pharmacie", is_conventioned=True))
        client.post("/api/v1/providers", json=_provider_body("pharmacie"))

        body = client.get("/api/v1/providers").json()
        names = [p["name"] for p in body["items"]]
        assert names == sorted(names)
        assert body["stats"]["total"] == before["total"] + 2
        assert body["stats"]["pharmacie"] == before["pharmacie"] + 2
        assert body["stats"]["conventioned"] == before["conventioned"] + 1

        filtered = client.get("/api/v1/providers", params={"provider_type": "pharmacie"}).json()
        assert {p["provider_type"] for p in filtered["items"]} == {"pharmacie"}

    def test_invalid_provider(self, client):
        response = client.post("/api/v1/providers", json=_provider_body("veterinaire"))
        assert response.status_code == status.HTTP_422_UNPROCESSABLE_ENTITY

        response = client.post("/api/v1/providers", json={"name": "", "provider_type": "medecin"})
        assert response.status_code == status.HTTP_422_UNPROCESSABLE_ENTITY

    def test_unknown_provider(self, client):
        assert client.get(f"/api/v1/providers/{uuid4()}").status_code == 404

    def test_claim_references_provider(self, client):
        provider = client.post("/api/v1/providers", json=_provider_body("medecin")).json()
        insured = subscribe_contract(client)["insured"][0]

        response = client.post(
            "/api/v1/claims",
            json={
                "insured_id": insured["id"],
                "claimed_amount": "8000",
                "care_category": "consultation",
                "medical_date": "2026-02-14",
                "provider_id": provider["id"],
            },
        )

        assert response.status_code == status.HTTP_201_CREATED
        assert response.json()["provider_id"] == provider["id"]


@pytest.mark.api
class TestNotificationEndpoint:
    """Test GET /api/v1/notifications."""

    def test_pending_subscription_alert(self, client):
        subscribe_contract(client, paid=False)

        body = client.get("/api/v1/notifications").json()

        alert = next(n for n in body["items"] if n["id"] == "pending-subscriptions")
        assert alert["level"] == "info"
        assert alert["entity_type"] == "contracts"
        assert body["stats"]["pending_contracts"] >= 1
