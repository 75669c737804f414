"""
Claims Routes Tests.
Coverage for claim submission, transitions and history over HTTP.
"""

from decimal import Decimal
from uuid import uuid4

import pytest
from fastapi import status

from conftest import subscribe_contract


def _claim_body(insured_id: str, amount: str = "15000", category: str = "consultation") -> dict:
    return {
        "insured_id": insured_id,
        "claimed_amount": amount,
        "care_category": category,
        "medical_date": "2026-02-14",
        "doctor_name": "Dr Ahmed",
    }


@pytest.mark.api
class TestClaimSubmission:
    """Test POST /api/v1/claims."""

    def test_eligible_member_submits(self, client):
        contract = subscribe_contract(client)
        insured = contract["insured"][0]

        response = client.post(
            "/api/v1/claims",
            json=_claim_body(insured["id"]),
            headers={"X-User-Id": "agent-7", "X-User-Name": "Agent Sept"},
        )

        assert response.status_code == status.HTTP_201_CREATED
        claim = response.json()
        assert claim["status"] == "soumis"
        assert claim["claim_number"]
        assert Decimal(claim["claimed_amount"]) == Decimal("15000")
        assert claim["approved_amount"] is None
        assert claim["insured"]["matricule"] == insured["matricule"]

    def test_unpaid_contract_is_forbidden(self, client):
        contract = subscribe_contract(client, paid=False)

        response = client.post("/api/v1/claims", json=_claim_body(contract["insured"][0]["id"]))

        assert response.status_code == status.HTTP_403_FORBIDDEN
        assert response.json()["error"] == "NotEligible"

    def test_unknown_insured(self, client):
        response = client.post("/api/v1/claims", json=_claim_body(str(uuid4())))

        assert response.status_code == status.HTTP_404_NOT_FOUND

    def test_non_positive_amount(self, client):
        contract = subscribe_contract(client)

        response = client.post(
            "/api/v1/claims",
            json=_claim_body(contract["insured"][0]["id"], amount="0"),
        )

        assert response.status_code == status.HTTP_422_UNPROCESSABLE_ENTITY


@pytest.mark.api
class TestClaimWorkflow:
    """Test transitions and history."""

    @pytest.fixture
    def claim(self, client):
        contract = subscribe_contract(client)
        response = client.post("/api/v1/claims", json=_claim_body(contract["insured"][0]["id"]))
        assert response.status_code == status.HTTP_201_CREATED
        return response.json()

    def _transition(self, client, claim_id, **body):
        return client.post(f"/api/v1/claims/{claim_id}/transition", json=body)

    def test_validate_then_pay(self, client, claim):
        response = self._transition(
            client, claim["id"], status="valide", approved_amount="12000", expected_status="soumis"
        )
        assert response.status_code == status.HTTP_200_OK
        assert response.json()["status"] == "valide"
        assert response.json()["validated_at"] is not None

        response = self._transition(
            client, claim["id"], status="paye", paid_amount="12000", payment_reference="VIR-001"
        )
        assert response.status_code == status.HTTP_200_OK
        paid = response.json()
        assert paid["status"] == "paye"
        assert Decimal(paid["paid_amount"]) == Decimal("12000")
        assert paid["payment_reference"] == "VIR-001"

        history = client.get(f"/api/v1/claims/{claim['id']}/history").json()
        assert [h["new_status"] for h in history] == ["soumis", "valide", "paye"]

    def test_validate_without_amount(self, client, claim):
        response = self._transition(client, claim["id"], status="valide")

        assert response.status_code == status.HTTP_422_UNPROCESSABLE_ENTITY
        assert response.json()["error"] == "MissingApproval"

    def test_pay_more_than_approved(self, client, claim):
        self._transition(client, claim["id"], status="valide", approved_amount="5000")

        response = self._transition(client, claim["id"], status="paye", paid_amount="6000")

        assert response.status_code == status.HTTP_422_UNPROCESSABLE_ENTITY
        assert response.json()["error"] == "InvalidAmount"

    def test_terminal_status_conflict(self, client, claim):
        assert self._transition(client, claim["id"], status="rejete").status_code == 200

        response = self._transition(client, claim["id"], status="verification")

        assert response.status_code == status.HTTP_409_CONFLICT
        assert response.json()["error"] == "InvalidTransition"

    def test_stale_expected_status(self, client, claim):
        self._transition(client, claim["id"], status="verification")

        response = self._transition(
            client, claim["id"], status="valide", approved_amount="100", expected_status="soumis"
        )

        assert response.status_code == status.HTTP_409_CONFLICT
        body = response.json()
        assert body["error"] == "StatusConflict"
        assert body["expected_status"] == "soumis"
        assert body["actual_status"] == "verification"

    def test_unknown_target(self, client, claim):
        response = self._transition(client, claim["id"], status="archive")

        assert response.status_code == status.HTTP_409_CONFLICT

    def test_unknown_claim(self, client):
        assert client.get(f"/api/v1/claims/{uuid4()}").status_code == 404
        assert client.get(f"/api/v1/claims/{uuid4()}/history").status_code == 404


@pytest.mark.api
class TestClaimListing:
    """Test GET /api/v1/claims."""

    def test_list_shape_and_filters(self, client):
        contract = subscribe_contract(client)
        insured_id = contract["insured"][0]["id"]
        created = client.post("/api/v1/claims", json=_claim_body(insured_id)).json()

        response = client.get("/api/v1/claims", params={"search": created["claim_number"]})

        assert response.status_code == status.HTTP_200_OK
        body = response.json()
        assert [c["id"] for c in body["items"]] == [created["id"]]
        assert body["stats"]["total"] >= 1
        assert body["stats"]["soumis"] >= 1
        assert body["is_loading"] is False

        response = client.get(
            "/api/v1/claims",
            params={"search": created["claim_number"], "status": "rejete"},
        )
        assert response.json()["items"] == []

    def test_invalid_status_filter(self, client):
        response = client.get("/api/v1/claims", params={"status": "archive"})

        assert response.status_code == status.HTTP_422_UNPROCESSABLE_ENTITY
