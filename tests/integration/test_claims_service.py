"""
Integration Tests for the Claims Service.

Tests:
- Claim creation gated on eligibility
- Claim number generation
- Status transitions and their amount preconditions
- Optimistic status checks
- History and audit rows
"""

from datetime import date
from decimal import Decimal
from unittest.mock import AsyncMock
from uuid import uuid4

import pytest
import pytest_asyncio
from sqlalchemy import select
from sqlalchemy.exc import OperationalError

from conftest import create_contract
from healthcover.core.enums import AuditAction, ClaimStatus, ProviderType
from healthcover.models.audit import AuditLog
from healthcover.services.audit import UserContext
from healthcover.services.claims_service import ClaimCreateDTO, ClaimsService
from healthcover.services.provider_service import ProviderCreateDTO, ProviderService
from healthcover.utils.errors import (
    ClaimNotFoundError,
    InsuredNotFoundError,
    InvalidAmount,
    InvalidInput,
    InvalidTransition,
    MissingApproval,
    NotEligible,
    StatusConflict,
    StoreFailure,
)

REVIEWER = UserContext(user_id="agent-42", user_name="Fatima Said")


def _claim_dto(insured_id, amount="5000", category="consultation", **kwargs):
    return ClaimCreateDTO(
        insured_id=insured_id,
        claimed_amount=Decimal(amount),
        care_category=category,
        medical_date=date(2026, 3, 2),
        **kwargs,
    )


@pytest.fixture
def service(session):
    return ClaimsService(session)


@pytest.mark.integration
class TestCreateClaim:
    """Tests for create_claim."""

    @pytest.mark.asyncio
    async def test_creates_soumis_claim(self, session, service):
        contract = await create_contract(session, paid=True)
        insured = contract.insured[0]

        claim = await service.create_claim(_claim_dto(insured.id), actor=REVIEWER)

        assert claim.status == ClaimStatus.SOUMIS
        assert claim.claimed_amount == Decimal("5000")
        assert claim.approved_amount is None
        assert claim.paid_amount is None
        assert claim.insured.id == insured.id
        assert claim.claim_number.startswith(f"RMB-{date.today().year}-")

    @pytest.mark.asyncio
    async def test_claim_numbers_are_distinct(self, session, service):
        contract = await create_contract(session, paid=True)
        insured_id = contract.insured[0].id

        numbers = [
            (await service.create_claim(_claim_dto(insured_id, amount=str(100 + i)))).claim_number
            for i in range(20)
        ]

        assert len(set(numbers)) == len(numbers)

    @pytest.mark.asyncio
    async def test_unpaid_contract_is_not_eligible(self, session, service):
        contract = await create_contract(session, paid=False)

        with pytest.raises(NotEligible):
            await service.create_claim(_claim_dto(contract.insured[0].id))

        assert await service.list_claims() == []

    @pytest.mark.asyncio
    @pytest.mark.parametrize("amount", ["0", "-10"])
    async def test_non_positive_amount(self, session, service, amount):
        contract = await create_contract(session, paid=True)

        with pytest.raises(InvalidInput) as exc_info:
            await service.create_claim(_claim_dto(contract.insured[0].id, amount=amount))

        assert "claimed_amount must be greater than 0" in exc_info.value.errors

    @pytest.mark.asyncio
    async def test_blank_category(self, session, service):
        contract = await create_contract(session, paid=True)

        with pytest.raises(InvalidInput):
            await service.create_claim(_claim_dto(contract.insured[0].id, category="  "))

    @pytest.mark.asyncio
    async def test_unknown_insured(self, service):
        with pytest.raises(InsuredNotFoundError):
            await service.create_claim(_claim_dto(uuid4()))

    @pytest.mark.asyncio
    async def test_beneficiary_must_belong_to_insured(self, session, service):
        contract = await create_contract(session, paid=True, members=2, with_beneficiary=True)
        first, second = contract.insured

        claim = await service.create_claim(
            _claim_dto(first.id, beneficiary_id=first.beneficiaries[0].id)
        )
        assert claim.beneficiary_id == first.beneficiaries[0].id

        with pytest.raises(InvalidInput):
            await service.create_claim(
                _claim_dto(second.id, beneficiary_id=first.beneficiaries[0].id)
            )

    @pytest.mark.asyncio
    async def test_unknown_provider(self, session, service):
        contract = await create_contract(session, paid=True)

        with pytest.raises(InvalidInput):
            await service.create_claim(_claim_dto(contract.insured[0].id, provider_id=uuid4()))

    @pytest.mark.asyncio
    async def test_claim_with_registered_provider(self, session, service):
        contract = await create_contract(session, paid=True)
        provider = await ProviderService(session).create_provider(
            ProviderCreateDTO("Clinique El Maarouf", ProviderType.CLINIQUE, is_conventioned=True)
        )

        claim = await service.create_claim(
            _claim_dto(contract.insured[0].id, provider_id=provider.id)
        )

        assert claim.provider_id == provider.id
        assert claim.provider.name == "Clinique El Maarouf"
        reloaded = await service.get_claim(claim.id)
        assert reloaded.provider.provider_type == ProviderType.CLINIQUE

    @pytest.mark.asyncio
    async def test_history_and_audit_written(self, session, service):
        contract = await create_contract(session, paid=True)
        claim = await service.create_claim(_claim_dto(contract.insured[0].id), actor=REVIEWER)

        history = await service.get_status_history(claim.id)
        assert len(history) == 1
        assert history[0].previous_status is None
        assert history[0].new_status == ClaimStatus.SOUMIS
        assert history[0].changed_by == "agent-42"
        assert history[0].actor_type == "user"

        result = await session.execute(select(AuditLog).where(AuditLog.entity_id == str(claim.id)))
        audit = result.scalars().one()
        assert audit.action == AuditAction.CREATE
        assert audit.user_name == "Fatima Said"


@pytest.mark.integration
class TestQueries:
    """Tests for get_claim, list_claims and get_claims_stats."""

    @pytest.mark.asyncio
    async def test_get_unknown_claim(self, service):
        with pytest.raises(ClaimNotFoundError):
            await service.get_claim(uuid4())

    @pytest.mark.asyncio
    async def test_list_filters_and_stats(self, session, service):
        contract = await create_contract(session, paid=True, last_name="Abdallah")
        insured_id = contract.insured[0].id
        first = await service.create_claim(_claim_dto(insured_id, category="consultation"))
        await service.create_claim(_claim_dto(insured_id, category="pharmacie"))
        await service.transition(first.id, ClaimStatus.REJETE)

        assert len(await service.list_claims()) == 2
        assert [c.id for c in await service.list_claims(status=ClaimStatus.REJETE)] == [first.id]
        assert len(await service.list_claims(category="pharmacie")) == 1
        assert len(await service.list_claims(search="abdallah")) == 2
        assert [c.id for c in await service.list_claims(search=first.claim_number)] == [first.id]
        assert await service.list_claims(search="nobody") == []

        stats = await service.get_claims_stats()
        assert stats["total"] == 2
        assert stats["soumis"] == 1
        assert stats["rejete"] == 1
        assert stats["paye"] == 0
        assert stats["by_category"] == {"consultation": 1, "pharmacie": 1}


@pytest.mark.integration
class TestTransitions:
    """Tests for transition."""

    @pytest_asyncio.fixture
    async def claim(self, session, service):
        contract = await create_contract(session, paid=True)
        return await service.create_claim(_claim_dto(contract.insured[0].id))

    @pytest.mark.asyncio
    async def test_validate_then_pay(self, service, claim):
        validated = await service.transition(
            claim.id, ClaimStatus.VALIDE, approved_amount=Decimal("4000"), actor=REVIEWER
        )
        assert validated.status == ClaimStatus.VALIDE
        assert validated.approved_amount == Decimal("4000")
        assert validated.validated_at is not None
        assert validated.validated_by == "Fatima Said"

        with pytest.raises(InvalidAmount):
            await service.transition(claim.id, ClaimStatus.PAYE, paid_amount=Decimal("4500"))

        paid = await service.transition(
            claim.id,
            ClaimStatus.PAYE,
            paid_amount=Decimal("4000"),
            payment_reference="VIR-2026-001",
            actor=REVIEWER,
        )
        assert paid.status == ClaimStatus.PAYE
        assert paid.paid_amount == Decimal("4000")
        assert paid.paid_at is not None
        assert paid.payment_reference == "VIR-2026-001"

    @pytest.mark.asyncio
    async def test_valide_without_amount(self, service, claim):
        with pytest.raises(MissingApproval):
            await service.transition(claim.id, "valide")

        assert (await service.get_claim(claim.id)).status == ClaimStatus.SOUMIS

    @pytest.mark.asyncio
    async def test_pay_without_approval(self, service, claim):
        with pytest.raises(MissingApproval):
            await service.transition(claim.id, "paye", paid_amount="100")

    @pytest.mark.asyncio
    async def test_back_to_soumis_refused(self, service, claim):
        await service.transition(claim.id, ClaimStatus.VERIFICATION)

        with pytest.raises(InvalidTransition):
            await service.transition(claim.id, ClaimStatus.SOUMIS)

    @pytest.mark.asyncio
    async def test_rejete_is_terminal(self, service, claim):
        await service.transition(claim.id, ClaimStatus.REJETE, notes="Pièces manquantes")

        for target in ("verification", "rejete"):
            with pytest.raises(InvalidTransition):
                await service.transition(claim.id, target)
        with pytest.raises(InvalidTransition):
            await service.transition(claim.id, "paye", paid_amount=Decimal("1"))

    @pytest.mark.asyncio
    async def test_backward_move_clears_approval(self, service, claim):
        await service.transition(claim.id, ClaimStatus.VALIDE, approved_amount=Decimal("4000"))

        reopened = await service.transition(claim.id, ClaimStatus.VERIFICATION)

        assert reopened.status == ClaimStatus.VERIFICATION
        assert reopened.approved_amount is None
        assert reopened.validated_at is None

    @pytest.mark.asyncio
    async def test_expected_status_mismatch(self, service, claim):
        await service.transition(claim.id, ClaimStatus.VERIFICATION)

        with pytest.raises(StatusConflict) as exc_info:
            await service.transition(
                claim.id, ClaimStatus.REJETE, expected_status=ClaimStatus.SOUMIS
            )

        assert exc_info.value.expected == "soumis"
        assert exc_info.value.actual == "verification"
        assert (await service.get_claim(claim.id)).status == ClaimStatus.VERIFICATION

    @pytest.mark.asyncio
    async def test_concurrent_change_detected(self, session_maker, service, claim, monkeypatch):
        stale = await service.get_claim(claim.id)

        async with session_maker() as other_session:
            await ClaimsService(other_session).transition(claim.id, ClaimStatus.REJETE)

        # The first reviewer still acts on the status read before the rejection
        monkeypatch.setattr(service, "get_claim", AsyncMock(return_value=stale))
        with pytest.raises(StatusConflict) as exc_info:
            await service.transition(claim.id, ClaimStatus.VERIFICATION)

        assert exc_info.value.actual == "rejete"

    @pytest.mark.asyncio
    async def test_rejection_ignores_sent_amounts(self, service, claim):
        rejected = await service.transition(
            claim.id,
            ClaimStatus.REJETE,
            approved_amount=Decimal("4000"),
            paid_amount=Decimal("4000"),
        )

        assert rejected.status == ClaimStatus.REJETE
        assert rejected.approved_amount is None
        assert rejected.paid_amount is None
        history = await service.get_status_history(claim.id)
        assert history[-1].details is None

    @pytest.mark.asyncio
    async def test_commit_failure_leaves_claim_unchanged(self, session, service, claim, monkeypatch):
        monkeypatch.setattr(
            session,
            "commit",
            AsyncMock(side_effect=OperationalError("COMMIT", {}, Exception("disk I/O error"))),
        )

        with pytest.raises(StoreFailure):
            await service.transition(claim.id, ClaimStatus.VALIDE, approved_amount=Decimal("4000"))

        monkeypatch.undo()
        reloaded = await service.get_claim(claim.id)
        assert reloaded.status == ClaimStatus.SOUMIS
        assert reloaded.approved_amount is None
        assert [h.new_status for h in await service.get_status_history(claim.id)] == [
            ClaimStatus.SOUMIS
        ]

    @pytest.mark.asyncio
    async def test_transition_history_and_audit(self, session, service, claim):
        await service.transition(claim.id, ClaimStatus.VALIDE, approved_amount=Decimal("4000"), actor=REVIEWER)
        await service.transition(claim.id, ClaimStatus.PAYE, paid_amount=Decimal("3500"))

        history = await service.get_status_history(claim.id)
        assert [h.new_status for h in history] == [
            ClaimStatus.SOUMIS,
            ClaimStatus.VALIDE,
            ClaimStatus.PAYE,
        ]
        assert history[1].details == {"approved_amount": "4000"}
        assert history[2].actor_type == "system"

        result = await session.execute(
            select(AuditLog.action).where(AuditLog.entity_id == str(claim.id))
        )
        actions = list(result.scalars().all())
        assert AuditAction.STATUS_CHANGE in actions
        assert AuditAction.PAYMENT in actions
