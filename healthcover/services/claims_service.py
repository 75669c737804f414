"""
Claims Service for Reimbursement Claims.

Provides:
- Claim creation gated on insured eligibility
- Status transitions with amount preconditions
- Status history and audit attribution
- Claim number generation

Every write is committed before the method returns. Transitions are a
compare-and-set on the status the caller (or the service) read: a claim
that moved in the meantime raises StatusConflict and nothing is written.
"""

import logging
from datetime import date, datetime, timezone
from decimal import Decimal
from typing import Any, Optional, Union
from uuid import UUID, uuid4

from sqlalchemy import func, or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from healthcover.core.config import get_reimbursement_settings
from healthcover.core.enums import AuditAction, AuditResourceType, ChangeKind, ClaimStatus, EntityKind
from healthcover.db.change_feed import note_change
from healthcover.db.connection import store_operation
from healthcover.models.claim import Claim, ClaimStatusHistory
from healthcover.models.insured import Beneficiary, Insured
from healthcover.models.provider import HealthcareProvider
from healthcover.services.audit import UserContext, record_audit
from healthcover.services.claim_state_machine import (
    TransitionContext,
    get_claim_state_machine,
    get_status_display_name,
)
from healthcover.services.eligibility import EligibilityService
from healthcover.utils.errors import (
    ClaimNotFoundError,
    InsuredNotFoundError,
    InvalidInput,
    NotEligible,
    StatusConflict,
)

logger = logging.getLogger(__name__)


def _money(value: Union[Decimal, int, str, None]) -> Optional[Decimal]:
    if value is None:
        return None
    return value if isinstance(value, Decimal) else Decimal(str(value))


# =============================================================================
# Data Transfer Objects
# =============================================================================


class ClaimCreateDTO:
    """Data transfer object for creating a claim."""

    def __init__(
        self,
        insured_id: UUID,
        claimed_amount: Decimal,
        care_category: str,
        medical_date: date,
        provider_id: Optional[UUID] = None,
        beneficiary_id: Optional[UUID] = None,
        doctor_name: Optional[str] = None,
        notes: Optional[str] = None,
    ):
        self.insured_id = insured_id
        self.claimed_amount = _money(claimed_amount)
        self.care_category = care_category
        self.medical_date = medical_date
        self.provider_id = provider_id
        self.beneficiary_id = beneficiary_id
        self.doctor_name = doctor_name
        self.notes = notes


# =============================================================================
# Claims Service
# =============================================================================


class ClaimsService:
    """
    Service for reimbursement claim operations.

    Handles:
    - Claim creation for eligible insured members
    - Status transitions through the claim state machine
    - Claim queries and status history
    """

    def __init__(self, session: AsyncSession):
        self.session = session
        self.state_machine = get_claim_state_machine()

    # =========================================================================
    # Claim Number Generation
    # =========================================================================

    def _generate_claim_number(self) -> str:
        """
        Generate a claim number.

        Format: {PREFIX}-{YEAR}-{RANDOM HEX}
        Example: RMB-2026-4F1A9C02DE

        Distinctness comes from the random part; the unique constraint on
        the column rejects the (vanishingly rare) collision.
        """
        config = get_reimbursement_settings()
        year = datetime.now(timezone.utc).year
        suffix = uuid4().hex[: config.CLAIM_NUMBER_RANDOM_LENGTH].upper()
        return f"{config.CLAIM_NUMBER_PREFIX}-{year}-{suffix}"

    # =========================================================================
    # Create Operations
    # =========================================================================

    def _validate_create(self, claim_data: ClaimCreateDTO) -> None:
        errors = []
        if claim_data.claimed_amount is None or claim_data.claimed_amount <= 0:
            errors.append("claimed_amount must be greater than 0")
        if not claim_data.care_category or not claim_data.care_category.strip():
            errors.append("care_category is required")
        if claim_data.medical_date is None:
            errors.append("medical_date is required")
        if errors:
            raise InvalidInput("Invalid claim", errors=errors)

    async def create_claim(
        self,
        claim_data: ClaimCreateDTO,
        actor: Optional[UserContext] = None,
    ) -> Claim:
        """
        Create a claim in status SOUMIS.

        Args:
            claim_data: Claim creation data
            actor: Staff member creating the claim

        Returns:
            Created Claim

        Raises:
            InvalidInput: Non-positive amount, missing category, or a
                beneficiary/provider that does not fit the claim
            InsuredNotFoundError: Unknown insured member
            NotEligible: The insured member's contract has no paid contribution
        """
        self._validate_create(claim_data)
        actor = actor or UserContext.system()

        async with store_operation(self.session, "create claim"):
            insured = await self.session.get(Insured, claim_data.insured_id)
            if insured is None:
                raise InsuredNotFoundError(f"Insured not found: {claim_data.insured_id}")

            eligibility = EligibilityService(self.session)
            if not await eligibility.is_contract_paid(insured.contract_id):
                raise NotEligible(
                    f"Insured {insured.matricule} has no paid contribution on contract "
                    f"{insured.contract_id}"
                )

            if claim_data.beneficiary_id is not None:
                beneficiary = await self.session.get(Beneficiary, claim_data.beneficiary_id)
                if beneficiary is None or beneficiary.insured_id != insured.id:
                    raise InvalidInput(
                        "Beneficiary does not belong to the insured member",
                        errors=[f"beneficiary_id: {claim_data.beneficiary_id}"],
                    )

            if claim_data.provider_id is not None:
                provider = await self.session.get(HealthcareProvider, claim_data.provider_id)
                if provider is None:
                    raise InvalidInput(
                        "Unknown healthcare provider",
                        errors=[f"provider_id: {claim_data.provider_id}"],
                    )

            claim = Claim(
                id=uuid4(),
                claim_number=self._generate_claim_number(),
                insured_id=insured.id,
                beneficiary_id=claim_data.beneficiary_id,
                provider_id=claim_data.provider_id,
                care_category=claim_data.care_category.strip(),
                medical_date=claim_data.medical_date,
                doctor_name=claim_data.doctor_name,
                notes=claim_data.notes,
                status=ClaimStatus.SOUMIS,
                claimed_amount=claim_data.claimed_amount,
            )
            self.session.add(claim)

            self.session.add(
                ClaimStatusHistory(
                    id=uuid4(),
                    claim_id=claim.id,
                    previous_status=None,
                    new_status=ClaimStatus.SOUMIS,
                    changed_by=actor.user_id,
                    actor_type=actor.actor_type,
                    reason="Claim created",
                    details={"claimed_amount": str(claim.claimed_amount)},
                )
            )
            record_audit(
                self.session,
                actor,
                AuditAction.CREATE,
                AuditResourceType.REIMBURSEMENT,
                claim.id,
                f"Demande de remboursement {claim.claim_number} créée pour {insured.full_name}",
                new_values={
                    "reimbursement_number": claim.claim_number,
                    "insured_id": insured.id,
                    "care_type": claim.care_category,
                    "claimed_amount": claim.claimed_amount,
                    "status": claim.status,
                },
            )
            await self.session.commit()

        logger.info(f"Created claim {claim.claim_number} (ID: {claim.id}) for insured {insured.id}")
        # Reload the claim row only; related objects the caller holds keep their state
        self.session.expire(claim)
        return await self.get_claim(claim.id)

    # =========================================================================
    # Read Operations
    # =========================================================================

    async def get_claim(self, claim_id: UUID) -> Claim:
        """
        Get claim by ID with its insured, beneficiary and provider loaded.

        Raises:
            ClaimNotFoundError: Unknown claim id
        """
        query = (
            select(Claim)
            .where(Claim.id == claim_id)
            .options(
                selectinload(Claim.insured),
                selectinload(Claim.beneficiary),
                selectinload(Claim.provider),
            )
        )
        async with store_operation(self.session, "get claim"):
            result = await self.session.execute(query)
            claim = result.scalar_one_or_none()

        if claim is None:
            raise ClaimNotFoundError(f"Claim not found: {claim_id}")
        return claim

    async def get_status_history(self, claim_id: UUID) -> list[ClaimStatusHistory]:
        """Status history of a claim, oldest first."""
        await self.get_claim(claim_id)
        async with store_operation(self.session, "get status history"):
            result = await self.session.execute(
                select(ClaimStatusHistory)
                .where(ClaimStatusHistory.claim_id == claim_id)
                .order_by(ClaimStatusHistory.changed_at)
            )
            return list(result.scalars().all())

    async def list_claims(
        self,
        search: Optional[str] = None,
        status: Optional[ClaimStatus] = None,
        category: Optional[str] = None,
        insured_id: Optional[UUID] = None,
    ) -> list[Claim]:
        """
        List claims, newest first.

        Args:
            search: Substring of the claim number or the insured's name
            status: Exact status
            category: Exact care category
            insured_id: Claims of one insured member
        """
        query = (
            select(Claim)
            .join(Claim.insured)
            .options(selectinload(Claim.insured), selectinload(Claim.provider))
            .order_by(Claim.created_at.desc())
        )
        if search:
            pattern = f"%{search.strip()}%"
            query = query.where(
                or_(
                    Claim.claim_number.ilike(pattern),
                    (Insured.first_name + " " + Insured.last_name).ilike(pattern),
                    Insured.matricule.ilike(pattern),
                )
            )
        if status is not None:
            query = query.where(Claim.status == status)
        if category:
            query = query.where(Claim.care_category == category)
        if insured_id is not None:
            query = query.where(Claim.insured_id == insured_id)

        async with store_operation(self.session, "list claims"):
            result = await self.session.execute(query)
            return list(result.scalars().all())

    async def get_claims_stats(self) -> dict[str, Any]:
        """Counts per status and per care category over all claims."""
        async with store_operation(self.session, "claims statistics"):
            by_status = await self.session.execute(
                select(Claim.status, func.count(Claim.id)).group_by(Claim.status)
            )
            by_category = await self.session.execute(
                select(Claim.care_category, func.count(Claim.id)).group_by(Claim.care_category)
            )
            status_rows = by_status.all()
            category_rows = by_category.all()

        stats: dict[str, Any] = {s.value: 0 for s in ClaimStatus}
        for status, count in status_rows:
            stats[status.value] = count
        stats["total"] = sum(count for _, count in status_rows)
        stats["by_category"] = {category: count for category, count in category_rows}
        return stats

    # =========================================================================
    # Status Transitions
    # =========================================================================

    async def transition(
        self,
        claim_id: UUID,
        new_status: Union[ClaimStatus, str],
        approved_amount: Union[Decimal, int, str, None] = None,
        paid_amount: Union[Decimal, int, str, None] = None,
        expected_status: Union[ClaimStatus, str, None] = None,
        notes: Optional[str] = None,
        payment_reference: Optional[str] = None,
        actor: Optional[UserContext] = None,
    ) -> Claim:
        """
        Move a claim to a new status.

        Args:
            claim_id: Claim to transition
            new_status: One of verification, valide, paye, rejete
            approved_amount: Required for valide; optional for paye
            paid_amount: Required for paye, at most the approved amount
            expected_status: Status the caller last saw; the write only
                happens if the claim is still in it
            notes: Reason recorded in the status history
            payment_reference: Reference of the payout (paye only)
            actor: Staff member performing the transition

        Returns:
            The updated Claim

        Raises:
            ClaimNotFoundError: Unknown claim id
            InvalidTransition: Illegal target or terminal current status
            StatusConflict: The claim is no longer in the expected status
            MissingApproval: No approved amount for valide or paye
            InvalidAmount: Missing, negative or excessive paid amount
        """
        actor = actor or UserContext.system()
        claim = await self.get_claim(claim_id)
        current = claim.status

        if expected_status is not None:
            try:
                expected = ClaimStatus(expected_status)
            except ValueError:
                raise InvalidInput(f"Unknown expected status: {expected_status}")
            if expected != current:
                logger.warning(
                    f"Transition refused for claim {claim.claim_number}: expected "
                    f"{expected.value}, found {current.value}"
                )
                raise StatusConflict(
                    f"Claim {claim.claim_number} is {current.value}, not {expected.value}",
                    expected=expected.value,
                    actual=current.value,
                )

        context = TransitionContext(
            claim_id=str(claim.id),
            current_status=current,
            target_status=new_status,
            current_approved_amount=claim.approved_amount,
            approved_amount=_money(approved_amount),
            paid_amount=_money(paid_amount),
            triggered_by=actor.user_id,
        )
        result = self.state_machine.execute_transition(context)
        target = result.to_status
        now = context.timestamp

        values: dict[str, Any] = {"status": target}
        if result.transition.clears_approval:
            values.update(approved_amount=None, validated_at=None, validated_by=None)
        if target == ClaimStatus.VALIDE:
            values.update(
                approved_amount=context.approved_amount,
                validated_at=now,
                validated_by=actor.display_name,
            )
        if target == ClaimStatus.PAYE:
            values.update(
                paid_amount=context.paid_amount,
                paid_at=now,
                paid_by=actor.display_name,
                payment_reference=payment_reference,
            )
            if context.approved_amount is not None:
                values["approved_amount"] = context.approved_amount
            if claim.validated_at is None:
                values.update(validated_at=now, validated_by=actor.display_name)

        old_values = {
            "status": current,
            "approved_amount": claim.approved_amount,
            "paid_amount": claim.paid_amount,
        }

        async with store_operation(self.session, "transition claim"):
            written = await self.session.execute(
                update(Claim)
                .where(Claim.id == claim.id, Claim.status == current)
                .values(**values)
                .execution_options(synchronize_session=False)
            )
            if written.rowcount != 1:
                actual = await self.session.scalar(select(Claim.status).where(Claim.id == claim.id))
                actual_value = actual.value if actual is not None else "deleted"
                logger.warning(
                    f"Transition refused for claim {claim.claim_number}: status moved "
                    f"from {current.value} to {actual_value}"
                )
                raise StatusConflict(
                    f"Claim {claim.claim_number} changed status concurrently",
                    expected=current.value,
                    actual=actual_value,
                )
            note_change(self.session, EntityKind.CLAIMS, ChangeKind.UPDATE)

            details = {
                k: str(v) for k, v in values.items()
                if k in ("approved_amount", "paid_amount") and v is not None
            }
            self.session.add(
                ClaimStatusHistory(
                    id=uuid4(),
                    claim_id=claim.id,
                    previous_status=current,
                    new_status=target,
                    changed_by=actor.user_id,
                    actor_type=actor.actor_type,
                    reason=notes or f"{get_status_display_name(current)} -> {get_status_display_name(target)}",
                    details=details or None,
                )
            )
            record_audit(
                self.session,
                actor,
                AuditAction.PAYMENT if target == ClaimStatus.PAYE else AuditAction.STATUS_CHANGE,
                AuditResourceType.REIMBURSEMENT,
                claim.id,
                f"Remboursement {claim.claim_number}: {get_status_display_name(target)}",
                old_values=old_values,
                new_values=values,
            )
            await self.session.commit()

        logger.info(
            f"Claim {claim.claim_number} transitioned: {current.value} -> {target.value}"
            f" by {actor.display_name}"
        )
        # Reload the claim row only; related objects the caller holds keep their state
        self.session.expire(claim)
        return await self.get_claim(claim.id)


# =============================================================================
# Factory Functions
# =============================================================================


async def get_claims_service(session: AsyncSession) -> ClaimsService:
    """Get claims service instance."""
    return ClaimsService(session)
