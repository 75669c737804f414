"""
Subscription Service.

Provides:
- Contract creation with its insured members and their beneficiaries
- Contributions (premiums) per contract period
- Payment status updates

Marking a contribution PAYE makes its contract paid: the contract and all
of its insured members move to VALIDEE, and every view that depends on
eligibility is notified through the contributions/contracts/insured feeds.
"""

import logging
from datetime import date, datetime, timezone
from decimal import Decimal
from typing import Optional, Union
from uuid import UUID, uuid4

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from healthcover.core.enums import (
    AuditAction,
    AuditResourceType,
    ChangeKind,
    ContractType,
    EntityKind,
    Gender,
    MaritalStatus,
    PaymentStatus,
    RelationshipType,
    SubscriptionStatus,
)
from healthcover.db.change_feed import note_change
from healthcover.db.connection import store_operation
from healthcover.models.contract import Contract, Contribution
from healthcover.models.insured import Beneficiary, Insured
from healthcover.services.audit import UserContext, record_audit
from healthcover.utils.errors import ContractNotFoundError, ContributionNotFoundError, InvalidInput

logger = logging.getLogger(__name__)

Amount = Union[Decimal, int, str]


# =============================================================================
# Data Transfer Objects
# =============================================================================


class BeneficiaryCreateDTO:
    """Data transfer object for a dependent."""

    def __init__(
        self,
        first_name: str,
        last_name: str,
        birth_date: date,
        relationship_type: RelationshipType,
        gender: Gender = Gender.M,
        birth_place: Optional[str] = None,
        phone: Optional[str] = None,
        address: Optional[str] = None,
    ):
        self.first_name = first_name
        self.last_name = last_name
        self.birth_date = birth_date
        self.relationship_type = relationship_type
        self.gender = gender
        self.birth_place = birth_place
        self.phone = phone
        self.address = address


class InsuredCreateDTO:
    """Data transfer object for an insured member and their dependents."""

    def __init__(
        self,
        matricule: str,
        first_name: str,
        last_name: str,
        birth_date: date,
        insurance_start_date: date,
        gender: Gender = Gender.M,
        marital_status: MaritalStatus = MaritalStatus.CELIBATAIRE,
        maiden_name: Optional[str] = None,
        birth_place: Optional[str] = None,
        phone: Optional[str] = None,
        email: Optional[str] = None,
        address: Optional[str] = None,
        employer: Optional[str] = None,
        job_title: Optional[str] = None,
        work_location: Optional[str] = None,
        beneficiaries: Optional[list[BeneficiaryCreateDTO]] = None,
    ):
        self.matricule = matricule
        self.first_name = first_name
        self.last_name = last_name
        self.birth_date = birth_date
        self.insurance_start_date = insurance_start_date
        self.gender = gender
        self.marital_status = marital_status
        self.maiden_name = maiden_name
        self.birth_place = birth_place
        self.phone = phone
        self.email = email
        self.address = address
        self.employer = employer
        self.job_title = job_title
        self.work_location = work_location
        self.beneficiaries = beneficiaries or []


class ContractCreateDTO:
    """Data transfer object for a subscription contract."""

    def __init__(
        self,
        client_code: str,
        company_name: str,
        start_date: date,
        contract_type: ContractType = ContractType.ENTREPRISE,
        contract_number: Optional[str] = None,
        end_date: Optional[date] = None,
        address: Optional[str] = None,
        phone: Optional[str] = None,
        email: Optional[str] = None,
        insured: Optional[list[InsuredCreateDTO]] = None,
    ):
        self.client_code = client_code
        self.company_name = company_name
        self.start_date = start_date
        self.contract_type = contract_type
        self.contract_number = contract_number
        self.end_date = end_date
        self.address = address
        self.phone = phone
        self.email = email
        self.insured = insured or []


# =============================================================================
# Subscription Service
# =============================================================================


class SubscriptionService:
    """
    Service for contracts, insured members and contributions.

    Handles:
    - Subscription of a contract with its members in a single commit
    - Contribution creation and payment tracking
    - Contract and member validation once a contribution is paid
    """

    def __init__(self, session: AsyncSession):
        self.session = session

    @staticmethod
    def _generate_contract_number() -> str:
        """Format: CTR-{YEAR}-{RANDOM HEX}"""
        year = datetime.now(timezone.utc).year
        return f"CTR-{year}-{uuid4().hex[:8].upper()}"

    # =========================================================================
    # Contracts
    # =========================================================================

    async def get_contract(self, contract_id: UUID) -> Contract:
        query = (
            select(Contract)
            .where(Contract.id == contract_id)
            .options(
                selectinload(Contract.insured).selectinload(Insured.beneficiaries),
                selectinload(Contract.contributions),
            )
            .execution_options(populate_existing=True)
        )
        async with store_operation(self.session, "get contract"):
            contract = (await self.session.execute(query)).scalar_one_or_none()
        if contract is None:
            raise ContractNotFoundError(f"Contract not found: {contract_id}")
        return contract

    async def create_contract(
        self,
        contract_data: ContractCreateDTO,
        actor: Optional[UserContext] = None,
    ) -> Contract:
        """
        Create a contract with its insured members and beneficiaries.

        Raises:
            InvalidInput: Missing names or codes, duplicate matricule
        """
        errors = []
        if not contract_data.client_code or not contract_data.client_code.strip():
            errors.append("client_code is required")
        if not contract_data.company_name or not contract_data.company_name.strip():
            errors.append("company_name is required")
        matricules = [i.matricule for i in contract_data.insured]
        if len(set(matricules)) != len(matricules):
            errors.append("matricule values must be distinct")
        if errors:
            raise InvalidInput("Invalid contract", errors=errors)

        actor = actor or UserContext.system()
        contract = Contract(
            id=uuid4(),
            contract_number=contract_data.contract_number or self._generate_contract_number(),
            client_code=contract_data.client_code.strip(),
            company_name=contract_data.company_name.strip(),
            contract_type=contract_data.contract_type,
            status=SubscriptionStatus.EN_ATTENTE,
            start_date=contract_data.start_date,
            end_date=contract_data.end_date,
            address=contract_data.address,
            phone=contract_data.phone,
            email=contract_data.email,
            created_by=actor.user_id,
        )
        for member in contract_data.insured:
            insured = Insured(
                id=uuid4(),
                matricule=member.matricule,
                first_name=member.first_name,
                last_name=member.last_name,
                maiden_name=member.maiden_name,
                birth_date=member.birth_date,
                birth_place=member.birth_place,
                gender=member.gender,
                marital_status=member.marital_status,
                address=member.address,
                phone=member.phone,
                email=member.email,
                employer=member.employer,
                job_title=member.job_title,
                work_location=member.work_location,
                insurance_start_date=member.insurance_start_date,
                status=SubscriptionStatus.EN_ATTENTE,
            )
            insured.beneficiaries = [
                Beneficiary(
                    id=uuid4(),
                    first_name=b.first_name,
                    last_name=b.last_name,
                    birth_date=b.birth_date,
                    birth_place=b.birth_place,
                    gender=b.gender,
                    relationship_type=b.relationship_type,
                    phone=b.phone,
                    address=b.address,
                )
                for b in member.beneficiaries
            ]
            contract.insured.append(insured)

        async with store_operation(self.session, "create contract"):
            self.session.add(contract)
            await self.session.flush()
            record_audit(
                self.session,
                actor,
                AuditAction.CREATE,
                AuditResourceType.CONTRACT,
                contract.id,
                f"Contrat {contract.contract_number} créé pour {contract.company_name} "
                f"({len(contract_data.insured)} assuré(s))",
                new_values={
                    "contract_number": contract.contract_number,
                    "client_code": contract.client_code,
                    "contract_type": contract.contract_type,
                    "insured": matricules,
                },
            )
            await self.session.commit()

        logger.info(
            f"Created contract {contract.contract_number} with {len(contract_data.insured)} insured"
        )
        return await self.get_contract(contract.id)

    # =========================================================================
    # Contributions
    # =========================================================================

    async def get_contribution(self, contribution_id: UUID) -> Contribution:
        async with store_operation(self.session, "get contribution"):
            contribution = await self.session.get(Contribution, contribution_id)
        if contribution is None:
            raise ContributionNotFoundError(f"Contribution not found: {contribution_id}")
        return contribution

    async def add_contribution(
        self,
        contract_id: UUID,
        amount: Amount,
        period_start: date,
        period_end: date,
        notes: Optional[str] = None,
        actor: Optional[UserContext] = None,
    ) -> Contribution:
        """
        Add a contribution awaiting payment to a contract.

        Raises:
            ContractNotFoundError: Unknown contract
            InvalidInput: Non-positive amount or inverted period
        """
        amount = Decimal(str(amount))
        errors = []
        if amount <= 0:
            errors.append("amount must be greater than 0")
        if period_end < period_start:
            errors.append("period_end must not precede period_start")
        if errors:
            raise InvalidInput("Invalid contribution", errors=errors)

        async with store_operation(self.session, "add contribution"):
            contract = await self.session.get(Contract, contract_id)
            if contract is None:
                raise ContractNotFoundError(f"Contract not found: {contract_id}")

            contribution = Contribution(
                id=uuid4(),
                contract_id=contract.id,
                amount=amount,
                paid_amount=Decimal("0"),
                period_start=period_start,
                period_end=period_end,
                payment_status=PaymentStatus.EN_ATTENTE,
                notes=notes,
            )
            self.session.add(contribution)
            record_audit(
                self.session,
                actor,
                AuditAction.CREATE,
                AuditResourceType.CONTRIBUTION,
                contribution.id,
                f"Cotisation de {amount} ajoutée au contrat {contract.contract_number}",
                new_values={"amount": amount, "period_start": period_start, "period_end": period_end},
            )
            await self.session.commit()

        logger.info(f"Added contribution {contribution.id} to contract {contract_id}")
        return contribution

    async def update_payment_status(
        self,
        contribution_id: UUID,
        status: PaymentStatus,
        paid_amount: Optional[Amount] = None,
        payment_reference: Optional[str] = None,
        actor: Optional[UserContext] = None,
    ) -> Contribution:
        """
        Record a payment on a contribution.

        PAYE stamps the payment date and validates the contract and all of
        its insured members in the same commit.

        Args:
            contribution_id: Contribution paid
            status: New payment status
            paid_amount: Total paid so far; defaults to the full amount for PAYE
            payment_reference: Bank or receipt reference
            actor: Staff member recording the payment
        """
        contribution = await self.get_contribution(contribution_id)
        status = PaymentStatus(status)

        if paid_amount is None:
            paid = contribution.amount if status == PaymentStatus.PAYE else contribution.paid_amount
        else:
            paid = Decimal(str(paid_amount))
        if paid < 0:
            raise InvalidInput("Invalid payment", errors=["paid_amount must be >= 0"])

        old_values = {
            "payment_status": contribution.payment_status,
            "paid_amount": contribution.paid_amount,
        }

        async with store_operation(self.session, "update payment status"):
            contribution.payment_status = status
            contribution.paid_amount = paid
            if status == PaymentStatus.PAYE:
                contribution.payment_date = datetime.now(timezone.utc).date()
            if payment_reference:
                contribution.payment_reference = payment_reference

            if status == PaymentStatus.PAYE:
                await self.session.execute(
                    update(Contract)
                    .where(Contract.id == contribution.contract_id)
                    .values(status=SubscriptionStatus.VALIDEE)
                    .execution_options(synchronize_session=False)
                )
                await self.session.execute(
                    update(Insured)
                    .where(Insured.contract_id == contribution.contract_id)
                    .values(status=SubscriptionStatus.VALIDEE)
                    .execution_options(synchronize_session=False)
                )
                note_change(self.session, EntityKind.CONTRACTS, ChangeKind.UPDATE)
                note_change(self.session, EntityKind.INSURED, ChangeKind.UPDATE)

            record_audit(
                self.session,
                actor,
                AuditAction.PAYMENT,
                AuditResourceType.CONTRIBUTION,
                contribution.id,
                f"Paiement de cotisation: {status.value} ({paid})",
                old_values=old_values,
                new_values={
                    "payment_status": status,
                    "paid_amount": paid,
                    "payment_reference": payment_reference,
                },
            )
            await self.session.commit()

        logger.info(
            f"Contribution {contribution_id} payment status {old_values['payment_status'].value}"
            f" -> {status.value}"
        )
        return contribution
