"""
Claim Eligibility.

An insured member may submit claims iff their contract has at least one
contribution with payment status PAYE. Beneficiaries inherit the status of
their insured member.

The filters are pure; EligibilityService loads the paid-contract set from
the store. An empty paid set means nobody is eligible.
"""

import logging
from typing import Any, Iterable, Optional, TypeVar
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from healthcover.core.enums import PaymentStatus
from healthcover.db.connection import store_operation
from healthcover.models.contract import Contribution
from healthcover.models.insured import Beneficiary, Insured
from healthcover.utils.errors import InsuredNotFoundError

logger = logging.getLogger(__name__)

T = TypeVar("T")


# =============================================================================
# Pure Filters
# =============================================================================


def paid_contract_ids(contributions: Iterable[Any]) -> set[UUID]:
    """Distinct contract ids of the contributions marked PAYE."""
    return {
        c.contract_id for c in contributions if c.payment_status == PaymentStatus.PAYE
    }


def filter_eligible_insured(insured: Iterable[T], paid_ids: Iterable[UUID]) -> list[T]:
    """Keep insured members whose contract is in the paid set, preserving order."""
    paid = set(paid_ids)
    return [i for i in insured if i.contract_id in paid]


def filter_eligible_claimants(claims: Iterable[T], eligible_insured_ids: Iterable[UUID]) -> list[T]:
    """Keep claims whose insured member is eligible."""
    eligible = set(eligible_insured_ids)
    return [c for c in claims if c.insured_id in eligible]


def filter_eligible_beneficiaries(
    beneficiaries: Iterable[T],
    eligible_insured_ids: Iterable[UUID],
) -> list[T]:
    """Keep beneficiaries whose insured member is eligible."""
    eligible = set(eligible_insured_ids)
    return [b for b in beneficiaries if b.insured_id in eligible]


# =============================================================================
# Store-backed Lookups
# =============================================================================


async def load_paid_contract_ids(session: AsyncSession) -> set[UUID]:
    """Paid-contract set as currently stored."""
    result = await session.execute(
        select(Contribution.contract_id)
        .where(Contribution.payment_status == PaymentStatus.PAYE)
        .distinct()
    )
    return set(result.scalars().all())


class EligibilityService:
    """Eligibility checks against the store."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def paid_contract_ids(self) -> set[UUID]:
        async with store_operation(self.session, "load paid contracts"):
            return await load_paid_contract_ids(self.session)

    async def is_contract_paid(self, contract_id: UUID) -> bool:
        return contract_id in await self.paid_contract_ids()

    async def is_eligible(self, insured_id: UUID) -> bool:
        """
        Check whether an insured member may submit claims.

        Raises:
            InsuredNotFoundError: Unknown insured id
        """
        async with store_operation(self.session, "check eligibility"):
            insured = await self.session.get(Insured, insured_id)
        if insured is None:
            raise InsuredNotFoundError(f"Insured not found: {insured_id}")
        eligible = await self.is_contract_paid(insured.contract_id)
        logger.debug(f"Insured {insured_id} eligible={eligible}")
        return eligible

    async def list_eligible_insured(self, contract_id: Optional[UUID] = None) -> list[Insured]:
        """Eligible insured members ordered by last name."""
        query = select(Insured).order_by(Insured.last_name, Insured.first_name)
        if contract_id is not None:
            query = query.where(Insured.contract_id == contract_id)

        async with store_operation(self.session, "list eligible insured"):
            paid = await load_paid_contract_ids(self.session)
            if not paid:
                return []
            result = await self.session.execute(query.where(Insured.contract_id.in_(paid)))
            return filter_eligible_insured(result.scalars().all(), paid)

    async def list_eligible_beneficiaries(self) -> list[Beneficiary]:
        async with store_operation(self.session, "list eligible beneficiaries"):
            eligible_ids = {i.id for i in await self.list_eligible_insured()}
            if not eligible_ids:
                return []
            result = await self.session.execute(
                select(Beneficiary)
                .where(Beneficiary.insured_id.in_(eligible_ids))
                .order_by(Beneficiary.last_name, Beneficiary.first_name)
            )
            return filter_eligible_beneficiaries(result.scalars().all(), eligible_ids)
