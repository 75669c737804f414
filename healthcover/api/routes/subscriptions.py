"""
Subscription API Endpoints.

Provides:
- Contract subscription with insured members and beneficiaries
- Contribution creation
- Contribution payment recording
"""

import logging
from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from healthcover.api.deps import get_user_context, get_view_session_maker
from healthcover.api.routes.views import fetch_list_response
from healthcover.core.enums import PaymentStatus, SubscriptionStatus
from healthcover.db.connection import get_session
from healthcover.schemas.subscription import (
    ContractCreate,
    ContractDetailResponse,
    ContractResponse,
    ContributionCreate,
    ContributionResponse,
    PaymentStatusUpdate,
)
from healthcover.schemas.views import ListResponse
from healthcover.services.audit import UserContext
from healthcover.services.live_views import ContractView, ContributionView
from healthcover.services.subscription_service import (
    BeneficiaryCreateDTO,
    ContractCreateDTO,
    InsuredCreateDTO,
    SubscriptionService,
)

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/api/v1",
    tags=["subscriptions"],
)


def _contract_to_dto(contract_data: ContractCreate) -> ContractCreateDTO:
    """Convert the request body to the service DTO."""
    insured = [
        InsuredCreateDTO(
            **member.model_dump(exclude={"beneficiaries"}),
            beneficiaries=[
                BeneficiaryCreateDTO(
                    first_name=b.first_name,
                    last_name=b.last_name,
                    birth_date=b.birth_date,
                    relationship_type=b.relationship,
                    gender=b.gender,
                    birth_place=b.birth_place,
                    phone=b.phone,
                    address=b.address,
                )
                for b in member.beneficiaries
            ],
        )
        for member in contract_data.insured
    ]
    return ContractCreateDTO(**contract_data.model_dump(exclude={"insured"}), insured=insured)


# =============================================================================
# Contracts
# =============================================================================


@router.get("/contracts", response_model=ListResponse[ContractResponse])
async def list_contracts(
    search: Optional[str] = Query(None, description="Contract number, company or client code"),
    status_filter: Optional[SubscriptionStatus] = Query(None, alias="status"),
    session_maker: async_sessionmaker[AsyncSession] = Depends(get_view_session_maker),
) -> ListResponse:
    return await fetch_list_response(
        ContractView, session_maker, search=search, status=status_filter
    )


@router.post(
    "/contracts",
    response_model=ContractDetailResponse,
    status_code=status.HTTP_201_CREATED,
)
async def create_contract(
    contract_data: ContractCreate,
    session: AsyncSession = Depends(get_session),
    actor: UserContext = Depends(get_user_context),
) -> ContractDetailResponse:
    """
    Subscribe a contract with its insured members.

    The contract and its members stay en_attente until a contribution is paid.
    """
    service = SubscriptionService(session)
    contract = await service.create_contract(_contract_to_dto(contract_data), actor=actor)
    return ContractDetailResponse.model_validate(contract)


@router.get("/contracts/{contract_id}", response_model=ContractDetailResponse)
async def get_contract(
    contract_id: UUID,
    session: AsyncSession = Depends(get_session),
) -> ContractDetailResponse:
    contract = await SubscriptionService(session).get_contract(contract_id)
    return ContractDetailResponse.model_validate(contract)


# =============================================================================
# Contributions
# =============================================================================


@router.get("/contributions", response_model=ListResponse[ContributionResponse])
async def list_contributions(
    search: Optional[str] = Query(None),
    status_filter: Optional[PaymentStatus] = Query(None, alias="status"),
    session_maker: async_sessionmaker[AsyncSession] = Depends(get_view_session_maker),
) -> ListResponse:
    return await fetch_list_response(
        ContributionView, session_maker, search=search, status=status_filter
    )


@router.post(
    "/contracts/{contract_id}/contributions",
    response_model=ContributionResponse,
    status_code=status.HTTP_201_CREATED,
)
async def add_contribution(
    contract_id: UUID,
    contribution_data: ContributionCreate,
    session: AsyncSession = Depends(get_session),
    actor: UserContext = Depends(get_user_context),
) -> ContributionResponse:
    contribution = await SubscriptionService(session).add_contribution(
        contract_id,
        amount=contribution_data.amount,
        period_start=contribution_data.period_start,
        period_end=contribution_data.period_end,
        notes=contribution_data.notes,
        actor=actor,
    )
    return ContributionResponse.model_validate(contribution)


@router.patch("/contributions/{contribution_id}/payment", response_model=ContributionResponse)
async def update_payment_status(
    contribution_id: UUID,
    payment: PaymentStatusUpdate,
    session: AsyncSession = Depends(get_session),
    actor: UserContext = Depends(get_user_context),
) -> ContributionResponse:
    """
    Record a payment on a contribution.

    Marking it paye makes every insured member of the contract eligible.
    """
    contribution = await SubscriptionService(session).update_payment_status(
        contribution_id,
        status=payment.status,
        paid_amount=payment.paid_amount,
        payment_reference=payment.payment_reference,
        actor=actor,
    )
    logger.info(
        f"Contribution {contribution_id} marked {payment.status.value} by {actor.display_name}"
    )
    return ContributionResponse.model_validate(contribution)
