"""
Insured Member API Endpoints.

Provides:
- Insured listing with eligibility
- Eligible insured members (those whose contract has a paid contribution)
- Beneficiaries of eligible members
"""

from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from healthcover.api.deps import get_view_session_maker
from healthcover.api.routes.views import fetch_list_response
from healthcover.core.enums import SubscriptionStatus
from healthcover.db.connection import get_session
from healthcover.schemas.subscription import BeneficiaryResponse, InsuredResponse
from healthcover.schemas.views import ListResponse
from healthcover.services.eligibility import EligibilityService
from healthcover.services.live_views import BeneficiaryView, InsuredView

router = APIRouter(
    prefix="/api/v1",
    tags=["insured"],
)


@router.get("/insured", response_model=ListResponse[InsuredResponse])
async def list_insured(
    search: Optional[str] = Query(None, description="Name, matricule, email or contract number"),
    status_filter: Optional[SubscriptionStatus] = Query(None, alias="status"),
    paid_only: bool = Query(False, description="Only members with a paid contract"),
    session_maker: async_sessionmaker[AsyncSession] = Depends(get_view_session_maker),
) -> ListResponse:
    """List insured members; each item tells whether the member may submit claims."""
    return await fetch_list_response(
        InsuredView,
        session_maker,
        search=search,
        status=status_filter,
        paid_only=paid_only,
    )


@router.get("/insured/eligible", response_model=list[InsuredResponse])
async def list_eligible_insured(
    contract_id: Optional[UUID] = Query(None),
    session: AsyncSession = Depends(get_session),
) -> list[InsuredResponse]:
    """Members allowed to submit claims, ordered by name."""
    insured = await EligibilityService(session).list_eligible_insured(contract_id=contract_id)
    return [
        InsuredResponse.model_validate(member).model_copy(update={"eligible": True})
        for member in insured
    ]


@router.get("/beneficiaries", response_model=ListResponse[BeneficiaryResponse])
async def list_beneficiaries(
    search: Optional[str] = Query(None),
    session_maker: async_sessionmaker[AsyncSession] = Depends(get_view_session_maker),
) -> ListResponse:
    """Beneficiaries of eligible members."""
    return await fetch_list_response(BeneficiaryView, session_maker, search=search)
