"""
Reimbursement Claims API Endpoints.

Provides:
- Claim submission (eligible insured members only)
- Claim listing with per-status statistics
- Status transitions with amount preconditions
- Status history
"""

import logging
from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from healthcover.api.deps import get_user_context, get_view_session_maker
from healthcover.api.routes.views import fetch_list_response
from healthcover.core.enums import ClaimStatus
from healthcover.db.connection import get_session
from healthcover.schemas.claim import (
    ClaimCreate,
    ClaimResponse,
    ClaimStatusHistoryResponse,
    ClaimTransitionRequest,
)
from healthcover.schemas.views import ListResponse
from healthcover.services.audit import UserContext
from healthcover.services.claims_service import ClaimCreateDTO, ClaimsService
from healthcover.services.live_views import ClaimView

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/api/v1/claims",
    tags=["claims"],
)


# =============================================================================
# CRUD Endpoints
# =============================================================================


@router.post("", response_model=ClaimResponse, status_code=status.HTTP_201_CREATED)
async def create_claim(
    claim_data: ClaimCreate,
    session: AsyncSession = Depends(get_session),
    actor: UserContext = Depends(get_user_context),
) -> ClaimResponse:
    """
    Submit a claim in status soumis.

    Refused with 403 when the insured member's contract has no paid
    contribution.
    """
    service = ClaimsService(session)
    claim = await service.create_claim(
        ClaimCreateDTO(
            insured_id=claim_data.insured_id,
            claimed_amount=claim_data.claimed_amount,
            care_category=claim_data.care_category,
            medical_date=claim_data.medical_date,
            provider_id=claim_data.provider_id,
            beneficiary_id=claim_data.beneficiary_id,
            doctor_name=claim_data.doctor_name,
            notes=claim_data.notes,
        ),
        actor=actor,
    )
    return ClaimResponse.model_validate(claim)


@router.get("", response_model=ListResponse[ClaimResponse])
async def list_claims(
    search: Optional[str] = Query(None, description="Claim number, insured name or matricule"),
    status_filter: Optional[ClaimStatus] = Query(None, alias="status"),
    category: Optional[str] = Query(None, description="Care category"),
    eligible_only: bool = Query(False, description="Only claims of eligible members"),
    session_maker: async_sessionmaker[AsyncSession] = Depends(get_view_session_maker),
) -> ListResponse:
    """List claims, newest first; stats cover every claim regardless of filters."""
    return await fetch_list_response(
        ClaimView,
        session_maker,
        search=search,
        status=status_filter,
        category=category,
        eligible_only=eligible_only,
    )


@router.get("/{claim_id}", response_model=ClaimResponse)
async def get_claim(
    claim_id: UUID,
    session: AsyncSession = Depends(get_session),
) -> ClaimResponse:
    claim = await ClaimsService(session).get_claim(claim_id)
    return ClaimResponse.model_validate(claim)


# =============================================================================
# Workflow Endpoints
# =============================================================================


@router.post("/{claim_id}/transition", response_model=ClaimResponse)
async def transition_claim(
    claim_id: UUID,
    request: ClaimTransitionRequest,
    session: AsyncSession = Depends(get_session),
    actor: UserContext = Depends(get_user_context),
) -> ClaimResponse:
    """
    Move a claim to verification, valide, paye or rejete.

    - valide needs approved_amount
    - paye needs paid_amount, at most the approved amount
    - paye and rejete are final
    - a stale expected_status is refused with 409
    """
    claim = await ClaimsService(session).transition(
        claim_id,
        request.status,
        approved_amount=request.approved_amount,
        paid_amount=request.paid_amount,
        expected_status=request.expected_status,
        notes=request.notes,
        payment_reference=request.payment_reference,
        actor=actor,
    )
    return ClaimResponse.model_validate(claim)


@router.get("/{claim_id}/history", response_model=list[ClaimStatusHistoryResponse])
async def get_claim_history(
    claim_id: UUID,
    session: AsyncSession = Depends(get_session),
) -> list[ClaimStatusHistoryResponse]:
    """Status changes of a claim, oldest first."""
    service = ClaimsService(session)
    history = await service.get_status_history(claim_id)
    return [ClaimStatusHistoryResponse.model_validate(entry) for entry in history]
