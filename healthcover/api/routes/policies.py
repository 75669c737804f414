"""
Reimbursement Policy API Endpoints.

Provides:
- Policy listing and maintenance (one active policy per care category)
- Approval computation for a claimed amount
"""

import logging
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from healthcover.api.deps import get_user_context, get_view_session_maker
from healthcover.api.routes.views import fetch_list_response
from healthcover.db.connection import get_session
from healthcover.schemas.policy import (
    ApprovalRequest,
    ApprovalResponse,
    PolicyCreate,
    PolicyResponse,
    PolicyUpdate,
)
from healthcover.schemas.views import ListResponse
from healthcover.services.audit import UserContext
from healthcover.services.live_views import PolicyView
from healthcover.services.policy_store import PolicyStore

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/api/v1/policies",
    tags=["policies"],
)


@router.get("", response_model=ListResponse[PolicyResponse])
async def list_policies(
    active_only: bool = Query(False, description="Only active policies"),
    session_maker: async_sessionmaker[AsyncSession] = Depends(get_view_session_maker),
) -> ListResponse:
    """List policies ordered by care category."""
    return await fetch_list_response(PolicyView, session_maker, active_only=active_only)


@router.post("", response_model=PolicyResponse, status_code=status.HTTP_201_CREATED)
async def create_policy(
    policy_data: PolicyCreate,
    session: AsyncSession = Depends(get_session),
    actor: UserContext = Depends(get_user_context),
) -> PolicyResponse:
    """
    Create a policy for a care category.

    A second active policy for the same category is refused with 409.
    """
    policy = await PolicyStore(session).create_policy(
        category=policy_data.category,
        rate=policy_data.rate,
        ceiling_amount=policy_data.ceiling_amount,
        active=policy_data.active,
        description=policy_data.description,
        actor=actor,
    )
    return PolicyResponse.model_validate(policy)


@router.post("/approval", response_model=ApprovalResponse)
async def compute_approval(
    request: ApprovalRequest,
    session: AsyncSession = Depends(get_session),
) -> ApprovalResponse:
    """
    Compute the approved amount for a claimed amount.

    Without an active policy for the category the claimed amount is
    approved in full.
    """
    result = await PolicyStore(session).compute_approval(request.category, request.claimed_amount)
    return ApprovalResponse(**result.to_dict())


@router.get("/{policy_id}", response_model=PolicyResponse)
async def get_policy(
    policy_id: UUID,
    session: AsyncSession = Depends(get_session),
) -> PolicyResponse:
    policy = await PolicyStore(session).get_policy(policy_id)
    return PolicyResponse.model_validate(policy)


@router.patch("/{policy_id}", response_model=PolicyResponse)
async def update_policy(
    policy_id: UUID,
    policy_data: PolicyUpdate,
    session: AsyncSession = Depends(get_session),
    actor: UserContext = Depends(get_user_context),
) -> PolicyResponse:
    policy = await PolicyStore(session).update_policy(
        policy_id,
        rate=policy_data.rate,
        ceiling_amount=policy_data.ceiling_amount,
        active=policy_data.active,
        description=policy_data.description,
        actor=actor,
    )
    return PolicyResponse.model_validate(policy)


@router.delete("/{policy_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_policy(
    policy_id: UUID,
    session: AsyncSession = Depends(get_session),
    actor: UserContext = Depends(get_user_context),
) -> None:
    await PolicyStore(session).delete_policy(policy_id, actor=actor)
    logger.info(f"Policy {policy_id} deleted by {actor.display_name}")
