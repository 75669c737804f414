"""
Healthcare Provider API Endpoints.

Provides:
- Provider listing with per-type statistics
- Provider registration and updates
"""

import logging
from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from healthcover.api.deps import get_user_context, get_view_session_maker
from healthcover.api.routes.views import fetch_list_response
from healthcover.core.enums import ProviderType
from healthcover.db.connection import get_session
from healthcover.schemas.provider import ProviderCreate, ProviderResponse, ProviderUpdate
from healthcover.schemas.views import ListResponse
from healthcover.services.audit import UserContext
from healthcover.services.live_views import ProviderView
from healthcover.services.provider_service import ProviderCreateDTO, ProviderService

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/api/v1/providers",
    tags=["providers"],
)


@router.get("", response_model=ListResponse[ProviderResponse])
async def list_providers(
    search: Optional[str] = Query(None, description="Name, city or convention number"),
    provider_type: Optional[ProviderType] = Query(None),
    conventioned_only: bool = Query(False),
    session_maker: async_sessionmaker[AsyncSession] = Depends(get_view_session_maker),
) -> ListResponse:
    """List providers ordered by name; statistics count every provider."""
    return await fetch_list_response(
        ProviderView,
        session_maker,
        search=search,
        provider_type=provider_type,
        conventioned_only=conventioned_only,
    )


@router.post("", response_model=ProviderResponse, status_code=status.HTTP_201_CREATED)
async def create_provider(
    provider_data: ProviderCreate,
    session: AsyncSession = Depends(get_session),
    actor: UserContext = Depends(get_user_context),
) -> ProviderResponse:
    provider = await ProviderService(session).create_provider(
        ProviderCreateDTO(**provider_data.model_dump()),
        actor=actor,
    )
    return ProviderResponse.model_validate(provider)


@router.get("/{provider_id}", response_model=ProviderResponse)
async def get_provider(
    provider_id: UUID,
    session: AsyncSession = Depends(get_session),
) -> ProviderResponse:
    provider = await ProviderService(session).get_provider(provider_id)
    return ProviderResponse.model_validate(provider)


@router.patch("/{provider_id}", response_model=ProviderResponse)
async def update_provider(
    provider_id: UUID,
    provider_data: ProviderUpdate,
    session: AsyncSession = Depends(get_session),
    actor: UserContext = Depends(get_user_context),
) -> ProviderResponse:
    provider = await ProviderService(session).update_provider(
        provider_id,
        **provider_data.model_dump(exclude_unset=True),
        actor=actor,
    )
    logger.info(f"Provider {provider_id} updated by {actor.display_name}")
    return ProviderResponse.model_validate(provider)
