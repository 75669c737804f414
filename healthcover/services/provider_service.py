"""
Healthcare Provider Service.

Provides:
- Provider registration and updates
- Provider lookup, ordered by name
- Providers able to deliver a given care category

Claims may reference a provider; creating one here is the only way for a
provider row to exist.
"""

import logging
from typing import Optional
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from healthcover.core.enums import AuditAction, AuditResourceType, ProviderType
from healthcover.db.connection import store_operation
from healthcover.models.provider import HealthcareProvider
from healthcover.services.audit import UserContext, record_audit
from healthcover.utils.errors import InvalidInput, ProviderNotFoundError

logger = logging.getLogger(__name__)

# Care categories and the provider types that deliver them; unknown
# categories accept every type
PROVIDER_TYPES_BY_CARE: dict[str, frozenset[ProviderType]] = {
    "consultation": frozenset({ProviderType.MEDECIN, ProviderType.CLINIQUE, ProviderType.HOPITAL}),
    "hospitalisation": frozenset({ProviderType.HOPITAL, ProviderType.CLINIQUE}),
    "pharmacie": frozenset({ProviderType.PHARMACIE}),
    "analyses": frozenset({ProviderType.LABORATOIRE, ProviderType.HOPITAL, ProviderType.CLINIQUE}),
    "radiologie": frozenset({ProviderType.LABORATOIRE, ProviderType.HOPITAL, ProviderType.CLINIQUE}),
}


def provider_types_for(care_category: str) -> frozenset[ProviderType]:
    return PROVIDER_TYPES_BY_CARE.get(care_category.strip().lower(), frozenset(ProviderType))


def _provider_values(provider: HealthcareProvider) -> dict:
    return {
        "name": provider.name,
        "provider_type": provider.provider_type,
        "is_conventioned": provider.is_conventioned,
        "convention_number": provider.convention_number,
        "city": provider.city,
    }


class ProviderCreateDTO:
    """Data transfer object for registering a provider."""

    def __init__(
        self,
        name: str,
        provider_type: ProviderType,
        is_conventioned: bool = False,
        convention_number: Optional[str] = None,
        city: Optional[str] = None,
        address: Optional[str] = None,
        phone: Optional[str] = None,
        tariffs: Optional[dict] = None,
    ):
        self.name = name
        self.provider_type = provider_type
        self.is_conventioned = is_conventioned
        self.convention_number = convention_number
        self.city = city
        self.address = address
        self.phone = phone
        self.tariffs = tariffs


class ProviderService:
    """
    Service for healthcare provider operations.

    Handles:
    - Registration with name and type checks
    - Audit rows for every write
    """

    def __init__(self, session: AsyncSession):
        self.session = session

    @staticmethod
    def _validate(name: Optional[str], provider_type: Optional[str]) -> list[str]:
        errors = []
        if name is not None and not name.strip():
            errors.append("name must not be empty")
        if provider_type is not None:
            try:
                ProviderType(provider_type)
            except ValueError:
                errors.append(f"unknown provider_type: {provider_type}")
        return errors

    async def create_provider(
        self,
        provider_data: ProviderCreateDTO,
        actor: Optional[UserContext] = None,
    ) -> HealthcareProvider:
        """
        Register a provider.

        Raises:
            InvalidInput: Empty name or unknown provider type
        """
        errors = self._validate(provider_data.name or "", provider_data.provider_type)
        if errors:
            raise InvalidInput("Invalid provider", errors=errors)

        provider = HealthcareProvider(
            name=provider_data.name.strip(),
            provider_type=ProviderType(provider_data.provider_type),
            is_conventioned=provider_data.is_conventioned,
            convention_number=provider_data.convention_number,
            city=provider_data.city,
            address=provider_data.address,
            phone=provider_data.phone,
            tariffs=provider_data.tariffs,
        )

        async with store_operation(self.session, "create provider"):
            self.session.add(provider)
            await self.session.flush()
            record_audit(
                self.session,
                actor,
                AuditAction.CREATE,
                AuditResourceType.PROVIDER,
                provider.id,
                f"Nouveau prestataire: {provider.name} ({provider.provider_type.value})",
                new_values=_provider_values(provider),
            )
            await self.session.commit()

        logger.info(f"Created provider {provider.name} ({provider.provider_type.value})")
        return provider

    async def get_provider(self, provider_id: UUID) -> HealthcareProvider:
        async with store_operation(self.session, "get provider"):
            provider = await self.session.get(HealthcareProvider, provider_id)
        if provider is None:
            raise ProviderNotFoundError(f"Provider not found: {provider_id}")
        return provider

    async def list_providers(
        self,
        provider_type: Optional[ProviderType] = None,
        care_category: Optional[str] = None,
    ) -> list[HealthcareProvider]:
        """
        List providers ordered by name.

        Args:
            provider_type: Only providers of this type
            care_category: Only providers able to deliver this care
        """
        query = select(HealthcareProvider).order_by(HealthcareProvider.name)
        if provider_type is not None:
            query = query.where(HealthcareProvider.provider_type == ProviderType(provider_type))
        if care_category:
            query = query.where(
                HealthcareProvider.provider_type.in_(provider_types_for(care_category))
            )

        async with store_operation(self.session, "list providers"):
            result = await self.session.execute(query)
            return list(result.scalars().all())

    async def update_provider(
        self,
        provider_id: UUID,
        name: Optional[str] = None,
        provider_type: Optional[ProviderType] = None,
        is_conventioned: Optional[bool] = None,
        convention_number: Optional[str] = None,
        city: Optional[str] = None,
        address: Optional[str] = None,
        phone: Optional[str] = None,
        actor: Optional[UserContext] = None,
    ) -> HealthcareProvider:
        """Update the given fields of a provider; None leaves a field unchanged."""
        errors = self._validate(name, provider_type)
        if errors:
            raise InvalidInput("Invalid provider", errors=errors)

        provider = await self.get_provider(provider_id)
        old_values = _provider_values(provider)

        async with store_operation(self.session, "update provider"):
            if name is not None:
                provider.name = name.strip()
            if provider_type is not None:
                provider.provider_type = ProviderType(provider_type)
            if is_conventioned is not None:
                provider.is_conventioned = is_conventioned
            if convention_number is not None:
                provider.convention_number = convention_number
            if city is not None:
                provider.city = city
            if address is not None:
                provider.address = address
            if phone is not None:
                provider.phone = phone

            record_audit(
                self.session,
                actor,
                AuditAction.UPDATE,
                AuditResourceType.PROVIDER,
                provider.id,
                f"Modification prestataire: {provider.name}",
                old_values=old_values,
                new_values=_provider_values(provider),
            )
            await self.session.commit()

        logger.info(f"Updated provider {provider_id}")
        return provider
