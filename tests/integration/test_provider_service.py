"""
Integration Tests for the Provider Service.

Tests:
- Provider registration and validation
- Listing by name, type and care category
- Updates with audit rows
"""

from uuid import uuid4

import pytest
from sqlalchemy import select

from healthcover.core.enums import AuditAction, AuditResourceType, ProviderType
from healthcover.models.audit import AuditLog
from healthcover.services.audit import UserContext
from healthcover.services.provider_service import (
    ProviderCreateDTO,
    ProviderService,
    provider_types_for,
)
from healthcover.utils.errors import InvalidInput, ProviderNotFoundError

ADMIN = UserContext(user_id="admin-1", user_name="Admin")


@pytest.fixture
def service(session):
    return ProviderService(session)


@pytest.mark.integration
class TestProviderService:
    """Tests for create_provider, list_providers and update_provider."""

    @pytest.mark.asyncio
    async def test_create_and_list_by_name(self, service):
        await service.create_provider(
            ProviderCreateDTO("Pharmacie du Port", ProviderType.PHARMACIE, city="Mutsamudu")
        )
        await service.create_provider(
            ProviderCreateDTO(
                "  Clinique El Maarouf ",
                "clinique",
                is_conventioned=True,
                convention_number="CONV-001",
            ),
            actor=ADMIN,
        )

        providers = await service.list_providers()

        assert [p.name for p in providers] == ["Clinique El Maarouf", "Pharmacie du Port"]
        assert providers[0].provider_type == ProviderType.CLINIQUE
        assert providers[0].is_conventioned is True
        assert [p.name for p in await service.list_providers(provider_type="pharmacie")] == [
            "Pharmacie du Port"
        ]

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "name, provider_type",
        [("", ProviderType.MEDECIN), ("   ", ProviderType.MEDECIN), ("Dr Ali", "veterinaire")],
    )
    async def test_invalid_provider(self, service, name, provider_type):
        with pytest.raises(InvalidInput):
            await service.create_provider(ProviderCreateDTO(name, provider_type))

        assert await service.list_providers() == []

    @pytest.mark.asyncio
    async def test_providers_for_care_category(self, service):
        for name, provider_type in [
            ("Dr Ahmed", ProviderType.MEDECIN),
            ("Hôpital El Maarouf", ProviderType.HOPITAL),
            ("Laboratoire Central", ProviderType.LABORATOIRE),
            ("Pharmacie Djumbe", ProviderType.PHARMACIE),
        ]:
            await service.create_provider(ProviderCreateDTO(name, provider_type))

        pharmacies = await service.list_providers(care_category="pharmacie")
        assert [p.name for p in pharmacies] == ["Pharmacie Djumbe"]

        analyses = await service.list_providers(care_category="Analyses")
        assert [p.name for p in analyses] == ["Hôpital El Maarouf", "Laboratoire Central"]

        assert len(await service.list_providers(care_category="optique")) == 4
        assert provider_types_for("optique") == frozenset(ProviderType)

    @pytest.mark.asyncio
    async def test_update_writes_audit(self, session, service):
        provider = await service.create_provider(
            ProviderCreateDTO("Cabinet Said", ProviderType.MEDECIN), actor=ADMIN
        )

        updated = await service.update_provider(
            provider.id, is_conventioned=True, convention_number="CONV-77", actor=ADMIN
        )
        assert updated.is_conventioned is True
        assert updated.name == "Cabinet Said"

        with pytest.raises(InvalidInput):
            await service.update_provider(provider.id, name=" ")

        result = await session.execute(
            select(AuditLog).where(AuditLog.entity_id == str(provider.id)).order_by(AuditLog.id)
        )
        entries = list(result.scalars().all())
        assert [e.action for e in entries] == [AuditAction.CREATE, AuditAction.UPDATE]
        assert all(e.entity_type == AuditResourceType.PROVIDER for e in entries)
        assert entries[1].old_values["is_conventioned"] is False
        assert entries[1].new_values["convention_number"] == "CONV-77"

    @pytest.mark.asyncio
    async def test_unknown_provider(self, service):
        with pytest.raises(ProviderNotFoundError):
            await service.get_provider(uuid4())
        with pytest.raises(ProviderNotFoundError):
            await service.update_provider(uuid4(), city="Moroni")
