"""
Pytest Configuration and Fixtures.
Shared test fixtures for all test modules.

Store-backed tests run on SQLite (aiosqlite) with the production models and
change-feed hooks. The environment is set before any healthcover import so
the application settings pick it up.
"""

import os
import tempfile
from datetime import date
from decimal import Decimal
from pathlib import Path
from uuid import uuid4

_TEST_DIR = Path(tempfile.mkdtemp(prefix="healthcover-tests-"))
os.environ["ENVIRONMENT"] = "testing"
os.environ["DATABASE_URL"] = f"sqlite+aiosqlite:///{_TEST_DIR / 'api.db'}"
os.environ["DB_CREATE_ALL"] = "true"
os.environ["LOG_LEVEL"] = "WARNING"

import pytest  # noqa: E402
import pytest_asyncio  # noqa: E402
from sqlalchemy.ext.asyncio import create_async_engine  # noqa: E402
from sqlalchemy.pool import NullPool  # noqa: E402

from healthcover.core.enums import PaymentStatus, RelationshipType  # noqa: E402
from healthcover.db.change_feed import ChangeFeed  # noqa: E402
from healthcover.db.connection import create_session_maker, init_models  # noqa: E402
from healthcover.models.policy import ReimbursementPolicy  # noqa: E402
from healthcover.services.subscription_service import (  # noqa: E402
    BeneficiaryCreateDTO,
    ContractCreateDTO,
    InsuredCreateDTO,
    SubscriptionService,
)


# =============================================================================
# Database Fixtures
# =============================================================================


@pytest_asyncio.fixture
async def engine(tmp_path):
    """Fresh SQLite database per test."""
    engine = create_async_engine(
        f"sqlite+aiosqlite:///{tmp_path / 'store.db'}",
        poolclass=NullPool,
    )
    await init_models(engine)
    yield engine
    await engine.dispose()


@pytest_asyncio.fixture
async def feed():
    """Change feed isolated from the application singleton."""
    feed = ChangeFeed()
    yield feed
    await feed.drain()
    feed.close()


@pytest.fixture
def session_maker(engine, feed):
    """Session maker whose commits publish to ``feed``."""
    return create_session_maker(engine, feed)


@pytest_asyncio.fixture
async def session(session_maker):
    async with session_maker() as session:
        yield session


# =============================================================================
# Data Helpers
# =============================================================================


def make_policy(category: str, rate, ceiling, active: bool = True) -> ReimbursementPolicy:
    """Unsaved policy for the pure calculator tests."""
    return ReimbursementPolicy(
        id=uuid4(),
        category=category,
        rate=Decimal(str(rate)),
        ceiling_amount=Decimal(str(ceiling)),
        active=active,
    )


async def create_contract(
    session,
    *,
    paid: bool = False,
    members: int = 1,
    with_beneficiary: bool = False,
    company_name: str = "Société Comorienne de Test",
    last_name: str = "Mohamed",
):
    """
    Subscribe a contract with ``members`` insured.

    With ``paid`` a contribution is added and marked paye, which makes every
    member eligible.
    """
    service = SubscriptionService(session)
    insured = [
        InsuredCreateDTO(
            matricule=f"MAT-{uuid4().hex[:8].upper()}",
            first_name=f"Assuré{index}",
            last_name=last_name,
            birth_date=date(1985, 3, 12),
            insurance_start_date=date(2026, 1, 1),
            beneficiaries=[
                BeneficiaryCreateDTO(
                    first_name="Enfant",
                    last_name=last_name,
                    birth_date=date(2015, 6, 1),
                    relationship_type=RelationshipType.ENFANT,
                )
            ]
            if with_beneficiary
            else [],
        )
        for index in range(members)
    ]
    contract = await service.create_contract(
        ContractCreateDTO(
            client_code=f"CL-{uuid4().hex[:6].upper()}",
            company_name=company_name,
            start_date=date(2026, 1, 1),
            insured=insured,
        )
    )
    if paid:
        contribution = await service.add_contribution(
            contract.id,
            amount=Decimal("120000"),
            period_start=date(2026, 1, 1),
            period_end=date(2026, 12, 31),
        )
        await service.update_payment_status(contribution.id, PaymentStatus.PAYE)
        contract = await service.get_contract(contract.id)
    return contract


# Configure pytest markers
def pytest_configure(config):
    """Configure pytest markers."""
    config.addinivalue_line(
        "markers", "unit: mark test as a unit test"
    )
    config.addinivalue_line(
        "markers", "integration: mark test as an integration test"
    )
    config.addinivalue_line(
        "markers", "api: mark test as an API test"
    )


# =============================================================================
# API Fixtures
# =============================================================================


@pytest.fixture
def client():
    """Test client running the application lifespan."""
    from fastapi.testclient import TestClient

    from healthcover.api.main import app

    with TestClient(app) as test_client:
        yield test_client


def subscribe_contract(client, *, paid: bool = True, members: int = 1) -> dict:
    """Subscribe a contract through the API; with ``paid`` its contribution is marked paye."""
    response = client.post(
        "/api/v1/contracts",
        json={
            "client_code": f"CL-{uuid4().hex[:6].upper()}",
            "company_name": "Comores Télécom",
            "start_date": "2026-01-01",
            "insured": [
                {
                    "matricule": f"MAT-{uuid4().hex[:8].upper()}",
                    "first_name": f"Assuré{index}",
                    "last_name": "Said",
                    "birth_date": "1984-07-09",
                    "insurance_start_date": "2026-01-01",
                }
                for index in range(members)
            ],
        },
    )
    assert response.status_code == 201, response.text
    contract = response.json()

    if paid:
        response = client.post(
            f"/api/v1/contracts/{contract['id']}/contributions",
            json={"amount": "60000", "period_start": "2026-01-01", "period_end": "2026-06-30"},
        )
        assert response.status_code == 201, response.text
        response = client.patch(
            f"/api/v1/contributions/{response.json()['id']}/payment",
            json={"status": "paye"},
        )
        assert response.status_code == 200, response.text
        contract = client.get(f"/api/v1/contracts/{contract['id']}").json()
    return contract
