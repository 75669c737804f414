"""
Integration Tests for Live Views.

Tests:
- Initial fetch and refetch on change notifications
- Last-completed-wins ordering of overlapping refetches
- Results discarded after close
- Failed fetches keep the previous state
- View scopes keyed by (kind, filters)
- Filter changes through the WebSocket manager
"""

import asyncio
import json
from datetime import date
from decimal import Decimal

import pytest
from sqlalchemy.exc import OperationalError

from conftest import create_contract
from healthcover.api.websocket.manager import WebSocketManager
from healthcover.core.enums import (
    ClaimStatus,
    EntityKind,
    PaymentStatus,
    ProviderType,
    SubscriptionStatus,
)
from healthcover.services.claims_service import ClaimCreateDTO, ClaimsService
from healthcover.services.live_views import (
    ClaimView,
    DashboardView,
    InsuredView,
    LiveView,
    NotificationView,
    PolicyView,
    ProviderView,
    ViewScope,
    ViewSnapshot,
    get_view_type,
)
from healthcover.services.policy_store import PolicyStore
from healthcover.services.provider_service import ProviderCreateDTO, ProviderService
from healthcover.services.subscription_service import SubscriptionService
from healthcover.utils.errors import InvalidInput


class GatedView(LiveView):
    """View whose fetches finish only when the test releases them."""

    kind = "gated"
    watched_tables = frozenset({EntityKind.CLAIMS})
    filter_fields = {}

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.gates: list[asyncio.Event] = []
        self.fail_next = False

    async def fetch(self, session):
        if self.fail_next:
            self.fail_next = False
            raise OperationalError("SELECT 1", {}, Exception("database is locked"))
        label = len(self.gates)
        gate = asyncio.Event()
        self.gates.append(gate)
        await gate.wait()
        return ViewSnapshot(items=[label], stats={"label": label})


async def _wait_for_gates(view: GatedView, count: int) -> None:
    for _ in range(100):
        if len(view.gates) >= count:
            return
        await asyncio.sleep(0)
    raise AssertionError(f"expected {count} fetches in flight")


def _claim(insured_id, amount="5000", category="consultation"):
    return ClaimCreateDTO(
        insured_id=insured_id,
        claimed_amount=Decimal(amount),
        care_category=category,
        medical_date=date(2026, 3, 2),
    )


@pytest.mark.integration
class TestRefetchOnChange:
    """Tests for mounting and change-driven refetch."""

    @pytest.mark.asyncio
    async def test_claim_view_follows_new_claims(self, session, session_maker, feed):
        contract = await create_contract(session, paid=True)
        view = await ClaimView(session_maker, feed).mount()
        assert view.items == []
        assert view.version == 1
        assert view.stats["total"] == 0

        await ClaimsService(session).create_claim(_claim(contract.insured[0].id))
        await feed.drain()

        assert len(view.items) == 1
        assert view.stats["soumis"] == 1
        assert view.version == 2
        assert [i.id for i in view.extra["eligible_insured"]] == [contract.insured[0].id]
        assert view.is_loading is False
        view.close()

    @pytest.mark.asyncio
    async def test_filters_apply_but_stats_cover_everything(self, session, session_maker, feed):
        contract = await create_contract(session, paid=True)
        service = ClaimsService(session)
        first = await service.create_claim(_claim(contract.insured[0].id))
        await service.create_claim(_claim(contract.insured[0].id, category="pharmacie"))
        await service.transition(first.id, ClaimStatus.REJETE)

        view = await ClaimView(session_maker, feed, status="rejete").mount()

        assert [c.id for c in view.items] == [first.id]
        assert view.stats["total"] == 2
        view.close()

    @pytest.mark.asyncio
    async def test_insured_view_reacts_to_payment(self, session, session_maker, feed):
        contract = await create_contract(session, members=2)
        view = await InsuredView(session_maker, feed, paid_only="true").mount()
        assert view.items == []
        assert view.stats["total"] == 2
        assert view.stats["eligible"] == 0

        service = SubscriptionService(session)
        contribution = await service.add_contribution(
            contract.id, Decimal("1000"), date(2026, 1, 1), date(2026, 1, 31)
        )
        await feed.drain()
        assert view.version == 2
        assert view.items == []

        await service.update_payment_status(contribution.id, PaymentStatus.PAYE)
        await feed.drain()

        assert len(view.items) == 2
        assert view.stats["eligible"] == 2
        assert view.stats[SubscriptionStatus.VALIDEE.value] == 2
        view.close()

    @pytest.mark.asyncio
    async def test_unwatched_tables_do_not_refetch(self, session, session_maker, feed):
        view = await PolicyView(session_maker, feed).mount()
        await create_contract(session)
        await feed.drain()
        assert view.version == 1

        await PolicyStore(session).create_policy("consultation", 80, 10000)
        await feed.drain()
        assert view.version == 2
        assert view.stats == {"total": 1, "active": 1}
        view.close()

    @pytest.mark.asyncio
    async def test_dashboard(self, session, session_maker, feed):
        contract = await create_contract(session, paid=True, members=2)
        service = ClaimsService(session)
        claim = await service.create_claim(_claim(contract.insured[0].id))
        await service.create_claim(_claim(contract.insured[1].id))
        await service.transition(claim.id, ClaimStatus.VALIDE, approved_amount=Decimal("4000"))
        await service.transition(claim.id, ClaimStatus.PAYE, paid_amount=Decimal("3000"))

        view = await DashboardView(session_maker, feed).mount()

        assert view.stats["total_contracts"] == 1
        assert view.stats["active_insured"] == 2
        assert view.stats["pending_claims"] == 1
        assert view.stats["total_contributions_paid"] == Decimal("120000")
        assert view.stats["total_claims_paid"] == Decimal("3000")
        assert view.stats["claims_by_status"]["paye"] == 1
        assert len(view.items) == 1
        view.close()


    @pytest.mark.asyncio
    async def test_provider_view_orders_by_name(self, session, session_maker, feed):
        view = await ProviderView(session_maker, feed).mount()
        conventioned = await ProviderView(session_maker, feed, conventioned_only="true").mount()
        assert view.stats["total"] == 0

        service = ProviderService(session)
        await service.create_provider(ProviderCreateDTO("Pharmacie Djumbe", ProviderType.PHARMACIE))
        await service.create_provider(
            ProviderCreateDTO("Clinique El Maarouf", ProviderType.CLINIQUE, is_conventioned=True)
        )
        await service.create_provider(
            ProviderCreateDTO("Pharmacie Centrale", ProviderType.PHARMACIE, city="Moroni")
        )
        await feed.drain()

        assert [p.name for p in view.items] == [
            "Clinique El Maarouf",
            "Pharmacie Centrale",
            "Pharmacie Djumbe",
        ]
        assert view.stats["total"] == 3
        assert view.stats["pharmacie"] == 2
        assert view.stats["clinique"] == 1
        assert view.stats["hopital"] == 0
        assert view.stats["conventioned"] == 1
        assert [p.name for p in conventioned.items] == ["Clinique El Maarouf"]
        assert conventioned.stats["total"] == 3

        by_type = await ProviderView(
            session_maker, feed, provider_type="pharmacie", search="moroni"
        ).mount()
        assert [p.name for p in by_type.items] == ["Pharmacie Centrale"]
        for mounted in (view, conventioned, by_type):
            mounted.close()

    @pytest.mark.asyncio
    async def test_notification_view(self, session, session_maker, feed):
        pending = await create_contract(session)
        paid = await create_contract(session, paid=True)
        claim = await ClaimsService(session).create_claim(_claim(paid.insured[0].id))

        view = await NotificationView(session_maker, feed).mount()

        assert [n.id for n in view.items] == ["pending-subscriptions", f"pending-claim-{claim.id}"]
        assert view.stats["pending_contracts"] == 1
        assert view.stats["reserve_medicale"] == 0
        assert view.stats["unread"] == 2

        member = pending.insured[0]
        member.status = SubscriptionStatus.RESERVE_MEDICALE
        await session.commit()
        await feed.drain()

        assert view.version == 2
        reserve = [n for n in view.items if n.id == f"reserve-{member.id}"]
        assert len(reserve) == 1
        assert reserve[0].level == "warning"
        assert reserve[0].entity_type == "insured"
        assert member.matricule in reserve[0].message
        assert view.stats["reserve_medicale"] == 1
        view.close()


@pytest.mark.integration
class TestRefetchOrdering:
    """Tests for overlapping and late refetches."""

    @pytest.mark.asyncio
    async def test_last_completed_wins(self, session_maker):
        view = GatedView(session_maker)
        first = asyncio.create_task(view.refetch())
        second = asyncio.create_task(view.refetch())
        await _wait_for_gates(view, 2)
        assert view.is_loading is True

        view.gates[1].set()
        assert await second is True
        assert view.items == [1]

        view.gates[0].set()
        assert await first is True
        assert view.items == [0]
        assert view.version == 2
        assert view.is_loading is False

    @pytest.mark.asyncio
    async def test_result_after_close_is_discarded(self, session_maker):
        view = GatedView(session_maker)
        pending = asyncio.create_task(view.refetch())
        await _wait_for_gates(view, 1)

        assert view.close() is True
        assert view.close() is False
        view.gates[0].set()

        assert await pending is False
        assert view.items == []
        assert view.version == 0
        assert await view.refetch() is False

    @pytest.mark.asyncio
    async def test_failed_fetch_keeps_previous_state(self, session_maker):
        view = GatedView(session_maker)
        pending = asyncio.create_task(view.refetch())
        await _wait_for_gates(view, 1)
        view.gates[0].set()
        await pending

        view.fail_next = True
        assert await view.refetch() is False

        assert view.items == [0]
        assert view.stats == {"label": 0}
        assert "store unavailable" in view.error
        assert view.is_loading is False

    @pytest.mark.asyncio
    async def test_close_releases_subscription(self, session_maker, feed):
        view = await PolicyView(session_maker, feed).mount()
        assert feed.subscriber_count == 1

        view.close()

        assert feed.subscriber_count == 0
        with pytest.raises(RuntimeError):
            await view.mount()


@pytest.mark.integration
class TestFiltersAndScope:
    """Tests for filter normalization and ViewScope."""

    def test_unknown_filter(self, session_maker):
        with pytest.raises(InvalidInput):
            ClaimView(session_maker, None, colour="red")

    def test_invalid_filter_value(self, session_maker):
        with pytest.raises(InvalidInput):
            ClaimView(session_maker, None, status="archive")

    def test_empty_values_are_dropped(self, session_maker):
        view = ClaimView(session_maker, None, search="  ", status="all", eligible_only="false")

        assert view.filters == {}
        assert view.key == ClaimView.key_for({})

    def test_unknown_kind(self):
        with pytest.raises(InvalidInput):
            get_view_type("invoices")

    @pytest.mark.asyncio
    async def test_scope_reuses_views_per_key(self, session_maker, feed):
        scope = ViewScope(session_maker, feed, max_views=2)

        soumis = await scope.get_view("claims", status="soumis")
        again = await scope.get_view("claims", status=ClaimStatus.SOUMIS)
        rejete = await scope.get_view("claims", status="rejete")

        assert soumis is again
        assert soumis is not rejete
        assert len(scope) == 2
        assert feed.subscriber_count == 2

        with pytest.raises(InvalidInput):
            await scope.get_view("policies")

        assert scope.release("claims", status="rejete") is True
        assert scope.release("claims", status="rejete") is False
        assert rejete.closed

        assert scope.close() == 1
        assert soumis.closed
        assert feed.subscriber_count == 0
        with pytest.raises(RuntimeError):
            await scope.get_view("claims")

    @pytest.mark.asyncio
    async def test_replacement_does_not_count_against_limit(self, session_maker, feed):
        scope = ViewScope(session_maker, feed, max_views=1)
        soumis = await scope.get_view("claims", status="soumis")

        with pytest.raises(InvalidInput):
            await scope.get_view("claims", status="rejete")

        rejete = await scope.get_view("claims", replacing=soumis, status="rejete")
        scope.release("claims", **soumis.filters)

        assert len(scope) == 1
        assert scope.views == [rejete]
        assert feed.subscriber_count == 1
        scope.close()


class RecordingWebSocket:
    """Accepts a connection and keeps every message sent to it."""

    def __init__(self):
        self.sent: list[dict] = []

    async def accept(self):
        pass

    async def send_text(self, data: str):
        self.sent.append(json.loads(data))


@pytest.mark.integration
class TestWebSocketManager:
    """Tests for filter changes through the WebSocket manager."""

    @pytest.mark.asyncio
    async def test_filter_changes_with_one_view_per_connection(self, session_maker, feed):
        manager = WebSocketManager()
        websocket = RecordingWebSocket()
        scope = ViewScope(session_maker, feed, max_views=1)
        connection = await manager.connect(websocket, "claims", scope)
        await manager.open_view(connection, {})

        for status in ("soumis", "rejete", "paye"):
            await manager.handle_client_message(
                connection, json.dumps({"type": "filters", "filters": {"status": status}})
            )

        assert [m["type"] for m in websocket.sent] == ["snapshot"] * 4
        assert websocket.sent[-1]["filters"] == {"status": "paye"}
        assert len(scope) == 1
        assert feed.subscriber_count == 1

        await manager.disconnect(connection)
        assert feed.subscriber_count == 0
