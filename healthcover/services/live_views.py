"""
Live Views.

A live view holds the filtered list and the statistics of one entity kind
and keeps them in step with the store: it performs a full fetch when
mounted, then refetches everything whenever the change feed reports a
change on one of the tables it watches. There is no incremental patching.

Refetch semantics:
- every completed fetch overwrites the whole view (last completed wins)
- results completing after close() are discarded
- a failed fetch keeps the previous items and stats and sets ``error``

Views are owned by a ViewScope (one per client connection) keyed by
(kind, filters). There is no process-wide view cache.
"""

import asyncio
import inspect
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any, Awaitable, Callable, ClassVar, Optional, Union

from sqlalchemy import func, or_, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from sqlalchemy.orm import selectinload

from healthcover.core.config import get_reimbursement_settings
from healthcover.core.enums import (
    ClaimStatus,
    EntityKind,
    PaymentStatus,
    ProviderType,
    SubscriptionStatus,
)
from healthcover.db.change_feed import ChangeEvent, ChangeFeed, Subscription
from healthcover.models.claim import Claim
from healthcover.models.contract import Contract, Contribution
from healthcover.models.insured import Beneficiary, Insured
from healthcover.services.claims_service import ClaimsService
from healthcover.services.eligibility import (
    filter_eligible_beneficiaries,
    filter_eligible_claimants,
    filter_eligible_insured,
    load_paid_contract_ids,
)
from healthcover.services.policy_store import PolicyStore
from healthcover.services.provider_service import ProviderService
from healthcover.utils.errors import InvalidInput, StoreFailure

logger = logging.getLogger(__name__)

ViewListener = Callable[["LiveView"], Union[Awaitable[None], None]]
FilterKey = tuple[str, frozenset]

_FALSE_STRINGS = {"", "0", "false", "no", "off"}


@dataclass
class ViewSnapshot:
    """Everything a view exposes after one fetch."""

    items: list[Any] = field(default_factory=list)
    stats: dict[str, Any] = field(default_factory=dict)
    extra: dict[str, Any] = field(default_factory=dict)


def _as_bool(value: Any) -> bool:
    if isinstance(value, str):
        return value.strip().lower() not in _FALSE_STRINGS
    return bool(value)


def _contains(needle: str, *haystacks: Optional[str]) -> bool:
    return any(needle in h.lower() for h in haystacks if h)


def _sum(values) -> Decimal:
    return sum((v or Decimal("0") for v in values), Decimal("0"))


# =============================================================================
# Base View
# =============================================================================


class LiveView:
    """
    Base class for live views.

    Subclasses set ``kind``, ``watched_tables`` and ``filter_fields`` and
    implement ``fetch``.
    """

    kind: ClassVar[str] = ""
    watched_tables: ClassVar[frozenset[EntityKind]] = frozenset()
    filter_fields: ClassVar[dict[str, Callable[[Any], Any]]] = {}

    def __init__(
        self,
        session_maker: async_sessionmaker[AsyncSession],
        feed: Optional[ChangeFeed] = None,
        **filters: Any,
    ):
        self._session_maker = session_maker
        self._feed = feed
        self.filters = self.normalize_filters(filters)

        self._snapshot = ViewSnapshot()
        self._subscription: Optional[Subscription] = None
        self._listeners: list[ViewListener] = []
        self._in_flight = 0
        self._closed = False
        self._mounted = False

        self.error: Optional[str] = None
        self.version = 0
        self.updated_at: Optional[datetime] = None

    # -------------------------------------------------------------------------
    # Filters
    # -------------------------------------------------------------------------

    @classmethod
    def normalize_filters(cls, filters: dict[str, Any]) -> dict[str, Any]:
        """
        Drop empty values and coerce the rest.

        Raises:
            InvalidInput: Unknown filter name or value
        """
        unknown = sorted(set(filters) - set(cls.filter_fields))
        if unknown:
            raise InvalidInput(
                f"Unknown filter(s) for {cls.kind} view: {', '.join(unknown)}",
                errors=unknown,
            )

        normalized = {}
        for name, value in filters.items():
            if value is None or (isinstance(value, str) and value.strip() in ("", "all")):
                continue
            try:
                coerced = cls.filter_fields[name](value)
            except ValueError as e:
                raise InvalidInput(f"Invalid value for filter {name}: {value}") from e
            if coerced is False:
                continue
            normalized[name] = coerced.strip() if isinstance(coerced, str) else coerced
        return normalized

    @classmethod
    def key_for(cls, filters: dict[str, Any]) -> FilterKey:
        return cls.kind, frozenset(cls.normalize_filters(filters).items())

    @property
    def key(self) -> FilterKey:
        return self.kind, frozenset(self.filters.items())

    @property
    def search_term(self) -> Optional[str]:
        """Lower-cased search filter, or None when absent or too short."""
        search = self.filters.get("search")
        if not search or len(search) < get_reimbursement_settings().VIEW_SEARCH_MIN_LENGTH:
            return None
        return search.lower()

    # -------------------------------------------------------------------------
    # State
    # -------------------------------------------------------------------------

    @property
    def items(self) -> list[Any]:
        return self._snapshot.items

    @property
    def stats(self) -> dict[str, Any]:
        return self._snapshot.stats

    @property
    def extra(self) -> dict[str, Any]:
        return self._snapshot.extra

    @property
    def is_loading(self) -> bool:
        return self._in_flight > 0

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def mounted(self) -> bool:
        return self._mounted

    def add_listener(self, listener: ViewListener) -> None:
        """Call ``listener(view)`` after every applied refresh."""
        self._listeners.append(listener)

    # -------------------------------------------------------------------------
    # Lifecycle
    # -------------------------------------------------------------------------

    async def mount(self) -> "LiveView":
        """Subscribe to the watched tables and perform the initial fetch."""
        if self._closed:
            raise RuntimeError(f"{self.kind} view is closed")
        if self._mounted:
            return self

        self._mounted = True
        if self._feed is not None:
            self._subscription = self._feed.subscribe(
                self.watched_tables,
                self._on_change,
                name=f"view:{self.kind}",
            )
        await self.refetch()
        return self

    async def _on_change(self, change: ChangeEvent) -> None:
        logger.debug(f"{self.kind} view invalidated by {change.kind.value} on {change.table}")
        await self.refetch()

    async def refetch(self) -> bool:
        """
        Fetch, filter and aggregate again.

        Returns:
            True if the result was applied to the view
        """
        if self._closed:
            return False

        self._in_flight += 1
        try:
            async with self._session_maker() as session:
                snapshot = await self.fetch(session)
        except StoreFailure as e:
            return self._fail(str(e))
        except SQLAlchemyError as e:
            logger.error(f"{self.kind} view fetch failed: {e}")
            return self._fail(f"{self.kind} view fetch failed: store unavailable")
        finally:
            self._in_flight -= 1

        if self._closed:
            logger.debug(f"Discarding {self.kind} view result completed after close")
            return False

        self._snapshot = snapshot
        self.error = None
        self.version += 1
        self.updated_at = datetime.now(timezone.utc)
        await self._notify()
        return True

    def _fail(self, message: str) -> bool:
        if not self._closed:
            self.error = message
            logger.warning(f"{self.kind} view keeps its previous state: {message}")
        return False

    async def _notify(self) -> None:
        for listener in list(self._listeners):
            try:
                result = listener(self)
                if inspect.isawaitable(result):
                    await result
            except Exception as e:
                logger.error(f"{self.kind} view listener failed: {e}")

    def close(self) -> bool:
        """
        Release the change subscription and drop listeners.

        Returns:
            True for the call that closed the view, False afterwards
        """
        if self._closed:
            return False
        self._closed = True
        if self._subscription is not None:
            self._subscription.unsubscribe()
            self._subscription = None
        self._listeners.clear()
        return True

    async def fetch(self, session: AsyncSession) -> ViewSnapshot:
        raise NotImplementedError

    def __repr__(self) -> str:
        return f"<{type(self).__name__}(filters={self.filters}, version={self.version})>"


# =============================================================================
# Entity Views
# =============================================================================


class InsuredView(LiveView):
    """Insured members with their eligibility; filters: search, status, paid_only."""

    kind = "insured"
    watched_tables = frozenset({EntityKind.INSURED, EntityKind.CONTRIBUTIONS, EntityKind.CONTRACTS})
    filter_fields = {"search": str, "status": SubscriptionStatus, "paid_only": _as_bool}

    async def fetch(self, session: AsyncSession) -> ViewSnapshot:
        result = await session.execute(
            select(Insured)
            .options(selectinload(Insured.contract))
            .order_by(Insured.created_at.desc())
        )
        everyone = list(result.scalars().all())
        paid = await load_paid_contract_ids(session)
        eligible = filter_eligible_insured(everyone, paid)
        eligible_ids = {i.id for i in eligible}

        stats: dict[str, Any] = {s.value: 0 for s in SubscriptionStatus}
        for insured in everyone:
            stats[insured.status.value] += 1
        stats["total"] = len(everyone)
        stats["eligible"] = len(eligible)

        items = eligible if self.filters.get("paid_only") else everyone
        search = self.search_term
        if search:
            items = [
                i for i in items
                if _contains(search, i.full_name, i.matricule, i.email, i.contract.contract_number)
            ]
        if "status" in self.filters:
            items = [i for i in items if i.status == self.filters["status"]]

        return ViewSnapshot(items=items, stats=stats, extra={"eligible_ids": eligible_ids})


class ClaimView(LiveView):
    """Claims plus the members allowed to submit; filters: search, status, category, eligible_only."""

    kind = "claims"
    watched_tables = frozenset({EntityKind.CLAIMS, EntityKind.CONTRIBUTIONS, EntityKind.INSURED})
    filter_fields = {"search": str, "status": ClaimStatus, "category": str, "eligible_only": _as_bool}

    async def fetch(self, session: AsyncSession) -> ViewSnapshot:
        service = ClaimsService(session)
        stats = await service.get_claims_stats()
        claims = await service.list_claims(
            search=self.search_term,
            status=self.filters.get("status"),
            category=self.filters.get("category"),
        )

        paid = await load_paid_contract_ids(session)
        eligible_insured: list[Insured] = []
        if paid:
            result = await session.execute(
                select(Insured)
                .where(Insured.contract_id.in_(paid))
                .order_by(Insured.last_name, Insured.first_name)
            )
            eligible_insured = filter_eligible_insured(result.scalars().all(), paid)

        if self.filters.get("eligible_only"):
            claims = filter_eligible_claimants(claims, {i.id for i in eligible_insured})

        return ViewSnapshot(items=claims, stats=stats, extra={"eligible_insured": eligible_insured})


class BeneficiaryView(LiveView):
    """Beneficiaries of eligible members only; filter: search."""

    kind = "beneficiaries"
    watched_tables = frozenset({EntityKind.BENEFICIARIES, EntityKind.CONTRIBUTIONS, EntityKind.INSURED})
    filter_fields = {"search": str}

    async def fetch(self, session: AsyncSession) -> ViewSnapshot:
        paid = await load_paid_contract_ids(session)
        if not paid:
            return ViewSnapshot(stats={"total": 0}, extra={"eligible_insured": []})

        result = await session.execute(
            select(Insured)
            .where(Insured.contract_id.in_(paid))
            .order_by(Insured.last_name, Insured.first_name)
        )
        eligible_insured = filter_eligible_insured(result.scalars().all(), paid)
        eligible_ids = {i.id for i in eligible_insured}

        result = await session.execute(
            select(Beneficiary)
            .where(Beneficiary.insured_id.in_(eligible_ids))
            .options(selectinload(Beneficiary.insured))
            .order_by(Beneficiary.created_at.desc())
        )
        beneficiaries = filter_eligible_beneficiaries(result.scalars().all(), eligible_ids)
        stats = {"total": len(beneficiaries)}

        search = self.search_term
        if search:
            beneficiaries = [
                b for b in beneficiaries if _contains(search, b.full_name, b.insured.full_name)
            ]
        return ViewSnapshot(
            items=beneficiaries,
            stats=stats,
            extra={"eligible_insured": eligible_insured},
        )


class ContractView(LiveView):
    """Contracts with per-status counts; filters: search, status."""

    kind = "contracts"
    watched_tables = frozenset({EntityKind.CONTRACTS, EntityKind.INSURED, EntityKind.CONTRIBUTIONS})
    filter_fields = {"search": str, "status": SubscriptionStatus}

    async def fetch(self, session: AsyncSession) -> ViewSnapshot:
        result = await session.execute(
            select(Contract)
            .options(selectinload(Contract.insured))
            .order_by(Contract.created_at.desc())
        )
        contracts = list(result.scalars().all())
        paid = await load_paid_contract_ids(session)

        stats: dict[str, Any] = {s.value: 0 for s in SubscriptionStatus}
        for contract in contracts:
            stats[contract.status.value] += 1
        stats["total"] = len(contracts)
        stats["paid"] = sum(1 for c in contracts if c.id in paid)

        search = self.search_term
        if search:
            contracts = [
                c for c in contracts
                if _contains(search, c.contract_number, c.company_name, c.client_code)
            ]
        if "status" in self.filters:
            contracts = [c for c in contracts if c.status == self.filters["status"]]
        return ViewSnapshot(items=contracts, stats=stats, extra={"paid_contract_ids": paid})


class ContributionView(LiveView):
    """Contributions with payment totals; filters: search, status."""

    kind = "contributions"
    watched_tables = frozenset({EntityKind.CONTRIBUTIONS, EntityKind.CONTRACTS})
    filter_fields = {"search": str, "status": PaymentStatus}

    async def fetch(self, session: AsyncSession) -> ViewSnapshot:
        result = await session.execute(
            select(Contribution)
            .options(selectinload(Contribution.contract))
            .order_by(Contribution.created_at.desc())
        )
        contributions = list(result.scalars().all())

        stats: dict[str, Any] = {s.value: 0 for s in PaymentStatus}
        for contribution in contributions:
            stats[contribution.payment_status.value] += 1
        stats["total"] = len(contributions)
        stats["total_amount"] = _sum(c.amount for c in contributions)
        stats["paid_amount"] = _sum(c.paid_amount for c in contributions)

        search = self.search_term
        if search:
            contributions = [
                c for c in contributions
                if _contains(
                    search,
                    c.contract.company_name,
                    c.contract.contract_number,
                    c.payment_reference,
                )
            ]
        if "status" in self.filters:
            contributions = [c for c in contributions if c.payment_status == self.filters["status"]]
        return ViewSnapshot(items=contributions, stats=stats)


class PolicyView(LiveView):
    """Reimbursement policies; filter: active_only."""

    kind = "policies"
    watched_tables = frozenset({EntityKind.POLICIES})
    filter_fields = {"active_only": _as_bool}

    async def fetch(self, session: AsyncSession) -> ViewSnapshot:
        policies = await PolicyStore(session).list_policies(
            active_only=bool(self.filters.get("active_only"))
        )
        stats = {
            "total": len(policies),
            "active": sum(1 for p in policies if p.active),
        }
        return ViewSnapshot(items=policies, stats=stats)


class DashboardView(LiveView):
    """Headline figures and the claims awaiting a decision."""

    kind = "dashboard"
    watched_tables = frozenset(
        {EntityKind.CONTRACTS, EntityKind.INSURED, EntityKind.CLAIMS, EntityKind.CONTRIBUTIONS}
    )
    filter_fields = {}

    PENDING_LIMIT: ClassVar[int] = 10

    async def fetch(self, session: AsyncSession) -> ViewSnapshot:
        total_contracts = await session.scalar(select(func.count(Contract.id)))
        active_insured = await session.scalar(
            select(func.count(Insured.id)).where(Insured.status == SubscriptionStatus.VALIDEE)
        )
        contributions_paid = await session.scalar(
            select(func.coalesce(func.sum(Contribution.paid_amount), 0)).where(
                Contribution.payment_status.in_([PaymentStatus.PAYE, PaymentStatus.PARTIEL])
            )
        )
        claims_paid = await session.scalar(
            select(func.coalesce(func.sum(Claim.paid_amount), 0)).where(
                Claim.status == ClaimStatus.PAYE
            )
        )

        service = ClaimsService(session)
        claims_stats = await service.get_claims_stats()
        result = await session.execute(
            select(Claim)
            .where(or_(Claim.status == ClaimStatus.SOUMIS, Claim.status == ClaimStatus.VERIFICATION))
            .options(selectinload(Claim.insured))
            .order_by(Claim.created_at.desc())
            .limit(self.PENDING_LIMIT)
        )
        pending = list(result.scalars().all())

        stats = {
            "total_contracts": total_contracts or 0,
            "active_insured": active_insured or 0,
            "pending_claims": claims_stats[ClaimStatus.SOUMIS.value]
            + claims_stats[ClaimStatus.VERIFICATION.value],
            "total_contributions_paid": Decimal(str(contributions_paid or 0)),
            "total_claims_paid": Decimal(str(claims_paid or 0)),
            "claims_by_status": {s.value: claims_stats[s.value] for s in ClaimStatus},
        }
        return ViewSnapshot(items=pending, stats=stats)


class ProviderView(LiveView):
    """Healthcare providers by name; filters: search, provider_type, conventioned_only."""

    kind = "providers"
    watched_tables = frozenset({EntityKind.PROVIDERS})
    filter_fields = {"search": str, "provider_type": ProviderType, "conventioned_only": _as_bool}

    async def fetch(self, session: AsyncSession) -> ViewSnapshot:
        providers = await ProviderService(session).list_providers()

        stats: dict[str, Any] = {t.value: 0 for t in ProviderType}
        for provider in providers:
            stats[provider.provider_type.value] += 1
        stats["total"] = len(providers)
        stats["conventioned"] = sum(1 for p in providers if p.is_conventioned)

        search = self.search_term
        if search:
            providers = [
                p for p in providers
                if _contains(search, p.name, p.city, p.convention_number)
            ]
        if "provider_type" in self.filters:
            providers = [p for p in providers if p.provider_type == self.filters["provider_type"]]
        if self.filters.get("conventioned_only"):
            providers = [p for p in providers if p.is_conventioned]
        return ViewSnapshot(items=providers, stats=stats)


@dataclass
class Notification:
    """One alert shown to staff; ``id`` is stable across refetches."""

    id: str
    level: str  # info, success, warning or error
    title: str
    message: str
    timestamp: datetime
    read: bool = False
    entity_type: Optional[str] = None
    entity_id: Optional[str] = None


def _utc(value: Optional[datetime]) -> datetime:
    if value is None:
        return datetime.now(timezone.utc)
    return value if value.tzinfo is not None else value.replace(tzinfo=timezone.utc)


class NotificationView(LiveView):
    """Alerts about members, subscriptions, claims and contributions needing attention."""

    kind = "notifications"
    watched_tables = frozenset(
        {EntityKind.INSURED, EntityKind.CONTRACTS, EntityKind.CLAIMS, EntityKind.CONTRIBUTIONS}
    )
    filter_fields = {}

    RESERVE_LIMIT: ClassVar[int] = 5
    CLAIM_LIMIT: ClassVar[int] = 3

    async def fetch(self, session: AsyncSession) -> ViewSnapshot:
        now = datetime.now(timezone.utc)
        notifications: list[Notification] = []

        result = await session.execute(
            select(Insured)
            .where(Insured.status == SubscriptionStatus.RESERVE_MEDICALE)
            .order_by(Insured.created_at.desc())
            .limit(self.RESERVE_LIMIT)
        )
        for insured in result.scalars().all():
            notifications.append(
                Notification(
                    id=f"reserve-{insured.id}",
                    level="warning",
                    title="Réserve médicale",
                    message=f"L'assuré {insured.full_name} ({insured.matricule}) "
                    "nécessite une évaluation médicale.",
                    timestamp=_utc(insured.created_at),
                    entity_type=EntityKind.INSURED.value,
                    entity_id=str(insured.id),
                )
            )

        pending_contracts = await session.scalar(
            select(func.count(Contract.id)).where(Contract.status == SubscriptionStatus.EN_ATTENTE)
        ) or 0
        if pending_contracts:
            notifications.append(
                Notification(
                    id="pending-subscriptions",
                    level="info",
                    title="Nouvelle souscription",
                    message=f"{pending_contracts} souscription(s) en attente de validation.",
                    timestamp=now,
                    entity_type=EntityKind.CONTRACTS.value,
                )
            )

        result = await session.execute(
            select(Claim)
            .where(Claim.status == ClaimStatus.PAYE, Claim.paid_at.is_not(None))
            .order_by(Claim.paid_at.desc())
            .limit(self.CLAIM_LIMIT)
        )
        for claim in result.scalars().all():
            notifications.append(
                Notification(
                    id=f"paid-{claim.id}",
                    level="success",
                    title="Remboursement effectué",
                    message=f"Le remboursement {claim.claim_number} a été payé.",
                    timestamp=_utc(claim.paid_at),
                    read=True,
                    entity_type=EntityKind.CLAIMS.value,
                    entity_id=str(claim.id),
                )
            )

        result = await session.execute(
            select(Claim)
            .where(Claim.status.in_([ClaimStatus.SOUMIS, ClaimStatus.VERIFICATION]))
            .order_by(Claim.created_at.desc())
            .limit(self.CLAIM_LIMIT)
        )
        for claim in result.scalars().all():
            notifications.append(
                Notification(
                    id=f"pending-claim-{claim.id}",
                    level="warning",
                    title="Remboursement en attente",
                    message=f"Le remboursement {claim.claim_number} est en attente de traitement.",
                    timestamp=_utc(claim.created_at),
                    entity_type=EntityKind.CLAIMS.value,
                    entity_id=str(claim.id),
                )
            )

        unpaid = await session.scalar(
            select(func.count(Contribution.id)).where(
                Contribution.payment_status == PaymentStatus.EN_ATTENTE
            )
        ) or 0
        if unpaid:
            notifications.append(
                Notification(
                    id="unpaid-contributions",
                    level="error",
                    title="Cotisations impayées",
                    message=f"{unpaid} cotisation(s) en attente de paiement.",
                    timestamp=now,
                    entity_type=EntityKind.CONTRIBUTIONS.value,
                )
            )

        notifications.sort(key=lambda n: n.timestamp, reverse=True)
        stats = {
            "total": len(notifications),
            "unread": sum(1 for n in notifications if not n.read),
            "reserve_medicale": sum(1 for n in notifications if n.id.startswith("reserve-")),
            "pending_contracts": pending_contracts,
            "unpaid_contributions": unpaid,
        }
        return ViewSnapshot(items=notifications, stats=stats)


VIEW_TYPES: dict[str, type[LiveView]] = {
    view.kind: view
    for view in (
        InsuredView,
        ClaimView,
        BeneficiaryView,
        ContractView,
        ContributionView,
        PolicyView,
        DashboardView,
        ProviderView,
        NotificationView,
    )
}


def get_view_type(kind: str) -> type[LiveView]:
    try:
        return VIEW_TYPES[kind]
    except KeyError:
        raise InvalidInput(f"Unknown view kind: {kind}", errors=sorted(VIEW_TYPES)) from None


# =============================================================================
# View Scope
# =============================================================================


class ViewScope:
    """
    Views owned by one client, keyed by (kind, filters).

    Asking twice for the same key returns the same mounted view. Closing
    the scope closes every view exactly once.
    """

    def __init__(
        self,
        session_maker: async_sessionmaker[AsyncSession],
        feed: Optional[ChangeFeed],
        max_views: Optional[int] = None,
    ):
        self._session_maker = session_maker
        self._feed = feed
        self._max_views = max_views
        self._views: dict[FilterKey, LiveView] = {}
        self._lock = asyncio.Lock()
        self._closed = False

    @property
    def views(self) -> list[LiveView]:
        return list(self._views.values())

    def __len__(self) -> int:
        return len(self._views)

    async def get_view(
        self, kind: str, replacing: Optional[LiveView] = None, **filters: Any
    ) -> LiveView:
        """
        Get (mounting on first use) the view for a kind and filters.

        A view passed as `replacing` is about to be released by the caller
        and does not count against the per-client limit.

        Raises:
            InvalidInput: Unknown kind or filter, or the scope is full
        """
        view_type = get_view_type(kind)
        key = view_type.key_for(filters)

        async with self._lock:
            if self._closed:
                raise RuntimeError("View scope is closed")
            view = self._views.get(key)
            if view is not None:
                return view
            open_count = len(self._views)
            if replacing is not None and any(v is replacing for v in self._views.values()):
                open_count -= 1
            if self._max_views is not None and open_count >= self._max_views:
                raise InvalidInput(f"At most {self._max_views} views per client")

            view = view_type(self._session_maker, self._feed, **filters)
            self._views[key] = view

        await view.mount()
        logger.debug(f"Mounted {view!r}")
        return view

    def release(self, kind: str, **filters: Any) -> bool:
        """Close and forget one view. Returns False if it was not open."""
        key = get_view_type(kind).key_for(filters)
        view = self._views.pop(key, None)
        return view.close() if view is not None else False

    def close(self) -> int:
        """
        Close every view.

        Returns:
            Number of views closed by this call
        """
        self._closed = True
        views, self._views = list(self._views.values()), {}
        return sum(1 for view in views if view.close())
