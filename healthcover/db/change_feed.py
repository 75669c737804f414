"""
Change Notification Feed.

Every committed ORM write is turned into "table X changed" signals that
subscribers (live views, WebSocket clients) use to invalidate and reload.
Signals carry no row payload.

Collection happens in SQLAlchemy session events:
- after_flush records (table, kind) for new/dirty/deleted instances
- after_commit hands the collected changes to the session's feed
- after_rollback discards them

Sessions opt in through ``session.info["change_feed"]``; sessions without a
feed never publish.

Source: https://docs.sqlalchemy.org/en/20/orm/events.html#session-events
"""

import asyncio
import inspect
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Awaitable, Callable, Iterable, Optional, Union
from uuid import UUID, uuid4

from sqlalchemy import event
from sqlalchemy.orm import Session

from healthcover.core.enums import ChangeKind, EntityKind
from healthcover.utils.logging import get_logger

logger = get_logger(__name__)

FEED_KEY = "change_feed"
PENDING_KEY = "pending_changes"

TableRef = Union[str, EntityKind]
ChangeCallback = Callable[["ChangeEvent"], Union[Awaitable[None], None]]


@dataclass(frozen=True)
class ChangeEvent:
    """A committed change to one table."""

    table: str
    kind: ChangeKind
    event_id: UUID = field(default_factory=uuid4)
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def to_dict(self) -> dict[str, Any]:
        return {
            "event_id": str(self.event_id),
            "table": self.table,
            "kind": self.kind.value,
            "timestamp": self.timestamp.isoformat(),
        }


def _table_name(table: TableRef) -> str:
    return table.value if isinstance(table, EntityKind) else str(table)


class Subscription:
    """Handle returned by ChangeFeed.subscribe. Released exactly once."""

    def __init__(
        self,
        feed: "ChangeFeed",
        tables: frozenset[str],
        callback: ChangeCallback,
        kinds: Optional[frozenset[ChangeKind]] = None,
        name: Optional[str] = None,
    ):
        self.id = uuid4()
        self.tables = tables
        self.kinds = kinds
        self.name = name or f"subscription-{self.id.hex[:8]}"
        self._feed = feed
        self._callback = callback
        self._active = True

    @property
    def active(self) -> bool:
        return self._active

    def matches(self, change: ChangeEvent) -> bool:
        if change.table not in self.tables:
            return False
        return self.kinds is None or change.kind in self.kinds

    def unsubscribe(self) -> bool:
        """
        Release the channel.

        Returns:
            True for the call that released it, False for every later call
        """
        if not self._active:
            return False
        self._active = False
        self._feed._release(self)
        return True

    async def _deliver(self, change: ChangeEvent) -> None:
        if not self._active:
            return
        result = self._callback(change)
        if inspect.isawaitable(result):
            await result

    def __repr__(self) -> str:
        return f"<Subscription({self.name}, tables={sorted(self.tables)}, active={self._active})>"


class ChangeFeed:
    """
    In-process change notification hub.

    Delivery is asynchronous: publish() schedules one task per matching
    subscription on the running event loop, so a commit never waits on
    subscribers. All changes published together reach a subscriber as a
    single delivery.
    """

    def __init__(self) -> None:
        self._subscriptions: dict[UUID, Subscription] = {}
        self._tasks: set[asyncio.Task] = set()
        self._published_count = 0

    @property
    def subscriber_count(self) -> int:
        return len(self._subscriptions)

    @property
    def published_count(self) -> int:
        return self._published_count

    @property
    def pending_deliveries(self) -> int:
        return len(self._tasks)

    def subscribe(
        self,
        tables: Iterable[TableRef],
        callback: ChangeCallback,
        kinds: Optional[Iterable[ChangeKind]] = None,
        name: Optional[str] = None,
    ) -> Subscription:
        """
        Subscribe to changes on a set of tables.

        Args:
            tables: Table names (or EntityKind members) to watch
            callback: Sync or async callable receiving the ChangeEvent
            kinds: Optional filter on insert/update/delete
            name: Label used in logs

        Returns:
            Subscription handle; call unsubscribe() to release it
        """
        table_names = frozenset(_table_name(t) for t in tables)
        if not table_names:
            raise ValueError("A subscription needs at least one table")

        subscription = Subscription(
            self,
            table_names,
            callback,
            kinds=frozenset(kinds) if kinds is not None else None,
            name=name,
        )
        self._subscriptions[subscription.id] = subscription
        logger.debug(f"Subscribed {subscription.name} to {sorted(table_names)}")
        return subscription

    def _release(self, subscription: Subscription) -> None:
        self._subscriptions.pop(subscription.id, None)
        logger.debug(f"Released {subscription.name}, subscribers={self.subscriber_count}")

    def publish(self, table: TableRef, kind: ChangeKind = ChangeKind.UPDATE) -> int:
        """Publish a single table change. Returns the number of subscribers notified."""
        return self.publish_many([ChangeEvent(table=_table_name(table), kind=kind)])

    def publish_many(self, changes: Iterable[ChangeEvent]) -> int:
        """Publish a batch of changes committed together."""
        changes = list(changes)
        if not changes:
            return 0
        self._published_count += len(changes)

        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            logger.warning(
                f"No running event loop, dropping {len(changes)} change notification(s)"
            )
            return 0

        notified = 0
        for subscription in list(self._subscriptions.values()):
            matching = [c for c in changes if subscription.matches(c)]
            if not matching:
                continue
            task = loop.create_task(self._run_delivery(subscription, matching[0]))
            self._tasks.add(task)
            task.add_done_callback(self._tasks.discard)
            notified += 1
        return notified

    async def _run_delivery(self, subscription: Subscription, change: ChangeEvent) -> None:
        try:
            await subscription._deliver(change)
        except Exception as e:
            # One failing subscriber must not stop the others
            logger.error(f"Change callback {subscription.name} failed: {e}")

    async def drain(self) -> None:
        """Wait until every scheduled delivery (and the ones they trigger) has finished."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    def close(self) -> None:
        """Release every subscription."""
        for subscription in list(self._subscriptions.values()):
            subscription.unsubscribe()


# =============================================================================
# Session Hooks
# =============================================================================


def note_change(session: Any, table: TableRef, kind: ChangeKind = ChangeKind.UPDATE) -> None:
    """
    Record a change the ORM cannot see (bulk UPDATE/DELETE statements).

    Accepts a Session or an AsyncSession; published on the next commit.
    """
    pending = session.info.setdefault(PENDING_KEY, [])
    pending.append(ChangeEvent(table=_table_name(table), kind=kind))


def _table_of(instance: Any) -> Optional[str]:
    table = getattr(type(instance), "__table__", None)
    return table.name if table is not None else None


@event.listens_for(Session, "after_flush")
def _collect_flushed_changes(session: Session, flush_context: Any) -> None:
    if session.info.get(FEED_KEY) is None:
        return
    pending = session.info.setdefault(PENDING_KEY, [])
    seen: set[tuple[str, ChangeKind]] = {(c.table, c.kind) for c in pending}

    def add(instance: Any, kind: ChangeKind) -> None:
        table = _table_of(instance)
        if table is None or (table, kind) in seen:
            return
        seen.add((table, kind))
        pending.append(ChangeEvent(table=table, kind=kind))

    for instance in session.new:
        add(instance, ChangeKind.INSERT)
    for instance in session.dirty:
        if session.is_modified(instance, include_collections=False):
            add(instance, ChangeKind.UPDATE)
    for instance in session.deleted:
        add(instance, ChangeKind.DELETE)


@event.listens_for(Session, "after_commit")
def _publish_committed_changes(session: Session) -> None:
    changes = session.info.pop(PENDING_KEY, None)
    feed = session.info.get(FEED_KEY)
    if changes and feed is not None:
        feed.publish_many(changes)


@event.listens_for(Session, "after_rollback")
def _discard_rolled_back_changes(session: Session) -> None:
    session.info.pop(PENDING_KEY, None)


# =============================================================================
# Singleton Instance
# =============================================================================

_change_feed: Optional[ChangeFeed] = None


def get_change_feed() -> ChangeFeed:
    """
    Get the global change feed instance.

    Returns:
        ChangeFeed singleton
    """
    global _change_feed
    if _change_feed is None:
        _change_feed = ChangeFeed()
    return _change_feed
