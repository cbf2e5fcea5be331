"""
Change Feed — per (organization, table) change notifications.

Publishers never touch consumer state; they only emit ChangeEvents on a
channel named ``realtime-<table>-<organization_id>``. Consumers (e.g.
QueryCache) subscribe with a callback and decide for themselves what to
drop or re-fetch.

Delivery is in-process and best-effort: a subscriber that raises is
logged and skipped, the others still receive the event.

Database writes feed the channel through SQLAlchemy session hooks:
  before_flush    collect updates and deletes of OrgModel rows while they still load
  after_flush     collect inserts, once primary keys are assigned
  after_commit    publish what was collected
  after_rollback  drop it

Usage:
    sub = feed.subscribe(org_id, "tasks", on_change, events={"INSERT"})
    ...
    sub.unsubscribe()
"""

import enum
import logging
import threading
from dataclasses import dataclass, field
from datetime import date, datetime

import sqlalchemy as sa
from sqlalchemy import event as sa_event
from sqlalchemy.orm import Session

logger = logging.getLogger(__name__)

_PENDING_KEY = "siteledger_pending_changes"


class ChangeType(str, enum.Enum):
    INSERT = "INSERT"
    UPDATE = "UPDATE"
    DELETE = "DELETE"


def channel_name(table: str, organization_id) -> str:
    return f"realtime-{table}-{organization_id}"


@dataclass(frozen=True)
class ChangeEvent:
    table: str
    organization_id: int
    event_type: ChangeType
    payload: dict = field(default_factory=dict)

    @property
    def channel(self) -> str:
        return channel_name(self.table, self.organization_id)


class Subscription:
    def __init__(self, feed, channel, callback, events):
        self.feed = feed
        self.channel = channel
        self.callback = callback
        self.events = events

    def wants(self, event: ChangeEvent) -> bool:
        return self.events is None or event.event_type in self.events

    def unsubscribe(self):
        self.feed._remove(self)


class ChangeFeed:
    """In-process pub/sub keyed by channel name."""

    def __init__(self):
        self._subs: dict[str, list[Subscription]] = {}
        self._lock = threading.Lock()

    def subscribe(self, organization_id, table, callback, events=None) -> Subscription:
        wanted = None
        if events is not None:
            wanted = frozenset(ChangeType(e) for e in events)
        sub = Subscription(self, channel_name(table, organization_id), callback, wanted)
        with self._lock:
            self._subs.setdefault(sub.channel, []).append(sub)
        return sub

    def _remove(self, sub: Subscription):
        with self._lock:
            subs = self._subs.get(sub.channel, [])
            if sub in subs:
                subs.remove(sub)
            if not subs:
                self._subs.pop(sub.channel, None)

    def subscriber_count(self, organization_id, table) -> int:
        with self._lock:
            return len(self._subs.get(channel_name(table, organization_id), []))

    def publish(self, event: ChangeEvent) -> int:
        """Deliver *event* to matching subscribers; returns how many got it."""
        with self._lock:
            targets = [s for s in self._subs.get(event.channel, []) if s.wants(event)]
        delivered = 0
        for sub in targets:
            try:
                sub.callback(event)
                delivered += 1
            except Exception:
                logger.exception("Change-feed subscriber failed on %s", event.channel)
        return delivered

    def clear(self):
        with self._lock:
            self._subs.clear()


# Process-wide feed used by the session hooks.
feed = ChangeFeed()


# ═══════════════════════════════════════════════════════════════
# Consumer: query cache
# ═══════════════════════════════════════════════════════════════
class QueryCache:
    """Caches loader results by key; change events evict keys.

    The next ``get`` after an eviction calls the loader again.
    """

    def __init__(self):
        self._data: dict = {}
        self._subs: list[Subscription] = []
        self._lock = threading.Lock()

    def get(self, key, loader):
        with self._lock:
            if key in self._data:
                return self._data[key]
        value = loader()
        with self._lock:
            self._data[key] = value
        return value

    def __contains__(self, key):
        return key in self._data

    def invalidate(self, *keys):
        with self._lock:
            for key in keys:
                self._data.pop(key, None)

    def invalidate_on(self, change_feed: ChangeFeed, organization_id, table, keys, events=None):
        """Evict *keys* whenever *table* changes in *organization_id*."""
        keys = tuple(keys)
        sub = change_feed.subscribe(
            organization_id, table, lambda _event: self.invalidate(*keys), events=events,
        )
        self._subs.append(sub)
        return sub

    def close(self):
        for sub in self._subs:
            sub.unsubscribe()
        self._subs.clear()


# ═══════════════════════════════════════════════════════════════
# SQLAlchemy session hooks
# ═══════════════════════════════════════════════════════════════
def _jsonable(value):
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, enum.Enum):
        return value.value
    return value


def _snapshot(obj) -> dict:
    """Loaded column values only; never triggers a lazy load mid-flush."""
    state = sa.inspect(obj)
    columns = {attr.key for attr in state.mapper.column_attrs}
    return {k: _jsonable(v) for k, v in state.dict.items() if k in columns}


def _collect(session, change_type, objects):
    from siteledger.models.base import OrgModel

    pending = session.info.setdefault(_PENDING_KEY, [])
    for obj in objects:
        if not isinstance(obj, OrgModel):
            continue
        if change_type is ChangeType.UPDATE and not session.is_modified(obj, include_collections=False):
            continue
        pending.append(ChangeEvent(
            table=obj.__tablename__,
            organization_id=obj.organization_id,
            event_type=change_type,
            payload=_snapshot(obj),
        ))


def _before_flush(session, flush_context, instances):
    _collect(session, ChangeType.UPDATE, session.dirty)
    _collect(session, ChangeType.DELETE, session.deleted)


def _after_flush(session, flush_context):
    _collect(session, ChangeType.INSERT, session.new)


def _after_commit(session):
    pending = session.info.pop(_PENDING_KEY, [])
    for change in pending:
        feed.publish(change)


def _after_soft_rollback(session, previous_transaction):
    session.info.pop(_PENDING_KEY, None)


_hooks_installed = False


def install_session_hooks():
    """Attach the hooks to every SQLAlchemy Session (idempotent)."""
    global _hooks_installed
    if _hooks_installed:
        return
    sa_event.listen(Session, "before_flush", _before_flush)
    sa_event.listen(Session, "after_flush", _after_flush)
    sa_event.listen(Session, "after_commit", _after_commit)
    sa_event.listen(Session, "after_soft_rollback", _after_soft_rollback)
    _hooks_installed = True
