import logging
import queue
import threading
from dataclasses import dataclass, field
from typing import Any

import planner.core.db as core_db
from planner.services.store import EntityStore, QueryKey, as_dict, coerce_index_value, query_key

logger = logging.getLogger(__name__)


@dataclass
class Subscription:
    table: str
    index: str
    value: Any
    order: str = "asc"
    deliveries: queue.Queue = field(default_factory=queue.Queue)
    # version of the last result set queued; older ones are dropped
    version: int = -1

    @property
    def key(self) -> QueryKey:
        return query_key(self.table, self.index, self.value)


class LiveQueryHub:
    """
    Publish/subscribe over indexed queries.

    A subscriber registers a (table, index, value) query and receives its full
    result set immediately, then again after every committed write that touches
    that index key.

    Each key carries a version bumped on every publish. A result set is tagged
    with the version current before it was read and is queued only if it is
    newer than what the subscriber already holds, so a snapshot read before a
    commit can never land after the results that commit produced.
    """

    def __init__(self, session_factory=None) -> None:
        self._session_factory = session_factory
        self._lock = threading.Lock()
        self._subs: dict[QueryKey, list[Subscription]] = {}
        self._versions: dict[QueryKey, int] = {}

    def _session(self):
        factory = self._session_factory or core_db.SessionLocal
        return factory()

    def _offer(self, sub: Subscription, version: int, rows: list[dict]) -> bool:
        with self._lock:
            if version <= sub.version:
                return False
            sub.version = version
            sub.deliveries.put(rows)
            return True

    def snapshot(self, table: str, index: str, value: Any, order: str = "asc") -> list[dict]:
        db = self._session()
        try:
            rows = EntityStore(db).query(table, index, value, order=order)
            return [as_dict(r) for r in rows]
        finally:
            db.close()

    def subscribe(self, table: str, index: str, value: Any, order: str = "asc") -> Subscription:
        value = coerce_index_value(table, index, value)
        sub = Subscription(table=table, index=index, value=value, order=order)
        with self._lock:
            self._subs.setdefault(sub.key, []).append(sub)
            version = self._versions.get(sub.key, 0)
        rows = self.snapshot(table, index, value, order)
        if not self._offer(sub, version, rows):
            logger.debug("Dropped stale initial snapshot for %s", sub.key)
        return sub

    def unsubscribe(self, sub: Subscription) -> None:
        with self._lock:
            subs = self._subs.get(sub.key, [])
            if sub in subs:
                subs.remove(sub)
            if not subs:
                self._subs.pop(sub.key, None)
                self._versions.pop(sub.key, None)

    def subscriber_count(self, key: QueryKey | None = None) -> int:
        with self._lock:
            if key is not None:
                return len(self._subs.get(key, []))
            return sum(len(x) for x in self._subs.values())

    def publish(self, keys: set[QueryKey]) -> None:
        targets: list[tuple[Subscription, int]] = []
        with self._lock:
            for k in keys:
                if k not in self._subs:
                    continue
                version = self._versions.get(k, 0) + 1
                self._versions[k] = version
                targets.extend((s, version) for s in self._subs[k])
        if not targets:
            return
        results: dict[tuple[QueryKey, str], list[dict]] = {}
        delivered = 0
        for sub, version in targets:
            cache_key = (sub.key, sub.order)
            if cache_key not in results:
                results[cache_key] = self.snapshot(sub.table, sub.index, sub.value, sub.order)
            delivered += self._offer(sub, version, results[cache_key])
        logger.debug("Delivered %d live updates for %d keys", delivered, len(keys))


_hub: LiveQueryHub | None = None
_hub_lock = threading.Lock()


def get_hub() -> LiveQueryHub:
    global _hub
    with _hub_lock:
        if _hub is None:
            _hub = LiveQueryHub()
        return _hub
