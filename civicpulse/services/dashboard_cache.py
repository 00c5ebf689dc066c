"""
TTL cache for expensive dashboard metrics, keyed by metric name.

Entries are never deleted; an expired entry is simply ignored until the next
`set_cached` overwrites it. There is no locking: two concurrent misses on the
same key both recompute, and the last write wins.
"""

import logging
import time
from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional, Tuple

from sqlalchemy import select

from civicpulse.config import DEFAULT_CACHE_TTL, DEFAULT_CACHE_TTLS
from civicpulse.models.database import CacheEntryRow, Database

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CacheEntry:
    key: str
    value: Any
    written_at: float


class MemoryCacheStore:
    def __init__(self):
        self._entries: Dict[str, Tuple[Any, float]] = {}

    def get(self, key: str) -> Optional[CacheEntry]:
        item = self._entries.get(key)
        if item is None:
            return None
        return CacheEntry(key, item[0], item[1])

    def set(self, key: str, value: Any, timestamp: float) -> None:
        self._entries[key] = (value, timestamp)


class SqlCacheStore:
    """Cache entries in the `cache_entries` table; values must be JSON-serialisable"""

    def __init__(self, database: Database):
        self.database = database

    def get(self, key: str) -> Optional[CacheEntry]:
        with self.database.session() as session:
            row = session.scalars(select(CacheEntryRow).where(CacheEntryRow.key == key)).first()
            if row is None:
                return None
            return CacheEntry(row.key, row.value, row.written_at)

    def set(self, key: str, value: Any, timestamp: float) -> None:
        with self.database.session() as session:
            session.merge(CacheEntryRow(key=key, value=value, written_at=timestamp))
            session.commit()


class DashboardCache:
    def __init__(
        self,
        store=None,
        ttls: Optional[Dict[str, int]] = None,
        default_ttl: int = DEFAULT_CACHE_TTL,
        clock: Callable[[], float] = time.time,
    ):
        self.store = store if store is not None else MemoryCacheStore()
        self.ttls = dict(DEFAULT_CACHE_TTLS if ttls is None else ttls)
        self.default_ttl = default_ttl
        self.clock = clock

    def ttl_for(self, key: str) -> int:
        return self.ttls.get(key, self.default_ttl)

    def get_cached(self, key: str) -> Optional[CacheEntry]:
        """The entry for `key` if it is younger than its TTL, else None"""
        entry = self.store.get(key)
        if entry is None:
            return None

        age = self.clock() - entry.written_at
        if age >= self.ttl_for(key):
            logger.debug("Cache entry %s expired (age %.0fs)", key, age)
            return None
        return entry

    def set_cached(self, key: str, value: Any) -> CacheEntry:
        timestamp = self.clock()
        self.store.set(key, value, timestamp)
        logger.debug("Cached %s", key)
        return CacheEntry(key, value, timestamp)
