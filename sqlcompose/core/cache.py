"""Prepared statement cache.

This module provides a thread-safe LRU cache that maps composed SQL text to the
prepared-statement handle returned by the driver. Evicted handles are released through
the driver's close hook; a handle that is still leased by another thread when it is
evicted is retired and closed when the last lease ends.

Components:
- CacheStats: Hit, miss and eviction counters
- StatementCache: LRU cache of prepared handles with leasing and pinning
"""

import threading
from collections import OrderedDict
from collections.abc import Generator, Iterable
from contextlib import contextmanager
from typing import Any, Callable, Final, Optional

from mypy_extensions import mypyc_attr

from sqlcompose.utils.logging import get_logger

__all__ = ("DEFAULT_STATEMENT_CACHE_SIZE", "CacheStats", "StatementCache")

logger = get_logger("core.cache")

DEFAULT_STATEMENT_CACHE_SIZE: Final = 1000

CACHE_STATS_SLOTS: Final = ("capacity", "evictions", "hits", "misses", "pinned", "size")
CACHE_ENTRY_SLOTS: Final = ("handle", "leases", "pinned", "retired")
STATEMENT_CACHE_SLOTS: Final = ("_capacity", "_close", "_entries", "_lock", "_prepare", "_retired", "_stats")


@mypyc_attr(allow_interpreted_subclasses=False)
class CacheStats:
    """Cache statistics tracking.

    ``StatementCache.stats()`` returns a copy, so a snapshot never changes after it is taken.
    """

    __slots__ = CACHE_STATS_SLOTS

    def __init__(
        self, hits: int = 0, misses: int = 0, evictions: int = 0, size: int = 0, capacity: int = 0, pinned: int = 0
    ) -> None:
        self.hits = hits
        self.misses = misses
        self.evictions = evictions
        self.size = size
        self.capacity = capacity
        self.pinned = pinned

    @property
    def hit_rate(self) -> float:
        """Fraction of lookups served from the cache, between 0.0 and 1.0."""
        total = self.hits + self.misses
        return self.hits / total if total > 0 else 0.0

    @property
    def total_operations(self) -> int:
        return self.hits + self.misses

    def record_hit(self) -> None:
        self.hits += 1

    def record_miss(self) -> None:
        self.misses += 1

    def record_eviction(self) -> None:
        self.evictions += 1

    def reset(self) -> None:
        self.hits = 0
        self.misses = 0
        self.evictions = 0

    def as_dict(self) -> "dict[str, Any]":
        return {
            "hits": self.hits,
            "misses": self.misses,
            "evictions": self.evictions,
            "size": self.size,
            "capacity": self.capacity,
            "pinned": self.pinned,
            "hit_rate": self.hit_rate,
        }

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, CacheStats):
            return NotImplemented
        return self.as_dict() == other.as_dict()

    def __repr__(self) -> str:
        return (
            f"CacheStats(hit_rate={self.hit_rate:.1%}, hits={self.hits}, misses={self.misses}, "
            f"evictions={self.evictions}, size={self.size}/{self.capacity}, pinned={self.pinned})"
        )


@mypyc_attr(allow_interpreted_subclasses=False)
class _CacheEntry:
    __slots__ = CACHE_ENTRY_SLOTS

    def __init__(self, handle: Any) -> None:
        self.handle = handle
        self.leases = 0
        self.pinned = False
        self.retired = False


@mypyc_attr(allow_interpreted_subclasses=False)
class StatementCache:
    """LRU cache of prepared statement handles keyed by composed SQL text.

    Args:
        prepare: Creates a handle for SQL text; failures propagate to the caller.
        close: Releases a handle; called on eviction, clear and when a retired handle's
            last lease ends.
        capacity: Maximum number of unpinned entries. Values ``<= 0`` use the default.
    """

    __slots__ = STATEMENT_CACHE_SLOTS

    def __init__(
        self,
        prepare: "Callable[[str], Any]",
        close: "Callable[[Any], None]",
        capacity: int = DEFAULT_STATEMENT_CACHE_SIZE,
    ) -> None:
        self._prepare = prepare
        self._close = close
        self._capacity = capacity if capacity > 0 else DEFAULT_STATEMENT_CACHE_SIZE
        self._entries: OrderedDict[str, _CacheEntry] = OrderedDict()
        self._retired: list[_CacheEntry] = []
        self._lock = threading.Lock()
        self._stats = CacheStats(capacity=self._capacity)

    @property
    def capacity(self) -> int:
        return self._capacity

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def __contains__(self, sql: object) -> bool:
        with self._lock:
            return sql in self._entries

    def get(self, sql: str) -> "Optional[Any]":
        """Return the cached handle for ``sql`` without preparing it.

        Counts as a hit or a miss and refreshes the entry's recency on a hit.
        """
        with self._lock:
            entry = self._entries.get(sql)
            if entry is None:
                self._stats.record_miss()
                return None
            self._entries.move_to_end(sql)
            self._stats.record_hit()
            return entry.handle

    def get_or_prepare(self, sql: str) -> Any:
        """Return the cached handle for ``sql``, preparing and caching it on a miss.

        The returned handle is not leased; callers that execute it concurrently with other
        cache users should use :meth:`lease` instead.
        """
        return self._acquire(sql, lease=False).handle

    @contextmanager
    def lease(self, sql: str) -> "Generator[Any, None, None]":
        """Borrow the handle for ``sql`` for the duration of the ``with`` block.

        A leased handle is never closed while the block runs, even if the entry is
        evicted or the cache is cleared meanwhile.
        """
        entry = self._acquire(sql, lease=True)
        try:
            yield entry.handle
        finally:
            self._release(entry)

    def pin(self, sql: str) -> bool:
        """Exempt a cached entry from eviction.

        Returns:
            True if ``sql`` was cached and is now pinned, False if it is not cached.
        """
        with self._lock:
            entry = self._entries.get(sql)
            if entry is None:
                return False
            entry.pinned = True
        logger.debug("Pinned cached statement", extra={"extra_fields": {"sql": sql}})
        return True

    def prepare_and_pin(self, sql: str) -> Any:
        """Return the handle for ``sql``, preparing it on a miss, and pin the entry.

        The entry is pinned in the same critical section that inserts or refreshes it, so
        a concurrent eviction cannot drop it between preparing and pinning.
        """
        handle = self._acquire(sql, lease=False, pin=True).handle
        logger.debug("Pinned cached statement", extra={"extra_fields": {"sql": sql}})
        return handle

    def unpin(self, sql: str) -> bool:
        """Make a pinned entry evictable again.

        Returns:
            True if ``sql`` is cached, whether or not it was pinned.
        """
        with self._lock:
            entry = self._entries.get(sql)
            if entry is None:
                return False
            entry.pinned = False
            victims = self._evict_overflow(keep=None)
        self._close_all(victims)
        return True

    def is_pinned(self, sql: str) -> bool:
        with self._lock:
            entry = self._entries.get(sql)
            return entry is not None and entry.pinned

    def warm(self, statements: "Iterable[str]") -> int:
        """Prepare ``statements`` ahead of use.

        Returns:
            The number of statements that were newly prepared.
        """
        prepared = 0
        for sql in statements:
            with self._lock:
                cached = sql in self._entries
            if not cached:
                self._acquire(sql, lease=False)
                prepared += 1
        return prepared

    def clear(self) -> None:
        """Remove every entry and release its handle.

        Handles that are currently leased are closed when their lease ends.
        """
        with self._lock:
            entries = list(self._entries.values())
            self._entries.clear()
            victims = self._retire(entries)
        self._close_all(victims)

    def stats(self) -> CacheStats:
        """Return a snapshot of the cache counters."""
        with self._lock:
            return CacheStats(
                hits=self._stats.hits,
                misses=self._stats.misses,
                evictions=self._stats.evictions,
                size=len(self._entries),
                capacity=self._capacity,
                pinned=sum(1 for entry in self._entries.values() if entry.pinned),
            )

    def _acquire(self, sql: str, lease: bool, pin: bool = False) -> _CacheEntry:
        with self._lock:
            entry = self._entries.get(sql)
            if entry is not None:
                self._entries.move_to_end(sql)
                self._stats.record_hit()
                if lease:
                    entry.leases += 1
                if pin:
                    entry.pinned = True
                return entry
            self._stats.record_miss()

        logger.debug("Statement cache miss, preparing", extra={"extra_fields": {"sql": sql}})
        handle = self._prepare(sql)

        duplicate: Optional[_CacheEntry] = None
        with self._lock:
            entry = self._entries.get(sql)
            if entry is None:
                entry = _CacheEntry(handle)
                self._entries[sql] = entry
            else:
                # another thread prepared the same statement first
                duplicate = _CacheEntry(handle)
                self._entries.move_to_end(sql)
            if lease:
                entry.leases += 1
            if pin:
                entry.pinned = True
            victims = self._evict_overflow(keep=sql)
        if duplicate is not None:
            victims.append(duplicate)
        self._close_all(victims)
        return entry

    def _release(self, entry: _CacheEntry) -> None:
        with self._lock:
            entry.leases -= 1
            if not (entry.retired and entry.leases == 0):
                return
            self._retired.remove(entry)
        self._close_all([entry])

    def _evict_overflow(self, keep: Optional[str]) -> "list[_CacheEntry]":
        """Drop least recently used unpinned entries until the cache fits. Lock must be held."""
        evicted: list[_CacheEntry] = []
        if len(self._entries) <= self._capacity:
            return evicted
        for sql in list(self._entries):
            if len(self._entries) <= self._capacity:
                break
            entry = self._entries[sql]
            if entry.pinned or sql == keep:
                continue
            del self._entries[sql]
            self._stats.record_eviction()
            evicted.append(entry)
            logger.debug("Evicted cached statement", extra={"extra_fields": {"sql": sql}})
        return self._retire(evicted)

    def _retire(self, entries: "list[_CacheEntry]") -> "list[_CacheEntry]":
        """Split removed entries into closable ones and leased ones. Lock must be held."""
        closable: list[_CacheEntry] = []
        for entry in entries:
            if entry.leases > 0:
                entry.retired = True
                self._retired.append(entry)
            else:
                closable.append(entry)
        return closable

    def _close_all(self, entries: "list[_CacheEntry]") -> None:
        for entry in entries:
            try:
                self._close(entry.handle)
            except Exception:
                logger.warning("Failed to close prepared statement", exc_info=True)
