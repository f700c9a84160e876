#!/usr/bin/env python3
"""
Query Cache — Async Single-Flight Memo Store

Implements:
- read_or_produce(key, producer) → cached value, or await the one producer
- invalidate(key) → mark key and every key extending it stale
- peek(key) / clear() / get_stats()

Design principles:
- At most one in-flight producer per key; concurrent callers share it
- Producer errors are cached like values until the key is invalidated
- Invalidation is prefix-scoped: a key cascades to everything derived from it
- Abandoned callers never cancel the shared producer
"""

import asyncio
import logging
import time
from dataclasses import dataclass, field
from functools import partial
from typing import Any, Awaitable, Callable, Dict, Iterator, Optional

from .key_generator import QueryKey

logger = logging.getLogger(__name__)

Producer = Callable[[], Awaitable[Any]]


@dataclass
class CacheEntry:
    """One cached query: a shared producer task plus bookkeeping."""
    key: QueryKey
    task: "asyncio.Future[Any]"
    created_at: float
    resolved_at: Optional[float] = None
    stale: bool = False
    hit_count: int = 0

    @property
    def pending(self) -> bool:
        return not self.task.done()

    @property
    def failed(self) -> bool:
        return self.task.done() and not self.task.cancelled() and self.task.exception() is not None

    def age(self, now: float) -> float:
        if self.resolved_at is None:
            return 0.0
        return now - self.resolved_at


@dataclass
class CacheStats:
    hits: int = 0
    misses: int = 0
    producer_calls: int = 0
    errors: int = 0
    invalidations: int = 0
    start_time: float = field(default_factory=time.time)


class QueryCache:
    """
    In-memory query cache keyed by hierarchical query keys.

    All mutation happens synchronously on the event loop thread, so no
    locking is needed under asyncio. Sharing one instance across threads
    is not supported.
    """

    def __init__(self, stale_time: Optional[float] = None, clock: Callable[[], float] = time.monotonic):
        """
        Args:
            stale_time: Seconds a resolved value stays fresh (None = until invalidated)
            clock: Monotonic time source
        """
        self.stale_time = stale_time
        self._clock = clock
        self._entries: Dict[QueryKey, CacheEntry] = {}
        self.stats = CacheStats()

    # ── Reads ────────────────────────────────────────────────────

    async def read_or_produce(
        self,
        key: QueryKey,
        producer: Producer,
        stale_time: Optional[float] = None,
    ) -> Any:
        """
        Return the cached value for key, producing it if needed.

        Args:
            key: Query key
            producer: Zero-argument coroutine function computing the value
            stale_time: Per-call override of the cache-wide stale time

        Returns:
            The resolved value. A cached producer error is re-raised.
        """
        key = tuple(key)
        entry = self._entries.get(key)

        if entry is not None and self._is_fresh(entry, stale_time):
            entry.hit_count += 1
            self.stats.hits += 1
            logger.debug(f"Cache hit: {key} (pending={entry.pending}, hits={entry.hit_count})")
        else:
            self.stats.misses += 1
            entry = self._start(key, producer)

        # Shielded: a cancelled caller must not cancel the shared producer
        return await asyncio.shield(entry.task)

    def peek(self, key: QueryKey) -> Optional[CacheEntry]:
        """Entry for key without producing or counting a hit."""
        return self._entries.get(tuple(key))

    def _is_fresh(self, entry: CacheEntry, stale_time: Optional[float]) -> bool:
        if entry.stale:
            return False
        if entry.pending or entry.failed:
            return True
        limit = stale_time if stale_time is not None else self.stale_time
        if limit is None:
            return True
        return entry.age(self._clock()) <= limit

    # ── Production ───────────────────────────────────────────────

    def _start(self, key: QueryKey, producer: Producer) -> CacheEntry:
        loop = asyncio.get_running_loop()
        task = loop.create_task(self._run(key, producer))
        entry = CacheEntry(key=key, task=task, created_at=self._clock())
        self._entries[key] = entry
        task.add_done_callback(partial(self._on_settled, entry))
        logger.debug(f"Cache miss: {key} (producer started)")
        return entry

    async def _run(self, key: QueryKey, producer: Producer) -> Any:
        self.stats.producer_calls += 1
        return await producer()

    def _on_settled(self, entry: CacheEntry, task: "asyncio.Future[Any]") -> None:
        entry.resolved_at = self._clock()

        if task.cancelled():
            # Nothing to serve; drop it so the next read produces again
            if self._entries.get(entry.key) is entry:
                del self._entries[entry.key]
            logger.debug(f"Producer cancelled: {entry.key}")
            return

        error = task.exception()
        if error is not None:
            self.stats.errors += 1
            logger.warning(f"Producer failed for {entry.key}: {error!r}")

    # ── Invalidation ─────────────────────────────────────────────

    def invalidate(self, key: QueryKey) -> int:
        """
        Mark key and every key extending it stale.

        Returns:
            Number of entries newly marked stale
        """
        prefix = tuple(key)
        marked = 0

        for entry_key, entry in self._entries.items():
            if entry_key[:len(prefix)] != prefix or entry.stale:
                continue
            entry.stale = True
            marked += 1

        if marked > 0:
            self.stats.invalidations += marked
            logger.info(f"Invalidated {marked} cache entries under {prefix}")

        return marked

    def clear(self) -> int:
        """Drop every entry. In-flight producers finish but are discarded."""
        cleared = len(self._entries)
        self._entries.clear()
        if cleared > 0:
            logger.info(f"Cleared {cleared} cache entries")
        return cleared

    # ── Introspection ────────────────────────────────────────────

    def keys(self) -> Iterator[QueryKey]:
        return iter(list(self._entries))

    def get_stats(self) -> Dict[str, Any]:
        """Get cache statistics."""
        total_requests = self.stats.hits + self.stats.misses
        hit_rate = (self.stats.hits / total_requests * 100) if total_requests > 0 else 0

        return {
            "hits": self.stats.hits,
            "misses": self.stats.misses,
            "hit_rate_percent": round(hit_rate, 1),
            "total_requests": total_requests,
            "producer_calls": self.stats.producer_calls,
            "errors": self.stats.errors,
            "invalidations": self.stats.invalidations,
            "entries": len(self._entries),
            "stale_entries": sum(1 for e in self._entries.values() if e.stale),
            "pending_entries": sum(1 for e in self._entries.values() if e.pending),
            "uptime_seconds": int(time.time() - self.stats.start_time),
        }

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key: object) -> bool:
        return isinstance(key, (tuple, list)) and tuple(key) in self._entries

    def __repr__(self) -> str:
        return f"QueryCache(entries={len(self._entries)}, stale_time={self.stale_time})"
