"""Keyed TTL cache for resolved calendars.

Each calendar's resolved event list is stored under its cache key together with an
expiry timestamp. Entries are dropped lazily on ``get`` once expired, or in bulk via
``purge_expired``.
"""

from __future__ import annotations

import logging
import threading
import time
from typing import Any, Awaitable, Callable, Optional

from ..calendar.lite_models import ResolvedEvent

logger = logging.getLogger(__name__)

DEFAULT_CACHE_TTL_SECONDS = 86400


class LiteCalendarCache:
    """Thread-safe calendar cache with per-entry expiry.

    Example:
        cache = LiteCalendarCache(default_ttl=3600)

        events = cache.get("calendar_spokesman-review")
        if events is None:
            events = resolve_calendar()
            cache.put("calendar_spokesman-review", events)
    """

    def __init__(
        self,
        default_ttl: int = DEFAULT_CACHE_TTL_SECONDS,
        clock: Callable[[], float] = time.monotonic,
    ):
        """Initialize calendar cache.

        Args:
            default_ttl: Lifetime in seconds for entries stored without an explicit ttl
            clock: Monotonic seconds source (injectable for tests)
        """
        self.default_ttl = default_ttl
        self._clock = clock
        self._entries: dict[str, tuple[list[ResolvedEvent], float]] = {}  # key -> (events, expires_at)
        self._lock = threading.Lock()
        self.stats = {
            "hits": 0,
            "misses": 0,
            "expirations": 0,
            "stores": 0,
        }

    def get(self, calendar_id: str) -> Optional[list[ResolvedEvent]]:
        """Return cached events, or None when absent or expired."""
        with self._lock:
            entry = self._entries.get(calendar_id)
            if entry is not None:
                events, expires_at = entry
                if self._clock() < expires_at:
                    self.stats["hits"] += 1
                    logger.debug("Cache hit for calendar: %s", calendar_id)
                    return list(events)
                del self._entries[calendar_id]
                self.stats["expirations"] += 1
                logger.debug("Cache entry expired: %s", calendar_id)

            self.stats["misses"] += 1
            logger.debug("Cache miss for calendar: %s", calendar_id)
            return None

    def put(
        self, calendar_id: str, events: list[ResolvedEvent], ttl: Optional[int] = None
    ) -> None:
        """Store events under ``calendar_id`` for ``ttl`` seconds (default_ttl when None)."""
        lifetime = self.default_ttl if ttl is None else ttl
        with self._lock:
            self._entries[calendar_id] = (list(events), self._clock() + lifetime)
            self.stats["stores"] += 1
        logger.debug("Cached %d events for %s (ttl %ds)", len(events), calendar_id, lifetime)

    async def get_or_populate(
        self,
        calendar_id: str,
        loader: Callable[[], Awaitable[list[ResolvedEvent]]],
        ttl: Optional[int] = None,
    ) -> list[ResolvedEvent]:
        """Return cached events or await ``loader`` and store its result.

        The lock is not held while the loader runs, so concurrent misses for the same
        key each load and the last store wins.
        """
        cached = self.get(calendar_id)
        if cached is not None:
            return cached

        events = await loader()
        self.put(calendar_id, events, ttl)
        return list(events)

    def delete(self, calendar_id: str) -> bool:
        """Remove one entry; returns True if it existed."""
        with self._lock:
            removed = self._entries.pop(calendar_id, None) is not None
        if removed:
            logger.info("Cleared cache for %s", calendar_id)
        return removed

    def clear(self) -> int:
        """Remove every entry; returns how many were dropped."""
        with self._lock:
            count = len(self._entries)
            self._entries.clear()
        logger.info("Cleared all %d cached calendars", count)
        return count

    def keys(self) -> list[str]:
        """Keys of entries that have not expired yet."""
        now = self._clock()
        with self._lock:
            return [key for key, (_, expires_at) in self._entries.items() if now < expires_at]

    def purge_expired(self) -> int:
        """Drop all expired entries; returns how many were removed."""
        now = self._clock()
        with self._lock:
            expired = [key for key, (_, expires_at) in self._entries.items() if now >= expires_at]
            for key in expired:
                del self._entries[key]
            self.stats["expirations"] += len(expired)
        if expired:
            logger.debug("Purged %d expired calendars", len(expired))
        return len(expired)

    def get_stats(self) -> dict[str, Any]:
        """Get cache statistics.

        Returns:
            Dict with hits, misses, hit_rate (percentage), expirations, stores,
            current_size and the cached keys
        """
        with self._lock:
            total_requests = self.stats["hits"] + self.stats["misses"]
            hit_rate = (self.stats["hits"] / total_requests * 100) if total_requests > 0 else 0.0
            return {
                "hits": self.stats["hits"],
                "misses": self.stats["misses"],
                "hit_rate": round(hit_rate, 2),
                "expirations": self.stats["expirations"],
                "stores": self.stats["stores"],
                "current_size": len(self._entries),
                "keys": list(self._entries),
                "default_ttl": self.default_ttl,
            }
