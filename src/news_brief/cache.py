"""In-memory TTL cache for raw fetch results.

Keyed by a hash of the sorted keyword set plus a day bucket. Best effort
only: nothing survives a restart, and staleness is the only concern, so a
plain dict touched from the event loop is enough.
"""

import asyncio
import contextlib
import hashlib
import logging
import time
from collections.abc import Callable
from dataclasses import dataclass
from datetime import date

from .models import NewsArticle

logger = logging.getLogger(__name__)


def generate_cache_key(keywords: list[str], day: date | None = None) -> str:
    """Deterministic key, independent of keyword order."""
    keywords_str = "|".join(sorted(keywords))
    date_str = day.isoformat() if day else "today"
    combined = f"{keywords_str}:{date_str}"
    return hashlib.md5(combined.encode("utf-8")).hexdigest()


@dataclass
class CacheEntry:
    articles: list[NewsArticle]
    timestamp: float


@dataclass
class CacheStats:
    size: int
    oldest_entry: float | None
    newest_entry: float | None


class NewsCache:
    """TTL cache with lazy eviction and an owned background sweep.

    Call ``init()`` to start the sweep task and ``dispose()`` to cancel it, or
    use the cache as an async context manager. ``get``/``set`` work without
    ``init()``; only the periodic sweep is missing then.
    """

    def __init__(
        self,
        ttl: float = 3600,
        sweep_interval: float = 600,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.ttl = ttl
        self.sweep_interval = sweep_interval
        self._clock = clock
        self._entries: dict[str, CacheEntry] = {}
        self._sweeper: asyncio.Task | None = None

    # -- lifecycle ---------------------------------------------------------

    async def init(self, ttl: float | None = None) -> "NewsCache":
        if ttl is not None:
            self.ttl = ttl
        if self._sweeper is None:
            self._sweeper = asyncio.create_task(self._sweep_loop())
            logger.debug("Cache sweep started (ttl=%ss, every %ss)", self.ttl, self.sweep_interval)
        return self

    async def dispose(self) -> None:
        if self._sweeper is not None:
            self._sweeper.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await self._sweeper
            self._sweeper = None
        self.clear()

    async def __aenter__(self) -> "NewsCache":
        return await self.init()

    async def __aexit__(self, *exc) -> None:
        await self.dispose()

    async def _sweep_loop(self) -> None:
        while True:
            await asyncio.sleep(self.sweep_interval)
            removed = self.clear_expired()
            if removed:
                logger.debug("Cache sweep evicted %d entries", removed)

    # -- access --------------------------------------------------------------

    def _expired(self, entry: CacheEntry, now: float) -> bool:
        return now - entry.timestamp > self.ttl

    def get(self, key: str) -> list[NewsArticle] | None:
        """Return cached articles, or None if absent or expired."""
        entry = self._entries.get(key)
        if entry is None:
            return None
        if self._expired(entry, self._clock()):
            del self._entries[key]
            return None
        return entry.articles

    def set(self, key: str, articles: list[NewsArticle]) -> None:
        self._entries[key] = CacheEntry(articles=list(articles), timestamp=self._clock())

    def clear(self) -> None:
        self._entries.clear()

    def clear_expired(self) -> int:
        """Evict every expired entry; returns how many were removed."""
        now = self._clock()
        expired = [k for k, e in self._entries.items() if self._expired(e, now)]
        for key in expired:
            del self._entries[key]
        return len(expired)

    def stats(self) -> CacheStats:
        timestamps = [e.timestamp for e in self._entries.values()]
        return CacheStats(
            size=len(self._entries),
            oldest_entry=min(timestamps) if timestamps else None,
            newest_entry=max(timestamps) if timestamps else None,
        )

    def __len__(self) -> int:
        return len(self._entries)
