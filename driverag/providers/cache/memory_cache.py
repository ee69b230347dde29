"""In-memory cache provider using cachetools.TTLCache.

Holds recently computed embedding vectors so repeated text (a re-ingested
file, the same question asked twice) skips the embedding API.  Bounded in
size and age; single-process only.  Swap in another backend through
:class:`ICacheProvider` when several workers must share entries.
"""

from __future__ import annotations

from typing import Any

import structlog
from cachetools import TTLCache

from driverag.interfaces.cache_provider import ICacheProvider

logger = structlog.get_logger(logger_name=__name__)


class MemoryCacheProvider(ICacheProvider):
    """TTL + LRU cache backed by ``cachetools.TTLCache``.

    Parameters
    ----------
    max_size:
        Entries kept before the least-recently-used one is evicted.
    ttl:
        Seconds an entry stays valid after it was written.
    """

    def __init__(self, max_size: int = 100, ttl: int = 3600) -> None:
        self._cache: TTLCache[str, Any] = TTLCache(maxsize=max_size, ttl=ttl)
        self._hits = 0
        self._misses = 0

    async def get(self, key: str) -> Any | None:
        value = self._cache.get(key)
        if value is None:
            self._misses += 1
            return None
        self._hits += 1
        logger.debug("cache_hit", key=key[:64])
        # Vectors are lists; hand out a copy so callers cannot edit the entry.
        return list(value) if isinstance(value, list) else value

    async def set(self, key: str, value: Any) -> None:
        self._cache[key] = list(value) if isinstance(value, list) else value

    async def delete(self, key: str) -> None:
        self._cache.pop(key, None)

    async def clear(self) -> None:
        self._cache.clear()
        self._hits = 0
        self._misses = 0

    def stats(self) -> dict[str, int]:
        """Return current size, capacity and hit/miss counters."""
        return {
            "size": len(self._cache),
            "max_size": int(self._cache.maxsize),
            "hits": self._hits,
            "misses": self._misses,
        }

    def __len__(self) -> int:
        return len(self._cache)
