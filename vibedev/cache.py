"""Reference data cache.

A small TTL cache injected into services that read rarely-changing
reference data (categories). Entries expire after the configured TTL and
can be dropped explicitly when the data changes.
"""

from typing import Any, Optional

from cachetools import TTLCache

from vibedev.config import settings
from vibedev.metrics import cache_events_total


class ReferenceCache:
    """Keyed TTL cache with an invalidation hook.

    Args:
        name: Cache name used in metrics
        ttl_seconds: Entry lifetime (defaults to settings.category_cache_ttl_seconds)
        maxsize: Maximum number of keys
    """

    def __init__(self, name: str, ttl_seconds: float | None = None, maxsize: int = 64):
        self.name = name
        ttl = settings.category_cache_ttl_seconds if ttl_seconds is None else ttl_seconds
        self._cache: TTLCache = TTLCache(maxsize=maxsize, ttl=ttl)

    def get(self, key: str) -> Optional[Any]:
        value = self._cache.get(key)
        cache_events_total.labels(cache=self.name, event="miss" if value is None else "hit").inc()
        return value

    def set(self, key: str, value: Any) -> None:
        self._cache[key] = value

    def invalidate(self, key: str | None = None) -> None:
        if key is None:
            self._cache.clear()
        else:
            self._cache.pop(key, None)
        cache_events_total.labels(cache=self.name, event="invalidate").inc()

    def __len__(self) -> int:
        return len(self._cache)


__all__ = ["ReferenceCache"]
