"""In-memory entry store."""

import asyncio
import logging
from collections import OrderedDict

from swr_fetch.types import CacheEntry

logger = logging.getLogger(__name__)


class AsyncMemoryStore:
    """Async in-memory entry store with optional LRU eviction."""

    def __init__(self, max_items: int | None = None) -> None:
        if max_items is not None and max_items < 1:
            raise ValueError("max_items must be a positive integer")
        self._cache: OrderedDict[str, CacheEntry] = OrderedDict()
        self._tags: dict[str, set[str]] = {}
        self._refreshing: set[str] = set()
        self._max_items = max_items
        self._lock = asyncio.Lock()

    async def get(self, key: str) -> CacheEntry | None:
        """Get a cache entry by key."""
        async with self._lock:
            entry = self._cache.get(key)
            if entry:
                self._cache.move_to_end(key)  # LRU touch
            return entry

    async def put(self, key: str, entry: CacheEntry) -> bool:
        """Store an entry unless the stored one is newer."""
        async with self._lock:
            current = self._cache.get(key)
            if current is not None and current.fetched_at > entry.fetched_at:
                logger.debug(
                    "Ignoring older entry: key=%r fetched_at=%.3f stored=%.3f",
                    key,
                    entry.fetched_at,
                    current.fetched_at,
                )
                return False
            if current is not None:
                self._untag(key, current)
            self._cache[key] = entry
            self._cache.move_to_end(key)
            for tag in entry.tags:
                self._tags.setdefault(tag, set()).add(key)
            if self._max_items and len(self._cache) > self._max_items:
                evicted_key, evicted = self._cache.popitem(last=False)
                self._untag(evicted_key, evicted)
            return True

    async def delete(self, key: str) -> None:
        """Delete a cache entry."""
        async with self._lock:
            entry = self._cache.pop(key, None)
            if entry is not None:
                self._untag(key, entry)

    async def try_begin_refresh(self, key: str) -> bool:
        """Claim the refresh flag for a key."""
        async with self._lock:
            if key in self._refreshing:
                return False
            self._refreshing.add(key)
            return True

    async def end_refresh(self, key: str) -> None:
        """Release the refresh flag for a key."""
        async with self._lock:
            self._refreshing.discard(key)

    async def is_refreshing(self, key: str) -> bool:
        """Whether the refresh flag for a key is held."""
        async with self._lock:
            return key in self._refreshing

    async def tagged_keys(self, tag: str) -> set[str]:
        """Keys whose current entry carries ``tag``."""
        async with self._lock:
            return set(self._tags.get(tag, ()))

    async def clear(self) -> None:
        """Clear all cached entries (refresh flags are left alone)."""
        async with self._lock:
            self._cache.clear()
            self._tags.clear()

    async def disconnect(self) -> None:
        """Disconnect from the storage backend (no-op for memory)."""
        pass

    def _untag(self, key: str, entry: CacheEntry) -> None:
        for tag in entry.tags:
            keys = self._tags.get(tag)
            if keys is None:
                continue
            keys.discard(key)
            if not keys:
                del self._tags[tag]
