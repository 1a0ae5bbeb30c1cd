"""Base store protocol for cache entries."""

from typing import Protocol, runtime_checkable

from swr_fetch.types import CacheEntry


@runtime_checkable
class AsyncEntryStore(Protocol):
    """Async entry store interface.

    Besides entries, a store owns the per-key refresh flag. Granting it
    must be atomic: between ``try_begin_refresh`` returning True and the
    matching ``end_refresh`` no other caller may be granted the same key.
    """

    async def get(self, key: str) -> CacheEntry | None:
        """Get a cache entry by key."""
        ...

    async def put(self, key: str, entry: CacheEntry) -> bool:
        """Store an entry unless a newer one (by fetched_at) is present.

        Returns False when the write was ignored.
        """
        ...

    async def delete(self, key: str) -> None:
        """Delete a cache entry."""
        ...

    async def try_begin_refresh(self, key: str) -> bool:
        """Atomically claim the refresh flag for a key."""
        ...

    async def end_refresh(self, key: str) -> None:
        """Release the refresh flag for a key."""
        ...

    async def is_refreshing(self, key: str) -> bool:
        """Whether the refresh flag for a key is held."""
        ...

    async def tagged_keys(self, tag: str) -> set[str]:
        """Keys whose current entry carries ``tag``."""
        ...

    async def clear(self) -> None:
        """Clear all cached entries."""
        ...

    async def disconnect(self) -> None:
        """Disconnect from the storage backend."""
        ...
