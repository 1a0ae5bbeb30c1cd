"""Entry stores for swr-fetch."""

from contextlib import suppress

from swr_fetch.stores.base import AsyncEntryStore
from swr_fetch.stores.memory import AsyncMemoryStore

# Optional stores - only available when dependencies are installed
with suppress(ImportError):
    from swr_fetch.stores.redis import AsyncRedisStore

__all__ = [
    "AsyncEntryStore",
    "AsyncMemoryStore",
    "AsyncRedisStore",
]
