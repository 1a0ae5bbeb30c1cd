"""swr-fetch - Stale-while-revalidate HTTP response caching for Python."""

from contextlib import suppress

# Background execution
from swr_fetch.background import BackgroundTasks

# Cache API
from swr_fetch.cache import SWRCache, create_cache

# Clocks
from swr_fetch.clock import Clock, ManualClock, SystemClock

# Duration parsing
from swr_fetch.duration import Duration, parse_duration

# Errors
from swr_fetch.errors import (
    InvalidConfigError,
    OriginHTTPError,
    OriginNetworkError,
    OriginTimeoutError,
    OriginUnavailableError,
    SWRFetchError,
)
from swr_fetch.keys import make_cache_key, normalize_url
from swr_fetch.origin import HttpOrigin
from swr_fetch.policy import classify
from swr_fetch.refresher import Fetcher, SingleFlightRefresher

# Stores
from swr_fetch.stores import AsyncEntryStore, AsyncMemoryStore

# Core types
from swr_fetch.types import (
    CachedResponse,
    CacheEntry,
    CacheKey,
    CacheResult,
    CacheStatus,
    FetchConfig,
    Freshness,
    RefreshOutcome,
    RefreshStatus,
)

# Optional stores - only available when dependencies are installed
with suppress(ImportError):
    from swr_fetch.stores import AsyncRedisStore

__version__ = "0.1.0"

__all__ = [
    "AsyncEntryStore",
    "AsyncMemoryStore",
    "AsyncRedisStore",
    "BackgroundTasks",
    "CacheEntry",
    "CacheKey",
    "CacheResult",
    "CacheStatus",
    "CachedResponse",
    "Clock",
    "Duration",
    "FetchConfig",
    "Fetcher",
    "Freshness",
    "HttpOrigin",
    "InvalidConfigError",
    "ManualClock",
    "OriginHTTPError",
    "OriginNetworkError",
    "OriginTimeoutError",
    "OriginUnavailableError",
    "RefreshOutcome",
    "RefreshStatus",
    "SWRCache",
    "SWRFetchError",
    "SingleFlightRefresher",
    "SystemClock",
    "classify",
    "create_cache",
    "make_cache_key",
    "normalize_url",
    "parse_duration",
]
