"""Cache façade - stale-while-revalidate fetches.

This module provides the public cache operations:
- fetch_cached(): SWR lookup for any key and origin fetcher
- fetch(): the same for an HTTP request, keyed on the request itself
- get(), delete(), tagged_keys(): Raw escape hatches
- drain(), clear(), disconnect(): Lifecycle methods
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Iterable, Mapping
from dataclasses import dataclass

from swr_fetch.background import BackgroundTasks, KeepAlive
from swr_fetch.clock import Clock, SystemClock
from swr_fetch.duration import Duration
from swr_fetch.errors import OriginUnavailableError
from swr_fetch.keys import make_cache_key
from swr_fetch.origin import HttpOrigin
from swr_fetch.policy import classify, entry_age, expires_in
from swr_fetch.refresher import Fetcher, SingleFlightRefresher
from swr_fetch.stores.base import AsyncEntryStore
from swr_fetch.stores.memory import AsyncMemoryStore
from swr_fetch.types import (
    CacheEntry,
    CacheResult,
    CacheStatus,
    FetchConfig,
    Freshness,
    RefreshStatus,
)

logger = logging.getLogger(__name__)


@dataclass
class SWRCache:
    """Stale-while-revalidate response cache."""

    _store: AsyncEntryStore
    _clock: Clock
    _refresher: SingleFlightRefresher
    _background: BackgroundTasks
    _origin: HttpOrigin
    _prefix: str

    async def fetch_cached(
        self,
        key: str,
        fetcher: Fetcher,
        config: FetchConfig,
    ) -> CacheResult:
        """Serve ``key`` from cache, refreshing it from the origin as needed.

        Args:
            key: Cache key
            fetcher: Async origin call producing the response
            config: Freshness windows and tags

        Returns:
            The served response, annotated with status, age and expiry

        Raises:
            OriginUnavailableError: No servable data and the origin failed.
                ``error.stale`` holds the expired entry, if there was one.
        """
        entry = await self._store.get(key)
        now = self._clock.now()
        revalidate = config.revalidate_seconds
        expires = config.expires_seconds
        freshness = classify(now, entry, revalidate, expires)

        if entry is not None and freshness is Freshness.FRESH:
            logger.debug("Cache hit: key=%r", key)
            return self._serve(entry, CacheStatus.HIT, now, expires)

        if entry is not None and freshness is Freshness.STALE:
            logger.debug("Serving stale, refreshing in background: key=%r", key)
            # Fire and forget - the supervisor keeps the refresh alive
            self._background.spawn(
                self._refresher.refresh(key, fetcher, config),
                name=f"swr-refresh:{key}",
            )
            return self._serve(entry, CacheStatus.STALE, now, expires)

        # Cache miss or expired - wait for the origin
        logger.debug("Cache %s: key=%r", freshness.value.lower(), key)
        task = self._background.spawn(
            self._refresher.refresh(key, fetcher, config, wait=True),
            name=f"swr-fetch:{key}",
        )
        # Shielded so a cancelled caller does not abort the refresh
        outcome = await asyncio.shield(task)

        now = self._clock.now()
        fresh = outcome.entry
        if outcome.status is RefreshStatus.REFRESHED and fresh is not None:
            # Entries fetched by this refresh are served even when a slow
            # origin or a zero expiry has already aged them out.
            if (
                not outcome.observed
                or classify(now, fresh, revalidate, expires) is not Freshness.EXPIRED
            ):
                return CacheResult(
                    response=fresh.response,
                    status=CacheStatus.MISS,
                    age=0.0,
                    expires_in=expires_in(now, fresh, expires),
                ).annotated()

        if outcome.error is None:
            raise OriginUnavailableError(
                "No servable response after refresh", key=key, stale=entry
            )
        # The outcome is shared by every joined caller; each raises its own copy
        raise outcome.error.with_stale(entry) from outcome.error

    async def fetch(
        self,
        url: str,
        *,
        revalidate: Duration,
        expires: Duration | None = None,
        tags: Iterable[str] = (),
        method: str = "GET",
        headers: Mapping[str, str] | None = None,
        content: bytes | None = None,
        vary: Iterable[str] = (),
        no_store: bool = False,
    ) -> CacheResult:
        """Cached HTTP fetch.

        The cache key is derived from the method, normalized URL, body and any
        ``vary`` headers. With ``no_store`` the cache is bypassed entirely and
        the origin response is returned with status MISS.
        """
        config = FetchConfig(revalidate=revalidate, expires=expires, tags=tuple(tags))

        if no_store:
            response = await self._origin.request(
                method, url, headers=headers, content=content
            )
            return CacheResult(
                response=response,
                status=CacheStatus.MISS,
                age=0.0,
                expires_in=None,
            ).annotated()

        key = make_cache_key(
            url,
            method=method,
            content=content,
            headers=headers,
            vary=vary,
            prefix=self._prefix,
        )
        fetcher = self._origin.fetcher(method, url, headers=headers, content=content)
        return await self.fetch_cached(key, fetcher, config)

    async def get(self, key: str) -> CacheEntry | None:
        """Raw get - escape hatch for manual cache access."""
        return await self._store.get(key)

    async def delete(self, key: str) -> None:
        """Raw delete - escape hatch for manual cache removal."""
        await self._store.delete(key)

    async def tagged_keys(self, tag: str) -> set[str]:
        """Keys currently stored under ``tag``."""
        return await self._store.tagged_keys(tag)

    async def drain(self) -> None:
        """Wait for background refreshes to finish."""
        await self._background.drain()

    async def clear(self) -> None:
        """Clear all cached entries."""
        await self._store.clear()

    async def disconnect(self) -> None:
        """Finish background work, then close the origin and the store."""
        await self._background.aclose()
        await self._origin.aclose()
        await self._store.disconnect()

    # -------------------------------------------------------------------------
    # Internal helpers
    # -------------------------------------------------------------------------

    def _serve(
        self,
        entry: CacheEntry,
        status: CacheStatus,
        now: float,
        expires: float | None,
    ) -> CacheResult:
        return CacheResult(
            response=entry.response,
            status=status,
            age=entry_age(now, entry),
            expires_in=expires_in(now, entry, expires),
        ).annotated()


def create_cache(
    *,
    store: AsyncEntryStore | None = None,
    clock: Clock | None = None,
    origin: HttpOrigin | None = None,
    prefix: str = "swr",
    join_timeout: float = 30.0,
    poll_interval: float = 0.05,
    keep_alive: KeepAlive | None = None,
) -> SWRCache:
    """Create a stale-while-revalidate cache.

    Args:
        store: Entry store (default: a fresh AsyncMemoryStore)
        clock: Time source (default: SystemClock)
        origin: HTTP origin used by fetch() (default: HttpOrigin())
        prefix: Prefix for keys built by fetch()
        join_timeout: Longest wait on a refresh held by another process
        poll_interval: Poll period while waiting on such a refresh
        keep_alive: Called with every background task, for hosts that must
            be told to keep work alive past the end of a request

    Returns:
        SWRCache instance with fetch, fetch_cached, get, delete, clear, disconnect
    """
    if not prefix:
        raise ValueError("prefix must not be empty")

    store = store if store is not None else AsyncMemoryStore()
    clock = clock if clock is not None else SystemClock()
    return SWRCache(
        _store=store,
        _clock=clock,
        _refresher=SingleFlightRefresher(
            store, clock, join_timeout=join_timeout, poll_interval=poll_interval
        ),
        _background=BackgroundTasks(keep_alive=keep_alive),
        _origin=origin if origin is not None else HttpOrigin(),
        _prefix=prefix,
    )


__all__ = ["SWRCache", "create_cache"]
