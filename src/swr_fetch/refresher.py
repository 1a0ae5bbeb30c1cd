"""Single-flight refresher.

At most one origin fetch runs per key. The guarantee rests on the store's
refresh flag, so it holds across processes sharing a store. Within one
process, callers that want to wait for a refresh already in flight join its
future instead of polling.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable

from swr_fetch.clock import Clock
from swr_fetch.errors import OriginHTTPError, OriginUnavailableError
from swr_fetch.stores.base import AsyncEntryStore
from swr_fetch.types import (
    CachedResponse,
    CacheEntry,
    FetchConfig,
    RefreshOutcome,
    RefreshStatus,
)

logger = logging.getLogger(__name__)

Fetcher = Callable[[], Awaitable[CachedResponse]]


class SingleFlightRefresher:
    """Refreshes cache entries, collapsing concurrent refreshes per key."""

    def __init__(
        self,
        store: AsyncEntryStore,
        clock: Clock,
        *,
        join_timeout: float = 30.0,
        poll_interval: float = 0.05,
    ) -> None:
        if join_timeout <= 0:
            raise ValueError("join_timeout must be positive")
        if poll_interval <= 0:
            raise ValueError("poll_interval must be positive")
        self._store = store
        self._clock = clock
        self._join_timeout = join_timeout
        self._poll_interval = poll_interval
        self._in_flight: dict[str, asyncio.Future[RefreshOutcome]] = {}

    def in_flight(self, key: str) -> bool:
        """Whether this process is currently refreshing ``key``."""
        return key in self._in_flight

    async def refresh(
        self,
        key: str,
        fetcher: Fetcher,
        config: FetchConfig,
        *,
        wait: bool = False,
    ) -> RefreshOutcome:
        """Fetch ``key`` from the origin and store the result.

        Args:
            key: Cache key
            fetcher: Async origin call producing the response
            config: Freshness windows and tags recorded on the new entry
            wait: When another refresh holds the key, wait for it and
                return its outcome instead of IN_FLIGHT

        Returns:
            REFRESHED with the stored entry, FAILED with the origin error, or
            IN_FLIGHT when the key was already being refreshed
        """
        if not await self._store.try_begin_refresh(key):
            logger.debug("Refresh already in flight: key=%r", key)
            if wait:
                return await self._join(key)
            return RefreshOutcome(RefreshStatus.IN_FLIGHT)

        # Registered before the first suspension point so joiners in this
        # process always find it.
        future: asyncio.Future[RefreshOutcome] = (
            asyncio.get_running_loop().create_future()
        )
        self._in_flight[key] = future
        outcome = RefreshOutcome(
            RefreshStatus.FAILED,
            error=OriginUnavailableError("Refresh did not complete", key=key),
        )
        try:
            outcome = await self._fetch_and_store(key, fetcher, config)
        finally:
            try:
                await self._store.end_refresh(key)
            finally:
                if self._in_flight.get(key) is future:
                    del self._in_flight[key]
                future.set_result(outcome)
        return outcome

    async def _fetch_and_store(
        self, key: str, fetcher: Fetcher, config: FetchConfig
    ) -> RefreshOutcome:
        started_at = self._clock.now()
        try:
            response = await fetcher()
        except Exception as e:
            error = (
                e
                if isinstance(e, OriginUnavailableError)
                else OriginUnavailableError(f"Origin fetch failed: {e!r}", key=key)
            )
            if error.key is None:
                error.key = key
            if error is not e:
                error.__cause__ = e
            logger.warning("Refresh failed: key=%r error=%s", key, error)
            return RefreshOutcome(RefreshStatus.FAILED, error=error)

        if not response.is_success:
            logger.warning(
                "Refresh failed: key=%r status=%d", key, response.status_code
            )
            return RefreshOutcome(
                RefreshStatus.FAILED,
                error=OriginHTTPError(response.status_code, key=key),
            )

        entry = CacheEntry(
            key=key,
            response=response,
            fetched_at=started_at,
            revalidate_after=config.revalidate_seconds,
            expires_after=config.expires_seconds,
            tags=frozenset(config.tags),
        )
        if not await self._store.put(key, entry):
            # A newer entry landed while we were fetching; it wins.
            newer = await self._store.get(key)
            if newer is not None:
                entry = newer
        logger.debug("Refreshed: key=%r fetched_at=%.3f", key, entry.fetched_at)
        return RefreshOutcome(RefreshStatus.REFRESHED, entry=entry)

    async def _join(self, key: str) -> RefreshOutcome:
        """Wait for the refresh currently holding ``key``."""
        future = self._in_flight.get(key)
        if future is not None:
            return await asyncio.shield(future)

        # Held by another process sharing the store.
        try:
            return await asyncio.wait_for(self._poll(key), timeout=self._join_timeout)
        except asyncio.TimeoutError:
            logger.warning("Gave up waiting for in-flight refresh: key=%r", key)
            return RefreshOutcome(RefreshStatus.IN_FLIGHT)

    async def _poll(self, key: str) -> RefreshOutcome:
        """Poll the store flag, then report whatever entry is left behind.

        A failed remote refresh leaves the previous entry in place, so the
        outcome is marked ``observed`` and callers must check it is servable.
        """
        while True:
            future = self._in_flight.get(key)
            if future is not None:
                return await asyncio.shield(future)
            if not await self._store.is_refreshing(key):
                break
            await asyncio.sleep(self._poll_interval)

        entry = await self._store.get(key)
        if entry is not None:
            return RefreshOutcome(RefreshStatus.REFRESHED, entry=entry, observed=True)
        return RefreshOutcome(
            RefreshStatus.FAILED,
            error=OriginUnavailableError(
                "Concurrent refresh did not produce a new entry", key=key
            ),
        )
