"""Shared pytest fixtures."""

import asyncio
import json
from collections.abc import AsyncIterator

import pytest

from swr_fetch import (
    AsyncMemoryStore,
    CachedResponse,
    ManualClock,
    SWRCache,
    create_cache,
)


@pytest.fixture
def clock() -> ManualClock:
    """Create a manual clock starting at a fixed timestamp."""
    return ManualClock(start=1_000_000.0)


@pytest.fixture
def store() -> AsyncMemoryStore:
    """Create a fresh AsyncMemoryStore for each test."""
    return AsyncMemoryStore()


@pytest.fixture
async def cache(
    store: AsyncMemoryStore, clock: ManualClock
) -> AsyncIterator[SWRCache]:
    """Create a cache over the memory store and manual clock."""
    cache = create_cache(store=store, clock=clock)
    yield cache
    await cache.disconnect()


class CountingOrigin:
    """Origin fetcher stand-in that counts calls and can be slowed or broken."""

    def __init__(
        self,
        *,
        delay: float = 0.0,
        error: BaseException | None = None,
        status_code: int = 200,
    ) -> None:
        self.calls = 0
        self.delay = delay
        self.error = error
        self.status_code = status_code
        self.release: asyncio.Event | None = None

    async def __call__(self) -> CachedResponse:
        self.calls += 1
        version = self.calls
        if self.release is not None:
            await self.release.wait()
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error is not None:
            raise self.error
        return CachedResponse(
            status_code=self.status_code,
            headers=(("content-type", "application/json"),),
            content=json.dumps({"version": version}).encode(),
        )


@pytest.fixture
def make_origin() -> type[CountingOrigin]:
    """Factory for counting origin fetchers."""
    return CountingOrigin
