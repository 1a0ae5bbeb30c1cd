"""Tests for the httpx origin using mocked HTTP responses."""

import httpx
import pytest
import respx

from swr_fetch import (
    CacheStatus,
    HttpOrigin,
    InvalidConfigError,
    ManualClock,
    OriginHTTPError,
    OriginNetworkError,
    OriginTimeoutError,
    SWRCache,
    create_cache,
)

API_URL = "https://api.test.dev/api/demo"


@pytest.fixture
async def origin():
    origin = HttpOrigin(timeout=5.0)
    yield origin
    await origin.aclose()


class TestHttpOrigin:
    """Tests for HttpOrigin."""

    @respx.mock
    async def test_returns_cached_response(self, origin: HttpOrigin) -> None:
        respx.get(API_URL).mock(
            return_value=httpx.Response(
                200, json={"message": "slow"}, headers={"X-Response-Time": "1000ms"}
            )
        )

        response = await origin.request("GET", API_URL)
        assert response.status_code == 200
        assert response.json() == {"message": "slow"}
        assert response.header("x-response-time") == "1000ms"
        assert response.url == API_URL

    @respx.mock
    async def test_non_2xx_raises(self, origin: HttpOrigin) -> None:
        respx.get(API_URL).mock(return_value=httpx.Response(503))

        with pytest.raises(OriginHTTPError) as excinfo:
            await origin.request("GET", API_URL)
        assert excinfo.value.status_code == 503

    @respx.mock
    async def test_timeout_raises(self, origin: HttpOrigin) -> None:
        respx.get(API_URL).mock(side_effect=httpx.ReadTimeout("slow"))

        with pytest.raises(OriginTimeoutError):
            await origin.request("GET", API_URL)

    @respx.mock
    async def test_network_error_raises(self, origin: HttpOrigin) -> None:
        respx.get(API_URL).mock(side_effect=httpx.ConnectError("refused"))

        with pytest.raises(OriginNetworkError):
            await origin.request("GET", API_URL)

    @respx.mock
    async def test_fetcher_sends_request(self, origin: HttpOrigin) -> None:
        route = respx.post(API_URL).mock(return_value=httpx.Response(200, json={}))

        fetch = origin.fetcher("POST", API_URL, content=b'{"q": 1}')
        await fetch()
        assert route.calls[0].request.content == b'{"q": 1}'

    def test_rejects_bad_timeout(self) -> None:
        with pytest.raises(ValueError, match="timeout"):
            HttpOrigin(timeout=0)


@pytest.fixture
async def http_cache(clock: ManualClock):
    cache = create_cache(clock=clock)
    yield cache
    await cache.disconnect()


class TestCachedFetch:
    """Tests for SWRCache.fetch over a mocked origin."""

    @respx.mock
    async def test_miss_then_hit(
        self, http_cache: SWRCache, clock: ManualClock
    ) -> None:
        route = respx.get(API_URL).mock(
            return_value=httpx.Response(200, json={"randomValue": 0.5})
        )

        options = {"revalidate": 5, "expires": 30, "tags": ["demo-api"]}
        first = await http_cache.fetch(API_URL, **options)
        clock.advance(2)
        second = await http_cache.fetch(API_URL, **options)

        assert route.call_count == 1
        assert first.status is CacheStatus.MISS
        assert second.status is CacheStatus.HIT
        assert second.response.header("X-Cache-Age") == "2"
        assert second.response.header("X-Cache-Expires-In") == "28"
        assert second.response.json() == {"randomValue": 0.5}

    @respx.mock
    async def test_stale_refreshes_in_background(
        self, http_cache: SWRCache, clock: ManualClock
    ) -> None:
        route = respx.get(API_URL).mock(
            side_effect=[
                httpx.Response(200, json={"version": 1}),
                httpx.Response(200, json={"version": 2}),
            ]
        )

        await http_cache.fetch(API_URL, revalidate="5s", expires="30s")
        clock.advance(6)
        stale = await http_cache.fetch(API_URL, revalidate="5s", expires="30s")
        await http_cache.drain()
        fresh = await http_cache.fetch(API_URL, revalidate="5s", expires="30s")

        assert stale.status is CacheStatus.STALE
        assert stale.response.json() == {"version": 1}
        assert fresh.status is CacheStatus.HIT
        assert fresh.response.json() == {"version": 2}
        assert route.call_count == 2

    @respx.mock
    async def test_no_store_bypasses_cache(self, http_cache: SWRCache) -> None:
        route = respx.get(API_URL).mock(return_value=httpx.Response(200, json={}))

        await http_cache.fetch(API_URL, revalidate=5, no_store=True)
        result = await http_cache.fetch(API_URL, revalidate=5, no_store=True)

        assert route.call_count == 2
        assert result.status is CacheStatus.MISS
        assert result.expires_in is None

    @respx.mock
    async def test_error_status_is_not_cached(self, http_cache: SWRCache) -> None:
        route = respx.get(API_URL).mock(
            side_effect=[httpx.Response(500), httpx.Response(200, json={"ok": True})]
        )

        with pytest.raises(OriginHTTPError):
            await http_cache.fetch(API_URL, revalidate=5, expires=30)
        result = await http_cache.fetch(API_URL, revalidate=5, expires=30)

        assert result.status is CacheStatus.MISS
        assert route.call_count == 2

    @respx.mock
    async def test_invalid_config_fails_before_request(
        self, http_cache: SWRCache
    ) -> None:
        route = respx.get(API_URL).mock(return_value=httpx.Response(200, json={}))

        with pytest.raises(InvalidConfigError):
            await http_cache.fetch(API_URL, revalidate=60, expires=30)
        assert route.call_count == 0
