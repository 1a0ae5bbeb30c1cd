"""HTTP origin fetcher built on httpx."""

from __future__ import annotations

import logging
from collections.abc import Mapping

import httpx

from swr_fetch.errors import OriginHTTPError, OriginNetworkError, OriginTimeoutError
from swr_fetch.refresher import Fetcher
from swr_fetch.types import CachedResponse

logger = logging.getLogger(__name__)


class HttpOrigin:
    """Issues origin requests and maps failures onto origin errors.

    Timeouts raise :class:`OriginTimeoutError`, transport failures raise
    :class:`OriginNetworkError` and non-2xx answers raise
    :class:`OriginHTTPError`. The timeout is the only bound on how long a
    refresh may run.
    """

    def __init__(
        self,
        client: httpx.AsyncClient | None = None,
        *,
        timeout: float = 10.0,
        headers: Mapping[str, str] | None = None,
    ) -> None:
        if timeout <= 0:
            raise ValueError("timeout must be positive")
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(
            timeout=timeout,
            headers=dict(headers or {}),
        )

    async def request(
        self,
        method: str,
        url: str,
        *,
        headers: Mapping[str, str] | None = None,
        content: bytes | None = None,
    ) -> CachedResponse:
        """Make a request and read the full body into a CachedResponse."""
        try:
            response = await self._client.request(
                method, url, headers=headers, content=content
            )
        except httpx.TimeoutException as e:
            raise OriginTimeoutError(f"Timed out fetching {url}") from e
        except httpx.TransportError as e:
            raise OriginNetworkError(f"Could not reach {url}: {e}") from e

        if not response.is_success:
            logger.debug("Origin %s %s returned %d", method, url, response.status_code)
            raise OriginHTTPError(response.status_code)

        return CachedResponse(
            status_code=response.status_code,
            headers=tuple(response.headers.multi_items()),
            content=response.content,
            url=str(response.url),
        )

    def fetcher(
        self,
        method: str,
        url: str,
        *,
        headers: Mapping[str, str] | None = None,
        content: bytes | None = None,
    ) -> Fetcher:
        """Bind a request into a zero-argument fetcher for the refresher."""

        async def fetch() -> CachedResponse:
            return await self.request(method, url, headers=headers, content=content)

        return fetch

    async def aclose(self) -> None:
        """Close the HTTP client if this origin created it."""
        if self._owns_client:
            await self._client.aclose()
