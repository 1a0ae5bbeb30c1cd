"""Error types raised by swr-fetch."""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from swr_fetch.types import CacheEntry


class SWRFetchError(Exception):
    """Base class for all swr-fetch errors."""


class InvalidConfigError(SWRFetchError, ValueError):
    """A fetch configuration was rejected at call time."""


class OriginUnavailableError(SWRFetchError, RuntimeError):
    """The origin could not produce a servable response.

    ``stale`` carries the entry that was on hand when the refresh failed
    (an expired one on the blocking path), so callers can choose to degrade
    instead of failing the request.
    """

    def __init__(
        self,
        message: str,
        *,
        key: str | None = None,
        stale: CacheEntry | None = None,
    ) -> None:
        super().__init__(message)
        self.key = key
        self.stale = stale

    def with_stale(self, stale: CacheEntry | None) -> OriginUnavailableError:
        """Copy of this error, of the same type, carrying ``stale``."""
        clone = self.__class__.__new__(self.__class__)
        clone.args = self.args
        clone.__dict__.update(self.__dict__)
        clone.stale = stale
        return clone


class OriginTimeoutError(OriginUnavailableError):
    """The origin did not answer in time."""


class OriginNetworkError(OriginUnavailableError):
    """The origin could not be reached."""


class OriginHTTPError(OriginUnavailableError):
    """The origin answered with a non-2xx status."""

    def __init__(
        self,
        status_code: int,
        *,
        key: str | None = None,
        stale: CacheEntry | None = None,
    ) -> None:
        super().__init__(f"Origin returned HTTP {status_code}", key=key, stale=stale)
        self.status_code = status_code
