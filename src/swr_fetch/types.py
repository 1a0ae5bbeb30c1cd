"""Core types for swr-fetch."""

from __future__ import annotations

import enum
import json
from dataclasses import dataclass, field, replace
from typing import Any

from swr_fetch.duration import Duration, parse_duration
from swr_fetch.errors import InvalidConfigError, OriginUnavailableError

# Cache keys are opaque strings - see swr_fetch.keys for how requests map to them
CacheKey = str

CACHE_STATUS_HEADER = "X-Cache-Status"
CACHE_AGE_HEADER = "X-Cache-Age"
CACHE_EXPIRES_IN_HEADER = "X-Cache-Expires-In"


class Freshness(str, enum.Enum):
    """Classification of an entry (or its absence) relative to now."""

    MISS = "MISS"
    FRESH = "FRESH"
    STALE = "STALE"
    EXPIRED = "EXPIRED"


class CacheStatus(str, enum.Enum):
    """Cache status reported to callers."""

    HIT = "HIT"
    STALE = "STALE"
    MISS = "MISS"


class RefreshStatus(str, enum.Enum):
    """Result of asking the refresher to refresh a key."""

    REFRESHED = "REFRESHED"
    IN_FLIGHT = "IN_FLIGHT"
    FAILED = "FAILED"


@dataclass(frozen=True, slots=True)
class CachedResponse:
    """An origin response held in memory."""

    status_code: int
    headers: tuple[tuple[str, str], ...] = ()
    content: bytes = b""
    url: str = ""

    @property
    def is_success(self) -> bool:
        return 200 <= self.status_code < 300

    @property
    def text(self) -> str:
        return self.content.decode("utf-8")

    def json(self) -> Any:
        return json.loads(self.content)

    def header(self, name: str, default: str | None = None) -> str | None:
        """Case-insensitive header lookup (first match wins)."""
        lowered = name.lower()
        for key, value in self.headers:
            if key.lower() == lowered:
                return value
        return default

    def with_headers(self, extra: dict[str, str]) -> CachedResponse:
        """Return a copy with ``extra`` headers replacing any of the same name."""
        names = {name.lower() for name in extra}
        kept = tuple((k, v) for k, v in self.headers if k.lower() not in names)
        return replace(self, headers=kept + tuple(extra.items()))


@dataclass(frozen=True, slots=True)
class CacheEntry:
    """A cached response with metadata."""

    key: CacheKey
    response: CachedResponse
    fetched_at: float  # Unix timestamp (seconds) the origin request was issued
    revalidate_after: float  # Fresh window, seconds
    expires_after: float | None  # Servable window, seconds; None never expires
    tags: frozenset[str] = field(default_factory=frozenset)


@dataclass(frozen=True, slots=True)
class FetchConfig:
    """Per-call cache configuration.

    ``revalidate`` is the length of the fresh window and ``expires`` the time
    after which the data is no longer servable at all. Both are measured from
    the fetch and accept anything :func:`parse_duration` does. ``expires=None``
    keeps stale data servable indefinitely.

    Invalid combinations raise :class:`InvalidConfigError` on construction.
    """

    revalidate: Duration
    expires: Duration | None = None
    tags: tuple[str, ...] = ()

    def __post_init__(self) -> None:
        try:
            revalidate = parse_duration(self.revalidate)
            expires = (
                parse_duration(self.expires) if self.expires is not None else None
            )
        except (TypeError, ValueError) as e:
            raise InvalidConfigError(str(e)) from e
        if expires is not None and revalidate > expires:
            raise InvalidConfigError(
                f"revalidate ({self.revalidate!r}) must not exceed "
                f"expires ({self.expires!r})"
            )
        if isinstance(self.tags, str):
            raise InvalidConfigError("tags must be a collection of strings")

    @property
    def revalidate_seconds(self) -> float:
        return parse_duration(self.revalidate)

    @property
    def expires_seconds(self) -> float | None:
        return parse_duration(self.expires) if self.expires is not None else None


@dataclass(frozen=True, slots=True)
class CacheResult:
    """What the cache served, annotated with its cache state."""

    response: CachedResponse
    status: CacheStatus
    age: float  # seconds since the served entry was fetched
    expires_in: float | None  # seconds until EXPIRED, None without an expiry

    @property
    def headers(self) -> dict[str, str]:
        """Cache annotation headers for this result."""
        headers = {
            CACHE_STATUS_HEADER: self.status.value,
            CACHE_AGE_HEADER: str(int(self.age)),
        }
        if self.expires_in is not None:
            headers[CACHE_EXPIRES_IN_HEADER] = str(int(self.expires_in))
        return headers

    def annotated(self) -> CacheResult:
        """Copy whose response carries the cache annotation headers."""
        return replace(self, response=self.response.with_headers(self.headers))


@dataclass(frozen=True, slots=True)
class RefreshOutcome:
    """Outcome of a single-flight refresh."""

    status: RefreshStatus
    entry: CacheEntry | None = None
    error: OriginUnavailableError | None = None
    # Set when the entry was read back from the store after another
    # process's refresh, so it may be the old entry left in place.
    observed: bool = False
