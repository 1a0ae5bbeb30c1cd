"""Freshness policy.

Pure functions: no I/O and no clock access, the caller supplies ``now``.
A boundary instant always belongs to the later state, so an entry with a
5 second revalidate window is already STALE at exactly 5 seconds of age.
"""

from swr_fetch.types import CacheEntry, Freshness


def classify(
    now: float,
    entry: CacheEntry | None,
    revalidate_after: float,
    expires_after: float | None,
) -> Freshness:
    """Classify ``entry`` as MISS, FRESH, STALE or EXPIRED at time ``now``."""
    if entry is None:
        return Freshness.MISS

    age = now - entry.fetched_at
    if age < revalidate_after:
        return Freshness.FRESH
    if expires_after is None or age < expires_after:
        return Freshness.STALE
    return Freshness.EXPIRED


def entry_age(now: float, entry: CacheEntry) -> float:
    """Seconds since ``entry`` was fetched, never negative."""
    return max(0.0, now - entry.fetched_at)


def expires_in(
    now: float, entry: CacheEntry, expires_after: float | None
) -> float | None:
    """Seconds until ``entry`` becomes EXPIRED, or None if it never does."""
    if expires_after is None:
        return None
    return max(0.0, entry.fetched_at + expires_after - now)
