"""Cache key generation for HTTP requests."""

from __future__ import annotations

import hashlib
import json
from collections.abc import Iterable, Mapping

import httpx


def normalize_url(url: str) -> str:
    """Normalize a URL for use in a cache key.

    httpx normalizes scheme and host, the fragment is dropped and query
    parameters are sorted so ``?b=2&a=1`` and ``?a=1&b=2`` share a key.
    """
    parsed = httpx.URL(url.split("#", 1)[0])
    params = sorted(parsed.params.multi_items())
    return str(parsed.copy_with(params=params or None))


def make_cache_key(
    url: str,
    *,
    method: str = "GET",
    content: bytes | None = None,
    headers: Mapping[str, str] | None = None,
    vary: Iterable[str] = (),
    prefix: str = "swr",
) -> str:
    """Generate a cache key from a request.

    Only headers named in ``vary`` take part in the key.
    """
    key = f"{prefix}:{method.upper()}:{normalize_url(url)}"

    lowered = {k.lower(): v for k, v in (headers or {}).items()}
    varied = {name.lower(): lowered.get(name.lower()) for name in vary}
    if content or varied:
        digest = hashlib.sha256(content or b"")
        digest.update(json.dumps(varied, sort_keys=True, default=str).encode())
        key = f"{key}:{digest.hexdigest()[:16]}"
    return key
