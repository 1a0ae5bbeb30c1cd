"""Redis entry store."""

from __future__ import annotations

import base64
import json
import logging
from uuid import uuid4

import redis.asyncio

from swr_fetch.duration import Duration, parse_duration
from swr_fetch.types import CachedResponse, CacheEntry

logger = logging.getLogger(__name__)

# KEYS[1] entry key; ARGV: serialized entry, fetched_at, tag key prefix, cache key
_PUT_IF_NEWER = """
local current = redis.call('GET', KEYS[1])
if current then
  local stored = cjson.decode(current)
  if tonumber(stored['fetched_at']) > tonumber(ARGV[2]) then
    return 0
  end
  for _, tag in ipairs(stored['tags']) do
    redis.call('SREM', ARGV[3] .. tag, ARGV[4])
  end
end
redis.call('SET', KEYS[1], ARGV[1])
local entry = cjson.decode(ARGV[1])
for _, tag in ipairs(entry['tags']) do
  redis.call('SADD', ARGV[3] .. tag, ARGV[4])
end
return 1
"""

# KEYS[1] refresh flag key; ARGV[1] token of the grant being released
_RELEASE_IF_OWNER = """
if redis.call('GET', KEYS[1]) == ARGV[1] then
  return redis.call('DEL', KEYS[1])
end
return 0
"""


def _serialize_entry(entry: CacheEntry) -> str:
    """Serialize a cache entry to JSON."""
    response = entry.response
    return json.dumps(
        {
            "key": entry.key,
            "response": {
                "status_code": response.status_code,
                "headers": [list(pair) for pair in response.headers],
                "content": base64.b64encode(response.content).decode("ascii"),
                "url": response.url,
            },
            "fetched_at": entry.fetched_at,
            "revalidate_after": entry.revalidate_after,
            "expires_after": entry.expires_after,
            "tags": sorted(entry.tags),
        }
    )


def _deserialize_entry(data: bytes | str) -> CacheEntry:
    """Deserialize JSON to a cache entry."""
    if isinstance(data, bytes):
        data = data.decode("utf-8")
    obj = json.loads(data)
    response = obj["response"]
    return CacheEntry(
        key=obj["key"],
        response=CachedResponse(
            status_code=response["status_code"],
            headers=tuple((name, value) for name, value in response["headers"]),
            content=base64.b64decode(response["content"]),
            url=response["url"],
        ),
        fetched_at=obj["fetched_at"],
        revalidate_after=obj["revalidate_after"],
        expires_after=obj["expires_after"],
        tags=frozenset(obj["tags"]),
    )


class AsyncRedisStore:
    """Async Redis entry store.

    The refresh flag is a ``SET NX`` key with a lease, so a worker that dies
    mid-refresh cannot block its key forever. Keep the lease longer than the
    origin timeout. Each grant holds a random token, and only its holder can
    release the flag.

    Single-node Redis only: the put script writes tag sets whose keys are
    not passed through ``KEYS``, which Redis Cluster does not allow.
    """

    def __init__(
        self,
        client: redis.asyncio.Redis,
        *,
        prefix: str = "swr",
        refresh_lease: Duration = "60s",
    ) -> None:
        self._client = client
        self._prefix = prefix
        self._lease_ms = int(parse_duration(refresh_lease) * 1000)
        if self._lease_ms <= 0:
            raise ValueError("refresh_lease must be positive")
        self._put_script = client.register_script(_PUT_IF_NEWER)
        self._release_script = client.register_script(_RELEASE_IF_OWNER)
        # Tokens of grants this store holds, oldest first
        self._tokens: dict[str, list[str]] = {}

    def _entry_key(self, key: str) -> str:
        """Generate full Redis key for cache entries."""
        return f"{self._prefix}:entry:{key}"

    def _refresh_key(self, key: str) -> str:
        """Generate full Redis key for refresh flags."""
        return f"{self._prefix}:refresh:{key}"

    def _tag_key(self, tag: str) -> str:
        """Generate full Redis key for tag membership sets."""
        return f"{self._prefix}:tag:{tag}"

    async def get(self, key: str) -> CacheEntry | None:
        """Get a cache entry by key."""
        data = await self._client.get(self._entry_key(key))
        if data is None:
            return None
        return _deserialize_entry(data)

    async def put(self, key: str, entry: CacheEntry) -> bool:
        """Store an entry unless the stored one is newer."""
        stored = await self._put_script(
            keys=[self._entry_key(key)],
            args=[
                _serialize_entry(entry),
                repr(entry.fetched_at),
                self._tag_key(""),
                key,
            ],
        )
        if not int(stored):
            logger.debug(
                "Ignoring older entry: key=%r fetched_at=%.3f", key, entry.fetched_at
            )
            return False
        return True

    async def delete(self, key: str) -> None:
        """Delete a cache entry and its tag memberships."""
        entry = await self.get(key)
        async with self._client.pipeline(transaction=True) as pipe:
            pipe.delete(self._entry_key(key))
            if entry is not None:
                for tag in entry.tags:
                    pipe.srem(self._tag_key(tag), key)
            await pipe.execute()

    async def try_begin_refresh(self, key: str) -> bool:
        """Claim the refresh flag for a key (``SET NX PX`` with a token)."""
        token = uuid4().hex
        granted = await self._client.set(
            self._refresh_key(key), token, nx=True, px=self._lease_ms
        )
        if not granted:
            return False
        self._tokens.setdefault(key, []).append(token)
        return True

    async def end_refresh(self, key: str) -> None:
        """Release the refresh flag for a key, if this store still owns it.

        A grant whose lease lapsed may since have gone to another worker;
        that worker's flag is left alone.
        """
        tokens = self._tokens.get(key)
        if not tokens:
            return
        token = tokens.pop(0)
        if not tokens:
            del self._tokens[key]
        released = await self._release_script(
            keys=[self._refresh_key(key)], args=[token]
        )
        if not int(released):
            logger.debug("Refresh lease lapsed before release: key=%r", key)

    async def is_refreshing(self, key: str) -> bool:
        """Whether the refresh flag for a key is held."""
        return bool(await self._client.exists(self._refresh_key(key)))

    async def tagged_keys(self, tag: str) -> set[str]:
        """Keys whose current entry carries ``tag``."""
        members = await self._client.smembers(self._tag_key(tag))
        return {m.decode("utf-8") if isinstance(m, bytes) else m for m in members}

    async def clear(self) -> None:
        """Clear all cached entries and tag sets (but not refresh flags)."""
        for pattern in (f"{self._prefix}:entry:*", f"{self._prefix}:tag:*"):
            cursor: int = 0
            while True:
                result = await self._client.scan(cursor, match=pattern, count=100)
                cursor = result[0]
                keys = result[1]
                if keys:
                    await self._client.delete(*keys)
                if cursor == 0:
                    break

    async def disconnect(self) -> None:
        """Close the Redis connection."""
        await self._client.aclose()
