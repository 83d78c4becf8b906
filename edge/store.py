"""Local store abstraction and its Redis implementation.

The edge node keeps exactly two collections per edge identity: a hash of
``short_path -> original_url`` and a list of serialized access log entries.
Both are reached through the small ``KeyValueStore`` protocol so the path
cache and log buffer can run against an in-memory fake in tests.

Flow Diagram — Store Operations
=============================
::
    ┌─────────────┐        ┌─────────────┐
    │  PathCache  │        │  LogBuffer  │
    │ hget / hlen │        │ rpush/lrange│
    │ replace_hash│        │ ltrim_head  │
    └──────┬──────┘        └──────┬──────┘
           └──────────┬───────────┘
                      ▼
              ┌──────────────┐
              │ KeyValueStore│
              │  (protocol)  │
              └──────┬───────┘
                     ▼
              ┌──────────────┐
              │  RedisStore  │──► RedisError → StoreUnavailableError
              └──────────────┘

How to Use
===========
**Step 1 — Build from settings**::
    store = RedisStore.from_url(settings.REDIS_URL)

**Step 2 — Check it at startup**::
    await store.ping()   # raises StoreUnavailableError

**Step 3 — Cleanup on shutdown**::
    await store.close()

Key Behaviours
===============
- ``replace_hash`` deletes and rewrites the hash inside one MULTI/EXEC
  transaction, so readers see the old set or the new set, never a mix.
- ``rpush`` appends at the tail; ``ltrim_head`` removes from the head. The
  two ends never overlap, which keeps count-based trimming exact.
- Every Redis failure surfaces as ``StoreUnavailableError``.
"""

from collections.abc import Iterator, Mapping
from contextlib import contextmanager
from typing import Protocol

import redis.asyncio as redis
from redis.exceptions import RedisError

from edge.exceptions import StoreUnavailableError

__all__ = ["KeyValueStore", "RedisStore"]


class KeyValueStore(Protocol):
    async def ping(self) -> bool: ...

    async def hget(self, key: str, field: str) -> str | None: ...

    async def hlen(self, key: str) -> int: ...

    async def replace_hash(self, key: str, mapping: Mapping[str, str]) -> None: ...

    async def rpush(self, key: str, value: str) -> int: ...

    async def lrange(self, key: str, start: int, end: int) -> list[str]: ...

    async def ltrim_head(self, key: str, count: int) -> None: ...

    async def llen(self, key: str) -> int: ...

    async def close(self) -> None: ...


@contextmanager
def _store_errors(operation: str) -> Iterator[None]:
    try:
        yield
    except RedisError as exc:
        raise StoreUnavailableError(f"store {operation} failed: {exc}") from exc


class RedisStore:
    """``KeyValueStore`` backed by ``redis.asyncio``."""

    def __init__(self, client: redis.Redis):
        self._client = client

    @classmethod
    def from_url(cls, url: str) -> "RedisStore":
        return cls(
            redis.from_url(
                url,
                encoding="utf-8",
                decode_responses=True,
            )
        )

    async def ping(self) -> bool:
        with _store_errors("ping"):
            return bool(await self._client.ping())

    async def hget(self, key: str, field: str) -> str | None:
        with _store_errors("hget"):
            return await self._client.hget(key, field)

    async def hlen(self, key: str) -> int:
        with _store_errors("hlen"):
            return int(await self._client.hlen(key))

    async def replace_hash(self, key: str, mapping: Mapping[str, str]) -> None:
        if not mapping:
            return
        with _store_errors("replace_hash"):
            async with self._client.pipeline(transaction=True) as pipe:
                pipe.delete(key)
                pipe.hset(key, mapping=dict(mapping))
                await pipe.execute()

    async def rpush(self, key: str, value: str) -> int:
        with _store_errors("rpush"):
            return int(await self._client.rpush(key, value))

    async def lrange(self, key: str, start: int, end: int) -> list[str]:
        with _store_errors("lrange"):
            return list(await self._client.lrange(key, start, end))

    async def ltrim_head(self, key: str, count: int) -> None:
        """Remove the first ``count`` elements of the list."""
        if count <= 0:
            return
        with _store_errors("ltrim"):
            await self._client.ltrim(key, count, -1)

    async def llen(self, key: str) -> int:
        with _store_errors("llen"):
            return int(await self._client.llen(key))

    async def close(self) -> None:
        await self._client.aclose()
