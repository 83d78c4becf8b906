"""Append-ordered buffer of access log entries awaiting delivery to the origin.

Flow Diagram — drain_and_push()
===============================
::
    redirect hits ──RPUSH──►  [ e0 e1 e2 | e3 e4 ]  ◄── appended during push
                               └─snapshot─┘
                                    │ LRANGE 0 -1
                                    ▼
                             POST /internal/sync/logs
                                    │
                         success?   │
                       ┌────────────┴───────────┐
                       │ NO                      │ YES
                       ▼                         ▼
                 leave buffer as is        LTRIM len(snapshot) -1
                 (resent next cycle)       → [ e3 e4 ]

Key Behaviours
===============
- Entries are appended at the tail and removed from the head, so trimming by
  snapshot length removes exactly the entries that were sent.
- Only one drain runs at a time per process. The lock is process-local, so the
  node must run as a single worker; `edge.main.run` pins `workers=1`.
- Delivery is at-least-once: a push the origin never acknowledged is resent
  in full on the next cycle.
- Entries that no longer parse are left out of the payload and dropped with
  the snapshot once the push is acknowledged.
"""

import asyncio
import logging

from pydantic import ValidationError

from edge.exceptions import OriginError
from edge.origin import OriginClient
from edge.schemas import AccessLogEntry
from edge.store import KeyValueStore

__all__ = ["LogBuffer"]

logger = logging.getLogger(__name__)


class LogBuffer:
    def __init__(self, store: KeyValueStore, key_prefix: str, edge_identity: str):
        self._store = store
        self.key = f"{key_prefix}:{edge_identity}"
        self._drain_lock = asyncio.Lock()

    async def append(self, entry: AccessLogEntry) -> int:
        """Add ``entry`` at the tail; returns the new buffer length."""
        return await self._store.rpush(self.key, entry.model_dump_json())

    async def size(self) -> int:
        return await self._store.llen(self.key)

    async def snapshot(self) -> list[str]:
        return await self._store.lrange(self.key, 0, -1)

    async def drain_and_push(self, origin: OriginClient) -> int:
        """Push everything buffered so far and trim what the origin accepted.

        Returns:
            int: Number of entries removed from the buffer.

        Raises:
            OriginError: If the push failed or was not acknowledged. Nothing
                is removed in that case.
            StoreUnavailableError: If the store failed.
        """
        async with self._drain_lock:
            raw_entries = await self.snapshot()
            if not raw_entries:
                return 0

            entries = self._parse(raw_entries)
            if entries:
                accepted = await origin.push_logs(entries)
                if not accepted:
                    raise OriginError(f"origin did not acknowledge {len(entries)} log entries")

            await self._store.ltrim_head(self.key, len(raw_entries))
            return len(raw_entries)

    def _parse(self, raw_entries: list[str]) -> list[AccessLogEntry]:
        entries: list[AccessLogEntry] = []
        for raw in raw_entries:
            try:
                entries.append(AccessLogEntry.model_validate_json(raw))
            except ValidationError:
                logger.warning("Dropping unparsable buffered log entry: %r", raw, exc_info=True)
        return entries
