"""Per-identity table of ``short_path -> original_url``.

Read on every request, rewritten wholesale once per sync cycle. The redirect
path never inserts or deletes entries.
"""

import logging
from collections.abc import Iterable, Mapping

from edge.schemas import PathRecord
from edge.store import KeyValueStore

__all__ = ["PathCache", "filter_for_identity"]

logger = logging.getLogger(__name__)


def filter_for_identity(records: Iterable[PathRecord], edge_identity: str) -> dict[str, str]:
    """Keep the records addressed to ``edge_identity``; later duplicates win."""
    return {
        record.short_path: record.original_url
        for record in records
        if record.hostname == edge_identity
    }


class PathCache:
    def __init__(self, store: KeyValueStore, key_prefix: str, edge_identity: str):
        self._store = store
        self._key_prefix = key_prefix
        self.edge_identity = edge_identity

    def key_for(self, edge_identity: str) -> str:
        return f"{self._key_prefix}:{edge_identity}"

    async def lookup(self, short_path: str) -> str | None:
        """Return the destination for ``short_path`` or ``None`` on a miss.

        Raises:
            StoreUnavailableError: If the store cannot answer.
        """
        return await self._store.hget(self.key_for(self.edge_identity), short_path)

    async def replace_all(self, edge_identity: str, mapping: Mapping[str, str]) -> int:
        """Atomically install ``mapping`` as the whole set for ``edge_identity``.

        An empty mapping leaves the previous set in place, so a transient empty
        answer from the origin cannot blank out a working node.

        Returns:
            int: Number of paths installed (0 when nothing changed).
        """
        if not mapping:
            logger.debug("Empty mapping for %s; keeping previous set", edge_identity)
            return 0
        await self._store.replace_hash(self.key_for(edge_identity), mapping)
        return len(mapping)

    async def size(self) -> int:
        return await self._store.hlen(self.key_for(self.edge_identity))
