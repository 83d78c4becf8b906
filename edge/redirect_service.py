"""Request-facing read path: resolve a short path and record the access.

Redirect Flow Diagram
=====================
::
    ┌─────────────┐
    │ GET /:path  │
    └──────┬──────┘
           ▼
    ┌─────────────┐   store error
    │ PathCache   │──────────────► StoreUnavailableError (500)
    │ .lookup()   │
    └──────┬──────┘
    HIT?  │
    ┌─────┴─────┐
    │ NO         │ YES
    ▼            ▼
┌─────────┐  ┌──────────────┐
│ None    │  │ geo(ip) +    │
│ (404)   │  │ LogBuffer    │  append failure is logged,
└─────────┘  │ .append()    │  the redirect still happens
             └──────┬───────┘
                    ▼
             destination (302)
"""

import logging

from prometheus_client import Counter

from edge.enums import LookupStatus
from edge.exceptions import EdgeError
from edge.geo import GeoLocator
from edge.log_buffer import LogBuffer
from edge.path_cache import PathCache
from edge.schemas import AccessLogEntry

__all__ = ["RedirectService"]

logger = logging.getLogger(__name__)

REDIRECT_LOOKUPS_TOTAL = Counter(
    "edge_redirect_lookups_total",
    "Redirect lookups by outcome",
    ["status"],
)
LOG_APPEND_FAILURES_TOTAL = Counter(
    "edge_log_append_failures_total",
    "Access log entries that could not be written to the local buffer",
)


class RedirectService:
    def __init__(self, path_cache: PathCache, log_buffer: LogBuffer, geo: GeoLocator):
        self._path_cache = path_cache
        self._log_buffer = log_buffer
        self._geo = geo

    async def resolve(self, short_path: str, client_ip: str | None, user_agent: str | None) -> str | None:
        """Return the destination for ``short_path``, recording the hit.

        Raises:
            StoreUnavailableError: If the lookup itself failed.
        """
        try:
            destination = await self._path_cache.lookup(short_path)
        except EdgeError:
            REDIRECT_LOOKUPS_TOTAL.labels(status=LookupStatus.ERROR).inc()
            raise

        if destination is None:
            REDIRECT_LOOKUPS_TOTAL.labels(status=LookupStatus.MISS).inc()
            return None

        REDIRECT_LOOKUPS_TOTAL.labels(status=LookupStatus.HIT).inc()
        await self._record_access(short_path, client_ip, user_agent)
        return destination

    async def _record_access(self, short_path: str, client_ip: str | None, user_agent: str | None) -> None:
        """Enrich and buffer one access entry. Never raises."""
        try:
            entry = AccessLogEntry(
                hostname=self._path_cache.edge_identity,
                short_path=short_path,
                ip_address=client_ip,
                user_agent=user_agent,
                country=self._geo.country(client_ip),
            )
            await self._log_buffer.append(entry)
        except EdgeError as exc:
            LOG_APPEND_FAILURES_TOTAL.inc()
            logger.warning(f"Failed to buffer access log for {short_path}: {exc}")
        except Exception:
            LOG_APPEND_FAILURES_TOTAL.inc()
            logger.exception(f"Unexpected error recording access for {short_path}")
