"""HTTP client for the origin service's sync endpoints.

Endpoint Overview
=================
::
    GET  {CORE_SERVICE_URL}/internal/sync/paths
        └─ [{hostname, short_path, original_url}, ...]

    POST {CORE_SERVICE_URL}/internal/sync/logs
        ├─ body: [{hostname, short_path, ip_address, user_agent, country, timestamp}, ...]
        └─ {success: bool}

Key Behaviours
===============
- Single attempt per call. Retrying is the scheduler's job, one cycle later.
- Every call is bounded by ``ORIGIN_TIMEOUT_SECONDS``.
- Transport errors, timeouts and non-2xx statuses raise ``OriginError``.
- Bodies that fail validation raise ``MalformedOriginResponseError``; nothing
  is partially returned.
"""

import logging
from collections.abc import Sequence

import httpx

from edge.config import Settings
from edge.exceptions import MalformedOriginResponseError, OriginError
from edge.schemas import ACCESS_LOG_ENTRIES, PATH_RECORDS, AccessLogEntry, PathRecord, PushAcknowledgement

__all__ = ["OriginClient", "PATHS_ENDPOINT", "LOGS_ENDPOINT"]

logger = logging.getLogger(__name__)

PATHS_ENDPOINT = "/internal/sync/paths"
LOGS_ENDPOINT = "/internal/sync/logs"


class OriginClient:
    """Typed wrapper around the origin's internal sync API."""

    def __init__(self, client: httpx.AsyncClient):
        self._client = client

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> "OriginClient":
        return cls(
            httpx.AsyncClient(
                base_url=settings.CORE_SERVICE_URL,
                timeout=httpx.Timeout(settings.ORIGIN_TIMEOUT_SECONDS),
                transport=transport,
            )
        )

    async def fetch_paths(self) -> list[PathRecord]:
        """Fetch the origin's global mapping table."""
        response = await self._request("GET", PATHS_ENDPOINT)
        try:
            return PATH_RECORDS.validate_python(response.json())
        except ValueError as exc:
            raise MalformedOriginResponseError(f"invalid paths payload: {exc}") from exc

    async def push_logs(self, entries: Sequence[AccessLogEntry]) -> bool:
        """Send buffered entries; return the origin's ``success`` flag."""
        payload = ACCESS_LOG_ENTRIES.dump_python(list(entries), mode="json")
        response = await self._request("POST", LOGS_ENDPOINT, json=payload)
        try:
            ack = PushAcknowledgement.model_validate(response.json())
        except ValueError as exc:
            raise MalformedOriginResponseError(f"invalid logs acknowledgement: {exc}") from exc
        return ack.success

    async def check_connectivity(self) -> bool:
        """Best-effort reachability probe used at startup; never raises."""
        try:
            await self._request("GET", PATHS_ENDPOINT)
        except OriginError as exc:
            logger.warning(f"Core Service connection: FAILED (will retry during sync): {exc}")
            return False
        logger.info("Core Service connection: SUCCESS")
        return True

    async def close(self) -> None:
        await self._client.aclose()

    async def _request(self, method: str, url: str, **kwargs) -> httpx.Response:
        try:
            response = await self._client.request(method, url, **kwargs)
            response.raise_for_status()
        except httpx.HTTPError as exc:
            raise OriginError(f"{method} {url} failed: {exc}") from exc
        return response
