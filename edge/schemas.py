"""Pydantic schemas for the edge node's wire formats and API responses.

Schema Hierarchy
=================
::
    PathRecord (origin → edge, GET /internal/sync/paths)
    ├─ hostname: str
    ├─ short_path: str
    └─ original_url: str

    AccessLogEntry (edge → origin, POST /internal/sync/logs; also the
    serialized form stored in the log buffer)
    ├─ hostname: str
    ├─ short_path: str
    ├─ ip_address: str | None
    ├─ user_agent: str | None
    ├─ country: str ("Unknown" when geo lookup fails)
    └─ timestamp: datetime (UTC)

    PushAcknowledgement (origin → edge)
    └─ success: bool

    SyncReport / HealthResponse / StatusResponse (edge → operators)

Key Behaviours
===============
- Unknown fields sent by the origin are ignored.
- Timestamps are always timezone-aware UTC.
- ``PATH_RECORDS`` and ``ACCESS_LOG_ENTRIES`` are TypeAdapters for the list
  payloads exchanged with the origin.
"""

import datetime

from pydantic import BaseModel, Field, TypeAdapter

from edge.enums import HealthStatus, SyncKind, SyncStatus

__all__ = [
    "ACCESS_LOG_ENTRIES",
    "PATH_RECORDS",
    "UNKNOWN_COUNTRY",
    "AccessLogEntry",
    "HealthResponse",
    "PathRecord",
    "PushAcknowledgement",
    "StatusResponse",
    "SyncReport",
]

UNKNOWN_COUNTRY = "Unknown"


def _utcnow() -> datetime.datetime:
    return datetime.datetime.now(datetime.timezone.utc)


class PathRecord(BaseModel):
    """One row of the origin's global mapping table."""

    hostname: str
    short_path: str
    original_url: str


class AccessLogEntry(BaseModel):
    """One recorded redirect, buffered locally until the origin accepts it."""

    hostname: str
    short_path: str
    ip_address: str | None = None
    user_agent: str | None = None
    country: str = UNKNOWN_COUNTRY
    timestamp: datetime.datetime = Field(default_factory=_utcnow)


class PushAcknowledgement(BaseModel):
    success: bool


PATH_RECORDS = TypeAdapter(list[PathRecord])
ACCESS_LOG_ENTRIES = TypeAdapter(list[AccessLogEntry])


class SyncReport(BaseModel):
    """Outcome of a single pull or push operation."""

    kind: SyncKind
    status: SyncStatus
    count: int = Field(0, description="Paths installed or log entries flushed.", ge=0)
    error: str | None = None
    started_at: datetime.datetime = Field(default_factory=_utcnow)
    duration_ms: float = 0.0


class HealthResponse(BaseModel):
    status: HealthStatus
    store: HealthStatus
    origin: HealthStatus


class StatusResponse(BaseModel):
    edge_hostname: str
    cached_paths: int
    buffered_logs: int
    scheduler_running: bool
    last_path_sync: SyncReport | None = None
    last_log_sync: SyncReport | None = None
