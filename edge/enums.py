"""Shared enums for the edge redirect node.

This module defines all status and state enums used across the codebase.
Using enums instead of string literals provides type safety and prevents typos.
"""

from enum import StrEnum

__all__ = ["HealthStatus", "LookupStatus", "SyncKind", "SyncStatus"]


class HealthStatus(StrEnum):
    """Health check status values."""

    HEALTHY = "healthy"
    UNHEALTHY = "unhealthy"
    UNKNOWN = "unknown"


class LookupStatus(StrEnum):
    """Outcome of a redirect lookup, used as a metrics label."""

    HIT = "hit"
    MISS = "miss"
    ERROR = "error"


class SyncKind(StrEnum):
    """The two independent halves of a sync cycle."""

    PATHS = "paths"
    LOGS = "logs"


class SyncStatus(StrEnum):
    """Result of one sync operation."""

    SUCCESS = "success"
    NOOP = "noop"
    FAILED = "failed"
