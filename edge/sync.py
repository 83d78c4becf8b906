"""Periodic reconciliation between the local store and the origin service.

Sync Cycle Diagram
==================
::
        every SYNC_INTERVAL_SECONDS
                  │
                  ▼
         ┌─────────────────┐   previous cycle
         │ SyncScheduler   │── still running? ──► skip tick
         │ .tick()         │
         └────────┬────────┘
                  ▼
         ┌─────────────────┐
         │ run_cycle()     │
         └───┬─────────┬───┘
             ▼         ▼         (concurrent, independent)
      sync_paths()   sync_logs()
      GET paths      LRANGE → POST logs
      filter by id   → LTRIM on success
      replace_all

Key Behaviours
===============
- A failure in one half never aborts the other; each returns a SyncReport.
- Sync errors are logged and swallowed; the next tick retries at the same
  cadence, without backoff.
- At most one cycle is in flight; ticks that arrive while one is running are
  skipped.
- Ticks follow a fixed cadence measured from scheduler start, so slow cycles
  do not push later ticks back.
"""

import asyncio
import contextlib
import logging
import time

from prometheus_client import Counter, Gauge

from edge.enums import SyncKind, SyncStatus
from edge.exceptions import EdgeError
from edge.log_buffer import LogBuffer
from edge.origin import OriginClient
from edge.path_cache import PathCache, filter_for_identity
from edge.schemas import SyncReport

__all__ = ["SyncScheduler", "SyncService"]

logger = logging.getLogger(__name__)

SYNC_RUNS_TOTAL = Counter(
    "edge_sync_runs_total",
    "Sync operations by kind and outcome",
    ["kind", "status"],
)
SYNC_TICKS_SKIPPED_TOTAL = Counter(
    "edge_sync_ticks_skipped_total",
    "Scheduler ticks skipped because the previous cycle was still running",
)
LOG_BUFFER_ENTRIES = Gauge(
    "edge_log_buffer_entries",
    "Access log entries waiting in the local buffer after the last drain",
)


class SyncService:
    """Runs the pull (paths) and push (logs) halves of a sync cycle."""

    def __init__(self, path_cache: PathCache, log_buffer: LogBuffer, origin: OriginClient):
        self._path_cache = path_cache
        self._log_buffer = log_buffer
        self._origin = origin
        self.last_reports: dict[SyncKind, SyncReport] = {}

    async def sync_paths(self) -> SyncReport:
        """Pull the global table, keep this node's rows, replace the cache."""
        start_time = time.perf_counter()
        identity = self._path_cache.edge_identity
        try:
            records = await self._origin.fetch_paths()
            mapping = filter_for_identity(records, identity)
            installed = await self._path_cache.replace_all(identity, mapping)
        except EdgeError as exc:
            logger.error(f"[Sync] Path sync failed: {exc}")
            return self._record(SyncKind.PATHS, SyncStatus.FAILED, start_time, error=str(exc))

        if installed:
            logger.info(f"[Sync] Updated {installed} paths.")
            return self._record(SyncKind.PATHS, SyncStatus.SUCCESS, start_time, count=installed)

        logger.info(f"[Sync] No paths for {identity} in {len(records)} origin records; keeping cached set.")
        return self._record(SyncKind.PATHS, SyncStatus.NOOP, start_time)

    async def sync_logs(self) -> SyncReport:
        """Drain the log buffer to the origin."""
        start_time = time.perf_counter()
        try:
            flushed = await self._log_buffer.drain_and_push(self._origin)
        except EdgeError as exc:
            logger.error(f"[Sync] Log flush failed: {exc}")
            return self._record(SyncKind.LOGS, SyncStatus.FAILED, start_time, error=str(exc))

        try:
            LOG_BUFFER_ENTRIES.set(await self._log_buffer.size())
        except EdgeError as exc:
            logger.debug(f"[Sync] Could not read log buffer size: {exc}")

        if flushed:
            logger.info(f"[Sync] Flushed {flushed} logs.")
            return self._record(SyncKind.LOGS, SyncStatus.SUCCESS, start_time, count=flushed)
        return self._record(SyncKind.LOGS, SyncStatus.NOOP, start_time)

    async def run_cycle(self) -> list[SyncReport]:
        results = await asyncio.gather(self.sync_paths(), self.sync_logs(), return_exceptions=True)
        reports: list[SyncReport] = []
        for kind, result in zip((SyncKind.PATHS, SyncKind.LOGS), results):
            if isinstance(result, BaseException):
                if isinstance(result, asyncio.CancelledError):
                    raise result
                logger.error(f"[Sync] Unexpected {kind} sync error", exc_info=result)
                continue
            reports.append(result)
        return reports

    def _record(
        self,
        kind: SyncKind,
        status: SyncStatus,
        start_time: float,
        count: int = 0,
        error: str | None = None,
    ) -> SyncReport:
        report = SyncReport(
            kind=kind,
            status=status,
            count=count,
            error=error,
            duration_ms=(time.perf_counter() - start_time) * 1000,
        )
        SYNC_RUNS_TOTAL.labels(kind=kind, status=status).inc()
        self.last_reports[kind] = report
        return report


class SyncScheduler:
    """Cancellable fixed-cadence trigger with a skip-if-busy guard."""

    def __init__(self, sync_service: SyncService, interval_seconds: float):
        if interval_seconds <= 0:
            raise ValueError("Sync interval must be positive")
        self._sync = sync_service
        self._interval = interval_seconds
        self._ticker: asyncio.Task | None = None
        self._cycle: asyncio.Task | None = None

    @property
    def running(self) -> bool:
        return self._ticker is not None and not self._ticker.done()

    @property
    def busy(self) -> bool:
        return self._cycle is not None and not self._cycle.done()

    def start(self) -> None:
        if self.running:
            return
        logger.info(f"Starting sync scheduler every {self._interval}s")
        self._ticker = asyncio.create_task(self._run(), name="edge-sync-ticker")

    def tick(self) -> bool:
        """Start a cycle unless one is in flight. Returns whether one started."""
        if self.busy:
            SYNC_TICKS_SKIPPED_TOTAL.inc()
            logger.warning("[Sync] Previous cycle still running; skipping tick")
            return False
        self._cycle = asyncio.create_task(self._sync.run_cycle(), name="edge-sync-cycle")
        return True

    async def wait_idle(self) -> None:
        if self._cycle is not None:
            with contextlib.suppress(asyncio.CancelledError):
                await self._cycle

    async def stop(self) -> None:
        if self._ticker is not None:
            self._ticker.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await self._ticker
            self._ticker = None
        await self.wait_idle()
        logger.info("Sync scheduler stopped")

    async def _run(self) -> None:
        loop = asyncio.get_running_loop()
        next_tick = loop.time() + self._interval
        while True:
            await asyncio.sleep(max(0.0, next_tick - loop.time()))
            next_tick += self._interval
            self.tick()
