"""Dependency wiring for the edge node.

``ServiceManager`` owns every long-lived resource (store handle, origin
client, geo reader, scheduler) and is constructed explicitly, then attached to
``app.state``. Route handlers reach it through FastAPI dependencies, so tests
can hand the app a manager built on fakes.
"""

import logging
import time
from dataclasses import dataclass, field

from fastapi import Depends, Request

from edge.config import Settings
from edge.enums import HealthStatus
from edge.exceptions import StoreUnavailableError
from edge.geo import GeoLocator
from edge.log_buffer import LogBuffer
from edge.origin import OriginClient
from edge.path_cache import PathCache
from edge.redirect_service import RedirectService
from edge.store import KeyValueStore, RedisStore
from edge.sync import SyncScheduler, SyncService

__all__ = [
    "RequestContext",
    "ServiceManager",
    "get_redirect_service",
    "get_request_context",
    "get_service_manager",
]


# ============================================================================
# SERVICE MANAGER
# ============================================================================


class ServiceManager:
    """Holds shared resources for the lifetime of the process."""

    def __init__(
        self,
        settings: Settings,
        store: KeyValueStore,
        origin: OriginClient,
        geo: GeoLocator | None = None,
    ):
        self.settings = settings
        self.logger = self._setup_logger()
        self.store = store
        self.origin = origin
        self.geo = geo or GeoLocator()
        self.origin_status = HealthStatus.UNKNOWN

        self.path_cache = PathCache(store, settings.PATHS_KEY_PREFIX, settings.EDGE_HOSTNAME)
        self.log_buffer = LogBuffer(store, settings.LOG_BUFFER_KEY_PREFIX, settings.EDGE_HOSTNAME)
        self.sync_service = SyncService(self.path_cache, self.log_buffer, origin)
        self.scheduler = SyncScheduler(self.sync_service, settings.SYNC_INTERVAL_SECONDS)
        self.redirect_service = RedirectService(self.path_cache, self.log_buffer, self.geo)

    @classmethod
    def from_settings(cls, settings: Settings) -> "ServiceManager":
        return cls(
            settings=settings,
            store=RedisStore.from_url(settings.REDIS_URL),
            origin=OriginClient.from_settings(settings),
            geo=GeoLocator.from_path(settings.GEOIP_DATABASE_PATH),
        )

    def _setup_logger(self) -> logging.Logger:
        """Configure the package logger once."""
        logger = logging.getLogger("edge")
        if not logger.handlers:
            handler = logging.StreamHandler()
            formatter = logging.Formatter("%(asctime)s - %(name)s - %(levelname)s - %(message)s")
            handler.setFormatter(formatter)
            logger.addHandler(handler)
        logger.setLevel(self.settings.LOG_LEVEL.upper())
        return logger

    async def startup(self) -> None:
        """Check dependencies, warm the path cache and start syncing.

        Raises:
            StoreUnavailableError: If the local store is unreachable. The node
                must not serve traffic without it.
        """
        self.logger.info("Checking dependencies...")
        try:
            await self.store.ping()
        except StoreUnavailableError as exc:
            self.logger.error(f"Redis connection: FAILED: {exc}")
            raise
        self.logger.info("Redis connection: SUCCESS")

        reachable = await self.origin.check_connectivity()
        self.origin_status = HealthStatus.HEALTHY if reachable else HealthStatus.UNHEALTHY

        await self.sync_service.sync_paths()
        self.scheduler.start()
        self.logger.info(
            f"Edge node {self.settings.EDGE_HOSTNAME} ready on port {self.settings.EDGE_PORT}"
        )

    async def cleanup(self) -> None:
        """Stop syncing and release shared resources at shutdown."""
        await self.scheduler.stop()
        await self.origin.close()
        await self.store.close()
        self.geo.close()


# ============================================================================
# LIGHTWEIGHT REQUEST CONTEXT
# ============================================================================


class _RequestLoggerAdapter(logging.LoggerAdapter):
    """Merges call-site ``extra`` over the request context instead of replacing it."""

    def process(self, msg, kwargs):
        kwargs["extra"] = {**self.extra, **(kwargs.get("extra") or {})}
        return msg, kwargs


@dataclass
class RequestContext:
    """Per-request client metadata plus access to shared resources."""

    service_manager: ServiceManager
    client_ip: str | None = None
    user_agent: str | None = None
    start_time: float = field(default_factory=time.time)

    @property
    def logger(self) -> logging.LoggerAdapter:
        return _RequestLoggerAdapter(
            self.service_manager.logger,
            {"client_ip": self.client_ip, "user_agent": self.user_agent},
        )

    def get_duration(self) -> float:
        """Get request duration in milliseconds."""
        return (time.time() - self.start_time) * 1000


# ============================================================================
# DEPENDENCY FUNCTIONS
# ============================================================================


def get_service_manager(request: Request) -> ServiceManager:
    return request.app.state.service_manager


def get_request_context(
    request: Request,
    manager: ServiceManager = Depends(get_service_manager),
) -> RequestContext:
    return RequestContext(
        service_manager=manager,
        client_ip=request.client.host if request.client else None,
        user_agent=request.headers.get("user-agent"),
    )


def get_redirect_service(manager: ServiceManager = Depends(get_service_manager)) -> RedirectService:
    return manager.redirect_service
