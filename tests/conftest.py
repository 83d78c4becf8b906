"""Shared pytest fixtures: in-memory store, fake origin, wired app client."""

from collections.abc import AsyncGenerator, Awaitable, Callable, Mapping, Sequence
from unittest.mock import MagicMock

import pytest
import pytest_asyncio
from geoip2.errors import AddressNotFoundError
from httpx import ASGITransport, AsyncClient

from edge.config import Settings
from edge.dependencies import ServiceManager
from edge.exceptions import StoreUnavailableError
from edge.geo import GeoLocator
from edge.schemas import AccessLogEntry, PathRecord

EDGE_HOSTNAME = "edge-1"
CLIENT_IP = "81.2.69.142"

COUNTRIES_BY_IP = {
    CLIENT_IP: "GB",
    "203.0.113.9": "AU",
}


class InMemoryStore:
    """KeyValueStore fake with the same head/tail semantics as Redis lists."""

    def __init__(self) -> None:
        self.hashes: dict[str, dict[str, str]] = {}
        self.lists: dict[str, list[str]] = {}
        self.available = True

    def _check(self) -> None:
        if not self.available:
            raise StoreUnavailableError("store down")

    async def ping(self) -> bool:
        self._check()
        return True

    async def hget(self, key: str, field: str) -> str | None:
        self._check()
        return self.hashes.get(key, {}).get(field)

    async def hlen(self, key: str) -> int:
        self._check()
        return len(self.hashes.get(key, {}))

    async def replace_hash(self, key: str, mapping: Mapping[str, str]) -> None:
        self._check()
        if mapping:
            self.hashes[key] = dict(mapping)

    async def rpush(self, key: str, value: str) -> int:
        self._check()
        self.lists.setdefault(key, []).append(value)
        return len(self.lists[key])

    async def lrange(self, key: str, start: int, end: int) -> list[str]:
        self._check()
        items = self.lists.get(key, [])
        stop = None if end == -1 else end + 1
        return list(items[start:stop])

    async def ltrim_head(self, key: str, count: int) -> None:
        self._check()
        if count > 0 and key in self.lists:
            del self.lists[key][:count]

    async def llen(self, key: str) -> int:
        self._check()
        return len(self.lists.get(key, []))

    async def close(self) -> None:
        pass


class FakeOrigin:
    """Stands in for OriginClient; records every pushed batch."""

    def __init__(self) -> None:
        self.paths: list[PathRecord] = []
        self.fetch_error: Exception | None = None
        self.push_error: Exception | None = None
        self.acknowledge = True
        self.reachable = True
        self.pushed: list[list[AccessLogEntry]] = []
        self.fetch_calls = 0
        self.on_push: Callable[[Sequence[AccessLogEntry]], Awaitable[None]] | None = None
        self.closed = False

    async def fetch_paths(self) -> list[PathRecord]:
        self.fetch_calls += 1
        if self.fetch_error is not None:
            raise self.fetch_error
        return list(self.paths)

    async def push_logs(self, entries: Sequence[AccessLogEntry]) -> bool:
        if self.on_push is not None:
            await self.on_push(entries)
        if self.push_error is not None:
            raise self.push_error
        self.pushed.append(list(entries))
        return self.acknowledge

    async def check_connectivity(self) -> bool:
        return self.reachable

    async def close(self) -> None:
        self.closed = True


def make_entry(short_path: str = "abc", ip: str = CLIENT_IP) -> AccessLogEntry:
    return AccessLogEntry(
        hostname=EDGE_HOSTNAME,
        short_path=short_path,
        ip_address=ip,
        user_agent="pytest",
        country="GB",
    )


def fake_geo_reader(database_type: str = "GeoLite2-Country") -> MagicMock:
    def lookup(ip: str) -> MagicMock:
        if ip not in COUNTRIES_BY_IP:
            raise AddressNotFoundError(f"The address {ip} is not in the database.")
        response = MagicMock()
        response.country.iso_code = COUNTRIES_BY_IP[ip]
        return response

    reader = MagicMock()
    reader.metadata.return_value.database_type = database_type
    reader.country.side_effect = lookup
    reader.city.side_effect = lookup
    return reader


@pytest.fixture
def settings() -> Settings:
    return Settings(
        EDGE_HOSTNAME=EDGE_HOSTNAME,
        CORE_SERVICE_URL="http://origin.test",
        SYNC_INTERVAL_SECONDS=60,
        GEOIP_DATABASE_PATH=None,
    )


@pytest.fixture
def store() -> InMemoryStore:
    return InMemoryStore()


@pytest.fixture
def origin() -> FakeOrigin:
    return FakeOrigin()


@pytest.fixture
def geo() -> GeoLocator:
    return GeoLocator(fake_geo_reader())


@pytest.fixture
def manager(settings: Settings, store: InMemoryStore, origin: FakeOrigin, geo: GeoLocator) -> ServiceManager:
    return ServiceManager(settings=settings, store=store, origin=origin, geo=geo)


@pytest_asyncio.fixture
async def client(manager: ServiceManager) -> AsyncGenerator[AsyncClient, None]:
    from edge.main import app

    previous = app.state.service_manager
    app.state.service_manager = manager

    transport = ASGITransport(app=app, client=(CLIENT_IP, 54321))
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.state.service_manager = previous

