"""Health and status endpoint tests."""

import pytest
from httpx import AsyncClient

from edge.dependencies import ServiceManager
from edge.enums import HealthStatus
from tests.conftest import EDGE_HOSTNAME, make_entry


@pytest.mark.asyncio
async def test_health_check(client: AsyncClient) -> None:
    response = await client.get("/health")
    assert response.status_code == 200
    data = response.json()
    assert data["status"] == HealthStatus.HEALTHY.value
    assert data["store"] == HealthStatus.HEALTHY.value
    assert data["origin"] == HealthStatus.UNKNOWN.value


@pytest.mark.asyncio
async def test_health_check_store_down(client: AsyncClient, store) -> None:
    store.available = False
    response = await client.get("/health")
    assert response.status_code == 200
    assert response.json()["status"] == HealthStatus.UNHEALTHY.value


@pytest.mark.asyncio
async def test_status_reports_cache_and_buffer(client: AsyncClient, manager: ServiceManager) -> None:
    await manager.path_cache.replace_all(EDGE_HOSTNAME, {"abc": "https://example.com/x", "def": "https://example.com/y"})
    await manager.log_buffer.append(make_entry())
    await manager.sync_service.sync_logs()
    await manager.log_buffer.append(make_entry())

    response = await client.get("/internal/status")

    assert response.status_code == 200
    data = response.json()
    assert data["edge_hostname"] == EDGE_HOSTNAME
    assert data["cached_paths"] == 2
    assert data["buffered_logs"] == 1
    assert data["scheduler_running"] is False
    assert data["last_path_sync"] is None
    assert data["last_log_sync"]["status"] == "success"
    assert data["last_log_sync"]["count"] == 1


@pytest.mark.asyncio
async def test_status_store_down(client: AsyncClient, store) -> None:
    store.available = False
    response = await client.get("/internal/status")
    assert response.status_code == 500


@pytest.mark.asyncio
async def test_metrics_exposed(client: AsyncClient) -> None:
    response = await client.get("/metrics")
    assert response.status_code == 200
    assert "edge_redirect_lookups_total" in response.text
