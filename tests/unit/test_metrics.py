from unittest.mock import AsyncMock

import pytest
from fastapi.testclient import TestClient
from prometheus_client import REGISTRY

from app.adapters.memory_cache import InMemoryCacheBackend
from app.domain.models import RetryPolicy
from app.domain.ports import CacheBackendPort
from app.main import app
from app.services.cache_service import RetryingCache

NO_DELAY = RetryPolicy(max_retries=2, retry_delay_ms=0)


def test_request_count_middleware() -> None:
    client = TestClient(app)

    def get_count(method: str, path: str, status_code: str) -> float:
        return (
            REGISTRY.get_sample_value(
                "http_requests_total", {"method": method, "path": path, "status_code": status_code}
            )
            or 0.0
        )

    initial = get_count("GET", "/healthz", "200")

    response = client.get("/healthz")
    assert response.status_code == 200

    final = get_count("GET", "/healthz", "200")
    assert final == initial + 1


def test_metrics_endpoint() -> None:
    client = TestClient(app)
    response = client.get("/metrics")
    assert response.status_code == 200
    assert "http_requests_total" in response.text
    assert "cache_operation_failures_total" in response.text


@pytest.mark.asyncio
async def test_cache_hit_and_miss_metrics() -> None:
    cache = RetryingCache(InMemoryCacheBackend(), NO_DELAY)

    def get_hits() -> float:
        return REGISTRY.get_sample_value("cache_hits_total") or 0.0

    def get_misses() -> float:
        return REGISTRY.get_sample_value("cache_misses_total") or 0.0

    initial_hits = get_hits()
    initial_misses = get_misses()

    # Miss
    await cache.get("product:nonexistent")
    assert get_misses() == initial_misses + 1
    assert get_hits() == initial_hits

    # Hit
    await cache.set("product:123", b"{}", 60)
    await cache.get("product:123")

    assert get_hits() == initial_hits + 1
    assert get_misses() == initial_misses + 1


@pytest.mark.asyncio
async def test_cache_failure_metric_counts_once_per_operation() -> None:
    backend = AsyncMock(spec=CacheBackendPort)
    backend.delete.side_effect = ConnectionError("redis down")
    cache = RetryingCache(backend, NO_DELAY)

    def get_failures() -> float:
        return (
            REGISTRY.get_sample_value("cache_operation_failures_total", {"operation": "delete"})
            or 0.0
        )

    initial = get_failures()

    await cache.delete("product:1")

    # Zwei Versuche, aber nur ein endgültiger Fehlschlag
    assert backend.delete.call_count == 2
    assert get_failures() == initial + 1
