# src/app/services/cache_service.py
from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from typing import TypeVar

from pydantic import BaseModel, ValidationError

from app.core.metrics import CACHE_FAILURES, CACHE_HITS, CACHE_MISSES
from app.domain.models import CacheEntry, CacheResult, CacheStatus, EntityType, RetryPolicy
from app.domain.ports import CacheBackendPort

logger = logging.getLogger(__name__)

T = TypeVar("T")
M = TypeVar("M", bound=BaseModel)

_UNAVAILABLE = CacheResult(status=CacheStatus.UNAVAILABLE)

_LIST_PREFIXES: dict[EntityType, str] = {
    EntityType.PRODUCT: "products",
    EntityType.CATEGORY: "categories",
    EntityType.INGREDIENT: "ingredients",
    EntityType.BUNDLE: "bundles",
}


class RetryingCache:
    """
    Cache-Aside-Adapter: umhüllt jedes Backend mit einer begrenzten Retry-Policy.

    Der Cache ist ein optionaler Beschleuniger. Nach erschöpften Versuchen wird
    CacheStatus.UNAVAILABLE zurückgegeben statt eine Exception zu werfen;
    ein Ausfall des Caches darf niemals einen Lese- oder Schreibzugriff auf
    den Primärspeicher scheitern lassen.
    """

    def __init__(self, backend: CacheBackendPort, policy: RetryPolicy | None = None) -> None:
        self._backend = backend
        self._policy = policy or RetryPolicy()

    @property
    def policy(self) -> RetryPolicy:
        return self._policy

    async def get(self, key: str) -> CacheResult:
        ok, value = await self._with_retry(lambda: self._backend.get(key), f"get({key})")
        if not ok:
            CACHE_FAILURES.labels(operation="get").inc()
            return _UNAVAILABLE
        if value is None:
            CACHE_MISSES.inc()
            return CacheResult(status=CacheStatus.MISS)
        CACHE_HITS.inc()
        return CacheResult(status=CacheStatus.HIT, value=value)

    async def set(self, key: str, value: bytes, ttl_seconds: int) -> CacheResult:
        ok, _ = await self._with_retry(
            lambda: self._backend.set(key, value, ttl_seconds), f"set({key})"
        )
        if not ok:
            CACHE_FAILURES.labels(operation="set").inc()
            return _UNAVAILABLE
        return CacheResult(status=CacheStatus.OK)

    async def store(self, entry: CacheEntry) -> CacheResult:
        return await self.set(entry.key, entry.value, entry.ttl_seconds)

    async def delete(self, key: str) -> CacheResult:
        ok, _ = await self._with_retry(lambda: self._backend.delete(key), f"delete({key})")
        if not ok:
            CACHE_FAILURES.labels(operation="delete").inc()
            return _UNAVAILABLE
        return CacheResult(status=CacheStatus.OK)

    async def _with_retry(
        self, operation: Callable[[], Awaitable[T]], context: str
    ) -> tuple[bool, T | None]:
        max_retries = self._policy.max_retries
        for attempt in range(1, max_retries + 1):
            try:
                return True, await operation()
            except Exception as e:
                logger.warning(
                    "Cache operation failed in %s (attempt %d/%d): %s",
                    context,
                    attempt,
                    max_retries,
                    e,
                )
                if attempt == max_retries:
                    logger.error(
                        "Cache operation failed permanently in %s after %d attempts",
                        context,
                        max_retries,
                    )
                    break
                await asyncio.sleep(self._policy.delay_seconds(attempt))
        return False, None


class CatalogCache:
    """
    Read-through / Invalidate für Katalogeinträge.
    Cache-Miss und Cache-Ausfall werden identisch behandelt: Durchgriff auf
    den Primärspeicher. Einträge werden immer komplett ersetzt.
    """

    def __init__(self, cache: RetryingCache, ttl_seconds: int) -> None:
        self._cache = cache
        self._ttl = ttl_seconds

    @staticmethod
    def entity_key(entity_type: EntityType, entity_id: str) -> str:
        return f"{entity_type.value}:{entity_id}"

    @staticmethod
    def profile_key(product_id: str) -> str:
        """Assoziations-Profil für die Ähnlichkeitssuche, getrennt vom Produkt-Eintrag."""
        return f"{EntityType.PRODUCT.value}:{product_id}:profile"

    @staticmethod
    def list_key(entity_type: EntityType) -> str:
        return f"{_LIST_PREFIXES[entity_type]}:all"

    async def read_through(
        self,
        key: str,
        model_type: type[M],
        loader: Callable[[], Awaitable[M | None]],
    ) -> M | None:
        cached = await self._cache.get(key)
        if cached.is_hit and cached.value is not None:
            try:
                return model_type.model_validate_json(cached.value)
            except ValidationError as e:
                logger.warning("Error parsing cached data for %s: %s", key, e)

        # Fehler des Primärspeichers werden nicht abgefangen
        value = await loader()
        if value is not None:
            entry = CacheEntry(key=key, value=value.model_dump_json().encode(), ttl_seconds=self._ttl)
            await self._cache.store(entry)
        return value

    async def invalidate(self, entity_type: EntityType, entity_id: str) -> None:
        """Entfernt Einzel- und Listen-Key (bei Produkten auch das Profil). Wirft nie."""
        keys = [self.entity_key(entity_type, entity_id), self.list_key(entity_type)]
        if entity_type is EntityType.PRODUCT:
            keys.append(self.profile_key(entity_id))
        await asyncio.gather(*(self._cache.delete(key) for key in keys))
