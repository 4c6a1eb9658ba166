# src/app/api/dependencies.py
import asyncio
from typing import Annotated

from fastapi import Depends

from app.adapters.bundle_search import BundleSearchStrategy
from app.adapters.category_search import CategorySearchStrategy
from app.adapters.ingredient_search import IngredientSearchStrategy
from app.adapters.memory_cache import InMemoryCacheBackend
from app.adapters.product_search import ProductSearchStrategy
from app.adapters.redis_cache import RedisCacheBackend
from app.core.config import Settings, get_settings
from app.domain.models import EntityType, RetryPolicy
from app.domain.ports import CacheBackendPort, SearchStrategyPort
from app.repositories.database import CatalogDatabase
from app.services.cache_service import CatalogCache, RetryingCache
from app.services.result_aggregator import ResultAggregator
from app.services.search_service import SearchService
from app.services.similarity_service import SimilarityService

# Singleton Datenbank (Initialisiert beim ersten Zugriff)
_database: CatalogDatabase | None = None
_database_lock = asyncio.Lock()


async def get_database(
    settings: Settings = Depends(get_settings),
) -> CatalogDatabase:
    global _database
    if _database is not None:
        return _database
    async with _database_lock:
        # Erneut prüfen: ein paralleler Request kann inzwischen initialisiert haben
        if _database is None:
            database = CatalogDatabase(database_url=settings.database_url)
            try:
                await database.initialize()
            except BaseException:
                await database.dispose()
                raise
            _database = database
    return _database


# Singleton Cache-Backend
_cache_backend: CacheBackendPort | None = None


def get_cache_backend(
    settings: Settings = Depends(get_settings),
) -> CacheBackendPort:
    global _cache_backend
    if _cache_backend is None:
        if settings.redis_url:
            _cache_backend = RedisCacheBackend.from_url(settings.redis_url)
        else:
            _cache_backend = InMemoryCacheBackend()
    return _cache_backend


def get_retrying_cache(
    backend: CacheBackendPort = Depends(get_cache_backend),
    settings: Settings = Depends(get_settings),
) -> RetryingCache:
    policy = RetryPolicy(
        max_retries=settings.cache_max_retries,
        retry_delay_ms=settings.cache_retry_delay_ms,
        exponential_backoff=settings.cache_exponential_backoff,
    )
    return RetryingCache(backend=backend, policy=policy)


def get_catalog_cache(
    cache: RetryingCache = Depends(get_retrying_cache),
    settings: Settings = Depends(get_settings),
) -> CatalogCache:
    return CatalogCache(cache=cache, ttl_seconds=settings.cache_ttl_seconds)


def get_strategy_registry(
    database: CatalogDatabase = Depends(get_database),
) -> dict[EntityType, SearchStrategyPort]:
    """Liefert die Registry aller Suchstrategien."""
    sessions = database.session_factory
    return {
        EntityType.PRODUCT: ProductSearchStrategy(sessions),
        EntityType.CATEGORY: CategorySearchStrategy(sessions),
        EntityType.INGREDIENT: IngredientSearchStrategy(sessions),
        EntityType.BUNDLE: BundleSearchStrategy(sessions),
    }


def get_search_service(
    strategies: dict[EntityType, SearchStrategyPort] = Depends(get_strategy_registry),
    settings: Settings = Depends(get_settings),
) -> SearchService:
    return SearchService(
        strategies=strategies,
        aggregator=ResultAggregator(),
        branch_timeout_seconds=settings.search_branch_timeout_seconds,
    )


def get_similarity_service(
    database: CatalogDatabase = Depends(get_database),
    catalog_cache: CatalogCache = Depends(get_catalog_cache),
) -> SimilarityService:
    return SimilarityService(session_factory=database.session_factory, catalog_cache=catalog_cache)


async def close_resources() -> None:
    """Gibt Singletons beim Shutdown frei."""
    global _database, _database_lock, _cache_backend
    if _database is not None:
        await _database.dispose()
        _database = None
    # Lock ist an die Event-Loop gebunden, in der er zuletzt gewartet hat
    _database_lock = asyncio.Lock()
    if _cache_backend is not None:
        await _cache_backend.close()
        _cache_backend = None


SearchServiceDep = Annotated[SearchService, Depends(get_search_service)]
SimilarityServiceDep = Annotated[SimilarityService, Depends(get_similarity_service)]
