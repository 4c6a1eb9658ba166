# src/app/services/similarity_service.py
from __future__ import annotations

import logging

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from sqlalchemy.orm import selectinload

from app.adapters.product_search import to_product_hit
from app.domain.filters import build_similarity_filter
from app.domain.models import ProductHit, ProductProfile, SimilarityCandidate
from app.repositories.filter_compiler import compile_predicate
from app.repositories.orm import ProductORM
from app.services.cache_service import CatalogCache

logger = logging.getLogger(__name__)


class SimilarityService:
    """
    Empfiehlt Produkte, die mindestens eine Kategorie, Zutat oder ein Tag mit
    einem Quellprodukt teilen. Kein vorberechneter Index, keine Gewichtung:
    die Reihenfolge ist die Standardreihenfolge des Speichers.
    """

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        catalog_cache: CatalogCache,
    ) -> None:
        self._session_factory = session_factory
        self._cache = catalog_cache

    async def find_similar(self, product_id: str, limit: int = 5) -> list[ProductHit]:
        """Unbekannte Produkt-IDs liefern eine leere Liste statt eines Fehlers."""
        candidates = await self.find_similar_candidates(product_id, limit)
        return [c.product for c in candidates]

    async def find_similar_candidates(
        self, product_id: str, limit: int = 5
    ) -> list[SimilarityCandidate]:
        profile = await self.get_profile(product_id)
        if profile is None:
            logger.info("Similarity lookup for unknown product '%s'", product_id)
            return []

        predicate = build_similarity_filter(profile)
        if predicate is None:
            return []

        stmt = (
            select(ProductORM)
            .where(compile_predicate(predicate, ProductORM))
            .options(
                selectinload(ProductORM.categories),
                selectinload(ProductORM.ingredients),
                selectinload(ProductORM.tags),
                selectinload(ProductORM.media),
            )
            .limit(limit)
        )
        async with self._session_factory() as session:
            products = (await session.scalars(stmt)).all()

        return [
            SimilarityCandidate(
                product=to_product_hit(p),
                shared_category_ids=profile.category_ids & {c.id for c in p.categories},
                shared_ingredient_ids=profile.ingredient_ids & {i.id for i in p.ingredients},
                shared_tag_ids=profile.tag_ids & {t.id for t in p.tags},
            )
            for p in products
        ]

    async def get_profile(self, product_id: str) -> ProductProfile | None:
        """Assoziations-IDs des Quellprodukts, read-through über den Katalog-Cache."""
        return await self._cache.read_through(
            CatalogCache.profile_key(product_id),
            ProductProfile,
            lambda: self._load_profile(product_id),
        )

    async def _load_profile(self, product_id: str) -> ProductProfile | None:
        stmt = (
            select(ProductORM)
            .where(ProductORM.id == product_id)
            .options(
                selectinload(ProductORM.categories),
                selectinload(ProductORM.ingredients),
                selectinload(ProductORM.tags),
            )
        )
        async with self._session_factory() as session:
            product = await session.scalar(stmt)

        if product is None:
            return None
        return ProductProfile(
            id=product.id,
            category_ids=frozenset(c.id for c in product.categories),
            ingredient_ids=frozenset(i.id for i in product.ingredients),
            tag_ids=frozenset(t.id for t in product.tags),
        )
