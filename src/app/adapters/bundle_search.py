# src/app/adapters/bundle_search.py
from __future__ import annotations

from collections import defaultdict
from collections.abc import Sequence
from typing import Any

from sqlalchemy import Row, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.adapters.sql_search import SqlSearchStrategy
from app.domain.models import BundleHit, BundleItemRef, EntityType
from app.repositories.orm import BundleORM, ProductORM, bundle_products

# Vorschau: nur die ersten Produkte eines Bundles werden mitgeliefert
BUNDLE_PREVIEW_SIZE = 5


class BundleSearchStrategy(SqlSearchStrategy[BundleHit]):
    entity_type = EntityType.BUNDLE
    model = BundleORM
    hit_model = BundleHit

    async def _normalize_page(
        self, session: AsyncSession, rows: Sequence[Row[Any]]
    ) -> list[BundleHit]:
        bundle_ids = [row[0].id for row in rows]
        previews = await self._load_previews(session, bundle_ids) if bundle_ids else {}
        return [self._to_hit(row[0], previews.get(row[0].id, [])) for row in rows]

    async def _load_previews(
        self, session: AsyncSession, bundle_ids: list[str]
    ) -> dict[str, list[BundleItemRef]]:
        """Lädt je Bundle höchstens BUNDLE_PREVIEW_SIZE Produkte, sortiert nach Name."""
        position = (
            func.row_number()
            .over(
                partition_by=bundle_products.c.bundle_id,
                order_by=(ProductORM.name, ProductORM.id),
            )
            .label("position")
        )
        ranked = (
            select(
                bundle_products.c.bundle_id,
                ProductORM.id,
                ProductORM.name,
                ProductORM.sku,
                position,
            )
            .join(ProductORM, ProductORM.id == bundle_products.c.product_id)
            .where(bundle_products.c.bundle_id.in_(bundle_ids))
            .subquery()
        )
        stmt = (
            select(ranked.c.bundle_id, ranked.c.id, ranked.c.name, ranked.c.sku)
            .where(ranked.c.position <= BUNDLE_PREVIEW_SIZE)
            .order_by(ranked.c.bundle_id, ranked.c.position)
        )

        previews: dict[str, list[BundleItemRef]] = defaultdict(list)
        for bundle_id, product_id, name, sku in (await session.execute(stmt)).all():
            previews[bundle_id].append(BundleItemRef(id=product_id, name=name, sku=sku))
        return previews

    def _normalize(self, row: Row[Any]) -> BundleHit:
        return self._to_hit(row[0], [])

    @staticmethod
    def _to_hit(bundle: BundleORM, products: list[BundleItemRef]) -> BundleHit:
        return BundleHit(
            id=bundle.id,
            name=bundle.name,
            description=bundle.description,
            sku=bundle.sku,
            is_active=bundle.is_active,
            created_at=bundle.created_at,
            updated_at=bundle.updated_at,
            products=products,
        )
