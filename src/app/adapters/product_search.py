# src/app/adapters/product_search.py
from __future__ import annotations

from typing import Any

from sqlalchemy import Row, Select, select
from sqlalchemy.orm import selectinload

from app.adapters.sql_search import SqlSearchStrategy
from app.domain.models import CategoryRef, EntityType, MediaRef, ProductHit, TagRef
from app.repositories.orm import ProductORM


def featured_media(product: ProductORM) -> MediaRef | None:
    """Erstes als featured markiertes Medium (nach Position), sonst None."""
    for media in product.media:
        if media.is_featured:
            return MediaRef(id=media.id, url=media.url, alt=media.alt)
    return None


def to_product_hit(product: ProductORM) -> ProductHit:
    """Flacht Join-Zeilen zu einfachen Referenzen ab. Erwartet geladene Relationen."""
    return ProductHit(
        id=product.id,
        name=product.name,
        description=product.description,
        sku=product.sku,
        is_active=product.is_active,
        created_at=product.created_at,
        updated_at=product.updated_at,
        categories=[CategoryRef(id=c.id, name=c.name) for c in product.categories],
        tags=[TagRef(id=t.id, name=t.name) for t in product.tags],
        featured_image=featured_media(product),
    )


class ProductSearchStrategy(SqlSearchStrategy[ProductHit]):
    entity_type = EntityType.PRODUCT
    model = ProductORM
    hit_model = ProductHit

    def _select(self) -> Select[Any]:
        return select(ProductORM).options(
            selectinload(ProductORM.categories),
            selectinload(ProductORM.tags),
            selectinload(ProductORM.media),
        )

    def _normalize(self, row: Row[Any]) -> ProductHit:
        return to_product_hit(row[0])
