# src/app/adapters/category_search.py
from __future__ import annotations

from typing import Any

from sqlalchemy import Row, Select, func, select
from sqlalchemy.orm import aliased, selectinload

from app.adapters.sql_search import SqlSearchStrategy
from app.domain.models import CategoryHit, CategoryRef, EntityType
from app.repositories.orm import CategoryORM, product_categories

_Child = aliased(CategoryORM)


class CategorySearchStrategy(SqlSearchStrategy[CategoryHit]):
    """Kategorien inkl. Elternkategorie sowie Anzahl Unterkategorien und Produkte."""

    entity_type = EntityType.CATEGORY
    model = CategoryORM
    hit_model = CategoryHit

    def _select(self) -> Select[Any]:
        children_count = (
            select(func.count(_Child.id))
            .where(_Child.parent_id == CategoryORM.id)
            .correlate(CategoryORM)
            .scalar_subquery()
        )
        products_count = (
            select(func.count())
            .select_from(product_categories)
            .where(product_categories.c.category_id == CategoryORM.id)
            .correlate(CategoryORM)
            .scalar_subquery()
        )
        return select(
            CategoryORM,
            children_count.label("children_count"),
            products_count.label("products_count"),
        ).options(selectinload(CategoryORM.parent))

    def _normalize(self, row: Row[Any]) -> CategoryHit:
        category, children_count, products_count = row
        parent = category.parent
        return CategoryHit(
            id=category.id,
            name=category.name,
            description=category.description,
            code=category.code,
            is_active=category.is_active,
            created_at=category.created_at,
            updated_at=category.updated_at,
            parent=CategoryRef(id=parent.id, name=parent.name) if parent else None,
            children_count=children_count or 0,
            products_count=products_count or 0,
        )
