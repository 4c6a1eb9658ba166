# src/app/adapters/ingredient_search.py
from __future__ import annotations

from typing import Any

from sqlalchemy import Row, Select, func, select

from app.adapters.sql_search import SqlSearchStrategy
from app.domain.models import EntityType, IngredientHit
from app.repositories.orm import IngredientORM, product_ingredients


class IngredientSearchStrategy(SqlSearchStrategy[IngredientHit]):
    entity_type = EntityType.INGREDIENT
    model = IngredientORM
    hit_model = IngredientHit

    def _select(self) -> Select[Any]:
        products_count = (
            select(func.count())
            .select_from(product_ingredients)
            .where(product_ingredients.c.ingredient_id == IngredientORM.id)
            .correlate(IngredientORM)
            .scalar_subquery()
        )
        return select(IngredientORM, products_count.label("products_count"))

    def _normalize(self, row: Row[Any]) -> IngredientHit:
        ingredient, products_count = row
        return IngredientHit(
            id=ingredient.id,
            name=ingredient.name,
            description=ingredient.description,
            is_active=ingredient.is_active,
            created_at=ingredient.created_at,
            updated_at=ingredient.updated_at,
            products_count=products_count or 0,
        )
