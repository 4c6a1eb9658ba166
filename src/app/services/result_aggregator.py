# src/app/services/result_aggregator.py
from __future__ import annotations

from collections.abc import Sequence
from typing import Any

from app.domain.models import CatalogHit, EntityType, SearchQuery, SearchResultPage


class ResultAggregator:
    """
    Führt die Seiten paralleler Einzelsuchen zu einer Seite zusammen.

    Die Items werden in Reihenfolge der Quellseiten konkateniert und dann auf
    `limit` gekürzt. Früh iterierte Entitätstypen können spätere daher von
    der Seite verdrängen; `total` bleibt trotzdem die Summe aller Treffer.
    """

    def aggregate(
        self, pages: Sequence[SearchResultPage[Any]], query: SearchQuery
    ) -> SearchResultPage[CatalogHit]:
        items: list[Any] = []
        entity_types: list[EntityType] = []
        total = 0

        for page in pages:
            source = page.entity_types[0] if page.entity_types else None
            for item in page.items:
                items.append(self._tag(item, source))
            total += page.total
            for entity_type in page.entity_types:
                if entity_type not in entity_types:
                    entity_types.append(entity_type)

        return SearchResultPage[CatalogHit](
            items=items[: query.limit],
            total=total,
            page=query.page,
            limit=query.limit,
            entity_types=entity_types,
        )

    @staticmethod
    def _tag(item: Any, source: EntityType | None) -> Any:
        if source is None or getattr(item, "entity_type", None) == source.value:
            return item
        return item.model_copy(update={"entity_type": source.value})
