from typing import Any

from app.domain.models import (
    BundleHit,
    CategoryHit,
    EntityType,
    IngredientHit,
    ProductHit,
    SearchQuery,
    SearchResultPage,
)
from app.services.result_aggregator import ResultAggregator
from app.services.search_service import SEARCH_ORDER


def _page(
    entity_type: EntityType, items: list[Any], total: int, limit: int = 10
) -> SearchResultPage[Any]:
    # Wie eine echte Strategie: höchstens `limit` Items pro Quellseite
    return SearchResultPage[Any](
        items=items[:limit], total=total, page=1, limit=limit, entity_types=[entity_type]
    )


def _pages(limit: int = 10) -> list[SearchResultPage[Any]]:
    return [
        _page(
            EntityType.PRODUCT,
            [ProductHit(id=f"p{i}", name=f"Product {i}") for i in range(3)],
            total=3,
            limit=limit,
        ),
        _page(
            EntityType.CATEGORY,
            [CategoryHit(id=f"c{i}", name=f"Category {i}") for i in range(2)],
            total=2,
            limit=limit,
        ),
        _page(EntityType.INGREDIENT, [], total=0, limit=limit),
        _page(EntityType.BUNDLE, [BundleHit(id="b0", name="Bundle 0")], total=1, limit=limit),
    ]


def test_total_is_sum_of_source_totals() -> None:
    result = ResultAggregator().aggregate(_pages(), SearchQuery(query="cream", limit=10))

    assert result.total == 6
    assert len(result.items) == 6
    assert result.total_pages == 1
    assert result.entity_types == list(SEARCH_ORDER)


def test_items_are_truncated_in_source_order() -> None:
    query = SearchQuery(query="cream", limit=2)
    result = ResultAggregator().aggregate(_pages(limit=2), query)

    # Produkte kommen zuerst und verdrängen alle anderen Typen
    assert [item.id for item in result.items] == ["p0", "p1"]
    assert result.total == 6
    assert result.total_pages == 3


def test_entity_types_are_queried_types_not_present_types() -> None:
    query = SearchQuery(query="cream", limit=1)
    result = ResultAggregator().aggregate(_pages(limit=1), query)

    assert {item.entity_type for item in result.items} == {"product"}
    assert result.entity_types == [
        EntityType.PRODUCT,
        EntityType.CATEGORY,
        EntityType.INGREDIENT,
        EntityType.BUNDLE,
    ]


def test_every_item_is_tagged_with_its_source() -> None:
    result = ResultAggregator().aggregate(_pages(), SearchQuery(query="cream"))

    tags = [item.entity_type for item in result.items]
    assert tags == ["product", "product", "product", "category", "category", "bundle"]


def test_page_and_limit_come_from_query() -> None:
    query = SearchQuery(query="cream", page=4, limit=3)
    result = ResultAggregator().aggregate(_pages(limit=3), query)

    assert result.page == 4
    assert result.limit == 3
    assert len(result.items) <= 3


def test_empty_sources_give_zero_pages() -> None:
    pages = [_page(t, [], total=0) for t in SEARCH_ORDER]
    result = ResultAggregator().aggregate(pages, SearchQuery(query="nothing"))

    assert result.items == []
    assert result.total == 0
    assert result.total_pages == 0


def test_ingredient_hits_survive_aggregation() -> None:
    pages = [
        _page(EntityType.PRODUCT, [], total=0),
        _page(EntityType.INGREDIENT, [IngredientHit(id="i1", name="Aloe")], total=1),
    ]
    result = ResultAggregator().aggregate(pages, SearchQuery(query="aloe"))

    assert isinstance(result.items[0], IngredientHit)
    assert result.items[0].entity_type == "ingredient"
