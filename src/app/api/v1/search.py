# src/app/api/v1/search.py
import logging
from typing import Annotated

from fastapi import APIRouter, HTTPException, Path, Query, status
from sqlalchemy.exc import SQLAlchemyError

from app.api.dependencies import SearchServiceDep, SimilarityServiceDep
from app.domain.models import (
    MAX_PAGE,
    CatalogHit,
    EntityType,
    ProductHit,
    SearchQuery,
    SearchResultPage,
    SortDirection,
    SortField,
)
from app.domain.ports import SearchTimeoutError

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/search", tags=["Search"])

IdListQuery = Annotated[
    list[str] | None,
    Query(description="IDs, wiederholt oder kommagetrennt (?tags=a&tags=b oder ?tags=a,b)"),
]


def _split_ids(values: list[str] | None) -> frozenset[str]:
    if not values:
        return frozenset()
    return frozenset(part.strip() for value in values for part in value.split(",") if part.strip())


@router.get("", response_model=SearchResultPage[CatalogHit])
async def search(
    service: SearchServiceDep,
    query: Annotated[str, Query(min_length=1, description="Suchbegriff")],
    entity_type: Annotated[EntityType, Query(alias="entityType")] = EntityType.ALL,
    categories: IdListQuery = None,
    ingredients: IdListQuery = None,
    tags: IdListQuery = None,
    page: Annotated[int, Query(ge=1, le=MAX_PAGE)] = 1,
    limit: Annotated[int, Query(description="Wird auf 1..100 begrenzt")] = 10,
    sort_by: Annotated[SortField, Query(alias="sortBy")] = SortField.RELEVANCE,
    sort_direction: Annotated[SortDirection, Query(alias="sortDirection")] = SortDirection.DESC,
) -> SearchResultPage[CatalogHit]:
    """
    Sucht über einen oder alle Entitätstypen (Produkte, Kategorien, Zutaten, Bundles).
    """
    if not query.strip():
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Empty query")

    search_query = SearchQuery(
        query=query,
        entity_type=entity_type,
        categories=_split_ids(categories),
        ingredients=_split_ids(ingredients),
        tags=_split_ids(tags),
        page=page,
        limit=limit,
        sort_by=sort_by,
        sort_direction=sort_direction,
    )
    try:
        return await service.search(search_query)
    except SearchTimeoutError as e:
        raise HTTPException(status_code=status.HTTP_504_GATEWAY_TIMEOUT, detail=str(e))
    except SQLAlchemyError:
        logger.exception("Search for '%s' failed", search_query.query)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Search failed"
        )


@router.get("/products/similar/{product_id}", response_model=list[ProductHit])
async def find_similar_products(
    service: SimilarityServiceDep,
    product_id: Annotated[str, Path(min_length=1)],
    limit: Annotated[int, Query(ge=1, le=100)] = 5,
) -> list[ProductHit]:
    """
    Ähnliche Produkte über gemeinsame Kategorien, Zutaten oder Tags.
    Unbekannte IDs liefern eine leere Liste.
    """
    try:
        return await service.find_similar(product_id, limit=limit)
    except SQLAlchemyError:
        logger.exception("Similarity lookup for '%s' failed", product_id)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Similarity lookup failed"
        )
