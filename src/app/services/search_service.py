# src/app/services/search_service.py
from __future__ import annotations

import asyncio
import logging
from collections.abc import Mapping
from typing import Any, Final

from app.domain.models import EntityType, SearchQuery, SearchResultPage
from app.domain.ports import SearchStrategyPort, SearchTimeoutError
from app.services.result_aggregator import ResultAggregator

logger = logging.getLogger(__name__)

# Feste Iterationsreihenfolge für "all"; bestimmt, welche Typen beim
# Kürzen auf das Limit zuerst auf der Seite landen.
SEARCH_ORDER: Final[tuple[EntityType, ...]] = (
    EntityType.PRODUCT,
    EntityType.CATEGORY,
    EntityType.INGREDIENT,
    EntityType.BUNDLE,
)


class SearchService:
    """
    Query-Dispatcher: ein Entitätstyp wird direkt an seine Strategie
    weitergereicht, "all" wird parallel auf alle Strategien verteilt.
    """

    def __init__(
        self,
        strategies: Mapping[EntityType, SearchStrategyPort],
        aggregator: ResultAggregator,
        branch_timeout_seconds: float | None = None,
    ) -> None:
        self._strategies = strategies
        self._aggregator = aggregator
        self._timeout = branch_timeout_seconds

    async def search(self, query: SearchQuery) -> SearchResultPage[Any]:
        """
        Raises:
            SearchTimeoutError: Wenn ein Zweig das Timeout überschreitet.
            Fehler einer Strategie werden unverändert propagiert; bei "all"
            scheitert damit die gesamte Anfrage (keine Teilergebnisse).
        """
        logger.info("Searching for '%s' (entity_type=%s)", query.query, query.entity_type)

        if query.entity_type is not EntityType.ALL:
            return await self._run_branch(query)

        tasks = [
            asyncio.create_task(self._run_branch(query.for_entity(entity_type)))
            for entity_type in SEARCH_ORDER
        ]
        try:
            pages = await asyncio.gather(*tasks)
        except BaseException:
            for task in tasks:
                task.cancel()
            raise

        return self._aggregator.aggregate(pages, query)

    async def _run_branch(self, query: SearchQuery) -> SearchResultPage[Any]:
        strategy = self._strategies[query.entity_type]
        if self._timeout is None:
            return await strategy.search(query)
        try:
            return await asyncio.wait_for(strategy.search(query), timeout=self._timeout)
        except TimeoutError as e:
            logger.error(
                "Search branch %s timed out after %ss", query.entity_type, self._timeout
            )
            raise SearchTimeoutError(query.entity_type, self._timeout) from e
