# src/app/adapters/sql_search.py
from __future__ import annotations

import logging
import time
from abc import abstractmethod
from collections.abc import Sequence
from typing import Any, ClassVar, Generic, TypeVar

from pydantic import BaseModel
from sqlalchemy import Row, Select, func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.core.metrics import SEARCH_BRANCH_DURATION
from app.domain.filters import build_search_filter, resolve_sort
from app.domain.models import EntityType, SearchQuery, SearchResultPage
from app.domain.ports import SearchStrategyPort
from app.repositories.filter_compiler import compile_order_by, compile_predicate

logger = logging.getLogger(__name__)

HitT = TypeVar("HitT", bound=BaseModel)


class SqlSearchStrategy(SearchStrategyPort, Generic[HitT]):
    """
    Gemeinsamer Ablauf aller SQL-basierten Suchstrategien:
    Filter bauen, Count und Seite gegen denselben Ausdruck, normalisieren.
    Unterklassen liefern nur Modell, Select und Normalisierung.
    """

    entity_type: ClassVar[EntityType]
    model: ClassVar[type[Any]]
    hit_model: ClassVar[type[BaseModel]]

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory

    async def search(self, query: SearchQuery) -> SearchResultPage[HitT]:
        where = compile_predicate(build_search_filter(self.entity_type, query), self.model)
        order_by = compile_order_by(resolve_sort(query.sort_by, query.sort_direction), self.model)

        count_stmt = select(func.count()).select_from(self.model).where(where)
        page_stmt = (
            self._select().where(where).order_by(*order_by).offset(query.offset).limit(query.limit)
        )

        started = time.perf_counter()
        try:
            async with self._session_factory() as session:
                total = await session.scalar(count_stmt) or 0
                rows = (await session.execute(page_stmt)).all()
                items = await self._normalize_page(session, rows)
        except SQLAlchemyError as e:
            logger.error("Error searching %s for '%s': %s", self.entity_type, query.query, e)
            raise
        finally:
            SEARCH_BRANCH_DURATION.labels(entity_type=self.entity_type.value).observe(
                time.perf_counter() - started
            )

        # Count und Seite laufen nicht in einer Transaktion; ein zwischenzeitlicher
        # Insert darf total nicht unter die tatsächlich gelieferten Items drücken
        if items:
            total = max(total, query.offset + len(items))

        page_type = SearchResultPage[self.hit_model]  # type: ignore[name-defined]
        return page_type(
            items=items,
            total=total,
            page=query.page,
            limit=query.limit,
            entity_types=[self.entity_type],
        )

    def _select(self) -> Select[Any]:
        return select(self.model)

    async def _normalize_page(self, session: AsyncSession, rows: Sequence[Row[Any]]) -> list[HitT]:
        """Normalisiert eine Seite. Unterklassen können hier Zusatzdaten nachladen."""
        return [self._normalize(row) for row in rows]

    @abstractmethod
    def _normalize(self, row: Row[Any]) -> HitT: ...
