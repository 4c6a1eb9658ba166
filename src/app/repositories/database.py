from __future__ import annotations

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from app.repositories.orm import Base


class CatalogDatabase:
    """
    Hält Engine und Session-Factory des Katalogs (Primärspeicher).
    Jeder Suchzweig öffnet eine eigene Session, damit parallele Zweige
    sich keine Verbindung teilen.
    """

    def __init__(self, database_url: str) -> None:
        self.engine = create_async_engine(database_url)
        self.session_factory: async_sessionmaker[AsyncSession] = async_sessionmaker(
            self.engine, expire_on_commit=False
        )

    async def initialize(self) -> None:
        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

    async def dispose(self) -> None:
        await self.engine.dispose()
