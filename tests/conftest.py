# tests/conftest.py
import asyncio
from collections.abc import AsyncGenerator, Generator
from datetime import UTC, datetime, timedelta
from pathlib import Path

import pytest
import pytest_asyncio
from fastapi.testclient import TestClient

import app.api.dependencies as _deps
from app.core.config import Settings, get_settings
from app.main import app
from app.repositories.database import CatalogDatabase
from app.repositories.orm import (
    BundleORM,
    CategoryORM,
    IngredientORM,
    ProductMediaORM,
    ProductORM,
    TagORM,
)

BASE_TIME = datetime(2024, 5, 20, 12, 0, tzinfo=UTC)


def _ts(days: int) -> datetime:
    return BASE_TIME + timedelta(days=days)


async def seed_catalog(database: CatalogDatabase) -> None:
    """
    Testkatalog. Für den Suchbegriff "cream" gibt es genau:
    3 Produkte (p1, p5, p6), 2 Kategorien (c-face, c-body),
    0 Zutaten und 1 Bundle (b1).
    Ähnlichkeit zu p1: p2 (Kategorie c-face) und p3 (Tag t-vegan),
    nicht p4, nicht p7 (inaktiv) und nicht p8 (gelöscht).
    """
    deleted = _ts(-1)

    face = CategoryORM(
        id="c-face",
        name="Face Creams",
        description="Moisturisers for the face",
        code="FACE",
        created_at=_ts(0),
    )
    body = CategoryORM(
        id="c-body",
        name="Body Cream",
        description="Lotions for the body",
        code="BODY",
        created_at=_ts(1),
    )
    hair = CategoryORM(
        id="c-hair",
        name="Hair Care",
        description="Shampoo and conditioner",
        code="HAIR",
        created_at=_ts(2),
    )
    serums = CategoryORM(
        id="c-serums",
        name="Serums",
        description="Concentrated treatments",
        code="SER",
        parent=face,
        created_at=_ts(3),
    )
    archived = CategoryORM(
        id="c-old",
        name="Cream Archive",
        description="Discontinued lines",
        code="OLD",
        deleted_at=deleted,
    )

    shea = IngredientORM(id="i-shea", name="Shea Butter", description="Rich emollient")
    aloe = IngredientORM(id="i-aloe", name="Aloe Vera", description="Soothing gel")
    water = IngredientORM(id="i-water", name="Aqua", description="Solvent")
    retired = IngredientORM(id="i-retired", name="Creamy Base", is_active=False)

    vegan = TagORM(id="t-vegan", name="vegan")
    bestseller = TagORM(id="t-bestseller", name="bestseller")

    p1 = ProductORM(
        id="p1",
        name="Hydrating Face Cream",
        description="Daily hydration",
        sku="HFC-001",
        categories=[face],
        ingredients=[shea],
        tags=[vegan],
        media=[
            ProductMediaORM(id="m-1a", url="https://cdn.test/p1-side.jpg", position=0),
            ProductMediaORM(
                id="m-1b",
                url="https://cdn.test/p1-front.jpg",
                alt="Front",
                is_featured=True,
                position=1,
            ),
        ],
        created_at=_ts(0),
    )
    p2 = ProductORM(
        id="p2",
        name="Night Repair Serum",
        description="Lightweight overnight serum",
        sku="NRS-002",
        categories=[face],
        ingredients=[aloe],
        created_at=_ts(3),
    )
    p3 = ProductORM(
        id="p3",
        name="Body Lotion",
        description="Daily moisturising lotion",
        sku="BL-003",
        categories=[body],
        ingredients=[water],
        tags=[vegan],
        media=[
            ProductMediaORM(
                id="m-3a", url="https://cdn.test/p3.jpg", is_featured=True, position=0
            ),
        ],
        created_at=_ts(4),
    )
    p4 = ProductORM(
        id="p4",
        name="Dry Shampoo",
        description="Refreshing powder",
        sku="DS-004",
        categories=[hair],
        ingredients=[water],
        tags=[bestseller],
        created_at=_ts(5),
    )
    p5 = ProductORM(
        id="p5",
        name="Hand Cream",
        description="Protective hand care",
        sku="HC-005",
        categories=[body],
        ingredients=[aloe],
        tags=[bestseller],
        created_at=_ts(2),
    )
    p6 = ProductORM(
        id="p6",
        name="Shaving Foam",
        description="Rich lather",
        sku="CREAM-SF-006",
        categories=[hair],
        created_at=_ts(1),
    )
    p7 = ProductORM(
        id="p7",
        name="Eye Cream",
        description="Inactive listing",
        sku="EC-007",
        categories=[face],
        is_active=False,
    )
    p8 = ProductORM(
        id="p8",
        name="Old Cold Cream",
        description="Deleted listing",
        sku="OCC-008",
        tags=[vegan],
        deleted_at=deleted,
    )

    b1 = BundleORM(
        id="b1", name="Cream Essentials", description="Starter set", sku="B-CE", products=[p1, p5]
    )
    b2 = BundleORM(
        id="b2", name="Hair Kit", description="Shampoo set", sku="HK-1", products=[p4, p6]
    )
    b3 = BundleORM(
        id="b3",
        name="Winter Cream Set",
        description="Seasonal",
        sku="B-WCS",
        products=[p1],
        deleted_at=deleted,
    )
    b4 = BundleORM(
        id="b4",
        name="Full Routine Set",
        description="Everything at once",
        sku="B-FR",
        products=[p1, p2, p3, p4, p5, p6],
    )

    async with database.session_factory() as session, session.begin():
        session.add_all(
            [face, body, hair, serums, archived, shea, aloe, water, retired, vegan, bestseller]
        )
        session.add_all([p1, p2, p3, p4, p5, p6, p7, p8])
        session.add_all([b1, b2, b3, b4])


def _database_url(tmp_path: Path) -> str:
    return f"sqlite+aiosqlite:///{tmp_path / 'catalog.db'}"


@pytest_asyncio.fixture
async def catalog_db(tmp_path: Path) -> AsyncGenerator[CatalogDatabase, None]:
    # Datei statt :memory:, damit parallele Sessions eigene Verbindungen erhalten
    database = CatalogDatabase(_database_url(tmp_path))
    await database.initialize()
    await seed_catalog(database)
    yield database
    await database.dispose()


@pytest.fixture
def test_settings(tmp_path: Path) -> Settings:
    return Settings(
        database_url=_database_url(tmp_path),
        redis_url=None,
        cache_retry_delay_ms=0,
    )


async def _prepare_database(database_url: str) -> None:
    database = CatalogDatabase(database_url)
    await database.initialize()
    await seed_catalog(database)
    await database.dispose()


@pytest.fixture
def client(test_settings: Settings) -> Generator[TestClient, None, None]:
    # Seed in einer eigenen Event-Loop; die App öffnet danach neue Verbindungen
    asyncio.run(_prepare_database(test_settings.database_url))

    _deps._database = None
    _deps._cache_backend = None
    app.dependency_overrides[get_settings] = lambda: test_settings
    try:
        with TestClient(app) as c:
            yield c
    finally:
        app.dependency_overrides.pop(get_settings, None)
        _deps._database = None
        _deps._cache_backend = None
