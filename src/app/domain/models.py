# src/app/domain/models.py
from __future__ import annotations

from datetime import datetime
from enum import StrEnum
from typing import Annotated, Any, Generic, Literal, Self, TypeVar

from pydantic import BaseModel, Field, computed_field, field_validator, model_validator
from pydantic.alias_generators import to_camel

MIN_PAGE_SIZE = 1
MAX_PAGE_SIZE = 100
DEFAULT_PAGE_SIZE = 10
# Obergrenze für page; hält offset = (page-1)*limit im 64-Bit-Bereich des Speichers
MAX_PAGE = 1_000_000

# Gemeinsame Konfiguration für alles, was über die API nach außen geht:
# intern snake_case, extern camelCase.
_API_MODEL_CONFIG: dict[str, Any] = {
    "frozen": True,
    "alias_generator": to_camel,
    "populate_by_name": True,
}

# ---------------------------------------------------------------------------
# Value Objects
# ---------------------------------------------------------------------------


class EntityType(StrEnum):
    PRODUCT = "product"
    CATEGORY = "category"
    INGREDIENT = "ingredient"
    BUNDLE = "bundle"
    ALL = "all"


class SortField(StrEnum):
    NAME = "name"
    CREATED_AT = "createdAt"
    UPDATED_AT = "updatedAt"
    RELEVANCE = "relevance"


class SortDirection(StrEnum):
    ASC = "asc"
    DESC = "desc"


class MediaRef(BaseModel):
    id: str
    url: str
    alt: str | None = None

    model_config = _API_MODEL_CONFIG


class CategoryRef(BaseModel):
    id: str
    name: str

    model_config = _API_MODEL_CONFIG


class TagRef(BaseModel):
    id: str
    name: str

    model_config = _API_MODEL_CONFIG


class BundleItemRef(BaseModel):
    id: str
    name: str
    sku: str | None = None

    model_config = _API_MODEL_CONFIG


# ---------------------------------------------------------------------------
# Query
# ---------------------------------------------------------------------------


class SearchQuery(BaseModel):
    """
    Unveränderliche Suchanfrage über eine oder alle Entitätstypen.
    Das Limit wird beim Erzeugen in den erlaubten Bereich geklemmt,
    nie erst bei der Verwendung.
    """

    query: str = Field(description="Freitext, case-insensitive gegen Textfelder gematcht")
    entity_type: EntityType = EntityType.ALL
    categories: frozenset[str] = frozenset()
    ingredients: frozenset[str] = frozenset()
    tags: frozenset[str] = frozenset()
    page: int = Field(default=1, ge=1, le=MAX_PAGE)
    limit: int = DEFAULT_PAGE_SIZE
    sort_by: SortField = SortField.RELEVANCE
    sort_direction: SortDirection = SortDirection.DESC

    model_config = {"frozen": True}

    @field_validator("query")
    @classmethod
    def query_not_blank(cls, value: str) -> str:
        stripped = value.strip()
        if not stripped:
            raise ValueError("query darf nicht leer sein")
        return stripped

    @field_validator("limit", mode="before")
    @classmethod
    def default_limit(cls, value: Any) -> Any:
        return DEFAULT_PAGE_SIZE if value is None else value

    @field_validator("limit")
    @classmethod
    def clamp_limit(cls, value: int) -> int:
        return max(MIN_PAGE_SIZE, min(MAX_PAGE_SIZE, value))

    @field_validator("categories", "ingredients", "tags", mode="before")
    @classmethod
    def drop_empty_ids(cls, value: Any) -> Any:
        if value is None:
            return frozenset()
        if isinstance(value, (list, tuple, set, frozenset)):
            return frozenset(v for v in value if v)
        return value

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.limit

    def for_entity(self, entity_type: EntityType) -> SearchQuery:
        """Klon der Anfrage, der genau einen Entitätstyp adressiert."""
        return self.model_copy(update={"entity_type": entity_type})


# ---------------------------------------------------------------------------
# Search Hits: normalisierte, flache Ergebnisformen je Entitätstyp
# ---------------------------------------------------------------------------


class ProductHit(BaseModel):
    entity_type: Literal["product"] = "product"
    id: str
    name: str
    description: str | None = None
    sku: str | None = None
    is_active: bool = True
    created_at: datetime | None = None
    updated_at: datetime | None = None
    categories: list[CategoryRef] = Field(default_factory=list)
    tags: list[TagRef] = Field(default_factory=list)
    featured_image: MediaRef | None = None

    model_config = _API_MODEL_CONFIG


class CategoryHit(BaseModel):
    entity_type: Literal["category"] = "category"
    id: str
    name: str
    description: str | None = None
    code: str | None = None
    is_active: bool = True
    created_at: datetime | None = None
    updated_at: datetime | None = None
    parent: CategoryRef | None = None
    children_count: int = Field(default=0, ge=0)
    products_count: int = Field(default=0, ge=0)

    model_config = _API_MODEL_CONFIG


class IngredientHit(BaseModel):
    entity_type: Literal["ingredient"] = "ingredient"
    id: str
    name: str
    description: str | None = None
    is_active: bool = True
    created_at: datetime | None = None
    updated_at: datetime | None = None
    products_count: int = Field(default=0, ge=0)

    model_config = _API_MODEL_CONFIG


class BundleHit(BaseModel):
    entity_type: Literal["bundle"] = "bundle"
    id: str
    name: str
    description: str | None = None
    sku: str | None = None
    is_active: bool = True
    created_at: datetime | None = None
    updated_at: datetime | None = None
    products: list[BundleItemRef] = Field(default_factory=list)

    model_config = _API_MODEL_CONFIG


CatalogHit = Annotated[
    ProductHit | CategoryHit | IngredientHit | BundleHit,
    Field(discriminator="entity_type"),
]

T = TypeVar("T")


class SearchResultPage(BaseModel, Generic[T]):
    """
    Eine Ergebnisseite. `total` zählt alle Treffer, nicht nur die dieser Seite.
    Bei aggregierten Seiten ist `entity_types` die Menge der abgefragten Typen,
    nicht die der tatsächlich enthaltenen.
    """

    items: list[T] = Field(default_factory=list)
    total: int = Field(ge=0)
    page: int = Field(ge=1)
    limit: int = Field(ge=MIN_PAGE_SIZE, le=MAX_PAGE_SIZE)
    entity_types: list[EntityType] = Field(default_factory=list)

    model_config = _API_MODEL_CONFIG

    @computed_field  # type: ignore[prop-decorator]
    @property
    def total_pages(self) -> int:
        return -(-self.total // self.limit)

    @model_validator(mode="after")
    def check_page_bounds(self) -> Self:
        if len(self.items) > self.limit:
            raise ValueError("items darf nicht mehr als limit Einträge enthalten")
        if self.total < len(self.items):
            raise ValueError("total muss mindestens der Anzahl der items entsprechen")
        return self


# ---------------------------------------------------------------------------
# Similarity
# ---------------------------------------------------------------------------


class ProductProfile(BaseModel):
    """Assoziations-IDs eines Produkts, Basis für die Ähnlichkeitssuche."""

    id: str
    category_ids: frozenset[str] = frozenset()
    ingredient_ids: frozenset[str] = frozenset()
    tag_ids: frozenset[str] = frozenset()

    model_config = {"frozen": True}

    @property
    def has_attributes(self) -> bool:
        return bool(self.category_ids or self.ingredient_ids or self.tag_ids)


class SimilarityCandidate(BaseModel):
    product: ProductHit
    shared_category_ids: frozenset[str] = frozenset()
    shared_ingredient_ids: frozenset[str] = frozenset()
    shared_tag_ids: frozenset[str] = frozenset()

    model_config = {"frozen": True}

    @property
    def shared_count(self) -> int:
        return (
            len(self.shared_category_ids)
            + len(self.shared_ingredient_ids)
            + len(self.shared_tag_ids)
        )


# ---------------------------------------------------------------------------
# Cache
# ---------------------------------------------------------------------------


class RetryPolicy(BaseModel):
    max_retries: int = Field(default=3, ge=1)
    retry_delay_ms: int = Field(default=1000, ge=0)
    exponential_backoff: bool = True

    model_config = {"frozen": True}

    def delay_seconds(self, attempt: int) -> float:
        """Wartezeit nach dem fehlgeschlagenen Versuch `attempt` (1-basiert)."""
        delay_ms = self.retry_delay_ms
        if self.exponential_backoff:
            delay_ms = self.retry_delay_ms * 2 ** (attempt - 1)
        return delay_ms / 1000


class CacheEntry(BaseModel):
    key: str = Field(min_length=1)
    value: bytes
    ttl_seconds: int = Field(gt=0)

    model_config = {"frozen": True}


class CacheStatus(StrEnum):
    HIT = "hit"
    MISS = "miss"
    OK = "ok"
    UNAVAILABLE = "unavailable"


class CacheResult(BaseModel):
    status: CacheStatus
    value: bytes | None = None

    model_config = {"frozen": True}

    @property
    def is_hit(self) -> bool:
        return self.status is CacheStatus.HIT
