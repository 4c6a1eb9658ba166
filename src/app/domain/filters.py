# src/app/domain/filters.py
"""
Filter-Builder: reine Funktionen von SearchQuery auf einen Prädikatbaum.

Die Entscheidung "ist dieser optionale Filter gesetzt?" fällt ausschließlich
hier. Die Übersetzung in SQL übernimmt app.repositories.filter_compiler.
"""

from __future__ import annotations

from pydantic import BaseModel

from app.domain.models import (
    EntityType,
    ProductProfile,
    SearchQuery,
    SortDirection,
    SortField,
)

# ---------------------------------------------------------------------------
# Prädikatknoten
# ---------------------------------------------------------------------------


class TextMatch(BaseModel):
    """Teilstring-Match (case-insensitive) gegen mindestens eines der Felder."""

    fields: tuple[str, ...]
    term: str

    model_config = {"frozen": True}


class FieldEquals(BaseModel):
    field: str
    value: str | bool

    model_config = {"frozen": True}


class FieldNotEquals(BaseModel):
    field: str
    value: str | bool

    model_config = {"frozen": True}


class FieldIsNull(BaseModel):
    field: str

    model_config = {"frozen": True}


class HasAnyAssociation(BaseModel):
    """Entität hat mindestens eine Assoziation `relation` mit ID in `ids`."""

    relation: str
    ids: frozenset[str]

    model_config = {"frozen": True}


class AllOf(BaseModel):
    clauses: tuple[Predicate, ...]

    model_config = {"frozen": True}


class AnyOf(BaseModel):
    clauses: tuple[Predicate, ...]

    model_config = {"frozen": True}


Predicate = TextMatch | FieldEquals | FieldNotEquals | FieldIsNull | HasAnyAssociation | AllOf | AnyOf

AllOf.model_rebuild()
AnyOf.model_rebuild()


class SortSpec(BaseModel):
    field: str
    direction: SortDirection

    model_config = {"frozen": True}


# ---------------------------------------------------------------------------
# Suchprofile je Entitätstyp
# ---------------------------------------------------------------------------


class EntitySearchProfile(BaseModel):
    text_fields: tuple[str, ...]
    soft_delete: bool
    # Query-Filter -> Name der Assoziation am Entitätsmodell
    association_filters: dict[str, str] = {}

    model_config = {"frozen": True}


SEARCH_PROFILES: dict[EntityType, EntitySearchProfile] = {
    EntityType.PRODUCT: EntitySearchProfile(
        text_fields=("name", "description", "sku"),
        soft_delete=True,
        association_filters={
            "categories": "categories",
            "ingredients": "ingredients",
            "tags": "tags",
        },
    ),
    EntityType.CATEGORY: EntitySearchProfile(
        text_fields=("name", "description", "code"),
        soft_delete=True,
    ),
    # Zutaten kennen kein Soft-Delete, nur is_active
    EntityType.INGREDIENT: EntitySearchProfile(
        text_fields=("name", "description"),
        soft_delete=False,
    ),
    EntityType.BUNDLE: EntitySearchProfile(
        text_fields=("name", "description", "sku"),
        soft_delete=True,
    ),
}

_SORT_COLUMNS: dict[SortField, str] = {
    # Ohne native Relevanzbewertung wird deterministisch nach Name sortiert
    SortField.RELEVANCE: "name",
    SortField.NAME: "name",
    SortField.CREATED_AT: "created_at",
    SortField.UPDATED_AT: "updated_at",
}


def _visibility_clauses(soft_delete: bool) -> list[Predicate]:
    clauses: list[Predicate] = [FieldEquals(field="is_active", value=True)]
    if soft_delete:
        clauses.append(FieldIsNull(field="deleted_at"))
    return clauses


def build_search_filter(entity_type: EntityType, query: SearchQuery) -> AllOf:
    """Baut den Filter für die Suche eines konkreten Entitätstyps."""
    if entity_type is EntityType.ALL:
        raise ValueError("build_search_filter needs a concrete entity type")

    profile = SEARCH_PROFILES[entity_type]
    clauses: list[Predicate] = [TextMatch(fields=profile.text_fields, term=query.query)]
    clauses.extend(_visibility_clauses(profile.soft_delete))

    for query_field, relation in profile.association_filters.items():
        ids: frozenset[str] = getattr(query, query_field)
        if ids:
            clauses.append(HasAnyAssociation(relation=relation, ids=ids))

    return AllOf(clauses=tuple(clauses))


def build_similarity_filter(profile: ProductProfile) -> AllOf | None:
    """
    Filter für Produkte, die mindestens eine Kategorie, Zutat oder ein Tag
    mit dem Quellprodukt teilen. Reines ODER, keine Gewichtung.
    Gibt None zurück, wenn das Quellprodukt keine Assoziationen hat.
    """
    shared: list[Predicate] = []
    if profile.category_ids:
        shared.append(HasAnyAssociation(relation="categories", ids=profile.category_ids))
    if profile.ingredient_ids:
        shared.append(HasAnyAssociation(relation="ingredients", ids=profile.ingredient_ids))
    if profile.tag_ids:
        shared.append(HasAnyAssociation(relation="tags", ids=profile.tag_ids))

    if not shared:
        return None

    clauses: list[Predicate] = [FieldNotEquals(field="id", value=profile.id)]
    clauses.extend(_visibility_clauses(soft_delete=True))
    clauses.append(AnyOf(clauses=tuple(shared)))
    return AllOf(clauses=tuple(clauses))


def resolve_sort(sort_by: SortField, direction: SortDirection) -> SortSpec:
    return SortSpec(field=_SORT_COLUMNS[sort_by], direction=direction)
