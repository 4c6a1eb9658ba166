# src/app/repositories/filter_compiler.py
from __future__ import annotations

from typing import Any

from sqlalchemy import ColumnElement, and_, false, or_, true
from sqlalchemy.orm import InstrumentedAttribute

from app.domain.filters import (
    AllOf,
    AnyOf,
    FieldEquals,
    FieldIsNull,
    FieldNotEquals,
    HasAnyAssociation,
    Predicate,
    SortSpec,
    TextMatch,
)
from app.domain.models import SortDirection


class UnknownFieldError(ValueError):
    def __init__(self, model: type[Any], field: str):
        super().__init__(f"'{model.__name__}' has no searchable attribute '{field}'")
        self.model = model
        self.field = field


def _escape_like(term: str) -> str:
    return term.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


def _attribute(model: type[Any], field: str) -> InstrumentedAttribute[Any]:
    attr = getattr(model, field, None)
    if not isinstance(attr, InstrumentedAttribute):
        raise UnknownFieldError(model, field)
    return attr


def compile_predicate(predicate: Predicate, model: type[Any]) -> ColumnElement[bool]:
    """Übersetzt einen Prädikatbaum in einen SQLAlchemy-Ausdruck für `model`."""
    if isinstance(predicate, AllOf):
        if not predicate.clauses:
            return true()
        return and_(*(compile_predicate(c, model) for c in predicate.clauses))

    if isinstance(predicate, AnyOf):
        if not predicate.clauses:
            return false()
        return or_(*(compile_predicate(c, model) for c in predicate.clauses))

    if isinstance(predicate, TextMatch):
        pattern = f"%{_escape_like(predicate.term)}%"
        return or_(
            *(_attribute(model, f).ilike(pattern, escape="\\") for f in predicate.fields)
        )

    if isinstance(predicate, FieldEquals):
        return _attribute(model, predicate.field) == predicate.value

    if isinstance(predicate, FieldNotEquals):
        return _attribute(model, predicate.field) != predicate.value

    if isinstance(predicate, FieldIsNull):
        return _attribute(model, predicate.field).is_(None)

    if isinstance(predicate, HasAnyAssociation):
        relation = _attribute(model, predicate.relation)
        target = relation.property.mapper.class_
        # Mengen-Mitgliedschaft: mindestens eine Assoziation, kein exakter Match
        return relation.any(target.id.in_(sorted(predicate.ids)))

    raise TypeError(f"Unsupported predicate type: {type(predicate).__name__}")


def compile_order_by(sort: SortSpec, model: type[Any]) -> list[ColumnElement[Any]]:
    column = _attribute(model, sort.field)
    tiebreaker = _attribute(model, "id")
    if sort.direction is SortDirection.ASC:
        return [column.asc(), tiebreaker.asc()]
    return [column.desc(), tiebreaker.desc()]
