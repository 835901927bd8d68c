from __future__ import annotations

import uuid
from datetime import date, datetime
from typing import Any, Callable, Sequence

from sqlalchemy import String, asc, cast, desc, or_
from sqlalchemy.inspection import inspect as sa_inspect
from sqlalchemy.orm import Query

from app.schemas.query import AssociationDescriptor, CompiledQuery, Predicate, SearchGroup
from app.services.filter_compiler import FilterValueError


def _column(model, name: str):
    if name not in sa_inspect(model).column_attrs:
        return None
    return getattr(model, name)


def _column_python_type(column):
    try:
        return column.property.columns[0].type.python_type
    except Exception:
        return None


def _coerce_value(column, value):
    python_type = _column_python_type(column)
    if python_type is uuid.UUID and not isinstance(value, uuid.UUID):
        try:
            return uuid.UUID(str(value or "").strip())
        except ValueError:
            raise FilterValueError(column.key, "uuid", value)
    if python_type is date and isinstance(value, datetime):
        return value.date()
    return value


def _predicate_expr(column, p: Predicate):
    if p.op == "ilike":
        target = column if _column_python_type(column) is str else cast(column, String)
        return target.ilike(p.value)
    if p.op == "in":
        return column.in_([_coerce_value(column, v) for v in p.value])
    if p.op == "between":
        low, high = p.value
        return column.between(_coerce_value(column, low), _coerce_value(column, high))
    value = _coerce_value(column, p.value)
    if p.op == "gte":
        return column >= value
    if p.op == "lte":
        return column <= value
    return column == value


def _target_model(model, alias: str | None, associations: dict[str, AssociationDescriptor]):
    if alias is None:
        return model
    association = associations.get(alias)
    return association.model if association is not None else None


def _used_aliases(compiled: CompiledQuery) -> set[str]:
    used = {s.association for s in compiled.sort if s.association}
    used.update(p.association for p in compiled.filter.values() if p.association)
    if isinstance(compiled.search, SearchGroup):
        used.update(p.association for p in compiled.search.any_of if p.association)
    return used


def apply_compiled_query(
    q: Query,
    model,
    compiled: CompiledQuery,
    associations: Sequence[AssociationDescriptor] = (),
) -> Query:
    """Apply joins, WHERE and ORDER BY from ``compiled``; pagination is left to :func:`paginate`."""
    by_alias = {a.alias: a for a in associations}
    used = _used_aliases(compiled)
    for association in associations:
        if association.alias not in used:
            continue
        relationship = sa_inspect(model).relationships.get(association.alias)
        if relationship is not None:
            q = q.outerjoin(getattr(model, association.alias))
        else:
            q = q.outerjoin(association.model)

    for p in compiled.filter.values():
        target = _target_model(model, p.association, by_alias)
        col = _column(target, p.field) if target is not None else None
        if col is None:
            continue
        q = q.filter(_predicate_expr(col, p))

    if isinstance(compiled.search, SearchGroup):
        clauses = []
        for p in compiled.search.any_of:
            target = _target_model(model, p.association, by_alias)
            col = _column(target, p.field) if target is not None else None
            if col is not None:
                clauses.append(_predicate_expr(col, p))
        if clauses:
            q = q.filter(or_(*clauses))

    for s in compiled.sort:
        target = _target_model(model, s.association, by_alias)
        col = _column(target, s.field) if target is not None else None
        if col is None:
            continue
        q = q.order_by(asc(col) if s.dir == "ASC" else desc(col))
    return q


def paginate(q: Query, compiled: CompiledQuery, serialize: Callable[[Any], dict]) -> dict:
    total = q.count()
    rows = q.offset(compiled.offset).limit(compiled.limit).all()
    return {
        "rows": [serialize(r) for r in rows],
        "total": total,
        "page": compiled.page,
        "limit": compiled.limit,
    }
