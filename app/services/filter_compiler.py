"""Compile list-endpoint query parameters into pagination, sort, filter and search predicates.

``use_filter`` is the only entry point. It never touches the database: the
result is a :class:`~app.schemas.query.CompiledQuery` that
``app.services.list_query`` applies to a SQLAlchemy query.

Query parameters understood:

* ``page`` / ``limit`` - positive integers, defaults 1 and 10.
* ``sort`` - ``field-DIR`` tokens separated by commas, ``alias.field`` for
  associations.
* ``filter`` - JSON object of ``field: value``; ``from``/``to`` bound
  ``created_at``.
* ``search`` - free text matched against the model and its associations.
"""

from __future__ import annotations

import json
import logging
import math
import re
import uuid
from datetime import date, datetime, timezone
from typing import Any, Callable, Iterable, Sequence

from app.core.config import settings
from app.schemas.query import (
    AssociationDescriptor,
    CompiledQuery,
    FieldDescriptor,
    FieldKind,
    Predicate,
    RawQuery,
    SearchGroup,
    SortClause,
    query_list,
    query_scalar,
)

_LOG = logging.getLogger("app.query")

DATE_RANGE_FIELD = "created_at"
RANGE_FROM_KEY = "from"
RANGE_TO_KEY = "to"

_INT_RANGE_RE = re.compile(r"^\s*(-?\d+)\s*-\s*(-?\d+)\s*$")
_SEARCH_SKIPPED_KINDS = {FieldKind.UUID, FieldKind.BOOLEAN, FieldKind.OTHER}


class FilterValueError(ValueError):
    """A filter value cannot be converted to the type of its field."""

    def __init__(self, field: str, kind: str, value: Any):
        self.field = field
        self.kind = kind
        self.value = value
        super().__init__(f'Invalid {kind} value for filter "{field}": {value!r}')


def _positive_int(raw: str | None, default: int) -> int:
    text = str(raw or "").strip()
    if not text:
        return default
    try:
        value = int(text)
    except ValueError:
        return default
    return value if value > 0 else default


def _parse_instant(field: str, value: Any) -> datetime:
    """ISO date or datetime -> timezone-aware UTC datetime. Date-only values mean midnight UTC."""
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, date):
        parsed = datetime.combine(value, datetime.min.time())
    else:
        text = str(value if value is not None else "").strip()
        if not text:
            raise FilterValueError(field, "date", value)
        try:
            parsed = datetime.fromisoformat(text.replace("Z", "+00:00"))
        except ValueError:
            raise FilterValueError(field, "date", value)
    if parsed.tzinfo is None:
        return parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


def _parse_int(field: str, value: Any) -> int:
    if isinstance(value, bool):
        raise FilterValueError(field, "integer", value)
    if isinstance(value, int):
        return value
    if isinstance(value, float) and value.is_integer():
        return int(value)
    try:
        return int(str(value).strip())
    except ValueError:
        raise FilterValueError(field, "integer", value)


# ---- sort ---------------------------------------------------------------


def _parse_sort_token(token: str, associations: Sequence[AssociationDescriptor]) -> SortClause:
    field, sep, direction = token.rpartition("-")
    if not sep:
        field, direction = direction, ""
    direction = direction.strip().upper() or "ASC"
    if direction not in {"ASC", "DESC"}:
        raise FilterValueError("sort", "direction", token)
    field = field.strip()
    if "." in field:
        alias, _, nested = field.partition(".")
        for association in associations:
            if association.alias == alias:
                return SortClause(field=nested, dir=direction, association=alias)
    # Unknown alias: keep the dotted name, the storage layer ignores unknown columns.
    return SortClause(field=field, dir=direction)


def _parse_sort(tokens: list[str], associations: Sequence[AssociationDescriptor], primary_key: str) -> list[SortClause]:
    if not tokens:
        return [SortClause(field=primary_key, dir="ASC")]
    return [_parse_sort_token(token, associations) for token in tokens]


# ---- filter -------------------------------------------------------------


def _integer_predicate(field: str, value: Any) -> Predicate:
    if isinstance(value, str):
        match = _INT_RANGE_RE.match(value)
        if match:
            return Predicate(field=field, op="between", value=[int(match.group(1)), int(match.group(2))])
    return Predicate(field=field, op="eq", value=_parse_int(field, value))


def _date_predicate(field: str, value: Any) -> Predicate:
    return Predicate(field=field, op="eq", value=_parse_instant(field, value))


def _uuid_predicate(field: str, value: Any) -> Predicate:
    try:
        uuid.UUID(str(value if value is not None else "").strip())
    except ValueError:
        raise FilterValueError(field, "uuid", value)
    # Validated only; the predicate keeps the value as sent.
    return Predicate(field=field, op="eq", value=value)


def _boolean_predicate(field: str, value: Any) -> Predicate:
    return Predicate(field=field, op="eq", value=value is True or value == "true")


def _substring_predicate(field: str, value: Any) -> Predicate:
    return Predicate(field=field, op="ilike", value=f"%{value}%")


_FILTER_BUILDERS: dict[FieldKind, Callable[[str, Any], Predicate]] = {
    FieldKind.INTEGER: _integer_predicate,
    FieldKind.FLOAT: _substring_predicate,
    FieldKind.DATE: _date_predicate,
    FieldKind.UUID: _uuid_predicate,
    FieldKind.BOOLEAN: _boolean_predicate,
    FieldKind.STRING: _substring_predicate,
    FieldKind.OTHER: _substring_predicate,
}


def _date_range_predicate(lower: Any, upper: Any) -> Predicate | None:
    if lower and upper:
        return Predicate(
            field=DATE_RANGE_FIELD,
            op="between",
            value=[_parse_instant(RANGE_FROM_KEY, lower), _parse_instant(RANGE_TO_KEY, upper)],
        )
    if lower:
        return Predicate(field=DATE_RANGE_FIELD, op="gte", value=_parse_instant(RANGE_FROM_KEY, lower))
    if upper:
        return Predicate(field=DATE_RANGE_FIELD, op="lte", value=_parse_instant(RANGE_TO_KEY, upper))
    return None


def add_filter(filters: dict[str, Predicate], key: str, predicate: Predicate) -> str:
    """Store ``predicate`` under ``key``, or under ``key#2``, ``key#3`` ... when the slot is taken.

    Every entry of a filter mapping is ANDed, so two conditions on one column both apply.
    """
    slot = key
    n = 2
    while slot in filters:
        slot = f"{key}#{n}"
        n += 1
    filters[slot] = predicate
    return slot


def _parse_filter(raw: str | None, kinds: dict[str, FieldKind]) -> dict[str, Predicate]:
    if not raw:
        return {}
    # Malformed JSON is the caller's problem: json.JSONDecodeError propagates.
    parsed = json.loads(raw)
    if not isinstance(parsed, dict):
        raise FilterValueError("filter", "object", raw)

    out: dict[str, Predicate] = {}
    remaining = dict(parsed)
    date_range = _date_range_predicate(remaining.pop(RANGE_FROM_KEY, None), remaining.pop(RANGE_TO_KEY, None))
    if date_range is not None:
        add_filter(out, DATE_RANGE_FIELD, date_range)

    for key, value in remaining.items():
        builder = _FILTER_BUILDERS[kinds.get(key, FieldKind.OTHER)]
        add_filter(out, key, builder(key, value))
    return out


# ---- search -------------------------------------------------------------


def _classify_search(term: str) -> int | float | datetime | str:
    text = term.strip()
    try:
        number = float(text)
    except ValueError:
        pass
    else:
        if math.isfinite(number):
            return int(number) if number.is_integer() else number
    try:
        return _parse_instant("search", text)
    except FilterValueError:
        return term


def _search_predicates(term: str, fields: Iterable[FieldDescriptor], associations: Sequence[AssociationDescriptor]) -> list[Predicate]:
    classified = _classify_search(term)
    is_number = isinstance(classified, (int, float))
    is_date = isinstance(classified, datetime)
    predicates: list[Predicate] = []

    for descriptor in fields:
        if descriptor.kind in _SEARCH_SKIPPED_KINDS:
            continue
        if descriptor.kind is FieldKind.DATE:
            if is_date:
                predicates.append(Predicate(field=descriptor.name, op="ilike", value=f"%{classified.date().isoformat()}%"))
        elif descriptor.kind in {FieldKind.INTEGER, FieldKind.FLOAT}:
            if is_number:
                predicates.append(Predicate(field=descriptor.name, op="eq", value=classified))
        else:
            predicates.append(Predicate(field=descriptor.name, op="ilike", value=f"%{term}%"))

    for association in associations:
        for nested in association.fields:
            predicates.append(Predicate(field=nested, op="ilike", value=f"%{term}%", association=association.alias))
    return predicates


# ---- entry point --------------------------------------------------------


def use_filter(
    query: RawQuery | None,
    fields: Sequence[FieldDescriptor],
    associations: Sequence[AssociationDescriptor] = (),
    *,
    primary_key: str = "id",
    max_limit: int | None = None,
) -> CompiledQuery:
    """Translate raw query parameters into a :class:`CompiledQuery`.

    Without a query the defaults come back with ``search=""``; with one,
    ``search`` is a :class:`SearchGroup` or ``None`` when nothing matched.

    Raises ``json.JSONDecodeError`` for malformed ``filter`` JSON and
    :class:`FilterValueError` for values that do not fit their field type.
    """
    if query is None:
        return CompiledQuery(
            page=settings.QUERY_DEFAULT_PAGE,
            limit=settings.QUERY_DEFAULT_LIMIT,
            sort=[SortClause(field=primary_key, dir="ASC")],
            filter={},
            search="",
        )

    page = _positive_int(query_scalar(query, "page"), settings.QUERY_DEFAULT_PAGE)
    limit = _positive_int(query_scalar(query, "limit"), settings.QUERY_DEFAULT_LIMIT)
    ceiling = settings.QUERY_MAX_LIMIT if max_limit is None else max_limit
    if ceiling > 0:
        limit = min(limit, ceiling)

    sort = _parse_sort(query_list(query, "sort"), associations, primary_key)
    filters = _parse_filter(query_scalar(query, "filter"), {f.name: f.kind for f in fields})

    search = None
    term = query_scalar(query, "search")
    if term and term.strip():
        predicates = _search_predicates(term, fields, associations)
        if predicates:
            search = SearchGroup(any_of=predicates)

    _LOG.debug(
        "compiled query page=%s limit=%s sort=%s filters=%s search_terms=%s",
        page,
        limit,
        len(sort),
        sorted(filters),
        len(search.any_of) if search else 0,
    )
    return CompiledQuery(page=page, limit=limit, sort=sort, filter=filters, search=search)
