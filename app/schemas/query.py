from __future__ import annotations

import enum
from typing import Any, List, Literal, Mapping, Optional, Sequence, Union

from pydantic import BaseModel

PredicateOp = Literal["eq", "gte", "lte", "between", "ilike", "in"]
Dir = Literal["ASC", "DESC"]

# Values as received in the query string: a single value or a repeated key.
QueryValue = Union[str, List[str]]
RawQuery = Mapping[str, QueryValue]


class FieldKind(str, enum.Enum):
    INTEGER = "INTEGER"
    FLOAT = "FLOAT"
    DATE = "DATE"
    UUID = "UUID"
    BOOLEAN = "BOOLEAN"
    STRING = "STRING"
    OTHER = "OTHER"


class FieldDescriptor(BaseModel):
    name: str
    kind: FieldKind


class AssociationDescriptor(BaseModel):
    alias: str
    model: Any
    fields: List[str] = []


class Predicate(BaseModel):
    field: str
    op: PredicateOp
    value: Any
    association: Optional[str] = None


class SearchGroup(BaseModel):
    """Predicates joined with OR."""

    any_of: List[Predicate]


class SortClause(BaseModel):
    field: str
    dir: Dir = "ASC"
    association: Optional[str] = None


class CompiledQuery(BaseModel):
    page: int = 1
    limit: int = 10
    sort: List[SortClause] = []
    filter: dict[str, Predicate] = {}
    # "" only when no query was supplied at all; None when a query yielded no search terms.
    search: Union[SearchGroup, str, None] = None

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.limit


def query_scalar(raw: RawQuery, key: str) -> str | None:
    """Single value for ``key``: absent -> None, repeated key -> first occurrence."""
    value = raw.get(key)
    if value is None:
        return None
    if isinstance(value, str):
        return value
    for item in value:
        if item is not None:
            return str(item)
    return None


def query_list(raw: RawQuery, key: str, sep: str = ",") -> list[str]:
    """All values for ``key``, with comma-separated entries expanded."""
    value = raw.get(key)
    if value is None:
        return []
    items: Sequence[str] = [value] if isinstance(value, str) else value
    out: list[str] = []
    for item in items:
        out.extend(part.strip() for part in str(item).split(sep) if part.strip())
    return out
