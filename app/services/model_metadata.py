from __future__ import annotations

from sqlalchemy import types as sa_types
from sqlalchemy.exc import NoInspectionAvailable
from sqlalchemy.inspection import inspect as sa_inspect

from app.schemas.query import FieldDescriptor, FieldKind

# First match wins; Enum and Text are String subclasses, Float is a Numeric subclass.
_KIND_BY_TYPE: tuple[tuple[type, FieldKind], ...] = (
    (sa_types.Boolean, FieldKind.BOOLEAN),
    (sa_types.Uuid, FieldKind.UUID),
    (sa_types.Integer, FieldKind.INTEGER),
    (sa_types.Numeric, FieldKind.FLOAT),
    (sa_types.DateTime, FieldKind.DATE),
    (sa_types.Date, FieldKind.DATE),
    (sa_types.String, FieldKind.STRING),
)


def field_kind(column_type) -> FieldKind:
    for type_cls, kind in _KIND_BY_TYPE:
        if isinstance(column_type, type_cls):
            return kind
    return FieldKind.OTHER


def describe_model(model) -> list[FieldDescriptor]:
    mapper = sa_inspect(model)
    return [
        FieldDescriptor(name=attr.key, kind=field_kind(attr.columns[0].type))
        for attr in mapper.column_attrs
    ]


def primary_key_name(model) -> str:
    try:
        mapper = sa_inspect(model)
    except NoInspectionAvailable:
        return "id"
    if not mapper.primary_key:
        return "id"
    return mapper.get_property_by_column(mapper.primary_key[0]).key
