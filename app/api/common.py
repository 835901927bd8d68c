from __future__ import annotations

import json
import logging
from typing import Any, Callable, Sequence

from fastapi import HTTPException, Request
from sqlalchemy.orm import Query

from app.schemas.query import AssociationDescriptor, CompiledQuery, Predicate, QueryValue
from app.services.filter_compiler import FilterValueError, add_filter, use_filter
from app.services.list_query import apply_compiled_query, paginate
from app.services.model_metadata import describe_model, primary_key_name

_LOG = logging.getLogger("app.query")


def raw_query(request: Request) -> dict[str, QueryValue]:
    """Query string as a mapping; repeated keys become lists."""
    out: dict[str, QueryValue] = {}
    for key, value in request.query_params.multi_items():
        if key not in out:
            out[key] = value
        elif isinstance(out[key], list):
            out[key].append(value)
        else:
            out[key] = [out[key], value]
    return out


def compile_list_query(
    raw: dict[str, QueryValue],
    model,
    associations: Sequence[AssociationDescriptor] = (),
) -> CompiledQuery:
    try:
        return use_filter(raw, describe_model(model), associations, primary_key=primary_key_name(model))
    except json.JSONDecodeError as exc:
        _LOG.info("rejected filter json: %s", exc)
        raise HTTPException(status_code=400, detail=f"Malformed filter JSON: {exc.msg}")
    except FilterValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc))


def list_response(
    raw: dict[str, QueryValue],
    q: Query,
    model,
    serialize: Callable[[Any], dict],
    associations: Sequence[AssociationDescriptor] = (),
    extra_filters: dict[str, Predicate] | None = None,
) -> dict:
    """Compile ``raw``, apply it to ``q`` and return one page.

    ``extra_filters`` (convenience keys such as ``role``) are ANDed with the
    ``filter`` JSON; a key present in both keeps both conditions.
    """
    compiled = compile_list_query(raw, model, associations)
    for key, predicate in (extra_filters or {}).items():
        add_filter(compiled.filter, key, predicate)
    try:
        q = apply_compiled_query(q, model, compiled, associations)
    except FilterValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc))
    return paginate(q, compiled, serialize)


def iso(value) -> str | None:
    return value.isoformat() if value else None
