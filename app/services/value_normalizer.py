"""Case/separator-insensitive mapping of user input onto stored enum values.

The normalizers are permissive: unknown values come back canonicalized
(Title-Cased roles, lower-cased types, verbatim statuses) and are left for the
``users_role_check`` constraint or the data layer to reject.
"""

from __future__ import annotations

import re
from typing import Any

from app.models.project import STATUS_COMPLETE, STATUS_IN_PROGRESS, STATUS_NEW, STATUS_PM_REVIEW
from app.models.user import ROLE_ADMIN, ROLE_PROJECT_MANAGER, ROLE_TECHNICIAN
from app.schemas.query import Predicate

_SEPARATORS_RE = re.compile(r"[+_]")
_SPACES_RE = re.compile(r"\s+")

ROLE_MAPPING = {
    "Admin": ROLE_ADMIN,
    "Technician": ROLE_TECHNICIAN,
    "Project Manager": ROLE_PROJECT_MANAGER,
    "Projectmanager": ROLE_PROJECT_MANAGER,
    "Project+Manager": ROLE_PROJECT_MANAGER,
    "Project_Manager": ROLE_PROJECT_MANAGER,
}

STATUS_MAPPING = {
    "new": STATUS_NEW,
    "in progress": STATUS_IN_PROGRESS,
    "inprogress": STATUS_IN_PROGRESS,
    "pm review": STATUS_PM_REVIEW,
    "pmreview": STATUS_PM_REVIEW,
    "complete": STATUS_COMPLETE,
}


def _title_case(text: str) -> str:
    # str.title() would also capitalize after apostrophes and digits.
    return " ".join(word[:1].upper() + word[1:] for word in text.split(" "))


def normalize_role(role: str | None) -> str | None:
    if not role:
        return role
    text = _SEPARATORS_RE.sub(" ", str(role).lower())
    titled = _title_case(_SPACES_RE.sub(" ", text).strip())
    return ROLE_MAPPING.get(titled, titled)


def _normalize_status_value(status: str) -> str:
    return STATUS_MAPPING.get(str(status).lower(), status)


def normalize_status(status: str | list[str] | None) -> str | list[str] | None:
    if not status:
        return status
    if isinstance(status, (list, tuple)):
        return [_normalize_status_value(s) for s in status]
    return _normalize_status_value(status)


def normalize_type(value: str | None) -> str | None:
    if not value:
        return value
    return str(value).lower()


_NORMALIZERS = {
    "role": normalize_role,
    "status": normalize_status,
    "type": normalize_type,
}


def create_case_insensitive_filter(field: str, value: Any, kind: str) -> dict[str, Predicate]:
    """Equality (or IN for several values) predicate on ``field`` after normalizing ``value``."""
    if not value:
        return {}
    normalizer = _NORMALIZERS.get(kind)
    normalized = normalizer(value) if normalizer else value
    if isinstance(normalized, (list, tuple)):
        return {field: Predicate(field=field, op="in", value=list(normalized))}
    return {field: Predicate(field=field, op="eq", value=normalized)}
