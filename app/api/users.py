from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from app.api.common import iso, list_response, raw_query
from app.db.session import get_db
from app.models.user import User
from app.schemas.query import query_scalar
from app.services.value_normalizer import create_case_insensitive_filter

router = APIRouter()


def serialize_user(u: User) -> dict:
    return {
        "id": str(u.id),
        "name": u.name,
        "email": u.email,
        "phone": u.phone,
        "role": u.role,
        "is_active": u.is_active,
        "created_at": iso(u.created_at),
    }


@router.get("/all")
def list_users(raw: dict = Depends(raw_query), db: Session = Depends(get_db)):
    role = create_case_insensitive_filter("role", query_scalar(raw, "role"), "role")
    return list_response(raw, db.query(User), User, serialize_user, extra_filters=role)
