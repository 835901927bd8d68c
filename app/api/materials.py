from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from app.api.common import iso, list_response, raw_query
from app.db.session import get_db
from app.models.material import Material
from app.models.project import Project
from app.schemas.query import AssociationDescriptor, query_scalar
from app.services.value_normalizer import create_case_insensitive_filter

router = APIRouter()

ASSOCIATIONS = [AssociationDescriptor(alias="project", model=Project, fields=["name"])]


def serialize_material(m: Material) -> dict:
    return {
        "id": str(m.id),
        "name": m.name,
        "type": m.type,
        "quantity": m.quantity,
        "unit_price": m.unit_price,
        "in_stock": m.in_stock,
        "project_id": str(m.project_id) if m.project_id else None,
        "created_at": iso(m.created_at),
    }


@router.get("/all")
def list_materials(raw: dict = Depends(raw_query), db: Session = Depends(get_db)):
    material_type = create_case_insensitive_filter("type", query_scalar(raw, "type"), "type")
    return list_response(raw, db.query(Material), Material, serialize_material, ASSOCIATIONS, material_type)
