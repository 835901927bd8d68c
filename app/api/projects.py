from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from app.api.common import iso, list_response, raw_query
from app.db.session import get_db
from app.models.project import Project
from app.models.user import User
from app.schemas.query import AssociationDescriptor, query_list
from app.services.value_normalizer import create_case_insensitive_filter

router = APIRouter()

ASSOCIATIONS = [AssociationDescriptor(alias="manager", model=User, fields=["name", "email"])]


def serialize_project(p: Project) -> dict:
    return {
        "id": str(p.id),
        "name": p.name,
        "description": p.description,
        "address": p.address,
        "status": p.status,
        "priority": p.priority,
        "due_date": iso(p.due_date),
        "manager": {"id": str(p.manager.id), "name": p.manager.name} if p.manager else None,
        "created_at": iso(p.created_at),
    }


@router.get("/all")
def list_projects(raw: dict = Depends(raw_query), db: Session = Depends(get_db)):
    # statusFilter=new,in+progress -> status IN ('New', 'In Progress')
    statuses = create_case_insensitive_filter("status", query_list(raw, "statusFilter"), "status")
    return list_response(raw, db.query(Project), Project, serialize_project, ASSOCIATIONS, statuses)
