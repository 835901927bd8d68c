from fastapi import APIRouter
from app.api import users, projects, materials

router = APIRouter()
router.include_router(users.router, prefix="/users", tags=["Users"])
router.include_router(projects.router, prefix="/projects", tags=["Projects"])
router.include_router(materials.router, prefix="/materials", tags=["Materials"])
