from sqlalchemy import Boolean, String
from sqlalchemy.orm import Mapped, mapped_column
from app.db.session import Base
from app.models.common import UUIDMixin, TimestampMixin

ROLE_ADMIN = "Admin"
ROLE_TECHNICIAN = "Technician"
ROLE_PROJECT_MANAGER = "Project Manager"
ROLES = (ROLE_ADMIN, ROLE_TECHNICIAN, ROLE_PROJECT_MANAGER)

class User(Base, UUIDMixin, TimestampMixin):
    __tablename__ = "users"
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    email: Mapped[str] = mapped_column(String(200), unique=True, nullable=False)
    phone: Mapped[str | None] = mapped_column(String(30), nullable=True, index=True)
    role: Mapped[str] = mapped_column(String(50), nullable=False, default=ROLE_TECHNICIAN)  # Admin|Technician|Project Manager
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
