"""users, projects, materials

Revision ID: 0002_init
Revises: 0001_enable_pgcrypto
Create Date: 2025-01-01
"""

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

revision = "0002_init"
down_revision = "0001_enable_pgcrypto"
branch_labels = None
depends_on = None

TABLES = ("users", "projects", "materials")


def _uuid_pk():
    server_default = sa.text("gen_random_uuid()") if op.get_bind().dialect.name == "postgresql" else None
    return sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True, server_default=server_default)


def _timestamps():
    return [
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
    ]


def upgrade():
    op.create_table(
        "users",
        _uuid_pk(),
        *_timestamps(),
        sa.Column("name", sa.String(length=200), nullable=False),
        sa.Column("email", sa.String(length=200), nullable=False, unique=True),
        sa.Column("phone", sa.String(length=30), nullable=True),
        sa.Column("role", sa.String(length=50), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.text("true")),
    )
    op.create_index(op.f("ix_users_phone"), "users", ["phone"], unique=False)

    op.create_table(
        "projects",
        _uuid_pk(),
        *_timestamps(),
        sa.Column("name", sa.String(length=200), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("address", sa.String(length=400), nullable=True),
        sa.Column("status", sa.String(length=30), nullable=False, server_default="New"),
        sa.Column("priority", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("due_date", sa.Date(), nullable=True),
        sa.Column(
            "manager_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("users.id", ondelete="SET NULL"),
            nullable=True,
        ),
    )
    op.create_index(op.f("ix_projects_status"), "projects", ["status"], unique=False)
    op.create_index(op.f("ix_projects_manager_id"), "projects", ["manager_id"], unique=False)

    op.create_table(
        "materials",
        _uuid_pk(),
        *_timestamps(),
        sa.Column("name", sa.String(length=200), nullable=False),
        sa.Column("type", sa.String(length=30), nullable=False, server_default="standard"),
        sa.Column("quantity", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("unit_price", sa.Float(), nullable=True),
        sa.Column("in_stock", sa.Boolean(), nullable=False, server_default=sa.text("true")),
        sa.Column(
            "project_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("projects.id", ondelete="CASCADE"),
            nullable=True,
        ),
    )
    op.create_index(op.f("ix_materials_type"), "materials", ["type"], unique=False)
    op.create_index(op.f("ix_materials_project_id"), "materials", ["project_id"], unique=False)

    for table in TABLES:
        op.create_index(op.f(f"ix_{table}_created_at"), table, ["created_at"], unique=False)


def downgrade():
    for table in reversed(TABLES):
        op.drop_index(op.f(f"ix_{table}_created_at"), table_name=table)
    op.drop_index(op.f("ix_materials_project_id"), table_name="materials")
    op.drop_index(op.f("ix_materials_type"), table_name="materials")
    op.drop_table("materials")
    op.drop_index(op.f("ix_projects_manager_id"), table_name="projects")
    op.drop_index(op.f("ix_projects_status"), table_name="projects")
    op.drop_table("projects")
    op.drop_index(op.f("ix_users_phone"), table_name="users")
    op.drop_table("users")
