"""restrict users.role to Admin / Technician / Project Manager

Revision ID: 0003_users_role_check
Revises: 0002_init
Create Date: 2025-01-01 00:00:05
"""

from alembic import op

revision = "0003_users_role_check"
down_revision = "0002_init"
branch_labels = None
depends_on = None

CONSTRAINT_NAME = "users_role_check"
ROLE_VALUES = ("Admin", "Technician", "Project Manager")


def upgrade():
    allowed = ", ".join(f"'{role}'" for role in ROLE_VALUES)
    op.execute(f"ALTER TABLE users DROP CONSTRAINT IF EXISTS {CONSTRAINT_NAME}")
    op.execute(f"ALTER TABLE users ADD CONSTRAINT {CONSTRAINT_NAME} CHECK (role IN ({allowed}))")


def downgrade():
    op.execute(f"ALTER TABLE users DROP CONSTRAINT IF EXISTS {CONSTRAINT_NAME}")
