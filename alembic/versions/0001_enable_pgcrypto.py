"""enable pgcrypto for gen_random_uuid()

Revision ID: 0001_enable_pgcrypto
Revises:
Create Date: 2025-01-01
"""

from alembic import op

revision = "0001_enable_pgcrypto"
down_revision = None
branch_labels = None
depends_on = None


def _is_postgres() -> bool:
    return op.get_bind().dialect.name == "postgresql"


def upgrade():
    if _is_postgres():
        op.execute('CREATE EXTENSION IF NOT EXISTS "pgcrypto"')


def downgrade():
    if _is_postgres():
        op.execute('DROP EXTENSION IF EXISTS "pgcrypto"')
