"""initial schema - baseline for all Abibuch tables

Revision ID: 001_initial
Revises: None
Create Date: 2026-09-01

For databases created by the startup sync: run `alembic stamp 001_initial`.
For NEW databases: run `alembic upgrade head`.
"""
from typing import Sequence, Union

from alembic import op

revision: str = "001_initial"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Create all tables from the SQLAlchemy models (checkfirst, idempotent)."""
    from abibuch.models import Base

    Base.metadata.create_all(bind=op.get_bind(), checkfirst=True)


def downgrade() -> None:
    """Drop all tables. Destroys all data; dev/test only."""
    from abibuch.models import Base

    Base.metadata.drop_all(bind=op.get_bind())
