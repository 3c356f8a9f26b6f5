"""Add original_path to document

Revision ID: 002
Revises: 001
Create Date: 2026-10-17

Records where each upload's raw bytes are stored so the preview endpoint
can serve them back.
"""

from collections.abc import Sequence

import sqlalchemy as sa
from alembic import op

# revision identifiers, used by Alembic.
revision: str = "002"
down_revision: str | None = "001"
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def upgrade() -> None:
    """Add original_path column."""
    op.add_column("document", sa.Column("original_path", sa.Text(), nullable=True))


def downgrade() -> None:
    """Drop original_path column."""
    op.drop_column("document", "original_path")
