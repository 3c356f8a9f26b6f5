"""Initial schema

Revision ID: 001
Revises:
Create Date: 2026-10-17

Creates the review tables:
- document (upload record, processing progress, review aggregates)
- chunk (extracted sections, cascades with its document)
"""

from collections.abc import Sequence

import sqlalchemy as sa
from alembic import op

# revision identifiers, used by Alembic.
revision: str = "001"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def upgrade() -> None:
    """Create all tables."""
    # document table
    op.create_table(
        "document",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("filename", sa.Text(), nullable=False),
        sa.Column("mime_type", sa.Text(), nullable=False),
        sa.Column("file_size", sa.Integer(), nullable=False),
        sa.Column("status", sa.Text(), nullable=False, server_default="uploading"),
        sa.Column("processing_progress", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("total_chunks", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("approved_chunks", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("rejected_chunks", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("extracted_text", sa.Text(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
        sa.CheckConstraint(
            "approved_chunks + rejected_chunks <= total_chunks",
            name="ck_document_counts",
        ),
    )
    op.create_index("idx_document_created", "document", ["created_at"])
    op.create_index("idx_document_status", "document", ["status", "created_at"])

    # chunk table
    op.create_table(
        "chunk",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column(
            "document_id",
            sa.Uuid(),
            sa.ForeignKey("document.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("chunk_type", sa.Text(), nullable=False),
        sa.Column("sequence_number", sa.Integer(), nullable=False),
        sa.Column("title", sa.Text(), nullable=False),
        sa.Column("extracted_data", sa.JSON(), nullable=False),
        sa.Column("bounding_box", sa.JSON(), nullable=False),
        sa.Column("confidence", sa.Float(), nullable=False),
        sa.Column("status", sa.Text(), nullable=False, server_default="pending"),
        sa.Column("is_edited", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("original_data", sa.JSON(), nullable=True),
        sa.Column("edit_return_status", sa.Text(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
        sa.UniqueConstraint("document_id", "sequence_number", name="uq_chunk_document_seq"),
    )
    op.create_index("idx_chunk_document_seq", "chunk", ["document_id", "sequence_number"])


def downgrade() -> None:
    """Drop all tables."""
    op.drop_index("idx_chunk_document_seq", table_name="chunk")
    op.drop_table("chunk")
    op.drop_index("idx_document_status", table_name="document")
    op.drop_index("idx_document_created", table_name="document")
    op.drop_table("document")
