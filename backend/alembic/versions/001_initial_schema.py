"""Initial schema — projects, documents (stored parts), embedding_chunks.

Revision ID: 001_initial
Revises: None
Create Date: 2026-10-18

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects.postgresql import UUID

revision: str = "001_initial"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        "projects",
        sa.Column("id", UUID(as_uuid=True), primary_key=True),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("name_key", sa.String(255), nullable=False),
        sa.Column("slug", sa.String(255), nullable=False),
        sa.Column("kind", sa.String(20), nullable=False, server_default="book"),
        sa.Column(
            "parent_id", UUID(as_uuid=True),
            sa.ForeignKey("projects.id", ondelete="SET NULL"), nullable=True,
        ),
        sa.Column("description", sa.Text, nullable=True),
        sa.Column("confirmed", sa.Boolean, nullable=False, server_default=sa.false()),
        sa.Column("require_confirmation", sa.Boolean, nullable=False, server_default=sa.true()),
        sa.Column("blocked", sa.Boolean, nullable=False, server_default=sa.false()),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column("deleted_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("deleted_by", sa.String(100), nullable=True),
        sa.UniqueConstraint("name_key", name="uq_projects_name_key"),
    )
    op.create_index("ix_projects_slug", "projects", ["slug"])

    op.create_table(
        "documents",
        sa.Column("id", sa.String(255), primary_key=True),
        sa.Column("base_id", sa.String(255), nullable=False),
        sa.Column("part_index", sa.Integer, nullable=False, server_default="0"),
        sa.Column("part_count", sa.Integer, nullable=False, server_default="1"),
        sa.Column(
            "project_id", UUID(as_uuid=True),
            sa.ForeignKey("projects.id", ondelete="CASCADE"), nullable=False,
        ),
        sa.Column("doc_type", sa.String(100), nullable=False, server_default="doc"),
        sa.Column("title", sa.String(500), nullable=False),
        sa.Column("body_md", sa.Text, nullable=False, server_default=""),
        sa.Column("tags", sa.JSON, nullable=False),
        sa.Column("meta", sa.JSON, nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column("deleted_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("deleted_by", sa.String(100), nullable=True),
    )
    op.create_index("ix_documents_base_id", "documents", ["base_id"])
    op.create_index("ix_documents_project_base", "documents", ["project_id", "base_id"])
    op.create_index("ix_documents_project_updated", "documents", ["project_id", "updated_at"])
    # Full-text search over title + body (plainto_tsquery('english', ...))
    op.execute(
        "CREATE INDEX ix_documents_fts ON documents USING GIN "
        "(to_tsvector('english', coalesce(title, '') || ' ' || coalesce(body_md, '')))"
    )

    op.create_table(
        "embedding_chunks",
        sa.Column("id", UUID(as_uuid=True), primary_key=True),
        sa.Column(
            "project_id", UUID(as_uuid=True),
            sa.ForeignKey("projects.id", ondelete="CASCADE"), nullable=False,
        ),
        sa.Column("document_id", sa.String(255), nullable=False),
        sa.Column("chunk_no", sa.Integer, nullable=False),
        sa.Column("chunk_text", sa.Text, nullable=False),
        sa.Column("embedding", sa.JSON, nullable=False),
        sa.Column("meta", sa.JSON, nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    )
    op.create_index("ix_embedding_chunks_project_id", "embedding_chunks", ["project_id"])
    op.create_index("ix_embedding_chunks_document_id", "embedding_chunks", ["document_id"])


def downgrade() -> None:
    op.drop_table("embedding_chunks")
    op.execute("DROP INDEX IF EXISTS ix_documents_fts")
    op.drop_table("documents")
    op.drop_table("projects")
