"""Document ORM — one stored part of a logical document.

Invariants:
    - A logical document = all rows sharing base_id
    - part_index is 0 for a document stored whole, 1..part_count when chunked
    - Part ids: base_id itself (whole) or "<base_id>-p<n>" (chunked)
    - doc_type, tags, meta replicated on every part
    - deleted_at is set on all parts together (soft delete is per logical document)

Design Decisions:
    - Parts as rows instead of one large TEXT: keeps each row under the
      configured size so exports and search snippets stay bounded
    - tags/meta as JSON: filtered in-process after reassembly
"""

import uuid
from datetime import datetime

from sqlalchemy import String, Text, Integer, DateTime, JSON, ForeignKey, Index
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.dialects.postgresql import UUID

from writing_api.db.base import Base, utcnow


class Document(Base):
    """Stored document part."""
    __tablename__ = "documents"
    __table_args__ = (
        Index("ix_documents_project_base", "project_id", "base_id"),
        Index("ix_documents_project_updated", "project_id", "updated_at"),
    )

    id: Mapped[str] = mapped_column(String(255), primary_key=True)
    base_id: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    part_index: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    part_count: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    project_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("projects.id", ondelete="CASCADE"),
        nullable=False,
    )
    doc_type: Mapped[str] = mapped_column(String(100), nullable=False, default="doc")
    title: Mapped[str] = mapped_column(String(500), nullable=False)
    body_md: Mapped[str] = mapped_column(Text, nullable=False, default="")
    tags: Mapped[list] = mapped_column(JSON, nullable=False, default=list)
    meta: Mapped[dict] = mapped_column(JSON, nullable=False, default=dict)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow,
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow,
    )
    deleted_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True,
    )
    deleted_by: Mapped[str | None] = mapped_column(String(100), nullable=True)
