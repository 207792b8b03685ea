"""Project ORM — top-level container (book or series) that owns documents.

Invariants:
    - id is UUID primary key
    - name_key (trimmed, lowercased name) is unique: names compare case-insensitively
    - parent_id links a book to its series; deleting the series detaches the book
    - deleted_at set → project is in the trash and invisible to normal lookups

Design Decisions:
    - Confirmation flags stored as three booleans: the gate reads them directly
    - No relationship() to documents: chunked documents are queried by base_id,
      never loaded as a collection
"""

import uuid
from datetime import datetime

from sqlalchemy import String, Text, Boolean, DateTime, ForeignKey
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.dialects.postgresql import UUID

from writing_api.db.base import Base, utcnow


class Project(Base):
    """Writing project — a book, or a series grouping books."""
    __tablename__ = "projects"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4,
    )
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    name_key: Mapped[str] = mapped_column(
        String(255), nullable=False, unique=True,
    )
    slug: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    kind: Mapped[str] = mapped_column(String(20), nullable=False, default="book")
    parent_id: Mapped[uuid.UUID | None] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("projects.id", ondelete="SET NULL"),
        nullable=True,
    )
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    confirmed: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    require_confirmation: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=True,
    )
    blocked: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow,
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow,
    )
    deleted_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True,
    )
    deleted_by: Mapped[str | None] = mapped_column(String(100), nullable=True)
