"""ORM Models — SQLAlchemy declarative models for all domain entities.

Invariants:
    - All models inherit from Base (db/base.py)
    - Project is the aggregate root; documents and embedding chunks scoped by project_id

Design Decisions:
    - One file per entity for locality
    - All models imported here so Base.metadata is complete before create_all
      or Alembic autogenerate runs
"""

from writing_api.models.project import Project  # noqa: F401
from writing_api.models.document import Document  # noqa: F401
from writing_api.models.embedding_chunk import EmbeddingChunk  # noqa: F401
