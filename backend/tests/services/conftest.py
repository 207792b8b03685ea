"""Service test fixtures — async DB + FastAPI test client.

Invariants:
    - Every test gets a fresh in-memory SQLite database
    - get_db dependency overridden to use test DB session
    - db_manager initialized for background tasks that bypass get_db
    - External clients replaced with fakes through dependency_overrides
    - Settings tweaks go through monkeypatch on the cached Settings instance

Design Decisions:
    - SQLite in-memory with StaticPool: every session sees the same database
    - PostgreSQL-only paths (full-text search) exercised through their SQLite fallback
"""

import pytest
from sqlalchemy.ext.asyncio import (
    AsyncSession, create_async_engine, async_sessionmaker,
)
from sqlalchemy.pool import StaticPool
from httpx import ASGITransport, AsyncClient

import writing_api.models  # noqa: F401
from writing_api.api import dependencies
from writing_api.config import get_settings
from writing_api.db.base import Base
from writing_api.infrastructure.database import get_db, DatabaseSessionManager
import writing_api.infrastructure.database as db_module
from writing_api.main import app

from tests.services.fakes import FakeChatClient, FakeEmbeddingClient
from tests.services.helpers import make_project


@pytest.fixture
async def test_engine():
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:", echo=False, poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await engine.dispose()


@pytest.fixture
async def test_session_factory(test_engine):
    return async_sessionmaker(
        test_engine, class_=AsyncSession, expire_on_commit=False,
    )


@pytest.fixture
async def test_db(test_session_factory):
    async with test_session_factory() as session:
        yield session


@pytest.fixture
def settings(monkeypatch):
    """Cached Settings instance; use monkeypatch.setattr(settings, ...) to tweak."""
    s = get_settings()
    monkeypatch.setattr(s, "api_token", "")
    monkeypatch.setattr(s, "allow_autoconfirm", False)
    monkeypatch.setattr(s, "default_project_id", None)
    monkeypatch.setattr(s, "default_project_name", None)
    monkeypatch.setattr(s, "stream_interval_ms", 0)
    return s


@pytest.fixture
def fake_embedder():
    return FakeEmbeddingClient()


@pytest.fixture
def fake_chat():
    return FakeChatClient()


@pytest.fixture
async def client(test_engine, test_session_factory, settings):
    """FastAPI test client with DB dependency overridden."""
    async def override_get_db():
        async with test_session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[dependencies.get_embedding_client] = (
        lambda: FakeEmbeddingClient(enabled=False)
    )

    # Patch db_manager for background tasks that use it directly
    original_manager = db_module.db_manager
    fake_manager = DatabaseSessionManager.__new__(DatabaseSessionManager)
    fake_manager.engine = test_engine
    fake_manager._session_factory = test_session_factory
    db_module.db_manager = fake_manager
    dependencies.set_session_default(None)

    async with AsyncClient(
        transport=ASGITransport(app=app), base_url="http://test",
    ) as c:
        yield c

    app.dependency_overrides.clear()
    db_module.db_manager = original_manager
    dependencies.set_session_default(None)


@pytest.fixture
def use_fakes(client, fake_embedder, fake_chat):
    """Route RAG dependencies to the fakes (call after the client fixture)."""
    app.dependency_overrides[dependencies.get_embedding_client] = lambda: fake_embedder
    app.dependency_overrides[dependencies.get_chat_client] = lambda: fake_chat
    return fake_embedder, fake_chat


@pytest.fixture
async def project(client):
    return await make_project(client)
