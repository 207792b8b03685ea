"""Writing API — FastAPI application entry point.

Invariants:
    - Routes registered explicitly (no auto-discovery)
    - Global error handlers map WritingAPIError → structured JSON responses
    - CORS configured from settings (not hardcoded)
    - Database initialized on startup and disposed on shutdown via lifespan

Design Decisions:
    - Lifespan over @app.on_event: FastAPI recommended pattern, cleaner cleanup
    - Error handlers live in api/error_handlers.py to keep this module's imports small
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from writing_api.infrastructure.database import close_db, init_db
from writing_api.infrastructure.observability import setup_logging
from writing_api.config import get_settings
from writing_api.api.error_handlers import register_error_handlers
from writing_api.api.routes import documents, health, lyra, projects, rag, scenes

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup/shutdown lifecycle."""
    settings = get_settings()
    setup_logging(settings.log_level, settings.log_format)
    init_db(
        settings.database_url,
        pool_size=settings.database_pool_size,
        max_overflow=settings.database_max_overflow,
    )
    logger.info("Writing API started")
    yield
    await close_db()
    logger.info("Writing API shutting down")


settings = get_settings()
app = FastAPI(
    title="Writing API", version=settings.app_version, lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(health.router)
app.include_router(projects.router)
app.include_router(documents.router)
app.include_router(lyra.router)
app.include_router(rag.router)
app.include_router(scenes.router)

register_error_handlers(app)
