"""FastAPI application bootstrap: settings, database handle, routers, error handlers."""

from contextlib import asynccontextmanager
import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy import Engine

from catalog.api.errors import RequestIdMiddleware, register_error_handlers
from catalog.api.routers import health, products
from catalog.core.config import Settings, get_settings
from catalog.core.logging import configure_logging
from catalog.db.base import init_db
from catalog.db.session import build_engine, build_session_factory

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Create tables when asked to, and release the pool on shutdown."""
    if app.state.settings.auto_create_tables:
        init_db(app.state.engine)
        logger.info("Database tables ensured")
    yield
    app.state.engine.dispose()
    logger.info("Database engine disposed")


def create_app(settings: Settings | None = None, engine: Engine | None = None) -> FastAPI:
    """Instantiate the FastAPI app and include top-level routers.

    Args:
        settings: Configuration; defaults to the environment-derived settings.
        engine: Existing engine to use instead of building one from
            ``settings.database_url``.
    """
    settings = settings or get_settings()
    configure_logging(settings.log_level)

    app = FastAPI(title=settings.app_name, version="0.1.0", lifespan=lifespan)

    app.state.settings = settings
    app.state.engine = engine or build_engine(settings.database_url, settings.database_echo)
    app.state.session_factory = build_session_factory(app.state.engine)

    logger.info(f"[CORS] Allowed origins: {settings.cors_origins}")
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=["X-Request-ID"],
    )
    app.add_middleware(RequestIdMiddleware)

    register_error_handlers(app)

    app.include_router(health.router)
    app.include_router(products.router, prefix="/api/products", tags=["products"])

    return app
