"""
FastAPI application for crewbase.

Auth, settings, companies and notifications over one JSON API.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from crewbase import __version__
from crewbase.api.dependencies import ServiceContainer, get_container
from crewbase.api.errors import register_exception_handlers
from crewbase.auth.routes import router as auth_router
from crewbase.auth.routes import settings_router
from crewbase.companies.routes import router as companies_router
from crewbase.config import Settings, get_settings
from crewbase.integrations.sentry import init_sentry
from crewbase.notifications.routes import router as notifications_router

logger = logging.getLogger(__name__)


def configure_logging(settings: Settings) -> None:
    logging.basicConfig(
        level=getattr(logging, settings.log_level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def _bootstrap_storage(container: ServiceContainer) -> None:
    """Create missing DynamoDB tables outside production."""
    settings = container.settings
    if settings.storage_backend != "dynamodb" or settings.is_production:
        return
    from crewbase.storage.dynamodb import ensure_tables, get_dynamodb_resource

    created = ensure_tables(get_dynamodb_resource(settings), settings.aws_dynamodb_table_prefix)
    if created:
        logger.info(f"Bootstrapped tables: {', '.join(created)}")


# =============================================================================
# Lifespan
# =============================================================================


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Initialize and cleanup app resources."""
    settings = get_settings()
    configure_logging(settings)
    settings.validate_for_startup()

    if init_sentry(settings):
        logger.info("Sentry error tracking enabled")

    container = get_container()
    _bootstrap_storage(container)

    logger.info(
        f"crewbase API starting in {settings.environment} mode "
        f"(storage: {settings.storage_backend})"
    )

    yield

    logger.info("crewbase API shutting down")


# =============================================================================
# App Setup
# =============================================================================


def create_app(settings: Settings | None = None) -> FastAPI:
    """Build the FastAPI app with middleware, routers and error handlers."""
    settings = settings or get_settings()

    app = FastAPI(
        title="crewbase API",
        description="Authentication, companies and notifications",
        version=__version__,
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins_list,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    register_exception_handlers(app)

    app.include_router(auth_router)
    app.include_router(settings_router)
    app.include_router(companies_router)
    app.include_router(notifications_router)

    @app.get("/health")
    async def health():
        return {"status": "healthy", "version": __version__}

    return app


app = create_app()
