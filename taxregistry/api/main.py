"""FastAPI application initialization and configuration module.

This module builds the Tax Registry API application. It handles:
- Application lifecycle management (startup/shutdown)
- Middleware and exception handler registration
- The database handle kept on ``app.state``
- Health check endpoint
- OpenTelemetry instrumentation

Collaborators that tests replace (database, document renderer, clock, cache
revalidator) are passed to ``create_app`` explicitly.
"""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI
from loguru import logger

from taxregistry.api.middleware.error_handler import register_exception_handlers
from taxregistry.api.middleware.request_context import RequestContextMiddleware
from taxregistry.api.routes.records import router as records_router
from taxregistry.api.utils.responses import ORJSONResponse
from taxregistry.core.config import Settings, get_settings
from taxregistry.core.dates import utc_now
from taxregistry.core.logging import setup_logging
from taxregistry.core.observability import instrument_app, setup_tracing
from taxregistry.core.types import Clock
from taxregistry.infrastructure.database.session import Database
from taxregistry.records.documents import DocumentRenderer, JsonDocumentRenderer
from taxregistry.records.revalidation import LoggingRevalidator, Revalidator


@asynccontextmanager
async def lifespan(app_instance: FastAPI) -> AsyncGenerator[None]:
    """Manage application lifespan events.

    Raises:
        RuntimeError: If database connection fails during startup.
    """
    database: Database = app_instance.state.database
    is_healthy, error_msg = await database.check_connection()

    if is_healthy:
        logger.info("Database connection successful")
    else:
        logger.error("Database connection failed during startup: {}", error_msg)
        msg = f"Database connection failed: {error_msg}"
        raise RuntimeError(msg)

    logger.info(
        "Application startup complete - {} v{}",
        app_instance.title,
        app_instance.version,
    )

    yield

    logger.info("Application shutdown initiated")
    await database.dispose()
    logger.info("Application shutdown complete")


def create_app(
    settings: Settings | None = None,
    database: Database | None = None,
    renderer: DocumentRenderer | None = None,
    clock: Clock | None = None,
    revalidator: Revalidator | None = None,
) -> FastAPI:
    """Create and configure the FastAPI application.

    Args:
        settings: Settings instance; ``get_settings()`` when omitted.
        database: Database handle; built from the settings when omitted.
        renderer: Document renderer; renders JSON payloads when omitted.
        clock: Source of the current time.
        revalidator: Receives stale read paths after writes.

    Returns:
        FastAPI: Configured FastAPI application instance.
    """
    if settings is None:
        settings = get_settings()

    setup_logging(settings)
    setup_tracing(settings)

    database = database or Database(settings)

    application = FastAPI(
        title=settings.app_name,
        version=settings.app_version,
        debug=settings.debug,
        docs_url=settings.docs_url,
        openapi_url=settings.openapi_url,
        default_response_class=ORJSONResponse,
        lifespan=lifespan,
    )

    application.state.settings = settings
    application.state.database = database
    application.state.renderer = renderer or JsonDocumentRenderer()
    application.state.clock = clock or utc_now
    application.state.revalidator = revalidator or LoggingRevalidator()

    # Exception handlers BEFORE middleware
    register_exception_handlers(application)
    application.add_middleware(RequestContextMiddleware)

    application.include_router(records_router)

    @application.get("/health")
    async def health() -> dict[str, object]:
        """Health check reporting store connectivity.

        Returns:
            dict[str, object]: Status and database connectivity.
        """
        is_healthy, error_msg = await database.check_connection()
        if not is_healthy:
            # Degraded rather than down so the process is not restarted
            logger.warning("Database health check failed: {}", error_msg)
            return {"status": "degraded", "database": False}
        return {"status": "healthy", "database": True}

    instrument_app(application, database.engine, settings)

    return application


app = create_app()
