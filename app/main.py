"""ASGI entry point: ``uvicorn app.main:app``."""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from prometheus_fastapi_instrumentator import Instrumentator

from app.api.v1.router import api_router
from app.config import Settings, settings
from app.database import check_database_connection, dispose_engine
from app.dependencies import get_notification_dispatcher
from app.middleware.error_handler import register_exception_handlers
from app.middleware.logging import LoggingMiddleware, configure_logging

logger = structlog.get_logger(__name__)

UNMETERED_PATHS = ["/docs", "/redoc", "/openapi.json", "/metrics"]


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Probe the database on startup; flush pending notifications before closing the pool."""
    logger.info(
        "application_startup",
        environment=settings.environment,
        dispatch_mode=settings.notification_dispatch_mode,
        email_enabled=bool(settings.email_api_url),
    )
    if not await check_database_connection():
        # Readiness reports "degraded" until the database answers
        logger.error("database_connection_failed")

    yield

    dispatcher = get_notification_dispatcher()
    logger.info("application_shutdown", pending_dispatches=dispatcher.pending)
    await dispatcher.drain()
    await dispose_engine()


def create_app(config: Settings = settings) -> FastAPI:
    """
    Build the API application.

    Args:
        config: Settings to build against

    Returns:
        Application with middleware, error handlers, routes and /metrics
    """
    configure_logging(config.log_level, config.log_format)

    application = FastAPI(
        title=config.app_name,
        version=config.app_version,
        description="Occupational-medicine appointment workflow and notifications",
        lifespan=lifespan,
    )

    application.add_middleware(
        CORSMiddleware,
        allow_origins=config.cors_origins,
        allow_credentials=config.cors_allow_credentials,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    application.add_middleware(LoggingMiddleware)
    register_exception_handlers(application)
    application.include_router(api_router, prefix=config.api_v1_prefix)

    Instrumentator(
        should_group_status_codes=True,
        excluded_handlers=[*UNMETERED_PATHS, f"{config.api_v1_prefix}/health/live"],
        should_instrument_requests_inprogress=True,
        inprogress_labels=True,
    ).instrument(application).expose(application, endpoint="/metrics", include_in_schema=False)

    return application


app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "app.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.reload,
        log_level=settings.log_level.lower(),
    )
