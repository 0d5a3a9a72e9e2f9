"""Structured logging setup and per-request access log."""

import logging
import sys
import time
import uuid
from collections.abc import Callable

import structlog
from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

REQUEST_ID_HEADER = "X-Request-ID"

# Probe and scrape traffic; logged only when it fails
QUIET_PATH_SUFFIXES = ("/health/live", "/metrics")


def configure_logging(level: str = "INFO", log_format: str = "json") -> None:
    """
    Route stdlib and structlog output through one renderer.

    Args:
        level: Root log level name
        log_format: "json" for deployments, anything else for the console renderer
    """
    renderer = (
        structlog.processors.JSONRenderer()
        if log_format == "json"
        else structlog.dev.ConsoleRenderer()
    )
    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.processors.TimeStamper(fmt="iso", utc=True),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            renderer,
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )
    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=getattr(logging, level.upper(), logging.INFO),
    )
    # The email service logs its own deliveries
    logging.getLogger("httpx").setLevel(logging.WARNING)


class LoggingMiddleware(BaseHTTPMiddleware):
    """Access log; every line emitted while serving a request carries its request_id."""

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        logger = structlog.get_logger(__name__)
        request_id = request.headers.get(REQUEST_ID_HEADER) or uuid.uuid4().hex
        structlog.contextvars.clear_contextvars()
        structlog.contextvars.bind_contextvars(
            request_id=request_id,
            method=request.method,
            path=request.url.path,
        )
        quiet = request.url.path.endswith(QUIET_PATH_SUFFIXES)

        started = time.perf_counter()
        try:
            response = await call_next(request)
        except Exception:
            logger.exception("request_failed", duration_ms=_elapsed_ms(started))
            raise

        duration_ms = _elapsed_ms(started)
        if response.status_code >= 500:
            logger.warning("request_completed", status_code=response.status_code, duration_ms=duration_ms)
        elif not quiet:
            logger.info("request_completed", status_code=response.status_code, duration_ms=duration_ms)

        response.headers[REQUEST_ID_HEADER] = request_id
        response.headers["X-Process-Time"] = f"{duration_ms / 1000:.4f}"
        return response


def _elapsed_ms(started: float) -> float:
    return round((time.perf_counter() - started) * 1000, 2)
