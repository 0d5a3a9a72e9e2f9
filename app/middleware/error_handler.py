"""Error handling middleware."""

import structlog
from fastapi import FastAPI, Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from app.core.exceptions import AppException, InvalidStateTransitionException

logger = structlog.get_logger(__name__)


def _error_body(request: Request, error: str, message, **extra) -> dict:
    return {"error": error, "message": message, **extra, "path": str(request.url)}


async def app_exception_handler(request: Request, exc: AppException) -> JSONResponse:
    """
    Handle custom application exceptions.

    Invalid transitions also report the current and target statuses.

    Args:
        request: Request object
        exc: Application exception

    Returns:
        JSON error response
    """
    extra = {}
    if isinstance(exc, InvalidStateTransitionException):
        extra = {"current_status": exc.current_status, "target_status": exc.target_status}

    if exc.status_code >= 500:
        logger.error("application_error", error=exc.__class__.__name__, message=exc.message)
    else:
        logger.info(
            "request_rejected",
            error=exc.__class__.__name__,
            message=exc.message,
            status_code=exc.status_code,
        )

    return JSONResponse(
        status_code=exc.status_code,
        content=_error_body(request, exc.__class__.__name__, exc.message, **extra),
    )


async def http_exception_handler(
    request: Request,
    exc: StarletteHTTPException,
) -> JSONResponse:
    """
    Handle HTTP exceptions.

    Args:
        request: Request object
        exc: HTTP exception

    Returns:
        JSON error response
    """
    return JSONResponse(
        status_code=exc.status_code,
        content=_error_body(request, "HTTPException", exc.detail),
        headers=getattr(exc, "headers", None),
    )


async def validation_exception_handler(
    request: Request,
    exc: RequestValidationError,
) -> JSONResponse:
    """
    Handle validation errors.

    Args:
        request: Request object
        exc: Validation exception

    Returns:
        JSON error response with validation details
    """
    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content=_error_body(
            request,
            "ValidationError",
            "Request validation failed",
            details=jsonable_encoder(exc.errors()),
        ),
    )


async def general_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """
    Handle unexpected exceptions.

    Args:
        request: Request object
        exc: Exception

    Returns:
        Generic JSON error response; details only go to the log
    """
    logger.exception("unhandled_exception", error=str(exc), path=request.url.path)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=_error_body(request, "InternalServerError", "An unexpected error occurred"),
    )


def register_exception_handlers(app: FastAPI) -> None:
    """Install the JSON error handlers, most specific first."""
    app.add_exception_handler(AppException, app_exception_handler)  # type: ignore[arg-type]
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)  # type: ignore[arg-type]
    app.add_exception_handler(RequestValidationError, validation_exception_handler)  # type: ignore[arg-type]
    app.add_exception_handler(Exception, general_exception_handler)
