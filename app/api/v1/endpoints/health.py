"""Liveness and readiness probes."""

from typing import Annotated, Literal

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from app.config import settings
from app.database import check_database_connection
from app.dependencies import get_notification_dispatcher
from app.services.notification_dispatcher import NotificationDispatcher

router = APIRouter(prefix="/health")


class NotificationChannels(BaseModel):
    dispatch_mode: str
    pending_dispatches: int
    email: Literal["http", "log"]


class HealthResponse(BaseModel):
    """Readiness report."""

    status: Literal["healthy", "degraded"]
    version: str
    environment: str
    database: Literal["up", "down"]
    notifications: NotificationChannels


@router.get("/live", summary="Liveness probe")
async def liveness() -> dict[str, str]:
    return {"status": "alive"}


@router.get("", response_model=HealthResponse, summary="Readiness probe")
async def readiness(
    dispatcher: Annotated[NotificationDispatcher, Depends(get_notification_dispatcher)],
) -> HealthResponse:
    """
    Report whether the service can take traffic.

    The database is the only hard dependency: email failures are isolated per
    recipient, so an unconfigured provider only switches the channel to "log".
    """
    database_up = await check_database_connection()
    return HealthResponse(
        status="healthy" if database_up else "degraded",
        version=settings.app_version,
        environment=settings.environment,
        database="up" if database_up else "down",
        notifications=NotificationChannels(
            dispatch_mode=dispatcher.mode,
            pending_dispatches=dispatcher.pending,
            email="http" if settings.email_api_url else "log",
        ),
    )
