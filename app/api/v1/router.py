"""Version 1 routes: appointment workflow, notification feed and probes."""

from fastapi import APIRouter

from app.api.v1.endpoints import appointments, health, notifications

api_router = APIRouter()

api_router.include_router(appointments.router, prefix="/appointments", tags=["Appointments"])
api_router.include_router(notifications.router, tags=["Notifications"])
api_router.include_router(health.router, tags=["Health"])
