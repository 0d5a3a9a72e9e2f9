"""FastAPI dependencies."""

from functools import lru_cache
from typing import Annotated
from uuid import UUID

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from app.config import settings
from app.core.security import access_token_subject
from app.database import AsyncSessionLocal, get_db
from app.repositories.appointments import SqlAppointmentRepository
from app.repositories.employees import SqlEmployeeRepository
from app.repositories.notifications import SqlNotificationRepository
from app.repositories.users import SqlUserDirectory
from app.schemas.users import CurrentActor
from app.services.appointment_service import AppointmentService
from app.services.appointment_workflow import AppointmentWorkflow
from app.services.notification_dispatcher import NotificationDispatcher
from app.services.notification_service import NotificationService
from app.services.recipient_resolver import RecipientResolver

# Security
security = HTTPBearer()


def _credentials_error(detail: str = "Could not validate credentials") -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


async def get_current_user_id(
    credentials: Annotated[HTTPAuthorizationCredentials, Depends(security)],
) -> UUID:
    """
    Resolve the caller's user ID from the bearer token.

    Raises:
        HTTPException: 401 if the token is invalid, expired or has no usable subject
    """
    user_id = access_token_subject(credentials.credentials)
    if user_id is None:
        raise _credentials_error()
    return user_id


async def get_current_actor(
    user_id: Annotated[UUID, Depends(get_current_user_id)],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> CurrentActor:
    """
    Load the caller with their roles and linked employee profile.

    Args:
        user_id: User ID from JWT token
        db: Database session

    Returns:
        Identity context of the caller

    Raises:
        HTTPException: If user not found or inactive
    """
    user = await SqlUserDirectory(db).get_user(user_id)
    if user is None or not user.is_active:
        raise _credentials_error("User not found or inactive")

    employee = await SqlEmployeeRepository(db).get_by_user_id(user_id)
    return CurrentActor(user=user, employee=employee)


@lru_cache
def get_notification_dispatcher() -> NotificationDispatcher:
    """Process-wide dispatcher; background tasks open their own sessions."""
    return NotificationDispatcher.with_sessions(AsyncSessionLocal, settings)


def get_appointment_service(
    db: Annotated[AsyncSession, Depends(get_db)],
    dispatcher: Annotated[NotificationDispatcher, Depends(get_notification_dispatcher)],
) -> AppointmentService:
    return AppointmentService(
        appointments=SqlAppointmentRepository(db),
        employees=SqlEmployeeRepository(db),
        resolver=RecipientResolver(SqlUserDirectory(db)),
        workflow=AppointmentWorkflow(settings.medical_service_fallback_phone),
        dispatcher=dispatcher,
    )


def get_notification_service(
    db: Annotated[AsyncSession, Depends(get_db)],
) -> NotificationService:
    return NotificationService(SqlNotificationRepository(db))


# Type aliases for dependency injection
DatabaseSession = Annotated[AsyncSession, Depends(get_db)]
CurrentUserId = Annotated[UUID, Depends(get_current_user_id)]
CurrentActorDep = Annotated[CurrentActor, Depends(get_current_actor)]
AppointmentServiceDep = Annotated[AppointmentService, Depends(get_appointment_service)]
NotificationServiceDep = Annotated[NotificationService, Depends(get_notification_service)]
