"""Persistence ports and their SQLAlchemy Core implementations."""

from app.repositories.appointments import SqlAppointmentRepository
from app.repositories.base import (
    AppointmentRepository,
    EmployeeRepository,
    NotificationRepository,
    UserDirectory,
)
from app.repositories.employees import SqlEmployeeRepository
from app.repositories.notifications import SqlNotificationRepository
from app.repositories.users import SqlUserDirectory

__all__ = [
    "AppointmentRepository",
    "EmployeeRepository",
    "NotificationRepository",
    "SqlAppointmentRepository",
    "SqlEmployeeRepository",
    "SqlNotificationRepository",
    "SqlUserDirectory",
    "UserDirectory",
]
