"""Database models."""

from app.models.appointments import appointment_comments, appointments
from app.models.employees import employees
from app.models.notifications import notifications
from app.models.users import user_roles, users

__all__ = [
    "appointment_comments",
    "appointments",
    "employees",
    "notifications",
    "user_roles",
    "users",
]
