"""
Repository ports.

Interfaces for the persistence collaborators consumed by the workflow,
recipient resolver and notification store. SQLAlchemy implementations live
beside this module; tests provide in-memory ones.
"""

from collections.abc import Iterable
from typing import Protocol, runtime_checkable
from uuid import UUID

from app.schemas.appointments import (
    Appointment,
    AppointmentComment,
    AppointmentFilters,
    AppointmentStatus,
)
from app.schemas.notifications import InAppNotification, NotificationType
from app.schemas.users import EmployeeProfile, RoleName, UserSummary


@runtime_checkable
class UserDirectory(Protocol):
    """Read-only access to users and role membership."""

    async def get_user(self, user_id: UUID) -> UserSummary | None:
        """
        Find a user with its role set.

        Args:
            user_id: User ID

        Returns:
            User if found, None otherwise
        """
        ...

    async def get_users(self, user_ids: Iterable[UUID]) -> dict[UUID, UserSummary]:
        """Find several users at once, keyed by ID. Unknown IDs are omitted."""
        ...

    async def find_by_roles(self, roles: Iterable[RoleName]) -> list[UserSummary]:
        """
        Find every active user holding at least one of the given roles.

        Called once per dispatch; results must not be cached across dispatches.
        """
        ...


@runtime_checkable
class EmployeeRepository(Protocol):
    """Employee profiles with their manager chain."""

    async def get_employee(self, employee_id: UUID) -> EmployeeProfile | None:
        """Find an employee with user and managers hydrated."""
        ...

    async def get_by_user_id(self, user_id: UUID) -> EmployeeProfile | None:
        """Find the employee profile linked to a user account."""
        ...


@runtime_checkable
class AppointmentRepository(Protocol):
    """Appointment persistence."""

    async def get(self, appointment_id: UUID) -> Appointment | None:
        """Find an appointment with every reference hydrated."""
        ...

    async def add(self, appointment: Appointment) -> Appointment:
        """Insert a new appointment and return it with its generated ID."""
        ...

    async def save(self, appointment: Appointment) -> Appointment:
        """Persist the workflow fields of an existing appointment."""
        ...

    async def add_comment(
        self,
        appointment_id: UUID,
        author: UserSummary | None,
        comment: str,
    ) -> AppointmentComment:
        """Append a comment to an appointment."""
        ...

    async def list_for_employee_user(
        self,
        user_id: UUID,
        exclude_statuses: Iterable[AppointmentStatus] = (),
        page: int = 1,
        page_size: int = 20,
    ) -> tuple[list[Appointment], int]:
        """List appointments of the employee linked to a user, newest first."""
        ...

    async def list_filtered(self, filters: AppointmentFilters) -> tuple[list[Appointment], int]:
        """List appointments matching filters, newest first."""
        ...

    async def commit(self) -> None:
        """Commit the current unit of work."""
        ...

    async def rollback(self) -> None:
        """Discard the current unit of work."""
        ...


@runtime_checkable
class NotificationRepository(Protocol):
    """In-app notification persistence."""

    async def upsert_for_entity(
        self,
        user_id: UUID,
        related_entity_type: str,
        related_entity_id: UUID,
        title: str,
        message: str,
        notification_type: NotificationType,
        action_url: str | None,
    ) -> InAppNotification:
        """
        Insert or overwrite the single notification of a user for an entity.

        An existing row gets the new title, message and action URL, is marked
        unread and has its timestamp refreshed.
        """
        ...

    async def insert(
        self,
        user_id: UUID,
        title: str,
        message: str,
        notification_type: NotificationType,
        action_url: str | None = None,
    ) -> InAppNotification:
        """Insert a notification that is not tied to an entity."""
        ...

    async def get(self, notification_id: UUID) -> InAppNotification | None:
        """Find a notification by ID."""
        ...

    async def list_for_user(
        self,
        user_id: UUID,
        unread_only: bool = False,
        page: int = 1,
        page_size: int = 20,
    ) -> tuple[list[InAppNotification], int]:
        """List a user's notifications, newest first."""
        ...

    async def count_unread(self, user_id: UUID) -> int:
        """Count a user's unread notifications."""
        ...

    async def mark_read(self, notification_id: UUID) -> InAppNotification | None:
        """Mark one notification as read."""
        ...

    async def mark_all_read(self, user_id: UUID) -> int:
        """Mark every notification of a user as read; returns the number updated."""
        ...

    async def delete(self, notification_id: UUID) -> bool:
        """Delete a notification; returns whether a row was removed."""
        ...
