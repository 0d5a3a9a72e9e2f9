"""Test factories: people, in-memory repositories and a recording email transport."""

import itertools
from collections.abc import Iterable
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
from types import SimpleNamespace
from uuid import UUID, uuid4

from app.schemas.appointments import (
    Appointment,
    AppointmentComment,
    AppointmentFilters,
    AppointmentStatus,
    AppointmentType,
)
from app.schemas.notifications import InAppNotification, NotificationType, OutgoingEmail
from app.schemas.users import CurrentActor, EmployeeProfile, RoleName, UserSummary
from app.services.email_service import EmailService
from app.services.notification_router import NotificationRouter
from app.services.notification_service import NotificationService
from app.services.strategies import GenericNoticeStrategy, build_strategies

FRONTEND = "http://front.test"
VISIT_AT = datetime(2026, 3, 14, 9, 30, tzinfo=UTC)


def make_user(
    email: str,
    *roles: RoleName,
    first_name: str | None = None,
    last_name: str | None = None,
    phone: str | None = None,
) -> UserSummary:
    return UserSummary(
        id=uuid4(),
        email=email,
        first_name=first_name,
        last_name=last_name,
        phone=phone,
        roles=frozenset(roles),
    )


def as_actor(user: UserSummary, employee: EmployeeProfile | None = None) -> CurrentActor:
    return CurrentActor(user=user, employee=employee)


def make_appointment(people, **overrides) -> Appointment:
    """A spontaneous request by the employee, overridable field by field."""
    data = {
        "id": uuid4(),
        "employee": people.employee,
        "type": AppointmentType.SPONTANEOUS,
        "status": AppointmentStatus.REQUESTED_EMPLOYEE,
        "requested_date_employee": VISIT_AT,
        "motif": "Douleurs lombaires",
        "notes": "Plutôt le matin",
        "created_by": people.employee_user,
        "updated_by": people.employee_user,
        "created_at": VISIT_AT - timedelta(days=3),
        "updated_at": VISIT_AT - timedelta(days=3),
    }
    data.update(overrides)
    return Appointment(**data)


def make_people() -> SimpleNamespace:
    """An employee with two managers, a nurse, a doctor, RH, an admin and an outsider."""
    manager1_user = make_user("n1@corp.test", RoleName.EMPLOYEE, first_name="Nadia", last_name="Un")
    manager2_user = make_user("n2@corp.test", RoleName.EMPLOYEE, first_name="Omar", last_name="Deux")
    manager1 = EmployeeProfile(id=uuid4(), user=manager1_user, first_name="Nadia", last_name="Un")
    manager2 = EmployeeProfile(id=uuid4(), user=manager2_user, first_name="Omar", last_name="Deux")

    employee_user = make_user(
        "sara@corp.test", RoleName.EMPLOYEE, first_name="Sara", last_name="Alami", phone="+212600000001"
    )
    employee = EmployeeProfile(
        id=uuid4(),
        user=employee_user,
        first_name="Sara",
        last_name="Alami",
        manager1=manager1,
        manager2=manager2,
    )

    other_user = make_user("karim@corp.test", RoleName.EMPLOYEE, first_name="Karim", last_name="B")
    other_employee = EmployeeProfile(id=uuid4(), user=other_user, first_name="Karim", last_name="B")

    return SimpleNamespace(
        employee_user=employee_user,
        employee=employee,
        manager1=manager1_user,
        manager2=manager2_user,
        manager1_profile=manager1,
        manager2_profile=manager2,
        nurse=make_user("nurse@corp.test", RoleName.NURSE, first_name="Ines", phone="+212600000002"),
        doctor=make_user("doctor@corp.test", RoleName.DOCTOR, first_name="Dr", last_name="House"),
        rh=make_user("rh@corp.test", RoleName.RH, first_name="Rania", last_name="RH"),
        admin=make_user("admin@corp.test", RoleName.ADMIN),
        other_user=other_user,
        other_employee=other_employee,
    )


class FakeUserDirectory:
    """In-memory user directory."""

    def __init__(self, users: Iterable[UserSummary]):
        self.users = {user.id: user for user in users}
        self.role_queries = 0

    async def get_user(self, user_id: UUID) -> UserSummary | None:
        return self.users.get(user_id)

    async def get_users(self, user_ids: Iterable[UUID]) -> dict[UUID, UserSummary]:
        return {uid: self.users[uid] for uid in user_ids if uid in self.users}

    async def find_by_roles(self, roles: Iterable[RoleName]) -> list[UserSummary]:
        self.role_queries += 1
        wanted = set(roles)
        return [u for u in self.users.values() if u.is_active and u.roles & wanted]


class FakeEmployeeRepository:
    """In-memory employee profiles."""

    def __init__(self, employees: Iterable[EmployeeProfile]):
        self.employees = {employee.id: employee for employee in employees}

    async def get_employee(self, employee_id: UUID) -> EmployeeProfile | None:
        return self.employees.get(employee_id)

    async def get_by_user_id(self, user_id: UUID) -> EmployeeProfile | None:
        for employee in self.employees.values():
            if employee.user_id == user_id:
                return employee
        return None


class FakeAppointmentRepository:
    """In-memory appointments; staged writes become visible on commit."""

    def __init__(self, appointments: Iterable[Appointment] = ()):
        self.items: dict[UUID, Appointment] = {a.id: a for a in appointments}
        self._staged: dict[UUID, Appointment] = {}
        self.commits = 0
        self.rollbacks = 0
        self.fail_on_commit = False
        self._tick = itertools.count(1)

    def _now(self) -> datetime:
        return VISIT_AT + timedelta(seconds=next(self._tick))

    async def get(self, appointment_id: UUID) -> Appointment | None:
        return self.items.get(appointment_id)

    async def add(self, appointment: Appointment) -> Appointment:
        now = self._now()
        stored = appointment.model_copy(update={"id": uuid4(), "created_at": now, "updated_at": now})
        self._staged[stored.id] = stored
        return stored

    async def save(self, appointment: Appointment) -> Appointment:
        stored = appointment.model_copy(update={"updated_at": self._now()})
        self._staged[stored.id] = stored
        return stored

    async def add_comment(
        self,
        appointment_id: UUID,
        author: UserSummary | None,
        comment: str,
    ) -> AppointmentComment:
        return AppointmentComment(id=uuid4(), author=author, comment=comment, created_at=self._now())

    def _page(self, items: list[Appointment], page: int, page_size: int) -> tuple[list[Appointment], int]:
        items = sorted(items, key=lambda a: a.created_at, reverse=True)
        start = (page - 1) * page_size
        return items[start : start + page_size], len(items)

    async def list_for_employee_user(
        self,
        user_id: UUID,
        exclude_statuses: Iterable[AppointmentStatus] = (),
        page: int = 1,
        page_size: int = 20,
    ) -> tuple[list[Appointment], int]:
        excluded = set(exclude_statuses)
        items = [
            a for a in self.items.values() if a.employee.user_id == user_id and a.status not in excluded
        ]
        return self._page(items, page, page_size)

    async def list_filtered(self, filters: AppointmentFilters) -> tuple[list[Appointment], int]:
        items = list(self.items.values())
        if filters.statuses:
            items = [a for a in items if a.status in filters.statuses]
        if filters.type:
            items = [a for a in items if a.type == filters.type]
        if filters.employee_id:
            items = [a for a in items if a.employee.id == filters.employee_id]
        return self._page(items, filters.page, filters.page_size)

    async def commit(self) -> None:
        if self.fail_on_commit:
            raise RuntimeError("database unavailable")
        self.items.update(self._staged)
        self._staged.clear()
        self.commits += 1

    async def rollback(self) -> None:
        self._staged.clear()
        self.rollbacks += 1


class FakeNotificationRepository:
    """In-memory notification store with the per-entity upsert of the real table."""

    def __init__(self):
        self.rows: dict[UUID, InAppNotification] = {}
        self._tick = itertools.count(1)
        self.fail = False

    def _now(self) -> datetime:
        return VISIT_AT + timedelta(seconds=next(self._tick))

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
        if self.fail:
            raise RuntimeError("notifications table locked")
        for row in self.rows.values():
            if (
                row.user_id == user_id
                and row.related_entity_type == related_entity_type
                and row.related_entity_id == related_entity_id
            ):
                updated = row.model_copy(
                    update={
                        "title": title,
                        "message": message,
                        "type": notification_type,
                        "action_url": action_url,
                        "read": False,
                        "created_at": self._now(),
                    }
                )
                self.rows[row.id] = updated
                return updated

        row = InAppNotification(
            id=uuid4(),
            user_id=user_id,
            title=title,
            message=message,
            type=notification_type,
            read=False,
            related_entity_type=related_entity_type,
            related_entity_id=related_entity_id,
            action_url=action_url,
            created_at=self._now(),
        )
        self.rows[row.id] = row
        return row

    async def insert(
        self,
        user_id: UUID,
        title: str,
        message: str,
        notification_type: NotificationType,
        action_url: str | None = None,
    ) -> InAppNotification:
        if self.fail:
            raise RuntimeError("notifications table locked")
        row = InAppNotification(
            id=uuid4(),
            user_id=user_id,
            title=title,
            message=message,
            type=notification_type,
            read=False,
            action_url=action_url,
            created_at=self._now(),
        )
        self.rows[row.id] = row
        return row

    async def get(self, notification_id: UUID) -> InAppNotification | None:
        return self.rows.get(notification_id)

    async def list_for_user(
        self,
        user_id: UUID,
        unread_only: bool = False,
        page: int = 1,
        page_size: int = 20,
    ) -> tuple[list[InAppNotification], int]:
        items = [r for r in self.rows.values() if r.user_id == user_id and not (unread_only and r.read)]
        items.sort(key=lambda r: r.created_at, reverse=True)
        start = (page - 1) * page_size
        return items[start : start + page_size], len(items)

    async def count_unread(self, user_id: UUID) -> int:
        return sum(1 for r in self.rows.values() if r.user_id == user_id and not r.read)

    async def mark_read(self, notification_id: UUID) -> InAppNotification | None:
        row = self.rows.get(notification_id)
        if row is None:
            return None
        self.rows[notification_id] = row.model_copy(update={"read": True})
        return self.rows[notification_id]

    async def mark_all_read(self, user_id: UUID) -> int:
        updated = 0
        for row_id, row in list(self.rows.items()):
            if row.user_id == user_id and not row.read:
                self.rows[row_id] = row.model_copy(update={"read": True})
                updated += 1
        return updated

    async def delete(self, notification_id: UUID) -> bool:
        return self.rows.pop(notification_id, None) is not None

    def for_user(self, user: UserSummary) -> list[InAppNotification]:
        return [r for r in self.rows.values() if r.user_id == user.id]


class RecordingEmailTransport:
    """Keeps every email handed to it; can be told to fail for some addresses."""

    def __init__(self, fail_for: Iterable[str] = ()):
        self.sent: list[OutgoingEmail] = []
        self.fail_for = set(fail_for)

    async def send(self, email: OutgoingEmail) -> None:
        if email.to in self.fail_for:
            raise RuntimeError(f"provider rejected {email.to}")
        self.sent.append(email)

    def to(self, user: UserSummary) -> list[OutgoingEmail]:
        return [email for email in self.sent if email.to == user.email]


@dataclass
class NotificationHarness:
    """Router wired on in-memory channels."""

    store: FakeNotificationRepository
    transport: RecordingEmailTransport
    notifications: NotificationService
    emails: EmailService
    router: NotificationRouter


def make_harness() -> NotificationHarness:
    store = FakeNotificationRepository()
    transport = RecordingEmailTransport()
    notifications = NotificationService(store)
    emails = EmailService(transport, timeout_seconds=1.0)
    router = NotificationRouter(
        build_strategies(notifications, emails, FRONTEND),
        fallback=GenericNoticeStrategy(notifications, emails, FRONTEND),
    )
    return NotificationHarness(store, transport, notifications, emails, router)


def make_directory(people: SimpleNamespace) -> FakeUserDirectory:
    return FakeUserDirectory(
        [
            people.employee_user,
            people.manager1,
            people.manager2,
            people.nurse,
            people.doctor,
            people.rh,
            people.admin,
            people.other_user,
        ]
    )
