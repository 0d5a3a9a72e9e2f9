"""SQLAlchemy implementation of the appointment repository."""

from collections.abc import Iterable
from datetime import UTC, datetime
from typing import Any
from uuid import UUID

from sqlalchemy import and_, func, insert, select, true, update
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import NotFoundException
from app.models.appointments import appointment_comments, appointments
from app.models.employees import employees
from app.repositories.employees import SqlEmployeeRepository
from app.repositories.users import SqlUserDirectory
from app.schemas.appointments import (
    Appointment,
    AppointmentComment,
    AppointmentFilters,
    AppointmentStatus,
    AppointmentType,
    VisitMode,
)
from app.schemas.users import UserSummary

# Columns written by the workflow on every save
_WORKFLOW_COLUMNS = (
    "type",
    "status",
    "visit_mode",
    "is_obligatory",
    "requested_date_employee",
    "proposed_date",
    "scheduled_time",
    "motif",
    "reason",
    "notes",
    "medical_instructions",
    "medical_service_phone",
    "cancellation_reason",
)


def _enum_value(value: Any) -> Any:
    return value.value if hasattr(value, "value") else value


class SqlAppointmentRepository:
    """Appointments backed by the appointments/appointment_comments tables."""

    def __init__(
        self,
        session: AsyncSession,
        users: SqlUserDirectory | None = None,
        employees_repo: SqlEmployeeRepository | None = None,
    ):
        """Initialize repository with database session."""
        self.session = session
        self.users = users or SqlUserDirectory(session)
        self.employees = employees_repo or SqlEmployeeRepository(session, self.users)

    def _values_from(self, appointment: Appointment) -> dict[str, Any]:
        values = {column: _enum_value(getattr(appointment, column)) for column in _WORKFLOW_COLUMNS}
        values.update(
            {
                "employee_id": appointment.employee.id,
                "nurse_id": appointment.nurse.id if appointment.nurse else None,
                "doctor_id": appointment.doctor.id if appointment.doctor else None,
                "created_by_id": appointment.created_by.id if appointment.created_by else None,
                "updated_by_id": appointment.updated_by.id if appointment.updated_by else None,
            }
        )
        return values

    async def _hydrate_many(self, rows: list[dict[str, Any]]) -> list[Appointment]:
        if not rows:
            return []

        appointment_ids = [row["id"] for row in rows]
        comment_result = await self.session.execute(
            select(appointment_comments)
            .where(appointment_comments.c.appointment_id.in_(appointment_ids))
            .order_by(appointment_comments.c.created_at.asc())
        )
        comment_rows = [dict(r._mapping) for r in comment_result.fetchall()]

        user_ids: set[UUID] = set()
        for row in rows:
            for key in ("nurse_id", "doctor_id", "created_by_id", "updated_by_id"):
                if row.get(key):
                    user_ids.add(row[key])
        user_ids.update(c["author_id"] for c in comment_rows if c.get("author_id"))
        found_users = await self.users.get_users(user_ids)

        profiles = {}
        for employee_id in {row["employee_id"] for row in rows}:
            profile = await self.employees.get_employee(employee_id)
            if profile is not None:
                profiles[employee_id] = profile

        result = []
        for row in rows:
            employee = profiles.get(row["employee_id"])
            if employee is None:
                # Employee row gone; appointment is unlisted
                continue
            comments = [
                AppointmentComment(
                    id=c["id"],
                    author=found_users.get(c.get("author_id")),
                    comment=c["comment"],
                    created_at=c["created_at"],
                )
                for c in comment_rows
                if c["appointment_id"] == row["id"]
            ]
            result.append(
                Appointment(
                    id=row["id"],
                    employee=employee,
                    nurse=found_users.get(row.get("nurse_id")),
                    doctor=found_users.get(row.get("doctor_id")),
                    type=AppointmentType(row["type"]) if row.get("type") else None,
                    status=AppointmentStatus(row["status"]),
                    visit_mode=VisitMode(row["visit_mode"]) if row.get("visit_mode") else None,
                    is_obligatory=row.get("is_obligatory", False),
                    requested_date_employee=row.get("requested_date_employee"),
                    proposed_date=row.get("proposed_date"),
                    scheduled_time=row.get("scheduled_time"),
                    motif=row.get("motif"),
                    reason=row.get("reason"),
                    notes=row.get("notes"),
                    medical_instructions=row.get("medical_instructions"),
                    medical_service_phone=row.get("medical_service_phone"),
                    cancellation_reason=row.get("cancellation_reason"),
                    comments=comments,
                    created_by=found_users.get(row.get("created_by_id")),
                    updated_by=found_users.get(row.get("updated_by_id")),
                    created_at=row.get("created_at"),
                    updated_at=row.get("updated_at"),
                )
            )
        return result

    async def get(self, appointment_id: UUID) -> Appointment | None:
        """Find an appointment with every reference hydrated."""
        result = await self.session.execute(
            select(appointments).where(appointments.c.id == appointment_id)
        )
        row = result.fetchone()
        if row is None:
            return None
        hydrated = await self._hydrate_many([dict(row._mapping)])
        return hydrated[0] if hydrated else None

    async def add(self, appointment: Appointment) -> Appointment:
        """Insert a new appointment and return it with its generated ID."""
        stmt = insert(appointments).values(**self._values_from(appointment)).returning(appointments)
        result = await self.session.execute(stmt)
        row = dict(result.fetchone()._mapping)
        return appointment.model_copy(
            update={"id": row["id"], "created_at": row["created_at"], "updated_at": row["updated_at"]}
        )

    async def save(self, appointment: Appointment) -> Appointment:
        """Persist the workflow fields of an existing appointment."""
        values = self._values_from(appointment)
        values["updated_at"] = datetime.now(UTC)

        stmt = (
            update(appointments)
            .where(appointments.c.id == appointment.id)
            .values(**values)
            .returning(appointments.c.updated_at)
        )
        result = await self.session.execute(stmt)
        row = result.fetchone()
        if row is None:
            raise NotFoundException("Appointment not found")
        return appointment.model_copy(update={"updated_at": row.updated_at})

    async def add_comment(
        self,
        appointment_id: UUID,
        author: UserSummary | None,
        comment: str,
    ) -> AppointmentComment:
        """Append a comment to an appointment."""
        stmt = (
            insert(appointment_comments)
            .values(
                appointment_id=appointment_id,
                author_id=author.id if author else None,
                comment=comment,
            )
            .returning(appointment_comments)
        )
        result = await self.session.execute(stmt)
        row = dict(result.fetchone()._mapping)
        return AppointmentComment(
            id=row["id"],
            author=author,
            comment=row["comment"],
            created_at=row["created_at"],
        )

    async def _paginate(
        self, conditions: list[Any], page: int, page_size: int
    ) -> tuple[list[Appointment], int]:
        where = and_(*conditions) if conditions else true()

        count_stmt = select(func.count()).select_from(appointments).where(where)
        total = (await self.session.execute(count_stmt)).scalar() or 0

        stmt = (
            select(appointments)
            .where(where)
            .order_by(appointments.c.created_at.desc())
            .limit(page_size)
            .offset((page - 1) * page_size)
        )
        result = await self.session.execute(stmt)
        rows = [dict(r._mapping) for r in result.fetchall()]
        return await self._hydrate_many(rows), total

    async def list_for_employee_user(
        self,
        user_id: UUID,
        exclude_statuses: Iterable[AppointmentStatus] = (),
        page: int = 1,
        page_size: int = 20,
    ) -> tuple[list[Appointment], int]:
        """List appointments of the employee linked to a user, newest first."""
        conditions = [
            appointments.c.employee_id.in_(
                select(employees.c.id).where(employees.c.user_id == user_id)
            )
        ]
        excluded = [status.value for status in exclude_statuses]
        if excluded:
            conditions.append(appointments.c.status.not_in(excluded))
        return await self._paginate(conditions, page, page_size)

    async def list_filtered(self, filters: AppointmentFilters) -> tuple[list[Appointment], int]:
        """List appointments matching filters, newest first."""
        conditions = []

        if filters.type:
            conditions.append(appointments.c.type == filters.type.value)

        if filters.statuses:
            conditions.append(appointments.c.status.in_([s.value for s in filters.statuses]))

        if filters.visit_mode:
            conditions.append(appointments.c.visit_mode == filters.visit_mode.value)

        if filters.employee_id:
            conditions.append(appointments.c.employee_id == filters.employee_id)

        when = func.coalesce(
            appointments.c.scheduled_time,
            appointments.c.proposed_date,
            appointments.c.requested_date_employee,
        )
        if filters.from_date:
            conditions.append(when >= filters.from_date)

        if filters.to_date:
            conditions.append(when <= filters.to_date)

        return await self._paginate(conditions, filters.page, filters.page_size)

    async def commit(self) -> None:
        """Commit the current unit of work."""
        await self.session.commit()

    async def rollback(self) -> None:
        """Discard the current unit of work."""
        await self.session.rollback()
