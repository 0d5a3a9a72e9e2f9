"""SQLAlchemy implementation of the employee repository."""

from typing import Any
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.employees import employees
from app.repositories.users import SqlUserDirectory
from app.schemas.users import EmployeeProfile


class SqlEmployeeRepository:
    """Employee profiles backed by the employees table."""

    def __init__(self, session: AsyncSession, users: SqlUserDirectory | None = None):
        """Initialize repository with database session."""
        self.session = session
        self.users = users or SqlUserDirectory(session)

    async def _fetch_rows(self, employee_ids: list[UUID]) -> dict[UUID, dict[str, Any]]:
        ids = [eid for eid in employee_ids if eid is not None]
        if not ids:
            return {}
        result = await self.session.execute(select(employees).where(employees.c.id.in_(ids)))
        return {row.id: dict(row._mapping) for row in result.fetchall()}

    async def _hydrate(self, row: dict[str, Any]) -> EmployeeProfile:
        manager_rows = await self._fetch_rows([row.get("manager1_id"), row.get("manager2_id")])
        user_ids = [row.get("user_id")] + [m.get("user_id") for m in manager_rows.values()]
        found_users = await self.users.get_users(uid for uid in user_ids if uid)

        def build(data: dict[str, Any], with_managers: bool) -> EmployeeProfile:
            manager1 = manager2 = None
            if with_managers:
                if data.get("manager1_id") in manager_rows:
                    manager1 = build(manager_rows[data["manager1_id"]], False)
                if data.get("manager2_id") in manager_rows:
                    manager2 = build(manager_rows[data["manager2_id"]], False)
            return EmployeeProfile(
                id=data["id"],
                user=found_users.get(data.get("user_id")),
                first_name=data.get("first_name"),
                last_name=data.get("last_name"),
                phone=data.get("phone"),
                manager1=manager1,
                manager2=manager2,
            )

        return build(row, True)

    async def get_employee(self, employee_id: UUID) -> EmployeeProfile | None:
        """Find an employee with user and managers hydrated."""
        rows = await self._fetch_rows([employee_id])
        row = rows.get(employee_id)
        if row is None:
            return None
        return await self._hydrate(row)

    async def get_by_user_id(self, user_id: UUID) -> EmployeeProfile | None:
        """Find the employee profile linked to a user account."""
        result = await self.session.execute(select(employees).where(employees.c.user_id == user_id))
        row = result.fetchone()
        if row is None:
            return None
        return await self._hydrate(dict(row._mapping))
