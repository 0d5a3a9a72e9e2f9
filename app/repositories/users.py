"""SQLAlchemy implementation of the user directory."""

from collections import defaultdict
from collections.abc import Iterable
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.users import user_roles, users
from app.schemas.users import RoleName, UserSummary


class SqlUserDirectory:
    """Users and role membership backed by the users/user_roles tables."""

    def __init__(self, session: AsyncSession):
        """Initialize repository with database session."""
        self.session = session

    async def _roles_for(self, user_ids: list[UUID]) -> dict[UUID, set[RoleName]]:
        if not user_ids:
            return {}
        stmt = select(user_roles.c.user_id, user_roles.c.role).where(
            user_roles.c.user_id.in_(user_ids)
        )
        result = await self.session.execute(stmt)
        roles: dict[UUID, set[RoleName]] = defaultdict(set)
        for row in result.fetchall():
            try:
                roles[row.user_id].add(RoleName(row.role))
            except ValueError:
                continue
        return roles

    @staticmethod
    def _to_summary(row, roles: set[RoleName]) -> UserSummary:
        data = dict(row._mapping)
        return UserSummary(
            id=data["id"],
            email=data["email"],
            first_name=data.get("first_name"),
            last_name=data.get("last_name"),
            phone=data.get("phone"),
            roles=frozenset(roles),
            is_active=data.get("is_active", True),
        )

    async def get_user(self, user_id: UUID) -> UserSummary | None:
        """Find a user with its role set."""
        found = await self.get_users([user_id])
        return found.get(user_id)

    async def get_users(self, user_ids: Iterable[UUID]) -> dict[UUID, UserSummary]:
        """Find several users at once, keyed by ID."""
        ids = list({uid for uid in user_ids if uid is not None})
        if not ids:
            return {}

        result = await self.session.execute(select(users).where(users.c.id.in_(ids)))
        rows = result.fetchall()
        roles = await self._roles_for([row.id for row in rows])

        return {row.id: self._to_summary(row, roles.get(row.id, set())) for row in rows}

    async def find_by_roles(self, roles: Iterable[RoleName]) -> list[UserSummary]:
        """Find every active user holding at least one of the given roles."""
        role_values = [role.value for role in roles]
        if not role_values:
            return []

        stmt = (
            select(users)
            .where(
                users.c.is_active.is_(True),
                users.c.id.in_(
                    select(user_roles.c.user_id).where(user_roles.c.role.in_(role_values))
                ),
            )
            .order_by(users.c.email)
        )
        result = await self.session.execute(stmt)
        rows = result.fetchall()
        all_roles = await self._roles_for([row.id for row in rows])

        return [self._to_summary(row, all_roles.get(row.id, set())) for row in rows]
