"""SQLAlchemy implementation of the in-app notification repository."""

from datetime import UTC, datetime
from uuid import UUID

from sqlalchemy import delete, desc, func, select, update
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.notifications import notifications
from app.schemas.notifications import InAppNotification, NotificationType


class SqlNotificationRepository:
    """In-app notifications backed by the notifications table.

    Every write commits on its own so that one recipient's failure never
    affects rows written for another recipient.
    """

    def __init__(self, session: AsyncSession):
        """Initialize repository with database session."""
        self.session = session

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
        """Insert or overwrite the notification of a user for an entity.

        Uses ``INSERT ... ON CONFLICT DO UPDATE`` against the partial unique
        index so two racing dispatches resolve as last-write-wins.
        """
        now = datetime.now(UTC)
        stmt = pg_insert(notifications).values(
            user_id=user_id,
            title=title,
            message=message,
            type=notification_type.value,
            read=False,
            related_entity_type=related_entity_type,
            related_entity_id=related_entity_id,
            action_url=action_url,
            created_at=now,
        )
        stmt = stmt.on_conflict_do_update(
            index_elements=["user_id", "related_entity_type", "related_entity_id"],
            index_where=notifications.c.related_entity_id.isnot(None),
            set_={
                "title": stmt.excluded.title,
                "message": stmt.excluded.message,
                "action_url": stmt.excluded.action_url,
                "type": stmt.excluded.type,
                "read": False,
                "created_at": stmt.excluded.created_at,
            },
        ).returning(notifications)

        try:
            result = await self.session.execute(stmt)
            row = result.fetchone()
            await self.session.commit()
        except Exception:
            await self.session.rollback()
            raise
        return InAppNotification.model_validate(dict(row._mapping))

    async def insert(
        self,
        user_id: UUID,
        title: str,
        message: str,
        notification_type: NotificationType,
        action_url: str | None = None,
    ) -> InAppNotification:
        """Insert a notification that is not tied to an entity."""
        stmt = (
            pg_insert(notifications)
            .values(
                user_id=user_id,
                title=title,
                message=message,
                type=notification_type.value,
                action_url=action_url,
            )
            .returning(notifications)
        )
        result = await self.session.execute(stmt)
        row = result.fetchone()
        await self.session.commit()
        return InAppNotification.model_validate(dict(row._mapping))

    async def get(self, notification_id: UUID) -> InAppNotification | None:
        """Find a notification by ID."""
        result = await self.session.execute(
            select(notifications).where(notifications.c.id == notification_id)
        )
        row = result.fetchone()
        return InAppNotification.model_validate(dict(row._mapping)) if row else None

    async def list_for_user(
        self,
        user_id: UUID,
        unread_only: bool = False,
        page: int = 1,
        page_size: int = 20,
    ) -> tuple[list[InAppNotification], int]:
        """List a user's notifications, newest first."""
        conditions = [notifications.c.user_id == user_id]
        if unread_only:
            conditions.append(notifications.c.read.is_(False))

        count_stmt = select(func.count()).select_from(notifications).where(*conditions)
        total = (await self.session.execute(count_stmt)).scalar() or 0

        stmt = (
            select(notifications)
            .where(*conditions)
            .order_by(desc(notifications.c.created_at))
            .limit(page_size)
            .offset((page - 1) * page_size)
        )
        result = await self.session.execute(stmt)
        items = [InAppNotification.model_validate(dict(r._mapping)) for r in result.fetchall()]
        return items, total

    async def count_unread(self, user_id: UUID) -> int:
        """Count a user's unread notifications."""
        stmt = (
            select(func.count())
            .select_from(notifications)
            .where(notifications.c.user_id == user_id, notifications.c.read.is_(False))
        )
        return (await self.session.execute(stmt)).scalar() or 0

    async def mark_read(self, notification_id: UUID) -> InAppNotification | None:
        """Mark one notification as read."""
        stmt = (
            update(notifications)
            .where(notifications.c.id == notification_id)
            .values(read=True)
            .returning(notifications)
        )
        result = await self.session.execute(stmt)
        row = result.fetchone()
        await self.session.commit()
        return InAppNotification.model_validate(dict(row._mapping)) if row else None

    async def mark_all_read(self, user_id: UUID) -> int:
        """Mark every notification of a user as read."""
        stmt = (
            update(notifications)
            .where(notifications.c.user_id == user_id, notifications.c.read.is_(False))
            .values(read=True)
        )
        result = await self.session.execute(stmt)
        await self.session.commit()
        return result.rowcount or 0

    async def delete(self, notification_id: UUID) -> bool:
        """Delete a notification."""
        result = await self.session.execute(
            delete(notifications).where(notifications.c.id == notification_id)
        )
        await self.session.commit()
        return bool(result.rowcount)
