"""Notification store: idempotent in-app notifications and the user's feed."""

from uuid import UUID

import structlog

from app.core.exceptions import ForbiddenException, NotFoundException, NotificationDeliveryFailure
from app.repositories.base import NotificationRepository
from app.schemas.notifications import (
    APPOINTMENT_ENTITY,
    InAppNotification,
    NotificationListResponse,
    NotificationType,
)
from app.schemas.users import UserSummary

logger = structlog.get_logger(__name__)

MAX_FIELD_LENGTH = 255


def clamp(value: str | None, limit: int = MAX_FIELD_LENGTH) -> str | None:
    """Cut a value to the column size, ending with an ellipsis when truncated."""
    if value is None or len(value) <= limit:
        return value
    return value[: limit - 3] + "..."


class NotificationService:
    """Service for in-app notifications."""

    def __init__(self, repository: NotificationRepository):
        """Initialize service with a notification repository."""
        self.repository = repository

    async def send_general_notification(
        self,
        user: UserSummary,
        title: str,
        message: str,
        notification_type: NotificationType = NotificationType.APPOINTMENT,
        action_url: str | None = None,
        related_entity_type: str | None = None,
        related_entity_id: UUID | None = None,
    ) -> InAppNotification:
        """
        Store an in-app notification for a user.

        Appointment notifications are upserted: a user keeps a single row per
        appointment that is overwritten, marked unread and moved to the top of
        the feed each time a new scenario fires.

        Args:
            user: Recipient
            title: Notification title
            message: Notification body
            notification_type: Type tag
            action_url: Deep link into the frontend
            related_entity_type: Entity kind, "APPOINTMENT" for appointments
            related_entity_id: Entity ID

        Returns:
            Stored notification

        Raises:
            NotificationDeliveryFailure: If the row could not be written
        """
        title = clamp(title) or ""
        message = clamp(message) or ""
        action_url = clamp(action_url)

        try:
            if related_entity_type == APPOINTMENT_ENTITY and related_entity_id is not None:
                notification = await self.repository.upsert_for_entity(
                    user_id=user.id,
                    related_entity_type=related_entity_type,
                    related_entity_id=related_entity_id,
                    title=title,
                    message=message,
                    notification_type=notification_type,
                    action_url=action_url,
                )
            else:
                notification = await self.repository.insert(
                    user_id=user.id,
                    title=title,
                    message=message,
                    notification_type=notification_type,
                    action_url=action_url,
                )
        except Exception as e:
            logger.error(
                "in_app_notification_failed",
                user_id=str(user.id),
                related_entity_id=str(related_entity_id) if related_entity_id else None,
                error=str(e),
            )
            raise NotificationDeliveryFailure(str(e), channel="in_app") from e

        logger.info(
            "in_app_notification_stored",
            user_id=str(user.id),
            notification_id=str(notification.id),
            related_entity_id=str(related_entity_id) if related_entity_id else None,
        )
        return notification

    async def list_notifications(
        self,
        user_id: UUID,
        unread_only: bool = False,
        page: int = 1,
        page_size: int = 20,
    ) -> NotificationListResponse:
        """
        List the user's notifications, newest first.

        Args:
            user_id: Owner of the feed
            unread_only: Only return unread notifications
            page: Page number
            page_size: Items per page

        Returns:
            Paginated notifications
        """
        items, total = await self.repository.list_for_user(
            user_id, unread_only=unread_only, page=page, page_size=page_size
        )
        return NotificationListResponse(total=total, page=page, page_size=page_size, items=items)

    async def unread_count(self, user_id: UUID) -> int:
        return await self.repository.count_unread(user_id)

    async def _get_owned(self, notification_id: UUID, user_id: UUID) -> InAppNotification:
        notification = await self.repository.get(notification_id)
        if notification is None:
            raise NotFoundException("Notification not found")
        if notification.user_id != user_id:
            raise ForbiddenException("Access denied to this notification")
        return notification

    async def mark_as_read(self, notification_id: UUID, user_id: UUID) -> InAppNotification:
        """
        Mark one of the user's notifications as read.

        Raises:
            NotFoundException: If the notification does not exist
            ForbiddenException: If it belongs to another user
        """
        await self._get_owned(notification_id, user_id)
        notification = await self.repository.mark_read(notification_id)
        if notification is None:
            raise NotFoundException("Notification not found")
        return notification

    async def mark_all_as_read(self, user_id: UUID) -> int:
        updated = await self.repository.mark_all_read(user_id)
        logger.info("notifications_marked_read", user_id=str(user_id), count=updated)
        return updated

    async def delete_notification(self, notification_id: UUID, user_id: UUID) -> None:
        """Delete one of the user's notifications."""
        await self._get_owned(notification_id, user_id)
        await self.repository.delete(notification_id)
