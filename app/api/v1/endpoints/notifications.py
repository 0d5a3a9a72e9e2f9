"""In-app notification feed endpoints."""

from uuid import UUID

from fastapi import APIRouter, Query, status

from app.dependencies import CurrentActorDep, NotificationServiceDep
from app.schemas.notifications import (
    InAppNotification,
    MarkAllReadResponse,
    NotificationListResponse,
    UnreadCountResponse,
)

router = APIRouter(prefix="/notifications", tags=["Notifications"])


@router.get(
    "",
    response_model=NotificationListResponse,
    summary="List my notifications",
)
async def list_notifications(
    actor: CurrentActorDep,
    service: NotificationServiceDep,
    page: int = Query(1, ge=1, description="Page number"),
    page_size: int = Query(20, ge=1, le=100, description="Items per page"),
) -> NotificationListResponse:
    """
    List the caller's notifications, newest first.

    Args:
        actor: Authenticated user
        service: Notification service
        page: Page number
        page_size: Items per page

    Returns:
        Paginated notifications
    """
    return await service.list_notifications(actor.id, page=page, page_size=page_size)


@router.get(
    "/unread",
    response_model=NotificationListResponse,
    summary="List unread notifications",
)
async def list_unread_notifications(
    actor: CurrentActorDep,
    service: NotificationServiceDep,
    page: int = Query(1, ge=1, description="Page number"),
    page_size: int = Query(20, ge=1, le=100, description="Items per page"),
) -> NotificationListResponse:
    """List the caller's unread notifications."""
    return await service.list_notifications(actor.id, unread_only=True, page=page, page_size=page_size)


@router.get(
    "/unread/count",
    response_model=UnreadCountResponse,
    summary="Count unread notifications",
)
async def unread_count(
    actor: CurrentActorDep,
    service: NotificationServiceDep,
) -> UnreadCountResponse:
    return UnreadCountResponse(unread=await service.unread_count(actor.id))


@router.patch(
    "/read-all",
    response_model=MarkAllReadResponse,
    summary="Mark all notifications as read",
)
async def mark_all_as_read(
    actor: CurrentActorDep,
    service: NotificationServiceDep,
) -> MarkAllReadResponse:
    return MarkAllReadResponse(updated=await service.mark_all_as_read(actor.id))


@router.patch(
    "/{notification_id}/read",
    response_model=InAppNotification,
    summary="Mark notification as read",
)
async def mark_as_read(
    notification_id: UUID,
    actor: CurrentActorDep,
    service: NotificationServiceDep,
) -> InAppNotification:
    """
    Mark one notification as read.

    Raises:
        NotFoundException: If the notification does not exist
        ForbiddenException: If it belongs to another user
    """
    return await service.mark_as_read(notification_id, actor.id)


@router.delete(
    "/{notification_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete notification",
)
async def delete_notification(
    notification_id: UUID,
    actor: CurrentActorDep,
    service: NotificationServiceDep,
) -> None:
    """Delete one of the caller's notifications."""
    await service.delete_notification(notification_id, actor.id)
