from typing import Annotated

from fastapi import APIRouter, Depends, Query
from pydantic import UUID4

from matrimony.api.errors import to_http_exception
from matrimony.dependencies import CurrentUser, get_notification_service
from matrimony.models.notification import Activity
from matrimony.schemas.views import NotificationView, to_public_view
from matrimony.services.errors import RelationshipError
from matrimony.services.notification import NotificationService

router = APIRouter(prefix="/notifications", tags=["notifications"])

NotificationServiceDep = Annotated[
    NotificationService, Depends(get_notification_service)
]


@router.get("", response_model=list[NotificationView])
async def get_notifications(
    current_user: CurrentUser,
    notifications: NotificationServiceDep,
    unread_only: bool = False,
    limit: Annotated[int, Query(ge=1, le=100)] = 20,
    offset: Annotated[int, Query(ge=0)] = 0,
) -> list[NotificationView]:
    """Get the current user's notifications, newest first.

    Raises:
        HTTPException: If the store is unavailable
    """
    try:
        found = await notifications.get_notifications(
            current_user.user_id, unread_only, limit, offset
        )
    except RelationshipError as e:
        raise to_http_exception(e)
    return [to_public_view(notification) for notification in found]


@router.post("/{notification_id}/read", response_model=NotificationView)
async def mark_notification_read(
    notification_id: UUID4,
    current_user: CurrentUser,
    notifications: NotificationServiceDep,
) -> NotificationView:
    """Mark one of the current user's notifications as read.

    Raises:
        HTTPException: If the notification is not found
    """
    try:
        notification = await notifications.mark_as_read(
            notification_id, current_user.user_id
        )
    except RelationshipError as e:
        raise to_http_exception(e)
    return to_public_view(notification)


@router.get("/activities", response_model=list[Activity])
async def get_activities(
    current_user: CurrentUser,
    notifications: NotificationServiceDep,
    limit: Annotated[int, Query(ge=1, le=100)] = 20,
    offset: Annotated[int, Query(ge=0)] = 0,
) -> list[Activity]:
    """Get the current user's activity feed.

    Raises:
        HTTPException: If the store is unavailable
    """
    try:
        return await notifications.get_activities(
            current_user.user_id, limit, offset
        )
    except RelationshipError as e:
        raise to_http_exception(e)
