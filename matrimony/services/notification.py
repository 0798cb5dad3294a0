import logging
from abc import ABC, abstractmethod
from datetime import UTC, datetime
from typing import Any
from uuid import uuid4

from pydantic import UUID4, BaseModel, ConfigDict

from matrimony.models.notification import Activity, Notification, NotificationType
from matrimony.services.errors import NotificationNotFoundError
from matrimony.services.store import StoreBackedService, StoreTransaction

log = logging.getLogger(__name__)


class NotificationTemplate(BaseModel):
    """How a notification of one type is presented to its recipient."""

    model_config = ConfigDict(frozen=True)

    title: str
    message: str
    action_url: str | None = None
    is_actionable: bool = False


TEMPLATES: dict[NotificationType, NotificationTemplate] = {
    NotificationType.CONNECTION_REQUEST: NotificationTemplate(
        title="New Connection Request",
        message="You have received a new connection request",
        action_url="/interests/received",
        is_actionable=True,
    ),
    NotificationType.CONNECTION_ACCEPTED: NotificationTemplate(
        title="Connection Accepted!",
        message="Your connection request has been accepted",
        action_url="/connections",
    ),
    NotificationType.SYSTEM: NotificationTemplate(
        title="Announcement",
        message="",
    ),
}


class NotificationSink(ABC):
    """Destination for notifications emitted after a relationship change commits.

    Implementations may fail; callers log the failure and carry on, since the
    relationship change has already been committed.
    """

    @abstractmethod
    def emit(
        self,
        recipient_id: UUID4,
        notification_type: NotificationType,
        related_user_id: UUID4 | None,
        payload: dict[str, Any],
    ) -> None:
        """Deliver a notification.

        Args:
            recipient_id: ID of the user to notify
            notification_type: Type of notification
            related_user_id: ID of the user who triggered it
            payload: Type-specific data
        """
        raise NotImplementedError


def build_notification(
    recipient_id: UUID4,
    notification_type: NotificationType,
    related_user_id: UUID4 | None,
    payload: dict[str, Any],
) -> Notification:
    template = TEMPLATES[notification_type]
    return Notification(
        notification_id=uuid4(),
        recipient_id=recipient_id,
        notification_type=notification_type,
        related_user_id=related_user_id,
        title=payload.get("title", template.title),
        message=payload.get("message", template.message),
        payload=payload,
        action_url=template.action_url,
        is_actionable=template.is_actionable,
        created_at=datetime.now(UTC),
    )


class StoreNotificationSink(StoreBackedService, NotificationSink):
    """Sink that persists notifications to the recipient's inbox."""

    def _create_notification(
        self, tx: StoreTransaction, notification: Notification
    ) -> Notification:
        return tx.insert_notification(notification)

    def emit(
        self,
        recipient_id: UUID4,
        notification_type: NotificationType,
        related_user_id: UUID4 | None,
        payload: dict[str, Any],
    ) -> None:
        notification = build_notification(
            recipient_id, notification_type, related_user_id, payload
        )
        self._write(self._create_notification, notification)
        log.debug(
            "Stored %s notification %s for user %s",
            notification_type.value,
            notification.notification_id,
            recipient_id,
        )


def emit_after_commit(
    sink: NotificationSink,
    recipient_id: UUID4,
    notification_type: NotificationType,
    related_user_id: UUID4 | None,
    payload: dict[str, Any],
) -> bool:
    """Emit a notification for an already committed change.

    Failures are logged and reported through the return value; they never
    undo the committed change.

    Returns:
        True if the sink accepted the notification, False otherwise
    """
    try:
        sink.emit(recipient_id, notification_type, related_user_id, payload)
    except Exception:
        log.exception(
            "Failed to emit %s notification to user %s",
            notification_type.value,
            recipient_id,
        )
        return False
    return True


class NotificationService(StoreBackedService):
    """Service for reading a user's notification inbox and activity feed."""

    def _list_notifications(
        self,
        tx: StoreTransaction,
        user_id: UUID4,
        unread_only: bool,
        limit: int,
        offset: int,
    ) -> list[Notification]:
        return tx.list_notifications(user_id, unread_only, limit, offset)

    async def get_notifications(
        self,
        user_id: UUID4,
        unread_only: bool = False,
        limit: int = 20,
        offset: int = 0,
    ) -> list[Notification]:
        """Get a user's notifications, newest first.

        Args:
            user_id: ID of the recipient
            unread_only: Whether to skip notifications already read
            limit: Maximum number of notifications to return
            offset: Number of notifications to skip

        Returns:
            List of notifications
        """
        return self._read(
            self._list_notifications, user_id, unread_only, limit, offset
        )

    def _mark_as_read(
        self, tx: StoreTransaction, notification_id: UUID4, user_id: UUID4
    ) -> Notification:
        notification = tx.get_notification(notification_id)
        if notification is None or notification.recipient_id != user_id:
            raise NotificationNotFoundError(
                f"Notification {notification_id} not found"
            )
        if notification.is_read:
            return notification
        return tx.update_notification(
            notification.model_copy(
                update={"is_read": True, "read_at": datetime.now(UTC)}
            )
        )

    async def mark_as_read(self, notification_id: UUID4, user_id: UUID4) -> Notification:
        """Mark one of the user's notifications as read.

        The first read time is kept if the notification was already read.

        Raises:
            NotificationNotFoundError: If the notification does not exist or
                belongs to another user
        """
        return self._write(self._mark_as_read, notification_id, user_id)

    def _list_activities(
        self, tx: StoreTransaction, user_id: UUID4, limit: int, offset: int
    ) -> list[Activity]:
        return tx.list_activities(user_id, limit, offset)

    async def get_activities(
        self, user_id: UUID4, limit: int = 20, offset: int = 0
    ) -> list[Activity]:
        """Get a user's activity feed, newest first."""
        return self._read(self._list_activities, user_id, limit, offset)
