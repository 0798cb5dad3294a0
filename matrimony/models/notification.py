from datetime import datetime
from enum import Enum
from typing import Any

from pydantic import UUID4, BaseModel, ConfigDict, Field


class NotificationType(str, Enum):
    """Types of notifications delivered to users.

    Attributes:
        CONNECTION_REQUEST: Someone sent the user an interest
        CONNECTION_ACCEPTED: The user's interest was accepted
        SYSTEM: Platform announcements
    """

    CONNECTION_REQUEST = "connection_request"
    CONNECTION_ACCEPTED = "connection_accepted"
    SYSTEM = "system"


class Notification(BaseModel):
    """Model representing a notification in the system.

    Notifications are append-only; only ``is_read`` and ``read_at`` change
    after creation.

    Attributes:
        notification_id: Unique identifier for the notification
        recipient_id: ID of the user receiving the notification
        notification_type: Type of notification
        related_user_id: ID of the user who triggered the notification
        title: Short headline
        message: Human readable body
        payload: Type-specific data
        action_url: Where the client should navigate on click
        is_actionable: Whether the notification asks the user to act
        is_read: Whether the recipient has read it
        read_at: When the recipient read it
        created_at: When the notification was created
    """

    model_config = ConfigDict(frozen=True)

    notification_id: UUID4 = Field(description="Unique identifier for the notification")
    recipient_id: UUID4 = Field(description="ID of the user receiving the notification")
    notification_type: NotificationType = Field(description="Type of notification")
    related_user_id: UUID4 | None = Field(
        None, description="ID of the user who triggered the notification"
    )
    title: str = Field(description="Short headline")
    message: str = Field(description="Human readable body")
    payload: dict[str, Any] = Field(default_factory=dict, description="Type-specific data")
    action_url: str | None = Field(None, description="Client route to open on click")
    is_actionable: bool = Field(False, description="Whether the user is asked to act")
    is_read: bool = Field(False, description="Whether the notification was read")
    read_at: datetime | None = Field(None, description="When the notification was read")
    created_at: datetime = Field(description="When the notification was created")


class ActivityType(str, Enum):
    CONNECTION_REQUEST_SENT = "connection_request_sent"
    CONNECTION_ACCEPTED = "connection_accepted"
    USER_BLOCKED = "user_blocked"


class Activity(BaseModel):
    """Entry in a user's activity feed.

    Attributes:
        activity_id: Unique identifier for the activity
        user_id: Feed owner
        activity_type: What happened
        actor_id: Who performed the action
        target_user_id: Who the action affected
        metadata: Activity-specific data
        is_public: Whether the activity may be shown to the target user
        created_at: When the activity happened
    """

    model_config = ConfigDict(frozen=True)

    activity_id: UUID4
    user_id: UUID4
    activity_type: ActivityType
    actor_id: UUID4
    target_user_id: UUID4 | None = None
    metadata: dict[str, Any] = Field(default_factory=dict)
    is_public: bool = True
    created_at: datetime
