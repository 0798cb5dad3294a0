from datetime import datetime
from functools import singledispatch
from typing import Any

from pydantic import UUID4, BaseModel, ConfigDict, HttpUrl

from matrimony.models.block import Block
from matrimony.models.connection import Connection
from matrimony.models.interest import Interest
from matrimony.models.notification import Notification
from matrimony.models.profile import (
    BodyType,
    Complexion,
    DietaryPreference,
    DrinkingHabits,
    Education,
    EmploymentType,
    FamilyType,
    FamilyValues,
    ImmigrationStatus,
    MaritalStatus,
    MotherTongue,
    Profile,
    SmokingHabits,
    WorkLocation,
)


class PublicProfileView(BaseModel):
    """What other users may see of a profile.

    Income and other private details are left out.
    """

    model_config = ConfigDict(frozen=True)

    user_id: UUID4
    marital_status: MaritalStatus | None = None
    education: Education | None = None
    occupation: str | None = None
    height: int | None = None
    mother_tongue: MotherTongue | None = None
    about_me: str | None = None
    work_location: WorkLocation | None = None
    immigration_status: ImmigrationStatus | None = None
    body_type: BodyType | None = None
    complexion: Complexion | None = None
    employment_type: EmploymentType | None = None
    known_languages: list[str] = []
    caste: str | None = None
    sub_caste: str | None = None
    dietary_preference: DietaryPreference | None = None
    family_values: FamilyValues | None = None
    smoking_habits: SmokingHabits | None = None
    drinking_habits: DrinkingHabits | None = None
    partner_expectations: str | None = None
    hobbies: list[str] = []
    interests: list[str] = []
    family_type: FamilyType | None = None
    willing_to_relocate: bool = False
    primary_photo_url: HttpUrl | None = None
    profile_photos: list[HttpUrl] = []
    completion_percentage: int
    is_verified: bool


class InterestView(BaseModel):
    model_config = ConfigDict(frozen=True)

    interest_id: UUID4
    from_user_id: UUID4
    to_user_id: UUID4
    status: str
    message: str | None = None
    responded_at: datetime | None = None
    created_at: datetime


class ConnectionView(BaseModel):
    model_config = ConfigDict(frozen=True)

    connection_id: UUID4
    user1_id: UUID4
    user2_id: UUID4
    status: str
    connected_at: datetime
    ended_at: datetime | None = None


class BlockView(BaseModel):
    """A block as its creator sees it."""

    model_config = ConfigDict(frozen=True)

    block_id: UUID4
    blocked_id: UUID4
    reason: str | None = None
    created_at: datetime


class NotificationView(BaseModel):
    model_config = ConfigDict(frozen=True)

    notification_id: UUID4
    notification_type: str
    related_user_id: UUID4 | None = None
    title: str
    message: str
    payload: dict[str, Any] = {}
    action_url: str | None = None
    is_actionable: bool
    is_read: bool
    read_at: datetime | None = None
    created_at: datetime


@singledispatch
def to_public_view(entity: Any) -> BaseModel:
    """Convert a stored entity to the shape returned across the HTTP boundary.

    Args:
        entity: The stored entity

    Returns:
        A view model holding only the fields callers may see

    Raises:
        TypeError: If the entity has no public view
    """
    raise TypeError(f"No public view for {type(entity).__name__}")


@to_public_view.register
def _(entity: Profile) -> PublicProfileView:
    return PublicProfileView.model_validate(
        entity.model_dump(
            mode="json", exclude={"income", "family_details", "weight", "is_public"}
        )
    )


@to_public_view.register
def _(entity: Interest) -> InterestView:
    return InterestView(
        interest_id=entity.interest_id,
        from_user_id=entity.from_user_id,
        to_user_id=entity.to_user_id,
        status=entity.status.value,
        message=entity.message,
        responded_at=entity.responded_at,
        created_at=entity.created_at,
    )


@to_public_view.register
def _(entity: Connection) -> ConnectionView:
    return ConnectionView(
        connection_id=entity.connection_id,
        user1_id=entity.user1_id,
        user2_id=entity.user2_id,
        status=entity.status.value,
        connected_at=entity.connected_at,
        ended_at=entity.ended_at,
    )


@to_public_view.register
def _(entity: Block) -> BlockView:
    return BlockView(
        block_id=entity.block_id,
        blocked_id=entity.blocked_id,
        reason=entity.reason,
        created_at=entity.created_at,
    )


@to_public_view.register
def _(entity: Notification) -> NotificationView:
    return NotificationView.model_validate(
        entity.model_dump(mode="json", exclude={"recipient_id"})
    )
