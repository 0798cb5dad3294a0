from datetime import datetime
from enum import IntEnum

from pydantic import UUID4, BaseModel, ConfigDict


class ProfileStage(IntEnum):
    """Progression through the staged profile editor.

    Stages 1-4 correspond to the four profile sections. COMPLETED is reached
    once the initial profile has been submitted.
    """

    BASIC = 1
    PERSONAL = 2
    LIFESTYLE = 3
    MEDIA = 4
    COMPLETED = 5


class Account(BaseModel):
    """Relationship-subsystem view of a registered user.

    Attributes:
        user_id: Unique identifier for the user
        profile_stage: Furthest stage the user may edit
        minimal_profile_completion: Whether the user has passed the profile
            gate. Once true it is never reset.
        created_at: When the account was registered
    """

    model_config = ConfigDict(frozen=True)

    user_id: UUID4
    profile_stage: ProfileStage = ProfileStage.BASIC
    minimal_profile_completion: bool = False
    created_at: datetime


class AuthenticatedUser(BaseModel):
    """Caller identity extracted from a verified bearer token.

    Attributes:
        user_id: ID of the authenticated user (the token subject)
        token_id: The token's ``jti`` claim, if present
        expires_at: When the token expires, if it carries an ``exp`` claim
    """

    model_config = ConfigDict(frozen=True)

    user_id: UUID4
    token_id: str | None = None
    expires_at: datetime | None = None
