from datetime import datetime
from enum import Enum
from typing import Annotated

from pydantic import UUID4, BaseModel, ConfigDict, Field


class InterestStatus(str, Enum):
    """Lifecycle states of an interest expression.

    PENDING is the only non-terminal state.
    """

    PENDING = "pending"
    ACCEPTED = "accepted"
    DECLINED = "declined"
    WITHDRAWN = "withdrawn"


class InterestDecision(str, Enum):
    """Responses a recipient can give to a pending interest."""

    ACCEPT = "accept"
    DECLINE = "decline"


class Interest(BaseModel):
    """A one-directional expression of interest awaiting a response.

    There is at most one interest per ordered ``(from_user_id, to_user_id)``
    pair. ``responded_at`` is set exactly when the status leaves PENDING.

    Attributes:
        interest_id: Unique identifier for the interest
        from_user_id: ID of the user expressing interest
        to_user_id: ID of the user receiving the interest
        status: Current lifecycle state
        message: Optional note sent with the interest
        responded_at: When the interest left the pending state
        created_at: When the interest was (last) sent
        updated_at: When the interest was last modified
    """

    model_config = ConfigDict(frozen=True)

    interest_id: UUID4
    from_user_id: UUID4
    to_user_id: UUID4
    status: InterestStatus = InterestStatus.PENDING
    message: Annotated[str, Field(max_length=500)] | None = None
    responded_at: datetime | None = None
    created_at: datetime
    updated_at: datetime

    @property
    def pair_key(self) -> str:
        """Ordered pair key used for the per-direction uniqueness constraint."""
        return interest_pair_key(self.from_user_id, self.to_user_id)


def interest_pair_key(from_user_id: UUID4, to_user_id: UUID4) -> str:
    return f"{from_user_id}:{to_user_id}"
