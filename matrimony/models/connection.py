from datetime import datetime
from enum import Enum

from pydantic import UUID4, BaseModel, ConfigDict, model_validator


class ConnectionStatus(str, Enum):
    ACTIVE = "active"
    PAUSED = "paused"
    ENDED = "ended"


def canonical_pair(user_a: UUID4, user_b: UUID4) -> tuple[UUID4, UUID4]:
    """Order two user IDs so an undirected pair has exactly one representation.

    The order is lexicographic on the canonical (lowercase, hyphenated)
    string form of the UUID.
    """
    if str(user_a) <= str(user_b):
        return user_a, user_b
    return user_b, user_a


def connection_pair_key(user_a: UUID4, user_b: UUID4) -> str:
    low, high = canonical_pair(user_a, user_b)
    return f"{low}:{high}"


class Connection(BaseModel):
    """A confirmed, undirected relationship between two users.

    Stored with ``user1_id < user2_id`` so that each unordered pair maps to
    a single row regardless of who sent the originating interest.

    Attributes:
        connection_id: Unique identifier for the connection
        user1_id: Lower user ID of the canonical pair
        user2_id: Higher user ID of the canonical pair
        status: Current connection state
        interest_id: The interest whose acceptance created (or revived) it
        connected_at: When the connection last became active
        ended_at: When the connection was ended, if it was
        ended_by: Who ended the connection, if it was ended
    """

    model_config = ConfigDict(frozen=True)

    connection_id: UUID4
    user1_id: UUID4
    user2_id: UUID4
    status: ConnectionStatus = ConnectionStatus.ACTIVE
    interest_id: UUID4 | None = None
    connected_at: datetime
    ended_at: datetime | None = None
    ended_by: UUID4 | None = None

    @model_validator(mode="after")
    def validate_canonical_order(self) -> "Connection":
        if str(self.user1_id) >= str(self.user2_id):
            raise ValueError("Connection users must be distinct and canonically ordered")
        return self

    @property
    def pair_key(self) -> str:
        return f"{self.user1_id}:{self.user2_id}"

    def involves(self, user_id: UUID4) -> bool:
        return user_id in (self.user1_id, self.user2_id)

    def other_user(self, user_id: UUID4) -> UUID4:
        """Return the member of the pair that is not ``user_id``."""
        return self.user2_id if user_id == self.user1_id else self.user1_id
