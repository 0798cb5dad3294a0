from datetime import datetime
from typing import Annotated

from pydantic import UUID4, BaseModel, ConfigDict, Field


class Block(BaseModel):
    """Model representing a block relationship between users.

    A block is directed, but the existence of a block in either direction
    makes the unordered pair non-interactable.

    Attributes:
        block_id: Unique identifier for the block
        blocker_id: ID of the user doing the blocking
        blocked_id: ID of the user being blocked
        reason: Optional reason given by the blocker
        created_at: When the block was created
    """

    model_config = ConfigDict(frozen=True)

    block_id: UUID4
    blocker_id: UUID4
    blocked_id: UUID4
    reason: Annotated[str, Field(max_length=100)] | None = None
    created_at: datetime

    @property
    def pair_key(self) -> str:
        return block_pair_key(self.blocker_id, self.blocked_id)


def block_pair_key(blocker_id: UUID4, blocked_id: UUID4) -> str:
    return f"{blocker_id}:{blocked_id}"
