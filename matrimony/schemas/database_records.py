from pydantic import BaseModel, ConfigDict, Field

from matrimony.models.block import Block
from matrimony.models.connection import Connection
from matrimony.models.interest import Interest


class RespondInterestRecord(BaseModel):
    """Result of answering an interest.

    Attributes:
        interest: The interest after the response
        connection: The active connection for the pair if the interest was
            accepted, None if it was declined
    """

    model_config = ConfigDict(frozen=True)

    interest: Interest = Field(description="The interest after the response")
    connection: Connection | None = Field(
        None, description="The active connection if the interest was accepted"
    )


class CreateBlockRecord(BaseModel):
    """Keeps track of everything a block changed.

    Attributes:
        block: The created block
        ended_connection: The connection ended by the block, if there was one
        withdrawn_interests: Pending interests withdrawn by the block
    """

    model_config = ConfigDict(frozen=True)

    block: Block = Field(description="The created block")
    ended_connection: Connection | None = Field(
        None, description="The connection ended by the block, if any"
    )
    withdrawn_interests: list[Interest] = Field(
        default_factory=list, description="Pending interests withdrawn by the block"
    )
