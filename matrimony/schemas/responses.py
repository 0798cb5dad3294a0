from pydantic import BaseModel, ConfigDict, Field

from matrimony.models.user import ProfileStage
from matrimony.schemas.views import BlockView, ConnectionView, InterestView


class HealthCheckResponseSchema(BaseModel):
    success: bool


class RespondInterestResponse(BaseModel):
    """Response returned after answering an interest.

    Attributes:
        interest: The interest after the response
        connection: The active connection, if the interest was accepted
    """

    model_config = ConfigDict(frozen=True)

    interest: InterestView = Field(description="The interest after the response")
    connection: ConnectionView | None = Field(
        None, description="The active connection, if accepted"
    )


class BlockResponse(BaseModel):
    """Response returned after blocking a user.

    Attributes:
        block: The created block
        connection_ended: Whether an existing connection was ended
        interests_withdrawn: Number of pending interests withdrawn
    """

    model_config = ConfigDict(frozen=True)

    block: BlockView = Field(description="The created block")
    connection_ended: bool = Field(description="Whether a connection was ended")
    interests_withdrawn: int = Field(description="Pending interests withdrawn")


class GateStatusResponse(BaseModel):
    """Where the caller stands in the staged profile editor.

    Attributes:
        profile_stage: Furthest stage the caller may edit
        minimal_profile_completion: Whether the initial profile was submitted
        can_use_relationships: Whether relationship features are open
    """

    model_config = ConfigDict(frozen=True)

    profile_stage: ProfileStage
    minimal_profile_completion: bool
    can_use_relationships: bool
