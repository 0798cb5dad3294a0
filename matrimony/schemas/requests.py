from pydantic import BaseModel, ConfigDict, Field

from matrimony.models.interest import InterestDecision


class SendInterestRequest(BaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid")

    message: str | None = Field(None, max_length=500, description="Note for the recipient")


class RespondInterestRequest(BaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid")

    decision: InterestDecision = Field(description="Whether to accept or decline")


class BlockRequest(BaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid")

    reason: str | None = Field(None, max_length=100, description="Why the user is blocked")
