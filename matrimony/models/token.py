from datetime import datetime

from pydantic import BaseModel, ConfigDict


class RevokedToken(BaseModel):
    """Denylist entry for a revoked access token.

    The entry only matters until the token would have expired on its own;
    after ``expires_at`` it is ignored and may be purged.

    Attributes:
        jti: The token's unique identifier claim
        expires_at: When the token expires
        revoked_at: When the token was revoked
    """

    model_config = ConfigDict(frozen=True)

    jti: str
    expires_at: datetime
    revoked_at: datetime
