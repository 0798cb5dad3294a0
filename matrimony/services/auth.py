import logging
from datetime import UTC, datetime
from typing import Any, cast
from uuid import UUID

from jose import ExpiredSignatureError, JWTError, jwt
from jose.exceptions import JWTClaimsError
from pydantic import ValidationError

from matrimony.config import Settings, settings
from matrimony.models.user import AuthenticatedUser
from matrimony.services.token_denylist import TokenDenylist

log = logging.getLogger(__name__)


class AuthError(Exception):
    """Base exception for auth-related errors."""

    pass


class InvalidTokenError(AuthError):
    """Exception raised when a token is invalid."""

    pass


class TokenExpiredError(AuthError):
    """Exception raised when a token has expired."""

    pass


class TokenRevokedError(AuthError):
    """Exception raised when a token has been revoked."""

    pass


class AuthService:
    """Service for validating bearer tokens and revoking them on logout.

    Tokens are HS256 JWTs whose ``sub`` claim is the user ID. Tokens that
    carry a ``jti`` can be revoked; revoked tokens are rejected until they
    expire.

    Attributes:
        secret: Key used to verify token signatures
        audience: Expected ``aud`` claim, if any
        algorithms: List of supported JWT algorithms
        denylist: Durable store of revoked token IDs
    """

    def __init__(self, denylist: TokenDenylist, config: Settings = settings) -> None:
        self.secret: str = config.JWT_SECRET
        self.audience: str | None = config.JWT_AUDIENCE
        self.algorithms: list[str] = [config.JWT_ALGORITHM]
        self.denylist = denylist

    def validate_token(self, token: str) -> dict[str, Any]:
        """Validate a JWT and return its claims.

        Args:
            token: The JWT token to validate

        Returns:
            The decoded token payload

        Raises:
            InvalidTokenError: If token is invalid
            TokenExpiredError: If token has expired
        """
        if not self.secret:
            raise InvalidTokenError("Token verification is not configured")
        try:
            payload = jwt.decode(
                token,
                self.secret,
                algorithms=self.algorithms,
                audience=self.audience,
                options={"verify_aud": self.audience is not None},
            )
        except ExpiredSignatureError:
            raise TokenExpiredError("Token has expired")
        except JWTClaimsError as e:
            raise InvalidTokenError(f"Invalid claims: {str(e)}")
        except JWTError as e:
            raise InvalidTokenError(f"Invalid token: {str(e)}")
        return cast(dict[str, Any], payload)

    def _identity(self, payload: dict[str, Any]) -> AuthenticatedUser:
        expires_at = None
        if "exp" in payload:
            expires_at = datetime.fromtimestamp(int(payload["exp"]), tz=UTC)
        try:
            return AuthenticatedUser(
                user_id=UUID(str(payload["sub"])),
                token_id=payload.get("jti"),
                expires_at=expires_at,
            )
        except (KeyError, ValueError, ValidationError):
            raise InvalidTokenError("Token subject is not a user ID")

    async def get_current_user(self, token: str) -> AuthenticatedUser:
        """Get the caller's identity from a bearer token.

        Args:
            token: The JWT token string

        Returns:
            The authenticated user

        Raises:
            InvalidTokenError: If token is invalid
            TokenExpiredError: If token has expired
            TokenRevokedError: If token was revoked
        """
        user = self._identity(self.validate_token(token))
        if user.token_id and await self.denylist.is_revoked(user.token_id):
            raise TokenRevokedError("Token has been revoked")
        return user

    async def logout(self, user: AuthenticatedUser) -> None:
        """Revoke the token the user authenticated with.

        Raises:
            InvalidTokenError: If the token carries no ``jti`` to revoke
        """
        if not user.token_id:
            raise InvalidTokenError("Token cannot be revoked")
        await self.denylist.revoke(user.token_id, user.expires_at)
        log.info("User %s logged out", user.user_id)
