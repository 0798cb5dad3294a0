import logging
from datetime import UTC, datetime, timedelta

from matrimony.config import settings
from matrimony.models.token import RevokedToken
from matrimony.services.store import (
    RelationshipStore,
    StoreBackedService,
    StoreTransaction,
)

log = logging.getLogger(__name__)


class TokenDenylist(StoreBackedService):
    """Durable record of revoked access tokens, keyed by their ``jti`` claim.

    Entries live in the relationship store so a restart does not re-admit
    revoked tokens. An entry is ignored once the token would have expired
    anyway.

    Attributes:
        default_ttl: How long to keep an entry for a token with no expiry
    """

    def __init__(
        self,
        store: RelationshipStore,
        default_ttl: timedelta = timedelta(seconds=settings.TOKEN_DENYLIST_TTL_SECONDS),
    ) -> None:
        super().__init__(store)
        self.default_ttl = default_ttl

    def _revoke(self, tx: StoreTransaction, token: RevokedToken) -> RevokedToken:
        return tx.upsert_revoked_token(token)

    async def revoke(self, jti: str, expires_at: datetime | None = None) -> RevokedToken:
        """Revoke a token until it expires.

        Args:
            jti: The token's unique identifier claim
            expires_at: When the token expires; the default TTL applies if None

        Returns:
            The stored denylist entry
        """
        now = datetime.now(UTC)
        token = RevokedToken(
            jti=jti,
            expires_at=expires_at or now + self.default_ttl,
            revoked_at=now,
        )
        token = self._write(self._revoke, token)
        log.info("Revoked token %s until %s", jti, token.expires_at.isoformat())
        return token

    def _get_revoked(self, tx: StoreTransaction, jti: str) -> RevokedToken | None:
        return tx.get_revoked_token(jti)

    async def is_revoked(self, jti: str) -> bool:
        token = self._read(self._get_revoked, jti)
        return token is not None and token.expires_at > datetime.now(UTC)

    def _purge(self, tx: StoreTransaction, now: datetime) -> int:
        return tx.purge_revoked_tokens(now)

    async def purge_expired(self) -> int:
        """Delete entries for tokens that have expired.

        Returns:
            Number of entries deleted
        """
        purged = self._write(self._purge, datetime.now(UTC))
        if purged:
            log.info("Purged %d expired denylist entries", purged)
        return purged
