import logging
from abc import ABC, abstractmethod
from collections.abc import Callable
from datetime import datetime
from enum import Enum
from typing import Any, TypeVar

from pydantic import UUID4

from matrimony.models.block import Block
from matrimony.models.connection import Connection, ConnectionStatus
from matrimony.models.interest import Interest, InterestStatus
from matrimony.models.notification import Activity, Notification
from matrimony.models.profile import Profile
from matrimony.models.token import RevokedToken
from matrimony.models.user import Account
from matrimony.services.errors import (
    ConflictViolation,
    RelationshipStoreUnavailableError,
)

log = logging.getLogger(__name__)

T = TypeVar("T")

# Uniqueness constraint names reported by UniqueViolation
ACCOUNT_ID = "account_id"
PROFILE_OWNER = "profile_owner"
INTEREST_PAIR = "interest_pair"
CONNECTION_PAIR = "connection_pair"
BLOCK_PAIR = "block_pair"


class StoreError(Exception):
    """Base exception for persistence failures."""

    pass


class UniqueViolation(StoreError):
    """Exception raised when an insert collides with a uniqueness constraint.

    Attributes:
        constraint: Name of the violated constraint
    """

    def __init__(self, constraint: str, message: str | None = None) -> None:
        super().__init__(message or f"Unique constraint violated: {constraint}")
        self.constraint = constraint


class TransientStoreError(StoreError):
    """Exception raised for failures that may succeed if the transaction is rerun."""

    pass


class InterestDirection(str, Enum):
    RECEIVED = "received"
    SENT = "sent"


class StoreTransaction(ABC):
    """Typed operations available inside a single store transaction.

    Every write made through a transaction commits together or not at all.
    Inserts raise UniqueViolation when they would break a uniqueness rule.
    """

    @abstractmethod
    def lock_pair(self, user_a: UUID4, user_b: UUID4) -> None:
        """Take exclusive locks on both users in canonical order.

        Held until the transaction ends; reads made afterwards observe every
        change committed by transactions that held the same locks.
        """
        raise NotImplementedError

    # Accounts

    @abstractmethod
    def get_account(self, user_id: UUID4) -> Account | None:
        raise NotImplementedError

    @abstractmethod
    def insert_account(self, account: Account) -> Account:
        raise NotImplementedError

    @abstractmethod
    def update_account(self, account: Account) -> Account:
        """Persist stage and gate changes.

        The stored gate flag is OR-ed with the new value so it never reverts.
        """
        raise NotImplementedError

    # Profiles

    @abstractmethod
    def get_profile(self, user_id: UUID4) -> Profile | None:
        raise NotImplementedError

    @abstractmethod
    def insert_profile(self, profile: Profile) -> Profile:
        raise NotImplementedError

    @abstractmethod
    def update_profile(self, profile: Profile) -> Profile:
        raise NotImplementedError

    # Interests

    @abstractmethod
    def get_interest(self, interest_id: UUID4) -> Interest | None:
        raise NotImplementedError

    @abstractmethod
    def get_interest_by_pair(
        self, from_user_id: UUID4, to_user_id: UUID4
    ) -> Interest | None:
        raise NotImplementedError

    @abstractmethod
    def insert_interest(self, interest: Interest) -> Interest:
        raise NotImplementedError

    @abstractmethod
    def update_interest(self, interest: Interest) -> Interest:
        raise NotImplementedError

    @abstractmethod
    def list_interests(
        self,
        user_id: UUID4,
        direction: InterestDirection,
        status: InterestStatus | None,
        limit: int,
        offset: int,
    ) -> list[Interest]:
        """List interests sent or received by a user, newest first."""
        raise NotImplementedError

    @abstractmethod
    def list_pending_between(self, user_a: UUID4, user_b: UUID4) -> list[Interest]:
        """List pending interests in either direction between two users."""
        raise NotImplementedError

    # Connections

    @abstractmethod
    def get_connection(self, connection_id: UUID4) -> Connection | None:
        raise NotImplementedError

    @abstractmethod
    def get_connection_by_pair(
        self, user_a: UUID4, user_b: UUID4
    ) -> Connection | None:
        """Look up the connection for an unordered pair."""
        raise NotImplementedError

    @abstractmethod
    def insert_connection(self, connection: Connection) -> Connection:
        raise NotImplementedError

    @abstractmethod
    def update_connection(self, connection: Connection) -> Connection:
        raise NotImplementedError

    @abstractmethod
    def list_connections(
        self,
        user_id: UUID4,
        status: ConnectionStatus | None,
        limit: int,
        offset: int,
    ) -> list[Connection]:
        """List connections involving a user, most recently connected first."""
        raise NotImplementedError

    # Blocks

    @abstractmethod
    def get_block(self, blocker_id: UUID4, blocked_id: UUID4) -> Block | None:
        raise NotImplementedError

    @abstractmethod
    def block_exists_between(self, user_a: UUID4, user_b: UUID4) -> bool:
        """Whether either user has blocked the other."""
        raise NotImplementedError

    @abstractmethod
    def insert_block(self, block: Block) -> Block:
        raise NotImplementedError

    @abstractmethod
    def delete_block(self, blocker_id: UUID4, blocked_id: UUID4) -> bool:
        """Remove a block, returning whether one existed."""
        raise NotImplementedError

    @abstractmethod
    def list_blocks(self, blocker_id: UUID4, limit: int, offset: int) -> list[Block]:
        """List blocks made by a user, newest first."""
        raise NotImplementedError

    # Notifications and activities

    @abstractmethod
    def insert_notification(self, notification: Notification) -> Notification:
        raise NotImplementedError

    @abstractmethod
    def get_notification(self, notification_id: UUID4) -> Notification | None:
        raise NotImplementedError

    @abstractmethod
    def update_notification(self, notification: Notification) -> Notification:
        raise NotImplementedError

    @abstractmethod
    def list_notifications(
        self, recipient_id: UUID4, unread_only: bool, limit: int, offset: int
    ) -> list[Notification]:
        """List a user's notifications, newest first."""
        raise NotImplementedError

    @abstractmethod
    def insert_activity(self, activity: Activity) -> Activity:
        raise NotImplementedError

    @abstractmethod
    def list_activities(
        self, user_id: UUID4, limit: int, offset: int
    ) -> list[Activity]:
        """List a user's activity feed, newest first."""
        raise NotImplementedError

    # Revoked tokens

    @abstractmethod
    def upsert_revoked_token(self, token: RevokedToken) -> RevokedToken:
        raise NotImplementedError

    @abstractmethod
    def get_revoked_token(self, jti: str) -> RevokedToken | None:
        raise NotImplementedError

    @abstractmethod
    def purge_revoked_tokens(self, now: datetime) -> int:
        """Delete entries whose token has expired, returning how many went."""
        raise NotImplementedError


class RelationshipStore(ABC):
    """Durable storage for accounts, profiles and relationship state.

    Work is expressed as a transaction function receiving a StoreTransaction
    followed by its own arguments, in the same shape as the neo4j driver's
    ``execute_write`` and ``execute_read``.
    """

    @abstractmethod
    def write(self, work: Callable[..., T], *args: Any) -> T:
        """Run ``work`` in a write transaction and commit if it returns.

        Raises:
            TransientStoreError: If the transaction failed for a retryable reason
            StoreError: If the transaction failed otherwise
        """
        raise NotImplementedError

    @abstractmethod
    def read(self, work: Callable[..., T], *args: Any) -> T:
        raise NotImplementedError

    def ensure_schema(self) -> None:
        """Create constraints and indexes the store relies on, if any."""
        pass

    def close(self) -> None:
        pass


def write_with_retry(
    store: RelationshipStore,
    work: Callable[..., T],
    *args: Any,
    retry_on: tuple[type[StoreError], ...] = (TransientStoreError,),
) -> T:
    """Run a write transaction, rerunning it once if it fails with ``retry_on``.

    The whole transaction function is rerun, so it must read the state it
    depends on rather than carry it over from the failed attempt.
    """
    try:
        return store.write(work, *args)
    except retry_on as e:
        log.warning(
            "Retrying %s after %s: %s",
            getattr(work, "__name__", repr(work)),
            type(e).__name__,
            e,
        )
        return store.write(work, *args)


class StoreBackedService:
    """Base for services that run transaction functions against the store.

    Attributes:
        store: The relationship store
        conflicts: Maps uniqueness constraint names to the domain error and
            message raised when a write violates them
    """

    conflicts: dict[str, tuple[type[ConflictViolation], str]] = {}

    def __init__(self, store: RelationshipStore) -> None:
        self.store = store

    def _write(
        self,
        work: Callable[..., T],
        *args: Any,
        retry_on: tuple[type[StoreError], ...] = (TransientStoreError,),
    ) -> T:
        try:
            return write_with_retry(self.store, work, *args, retry_on=retry_on)
        except UniqueViolation as e:
            if conflict := self.conflicts.get(e.constraint):
                error, message = conflict
                raise error(message) from e
            log.exception("Unexpected uniqueness violation in %s", work.__name__)
            raise RelationshipStoreUnavailableError() from e
        except StoreError as e:
            log.exception("Store write failed in %s", work.__name__)
            raise RelationshipStoreUnavailableError() from e

    def _read(self, work: Callable[..., T], *args: Any) -> T:
        try:
            return self.store.read(work, *args)
        except StoreError as e:
            log.exception("Store read failed in %s", work.__name__)
            raise RelationshipStoreUnavailableError() from e
