import logging
from datetime import UTC, datetime
from uuid import uuid4

from pydantic import UUID4

from matrimony.models.block import Block
from matrimony.models.connection import ConnectionStatus
from matrimony.models.interest import InterestStatus
from matrimony.models.notification import Activity, ActivityType
from matrimony.schemas.database_records import CreateBlockRecord
from matrimony.services.errors import (
    BlockNotFoundError,
    DuplicateBlockError,
    SelfBlockError,
    UserNotFoundError,
)
from matrimony.services.gatekeeper import GateKeeper
from matrimony.services.store import (
    BLOCK_PAIR,
    RelationshipStore,
    StoreBackedService,
    StoreTransaction,
)

log = logging.getLogger(__name__)


class BlockWorkflow(StoreBackedService):
    """Service for managing user blocks.

    Blocking ends the pair's connection and withdraws every pending interest
    between the two users in the same transaction as the block itself.
    Unblocking only removes the block; nothing it undid is restored.
    """

    conflicts = {
        BLOCK_PAIR: (DuplicateBlockError, "User is already blocked"),
    }

    def __init__(self, store: RelationshipStore, gatekeeper: GateKeeper) -> None:
        super().__init__(store)
        self.gatekeeper = gatekeeper

    def _create_block(
        self,
        tx: StoreTransaction,
        blocker_id: UUID4,
        blocked_id: UUID4,
        reason: str | None,
    ) -> CreateBlockRecord:
        tx.lock_pair(blocker_id, blocked_id)
        if tx.get_account(blocked_id) is None:
            raise UserNotFoundError(f"User {blocked_id} not found")
        if tx.get_block(blocker_id, blocked_id) is not None:
            raise DuplicateBlockError("User is already blocked")

        now = datetime.now(UTC)
        block = tx.insert_block(
            Block(
                block_id=uuid4(),
                blocker_id=blocker_id,
                blocked_id=blocked_id,
                reason=reason,
                created_at=now,
            )
        )

        ended_connection = None
        connection = tx.get_connection_by_pair(blocker_id, blocked_id)
        if connection is not None and connection.status != ConnectionStatus.ENDED:
            ended_connection = tx.update_connection(
                connection.model_copy(
                    update={
                        "status": ConnectionStatus.ENDED,
                        "ended_at": now,
                        "ended_by": blocker_id,
                    }
                )
            )

        withdrawn = [
            tx.update_interest(
                interest.model_copy(
                    update={
                        "status": InterestStatus.WITHDRAWN,
                        "responded_at": now,
                        "updated_at": now,
                    }
                )
            )
            for interest in tx.list_pending_between(blocker_id, blocked_id)
        ]

        tx.insert_activity(
            Activity(
                activity_id=uuid4(),
                user_id=blocker_id,
                activity_type=ActivityType.USER_BLOCKED,
                actor_id=blocker_id,
                target_user_id=blocked_id,
                metadata={"block_id": str(block.block_id)},
                is_public=False,
                created_at=now,
            )
        )
        return CreateBlockRecord(
            block=block,
            ended_connection=ended_connection,
            withdrawn_interests=withdrawn,
        )

    async def block(
        self, blocker_id: UUID4, blocked_id: UUID4, reason: str | None = None
    ) -> CreateBlockRecord:
        """Block a user.

        Args:
            blocker_id: ID of the user doing the blocking
            blocked_id: ID of the user to block
            reason: Optional reason, visible only to the blocker

        Returns:
            Record of the block and everything it ended or withdrew

        Raises:
            SelfBlockError: If the users are the same
            GateDeniedError: If the blocker has not passed the profile gate
            UserNotFoundError: If the user to block does not exist
            DuplicateBlockError: If the user is already blocked
        """
        if blocker_id == blocked_id:
            raise SelfBlockError("Users cannot block themselves")
        await self.gatekeeper.ensure_can_use_relationships(blocker_id)

        record = self._write(self._create_block, blocker_id, blocked_id, reason)
        log.info(
            "User %s blocked %s (connection ended: %s, interests withdrawn: %d)",
            blocker_id,
            blocked_id,
            record.ended_connection is not None,
            len(record.withdrawn_interests),
        )
        return record

    def _remove_block(
        self, tx: StoreTransaction, blocker_id: UUID4, blocked_id: UUID4
    ) -> None:
        tx.lock_pair(blocker_id, blocked_id)
        if not tx.delete_block(blocker_id, blocked_id):
            raise BlockNotFoundError("Block does not exist")

    async def unblock(self, blocker_id: UUID4, blocked_id: UUID4) -> None:
        """Unblock a user.

        Args:
            blocker_id: ID of the user doing the unblocking
            blocked_id: ID of the user to unblock

        Raises:
            SelfBlockError: If the users are the same
            BlockNotFoundError: If the blocker has not blocked the user
        """
        if blocker_id == blocked_id:
            raise SelfBlockError("Users cannot unblock themselves")
        self._write(self._remove_block, blocker_id, blocked_id)
        log.info("User %s unblocked %s", blocker_id, blocked_id)

    def _get_blocked_users(
        self, tx: StoreTransaction, user_id: UUID4, limit: int, offset: int
    ) -> list[Block]:
        return tx.list_blocks(user_id, limit, offset)

    async def get_blocked_users(
        self, user_id: UUID4, limit: int = 50, offset: int = 0
    ) -> list[Block]:
        """Get the blocks a user has made, newest first.

        Args:
            user_id: ID of the user whose blocks to get
            limit: Maximum number of blocks to return
            offset: Number of blocks to skip

        Returns:
            List of blocks
        """
        return self._read(self._get_blocked_users, user_id, limit, offset)

    def _check_block_status(
        self, tx: StoreTransaction, user_id: UUID4, target_id: UUID4
    ) -> bool:
        return tx.block_exists_between(user_id, target_id)

    async def is_blocked(self, user_id: UUID4, target_id: UUID4) -> bool:
        """Check whether either user has blocked the other.

        Args:
            user_id: ID of one user
            target_id: ID of the other user

        Returns:
            True if a block exists in either direction, False otherwise
        """
        return self._read(self._check_block_status, user_id, target_id)
