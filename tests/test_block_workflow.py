from collections.abc import Callable
from uuid import uuid4

import pytest
from memory_store import MemoryRelationshipStore
from pydantic import UUID4

from matrimony.models.connection import ConnectionStatus
from matrimony.models.interest import InterestDecision, InterestStatus
from matrimony.models.notification import ActivityType
from matrimony.services.block import BlockWorkflow
from matrimony.services.connection import ConnectionService
from matrimony.services.errors import (
    BlockNotFoundError,
    DuplicateBlockError,
    GateDeniedError,
    RelationshipStoreUnavailableError,
    SelfBlockError,
    UserNotFoundError,
)
from matrimony.services.interest import InterestWorkflow
from matrimony.services.store import StoreError


@pytest.mark.unit
class TestBlockWorkflow:
    @pytest.mark.asyncio
    async def test_block_user_success(
        self,
        block_workflow: BlockWorkflow,
        test_user_id: UUID4,
        another_test_user_id: UUID4,
    ):
        # Act
        record = await block_workflow.block(
            test_user_id, another_test_user_id, "Not interested"
        )

        # Assert
        assert record.block.blocker_id == test_user_id
        assert record.block.blocked_id == another_test_user_id
        assert record.block.reason == "Not interested"
        assert record.ended_connection is None
        assert record.withdrawn_interests == []

    @pytest.mark.asyncio
    async def test_block_self_fails(
        self, block_workflow: BlockWorkflow, test_user_id: UUID4
    ):
        # Act & Assert
        with pytest.raises(SelfBlockError, match="Users cannot block themselves"):
            await block_workflow.block(test_user_id, test_user_id)

    @pytest.mark.asyncio
    async def test_block_requires_gate(
        self,
        block_workflow: BlockWorkflow,
        make_user: Callable[..., UUID4],
        another_test_user_id: UUID4,
    ):
        # Arrange
        blocker = make_user(gate_passed=False)

        # Act & Assert
        with pytest.raises(GateDeniedError):
            await block_workflow.block(blocker, another_test_user_id)

    @pytest.mark.asyncio
    async def test_block_unknown_user(
        self, block_workflow: BlockWorkflow, test_user_id: UUID4
    ):
        # Act & Assert
        with pytest.raises(UserNotFoundError):
            await block_workflow.block(test_user_id, uuid4())

    @pytest.mark.asyncio
    async def test_duplicate_block_fails(
        self,
        block_workflow: BlockWorkflow,
        test_user_id: UUID4,
        another_test_user_id: UUID4,
    ):
        # Arrange
        await block_workflow.block(test_user_id, another_test_user_id)

        # Act & Assert
        with pytest.raises(DuplicateBlockError):
            await block_workflow.block(test_user_id, another_test_user_id)

    @pytest.mark.asyncio
    async def test_blocked_user_can_block_back(
        self,
        block_workflow: BlockWorkflow,
        test_user_id: UUID4,
        another_test_user_id: UUID4,
    ):
        # Arrange
        await block_workflow.block(test_user_id, another_test_user_id)

        # Act
        record = await block_workflow.block(another_test_user_id, test_user_id)

        # Assert
        assert record.block.blocker_id == another_test_user_id

    @pytest.mark.asyncio
    async def test_block_cascades_over_pair(
        self,
        block_workflow: BlockWorkflow,
        interest_workflow: InterestWorkflow,
        store: MemoryRelationshipStore,
        test_user_id: UUID4,
        another_test_user_id: UUID4,
        third_test_user_id: UUID4,
    ):
        # Arrange
        accepted = await interest_workflow.send(test_user_id, another_test_user_id)
        await interest_workflow.respond(
            accepted.interest_id, another_test_user_id, InterestDecision.ACCEPT
        )
        reverse = await interest_workflow.send(another_test_user_id, test_user_id)
        unrelated = await interest_workflow.send(test_user_id, third_test_user_id)

        # Act
        record = await block_workflow.block(test_user_id, another_test_user_id)

        # Assert
        assert record.ended_connection is not None
        assert record.ended_connection.status == ConnectionStatus.ENDED
        assert record.ended_connection.ended_by == test_user_id
        assert record.ended_connection.ended_at is not None
        assert [i.interest_id for i in record.withdrawn_interests] == [
            reverse.interest_id
        ]
        statuses = {i.interest_id: i.status for i in store.rows("interests")}
        assert statuses == {
            accepted.interest_id: InterestStatus.ACCEPTED,
            reverse.interest_id: InterestStatus.WITHDRAWN,
            unrelated.interest_id: InterestStatus.PENDING,
        }

    @pytest.mark.asyncio
    async def test_block_records_private_activity_for_blocker(
        self,
        block_workflow: BlockWorkflow,
        store: MemoryRelationshipStore,
        test_user_id: UUID4,
        another_test_user_id: UUID4,
    ):
        # Act
        record = await block_workflow.block(test_user_id, another_test_user_id)

        # Assert
        (activity,) = store.rows("activities")
        assert activity.activity_type == ActivityType.USER_BLOCKED
        assert activity.user_id == test_user_id
        assert activity.target_user_id == another_test_user_id
        assert activity.is_public is False
        assert activity.metadata == {"block_id": str(record.block.block_id)}
        assert store.rows("notifications") == []

    @pytest.mark.asyncio
    async def test_block_is_all_or_nothing(
        self,
        block_workflow: BlockWorkflow,
        interest_workflow: InterestWorkflow,
        store: MemoryRelationshipStore,
        test_user_id: UUID4,
        another_test_user_id: UUID4,
    ):
        # Arrange
        interest = await interest_workflow.send(another_test_user_id, test_user_id)
        store.failures.append(StoreError("constraint check timed out"))

        # Act & Assert
        with pytest.raises(RelationshipStoreUnavailableError):
            await block_workflow.block(test_user_id, another_test_user_id)
        assert store.rows("blocks") == []
        (stored,) = store.rows("interests")
        assert stored.interest_id == interest.interest_id
        assert stored.status == InterestStatus.PENDING

    @pytest.mark.asyncio
    async def test_unblock_user_success(
        self,
        block_workflow: BlockWorkflow,
        test_user_id: UUID4,
        another_test_user_id: UUID4,
    ):
        # Arrange
        await block_workflow.block(test_user_id, another_test_user_id)

        # Act
        await block_workflow.unblock(test_user_id, another_test_user_id)

        # Assert
        assert await block_workflow.is_blocked(test_user_id, another_test_user_id) is False

    @pytest.mark.asyncio
    async def test_unblock_self_fails(
        self, block_workflow: BlockWorkflow, test_user_id: UUID4
    ):
        # Act & Assert
        with pytest.raises(SelfBlockError, match="Users cannot unblock themselves"):
            await block_workflow.unblock(test_user_id, test_user_id)

    @pytest.mark.asyncio
    async def test_unblock_nonexistent_block(
        self,
        block_workflow: BlockWorkflow,
        test_user_id: UUID4,
        another_test_user_id: UUID4,
    ):
        # Act & Assert
        with pytest.raises(BlockNotFoundError):
            await block_workflow.unblock(test_user_id, another_test_user_id)

    @pytest.mark.asyncio
    async def test_only_blocker_can_unblock(
        self,
        block_workflow: BlockWorkflow,
        test_user_id: UUID4,
        another_test_user_id: UUID4,
    ):
        # Arrange
        await block_workflow.block(test_user_id, another_test_user_id)

        # Act & Assert
        with pytest.raises(BlockNotFoundError):
            await block_workflow.unblock(another_test_user_id, test_user_id)
        assert await block_workflow.is_blocked(test_user_id, another_test_user_id)

    @pytest.mark.asyncio
    async def test_unblock_does_not_restore_state(
        self,
        block_workflow: BlockWorkflow,
        interest_workflow: InterestWorkflow,
        connection_service: ConnectionService,
        store: MemoryRelationshipStore,
        test_user_id: UUID4,
        another_test_user_id: UUID4,
    ):
        # Arrange
        interest = await interest_workflow.send(test_user_id, another_test_user_id)
        await interest_workflow.respond(
            interest.interest_id, another_test_user_id, InterestDecision.ACCEPT
        )
        pending = await interest_workflow.send(another_test_user_id, test_user_id)
        await block_workflow.block(test_user_id, another_test_user_id)

        # Act
        await block_workflow.unblock(test_user_id, another_test_user_id)

        # Assert
        assert await connection_service.get_connections(test_user_id) == []
        statuses = {i.interest_id: i.status for i in store.rows("interests")}
        assert statuses[pending.interest_id] == InterestStatus.WITHDRAWN

    @pytest.mark.asyncio
    async def test_is_blocked_either_direction(
        self,
        block_workflow: BlockWorkflow,
        test_user_id: UUID4,
        another_test_user_id: UUID4,
        third_test_user_id: UUID4,
    ):
        # Arrange
        await block_workflow.block(test_user_id, another_test_user_id)

        # Act & Assert
        assert await block_workflow.is_blocked(test_user_id, another_test_user_id)
        assert await block_workflow.is_blocked(another_test_user_id, test_user_id)
        assert not await block_workflow.is_blocked(test_user_id, third_test_user_id)

    @pytest.mark.asyncio
    async def test_get_blocked_users(
        self,
        block_workflow: BlockWorkflow,
        test_user_id: UUID4,
        another_test_user_id: UUID4,
        third_test_user_id: UUID4,
    ):
        # Arrange
        await block_workflow.block(test_user_id, another_test_user_id)
        await block_workflow.block(test_user_id, third_test_user_id)
        await block_workflow.block(another_test_user_id, third_test_user_id)

        # Act
        result = await block_workflow.get_blocked_users(test_user_id)

        # Assert
        assert {b.blocked_id for b in result} == {
            another_test_user_id,
            third_test_user_id,
        }

    @pytest.mark.asyncio
    async def test_get_blocked_users_with_pagination(
        self,
        mocker,
        block_workflow: BlockWorkflow,
        test_user_id: UUID4,
    ):
        # Arrange
        limit = 10
        offset = 5
        mock_get = mocker.patch.object(
            block_workflow, "_get_blocked_users", return_value=[]
        )

        # Act
        await block_workflow.get_blocked_users(
            test_user_id, limit=limit, offset=offset
        )

        # Assert
        mock_get.assert_called_once()
        assert mock_get.call_args.args[1:] == (test_user_id, limit, offset)
