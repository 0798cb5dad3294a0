from uuid import uuid4

import pytest
from pydantic import UUID4

from matrimony.models.connection import Connection, ConnectionStatus
from matrimony.models.interest import InterestDecision
from matrimony.services.connection import ConnectionService
from matrimony.services.errors import ConnectionNotFoundError, InvalidTransitionError
from matrimony.services.interest import InterestWorkflow


@pytest.fixture
async def connection(
    interest_workflow: InterestWorkflow,
    test_user_id: UUID4,
    another_test_user_id: UUID4,
) -> Connection:
    interest = await interest_workflow.send(test_user_id, another_test_user_id)
    record = await interest_workflow.respond(
        interest.interest_id, another_test_user_id, InterestDecision.ACCEPT
    )
    return record.connection


@pytest.mark.unit
class TestConnectionService:
    @pytest.mark.asyncio
    async def test_get_connections_lists_active_for_both_members(
        self,
        connection_service: ConnectionService,
        connection: Connection,
        test_user_id: UUID4,
        another_test_user_id: UUID4,
        third_test_user_id: UUID4,
    ):
        # Act
        mine = await connection_service.get_connections(test_user_id)
        theirs = await connection_service.get_connections(another_test_user_id)
        outsider = await connection_service.get_connections(third_test_user_id)

        # Assert
        assert mine == [connection]
        assert theirs == [connection]
        assert outsider == []

    @pytest.mark.asyncio
    async def test_get_connection_requires_membership(
        self,
        connection_service: ConnectionService,
        connection: Connection,
        third_test_user_id: UUID4,
    ):
        # Act & Assert
        with pytest.raises(ConnectionNotFoundError):
            await connection_service.get_connection(
                connection.connection_id, third_test_user_id
            )

    @pytest.mark.asyncio
    async def test_get_missing_connection(
        self, connection_service: ConnectionService, test_user_id: UUID4
    ):
        with pytest.raises(ConnectionNotFoundError):
            await connection_service.get_connection(uuid4(), test_user_id)

    @pytest.mark.asyncio
    async def test_pause_and_resume(
        self,
        connection_service: ConnectionService,
        connection: Connection,
        test_user_id: UUID4,
        another_test_user_id: UUID4,
    ):
        # Act
        paused = await connection_service.pause_connection(
            connection.connection_id, test_user_id
        )
        active = await connection_service.get_connections(test_user_id)
        paused_list = await connection_service.get_connections(
            test_user_id, ConnectionStatus.PAUSED
        )
        resumed = await connection_service.resume_connection(
            connection.connection_id, another_test_user_id
        )

        # Assert
        assert paused.status == ConnectionStatus.PAUSED
        assert active == []
        assert [c.connection_id for c in paused_list] == [connection.connection_id]
        assert resumed.status == ConnectionStatus.ACTIVE

    @pytest.mark.asyncio
    async def test_resume_active_connection_fails(
        self,
        connection_service: ConnectionService,
        connection: Connection,
        test_user_id: UUID4,
    ):
        with pytest.raises(InvalidTransitionError):
            await connection_service.resume_connection(
                connection.connection_id, test_user_id
            )

    @pytest.mark.asyncio
    async def test_end_connection_records_who_ended_it(
        self,
        connection_service: ConnectionService,
        connection: Connection,
        another_test_user_id: UUID4,
    ):
        # Act
        ended = await connection_service.end_connection(
            connection.connection_id, another_test_user_id
        )

        # Assert
        assert ended.status == ConnectionStatus.ENDED
        assert ended.ended_by == another_test_user_id
        assert ended.ended_at is not None

    @pytest.mark.asyncio
    async def test_end_paused_connection(
        self,
        connection_service: ConnectionService,
        connection: Connection,
        test_user_id: UUID4,
    ):
        # Arrange
        await connection_service.pause_connection(
            connection.connection_id, test_user_id
        )

        # Act
        ended = await connection_service.end_connection(
            connection.connection_id, test_user_id
        )

        # Assert
        assert ended.status == ConnectionStatus.ENDED

    @pytest.mark.asyncio
    async def test_ended_connection_cannot_change(
        self,
        connection_service: ConnectionService,
        connection: Connection,
        test_user_id: UUID4,
    ):
        # Arrange
        await connection_service.end_connection(connection.connection_id, test_user_id)

        # Act & Assert
        with pytest.raises(InvalidTransitionError):
            await connection_service.end_connection(
                connection.connection_id, test_user_id
            )
        with pytest.raises(InvalidTransitionError):
            await connection_service.pause_connection(
                connection.connection_id, test_user_id
            )
        with pytest.raises(InvalidTransitionError):
            await connection_service.resume_connection(
                connection.connection_id, test_user_id
            )

    @pytest.mark.asyncio
    async def test_outsider_cannot_end_connection(
        self,
        connection_service: ConnectionService,
        connection: Connection,
        third_test_user_id: UUID4,
    ):
        with pytest.raises(ConnectionNotFoundError):
            await connection_service.end_connection(
                connection.connection_id, third_test_user_id
            )
