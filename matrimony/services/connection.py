import logging
from datetime import UTC, datetime

from pydantic import UUID4

from matrimony.models.connection import Connection, ConnectionStatus
from matrimony.services.errors import ConnectionNotFoundError, InvalidTransitionError
from matrimony.services.store import StoreBackedService, StoreTransaction

log = logging.getLogger(__name__)

# Statuses each target status may be reached from
ALLOWED_TRANSITIONS: dict[ConnectionStatus, tuple[ConnectionStatus, ...]] = {
    ConnectionStatus.PAUSED: (ConnectionStatus.ACTIVE,),
    ConnectionStatus.ACTIVE: (ConnectionStatus.PAUSED,),
    ConnectionStatus.ENDED: (ConnectionStatus.ACTIVE, ConnectionStatus.PAUSED),
}


class ConnectionService(StoreBackedService):
    """Service for reading and managing a user's connections.

    Connections are only created by accepting an interest; this service lets
    either member pause, resume or end one.
    """

    def _list_connections(
        self,
        tx: StoreTransaction,
        user_id: UUID4,
        status: ConnectionStatus | None,
        limit: int,
        offset: int,
    ) -> list[Connection]:
        return tx.list_connections(user_id, status, limit, offset)

    async def get_connections(
        self,
        user_id: UUID4,
        status: ConnectionStatus | None = ConnectionStatus.ACTIVE,
        limit: int = 20,
        offset: int = 0,
    ) -> list[Connection]:
        """Get a user's connections, most recently connected first.

        Args:
            user_id: ID of the user
            status: Only return connections in this status; None for all
            limit: Maximum number of connections to return
            offset: Number of connections to skip

        Returns:
            List of connections
        """
        return self._read(self._list_connections, user_id, status, limit, offset)

    def _get_connection(
        self, tx: StoreTransaction, connection_id: UUID4, user_id: UUID4
    ) -> Connection:
        connection = tx.get_connection(connection_id)
        if connection is None or not connection.involves(user_id):
            raise ConnectionNotFoundError(f"Connection {connection_id} not found")
        return connection

    async def get_connection(self, connection_id: UUID4, user_id: UUID4) -> Connection:
        """Get one of the user's connections.

        Raises:
            ConnectionNotFoundError: If the connection does not exist or the
                user is not a member of it
        """
        return self._read(self._get_connection, connection_id, user_id)

    def _transition(
        self,
        tx: StoreTransaction,
        connection_id: UUID4,
        user_id: UUID4,
        target: ConnectionStatus,
    ) -> Connection:
        connection = self._get_connection(tx, connection_id, user_id)
        tx.lock_pair(connection.user1_id, connection.user2_id)
        connection = self._get_connection(tx, connection_id, user_id)
        if connection.status not in ALLOWED_TRANSITIONS[target]:
            raise InvalidTransitionError(
                f"Cannot change a {connection.status.value} connection "
                f"to {target.value}"
            )
        update: dict[str, object] = {"status": target}
        if target == ConnectionStatus.ENDED:
            update |= {"ended_at": datetime.now(UTC), "ended_by": user_id}
        return tx.update_connection(connection.model_copy(update=update))

    def _change_status(
        self, connection_id: UUID4, user_id: UUID4, target: ConnectionStatus
    ) -> Connection:
        connection = self._write(self._transition, connection_id, user_id, target)
        log.info("Connection %s %s by %s", connection_id, target.value, user_id)
        return connection

    async def end_connection(self, connection_id: UUID4, user_id: UUID4) -> Connection:
        """End a connection. Either member may end it.

        Raises:
            ConnectionNotFoundError: If the user is not a member of the connection
            InvalidTransitionError: If the connection has already ended
        """
        return self._change_status(connection_id, user_id, ConnectionStatus.ENDED)

    async def pause_connection(
        self, connection_id: UUID4, user_id: UUID4
    ) -> Connection:
        """Pause an active connection.

        Raises:
            ConnectionNotFoundError: If the user is not a member of the connection
            InvalidTransitionError: If the connection is not active
        """
        return self._change_status(connection_id, user_id, ConnectionStatus.PAUSED)

    async def resume_connection(
        self, connection_id: UUID4, user_id: UUID4
    ) -> Connection:
        """Resume a paused connection.

        Raises:
            ConnectionNotFoundError: If the user is not a member of the connection
            InvalidTransitionError: If the connection is not paused
        """
        return self._change_status(connection_id, user_id, ConnectionStatus.ACTIVE)
