import logging
from datetime import UTC, datetime
from uuid import uuid4

from pydantic import UUID4

from matrimony.models.connection import Connection, ConnectionStatus, canonical_pair
from matrimony.models.interest import Interest, InterestDecision, InterestStatus
from matrimony.models.notification import Activity, ActivityType, NotificationType
from matrimony.schemas.database_records import RespondInterestRecord
from matrimony.services.errors import (
    AlreadyBlockedError,
    DuplicateInterestError,
    InterestNotFoundError,
    InvalidTransitionError,
    NotAuthorizedError,
    SelfInterestError,
    UserNotFoundError,
)
from matrimony.services.gatekeeper import GateKeeper
from matrimony.services.notification import NotificationSink, emit_after_commit
from matrimony.services.store import (
    INTEREST_PAIR,
    InterestDirection,
    RelationshipStore,
    StoreBackedService,
    StoreError,
    StoreTransaction,
    TransientStoreError,
    UniqueViolation,
)

log = logging.getLogger(__name__)


def upsert_connection(
    tx: StoreTransaction, interest: Interest, now: datetime
) -> Connection:
    """Make the connection for the interest's pair active.

    Inserts the canonical row if there is none, reactivates a paused or ended
    row, and leaves an active row untouched.
    """
    low, high = canonical_pair(interest.from_user_id, interest.to_user_id)
    existing = tx.get_connection_by_pair(low, high)
    if existing is None:
        return tx.insert_connection(
            Connection(
                connection_id=uuid4(),
                user1_id=low,
                user2_id=high,
                status=ConnectionStatus.ACTIVE,
                interest_id=interest.interest_id,
                connected_at=now,
            )
        )
    if existing.status == ConnectionStatus.ACTIVE:
        return existing
    return tx.update_connection(
        existing.model_copy(
            update={
                "status": ConnectionStatus.ACTIVE,
                "interest_id": interest.interest_id,
                "connected_at": now,
                "ended_at": None,
                "ended_by": None,
            }
        )
    )


class InterestWorkflow(StoreBackedService):
    """Service for sending, answering and withdrawing interests.

    Accepting an interest is the only way a connection comes into being.
    Every change to a pair runs in one transaction that first locks both
    users, and is rerun once on a transient store failure.
    """

    conflicts = {
        INTEREST_PAIR: (DuplicateInterestError, "Interest already sent to this user"),
    }

    def __init__(
        self,
        store: RelationshipStore,
        gatekeeper: GateKeeper,
        sink: NotificationSink,
    ) -> None:
        super().__init__(store)
        self.gatekeeper = gatekeeper
        self.sink = sink

    def _send_interest(
        self,
        tx: StoreTransaction,
        from_user_id: UUID4,
        to_user_id: UUID4,
        message: str | None,
    ) -> Interest:
        tx.lock_pair(from_user_id, to_user_id)
        if tx.get_account(to_user_id) is None:
            raise UserNotFoundError(f"User {to_user_id} not found")
        if tx.block_exists_between(from_user_id, to_user_id):
            raise AlreadyBlockedError("Cannot send interest to this user")

        now = datetime.now(UTC)
        existing = tx.get_interest_by_pair(from_user_id, to_user_id)
        if existing is not None and existing.status != InterestStatus.WITHDRAWN:
            raise DuplicateInterestError("Interest already sent to this user")

        if existing is not None:
            interest = tx.update_interest(
                existing.model_copy(
                    update={
                        "status": InterestStatus.PENDING,
                        "message": message,
                        "responded_at": None,
                        "created_at": now,
                        "updated_at": now,
                    }
                )
            )
        else:
            interest = tx.insert_interest(
                Interest(
                    interest_id=uuid4(),
                    from_user_id=from_user_id,
                    to_user_id=to_user_id,
                    status=InterestStatus.PENDING,
                    message=message,
                    created_at=now,
                    updated_at=now,
                )
            )
        tx.insert_activity(
            Activity(
                activity_id=uuid4(),
                user_id=from_user_id,
                activity_type=ActivityType.CONNECTION_REQUEST_SENT,
                actor_id=from_user_id,
                target_user_id=to_user_id,
                metadata={"interest_id": str(interest.interest_id)},
                created_at=now,
            )
        )
        return interest

    async def send(
        self, from_user_id: UUID4, to_user_id: UUID4, message: str | None = None
    ) -> Interest:
        """Express interest in another user.

        A previously withdrawn interest to the same user is sent again in
        place.

        Args:
            from_user_id: ID of the user expressing interest
            to_user_id: ID of the user receiving it
            message: Optional note for the recipient

        Returns:
            The pending interest

        Raises:
            SelfInterestError: If the users are the same
            GateDeniedError: If the sender has not passed the profile gate
            UserNotFoundError: If the recipient does not exist
            AlreadyBlockedError: If either user has blocked the other
            DuplicateInterestError: If an interest to the recipient already exists
        """
        if from_user_id == to_user_id:
            raise SelfInterestError("Users cannot express interest in themselves")
        await self.gatekeeper.ensure_can_use_relationships(from_user_id)

        interest = self._write(self._send_interest, from_user_id, to_user_id, message)
        log.info(
            "Interest %s sent from %s to %s",
            interest.interest_id,
            from_user_id,
            to_user_id,
        )
        emit_after_commit(
            self.sink,
            to_user_id,
            NotificationType.CONNECTION_REQUEST,
            from_user_id,
            {"interest_id": str(interest.interest_id)},
        )
        return interest

    def _locked_interest(
        self, tx: StoreTransaction, interest_id: UUID4
    ) -> Interest:
        """Load an interest, lock its pair, and reload it under the lock."""
        interest = tx.get_interest(interest_id)
        if interest is None:
            raise InterestNotFoundError(f"Interest {interest_id} not found")
        tx.lock_pair(interest.from_user_id, interest.to_user_id)
        interest = tx.get_interest(interest_id)
        if interest is None:
            raise InterestNotFoundError(f"Interest {interest_id} not found")
        return interest

    def _respond(
        self,
        tx: StoreTransaction,
        interest_id: UUID4,
        responder_id: UUID4,
        decision: InterestDecision,
    ) -> RespondInterestRecord:
        interest = self._locked_interest(tx, interest_id)
        if interest.to_user_id != responder_id:
            raise NotAuthorizedError("Only the recipient can respond to this interest")
        if interest.status != InterestStatus.PENDING:
            raise InvalidTransitionError(
                f"Interest is already {interest.status.value}"
            )

        now = datetime.now(UTC)
        status = (
            InterestStatus.ACCEPTED
            if decision == InterestDecision.ACCEPT
            else InterestStatus.DECLINED
        )
        interest = tx.update_interest(
            interest.model_copy(
                update={"status": status, "responded_at": now, "updated_at": now}
            )
        )
        if status == InterestStatus.DECLINED:
            return RespondInterestRecord(interest=interest)

        connection = upsert_connection(tx, interest, now)
        for user_id, other_id in (
            (interest.from_user_id, interest.to_user_id),
            (interest.to_user_id, interest.from_user_id),
        ):
            tx.insert_activity(
                Activity(
                    activity_id=uuid4(),
                    user_id=user_id,
                    activity_type=ActivityType.CONNECTION_ACCEPTED,
                    actor_id=responder_id,
                    target_user_id=other_id,
                    metadata={
                        "interest_id": str(interest.interest_id),
                        "connection_id": str(connection.connection_id),
                    },
                    created_at=now,
                )
            )
        return RespondInterestRecord(interest=interest, connection=connection)

    async def respond(
        self,
        interest_id: UUID4,
        responder_id: UUID4,
        decision: InterestDecision,
    ) -> RespondInterestRecord:
        """Accept or decline a pending interest.

        Accepting also makes the pair's connection active in the same
        transaction and notifies the sender once it has committed.

        Args:
            interest_id: ID of the interest
            responder_id: ID of the user responding
            decision: Whether to accept or decline

        Returns:
            The updated interest, plus the connection if it was accepted

        Raises:
            GateDeniedError: If the responder has not passed the profile gate
            InterestNotFoundError: If the interest does not exist
            NotAuthorizedError: If the responder is not the recipient
            InvalidTransitionError: If the interest is no longer pending
        """
        await self.gatekeeper.ensure_can_use_relationships(responder_id)

        retry_on: tuple[type[StoreError], ...] = (TransientStoreError,)
        if decision == InterestDecision.ACCEPT:
            # A concurrent accept may insert the connection first; the rerun sees it
            retry_on = (TransientStoreError, UniqueViolation)
        record = self._write(
            self._respond, interest_id, responder_id, decision, retry_on=retry_on
        )
        log.info(
            "Interest %s %s by %s",
            interest_id,
            record.interest.status.value,
            responder_id,
        )

        if record.connection is not None:
            emit_after_commit(
                self.sink,
                record.interest.from_user_id,
                NotificationType.CONNECTION_ACCEPTED,
                responder_id,
                {
                    "interest_id": str(record.interest.interest_id),
                    "connection_id": str(record.connection.connection_id),
                },
            )
        return record

    def _withdraw(
        self, tx: StoreTransaction, interest_id: UUID4, actor_id: UUID4
    ) -> Interest:
        interest = self._locked_interest(tx, interest_id)
        if interest.from_user_id != actor_id:
            raise NotAuthorizedError("Only the sender can withdraw this interest")
        if interest.status != InterestStatus.PENDING:
            raise InvalidTransitionError(
                f"Interest is already {interest.status.value}"
            )
        now = datetime.now(UTC)
        return tx.update_interest(
            interest.model_copy(
                update={
                    "status": InterestStatus.WITHDRAWN,
                    "responded_at": now,
                    "updated_at": now,
                }
            )
        )

    async def withdraw(self, interest_id: UUID4, actor_id: UUID4) -> Interest:
        """Withdraw a pending interest the actor sent.

        Raises:
            GateDeniedError: If the actor has not passed the profile gate
            InterestNotFoundError: If the interest does not exist
            NotAuthorizedError: If the actor is not the sender
            InvalidTransitionError: If the interest is no longer pending
        """
        await self.gatekeeper.ensure_can_use_relationships(actor_id)
        interest = self._write(self._withdraw, interest_id, actor_id)
        log.info("Interest %s withdrawn by %s", interest_id, actor_id)
        return interest

    def _list_interests(
        self,
        tx: StoreTransaction,
        user_id: UUID4,
        direction: InterestDirection,
        status: InterestStatus | None,
        limit: int,
        offset: int,
    ) -> list[Interest]:
        return tx.list_interests(user_id, direction, status, limit, offset)

    async def list_received(
        self,
        user_id: UUID4,
        status: InterestStatus | None = None,
        limit: int = 20,
        offset: int = 0,
    ) -> list[Interest]:
        """Get interests sent to a user, newest first."""
        return self._read(
            self._list_interests,
            user_id,
            InterestDirection.RECEIVED,
            status,
            limit,
            offset,
        )

    async def list_sent(
        self,
        user_id: UUID4,
        status: InterestStatus | None = None,
        limit: int = 20,
        offset: int = 0,
    ) -> list[Interest]:
        """Get interests a user has sent, newest first."""
        return self._read(
            self._list_interests,
            user_id,
            InterestDirection.SENT,
            status,
            limit,
            offset,
        )
