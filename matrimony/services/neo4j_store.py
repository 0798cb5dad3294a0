import json
import logging
from collections.abc import Callable
from datetime import datetime
from typing import Any, TypeVar

from neo4j import ManagedTransaction, Record
from neo4j.exceptions import (
    ConstraintError,
    DriverError,
    Neo4jError,
    ServiceUnavailable,
    SessionExpired,
    TransientError,
)
from pydantic import UUID4, BaseModel

from matrimony.db import DatabaseManager
from matrimony.models.block import Block, block_pair_key
from matrimony.models.connection import (
    Connection,
    ConnectionStatus,
    canonical_pair,
    connection_pair_key,
)
from matrimony.models.interest import Interest, InterestStatus, interest_pair_key
from matrimony.models.notification import Activity, Notification
from matrimony.models.profile import Profile
from matrimony.models.token import RevokedToken
from matrimony.models.user import Account
from matrimony.services.store import (
    ACCOUNT_ID,
    BLOCK_PAIR,
    CONNECTION_PAIR,
    INTEREST_PAIR,
    PROFILE_OWNER,
    InterestDirection,
    RelationshipStore,
    StoreError,
    StoreTransaction,
    TransientStoreError,
    UniqueViolation,
)

log = logging.getLogger(__name__)

T = TypeVar("T")

SCHEMA_STATEMENTS: tuple[str, ...] = (
    f"CREATE CONSTRAINT {ACCOUNT_ID} IF NOT EXISTS "
    "FOR (u:User) REQUIRE u.user_id IS UNIQUE",
    f"CREATE CONSTRAINT {PROFILE_OWNER} IF NOT EXISTS "
    "FOR (p:Profile) REQUIRE p.user_id IS UNIQUE",
    "CREATE CONSTRAINT profile_id IF NOT EXISTS "
    "FOR (p:Profile) REQUIRE p.profile_id IS UNIQUE",
    "CREATE CONSTRAINT interest_id IF NOT EXISTS "
    "FOR ()-[r:INTERESTED_IN]-() REQUIRE r.interest_id IS UNIQUE",
    f"CREATE CONSTRAINT {INTEREST_PAIR} IF NOT EXISTS "
    "FOR ()-[r:INTERESTED_IN]-() REQUIRE r.pair_key IS UNIQUE",
    "CREATE CONSTRAINT connection_id IF NOT EXISTS "
    "FOR ()-[r:CONNECTED_WITH]-() REQUIRE r.connection_id IS UNIQUE",
    f"CREATE CONSTRAINT {CONNECTION_PAIR} IF NOT EXISTS "
    "FOR ()-[r:CONNECTED_WITH]-() REQUIRE r.pair_key IS UNIQUE",
    "CREATE CONSTRAINT block_id IF NOT EXISTS "
    "FOR ()-[r:BLOCKS]-() REQUIRE r.block_id IS UNIQUE",
    f"CREATE CONSTRAINT {BLOCK_PAIR} IF NOT EXISTS "
    "FOR ()-[r:BLOCKS]-() REQUIRE r.pair_key IS UNIQUE",
    "CREATE CONSTRAINT notification_id IF NOT EXISTS "
    "FOR (n:Notification) REQUIRE n.notification_id IS UNIQUE",
    "CREATE CONSTRAINT activity_id IF NOT EXISTS "
    "FOR (a:Activity) REQUIRE a.activity_id IS UNIQUE",
    "CREATE CONSTRAINT revoked_token_jti IF NOT EXISTS "
    "FOR (t:RevokedToken) REQUIRE t.jti IS UNIQUE",
    "CREATE INDEX revoked_token_expiry IF NOT EXISTS "
    "FOR (t:RevokedToken) ON (t.expires_at)",
)

_WORK_LOCATION_PARTS = ("country", "state", "city")


def _to_graph(model: BaseModel) -> dict[str, Any]:
    """Flatten a model into properties Neo4j can store.

    UUIDs, enums and URLs become strings; datetimes stay native so they are
    stored as temporal values and compare correctly.
    """
    props = model.model_dump(mode="json")
    for key, value in model.model_dump().items():
        if isinstance(value, datetime):
            props[key] = value
    return props


def _from_graph(props: dict[str, Any]) -> dict[str, Any]:
    return {
        key: value.to_native() if hasattr(value, "to_native") else value
        for key, value in props.items()
    }


def _profile_to_graph(profile: Profile) -> dict[str, Any]:
    props = _to_graph(profile)
    location = props.pop("work_location") or {}
    for part in _WORK_LOCATION_PARTS:
        props[f"work_location_{part}"] = location.get(part)
    return props


def _profile_from_graph(props: dict[str, Any]) -> Profile:
    values = _from_graph(props)
    location = {
        part: values.pop(f"work_location_{part}", None)
        for part in _WORK_LOCATION_PARTS
    }
    if any(location.values()):
        values["work_location"] = location
    return Profile(**values)


def _json_to_graph(model: BaseModel, field: str) -> dict[str, Any]:
    props = _to_graph(model)
    props[field] = json.dumps(props[field])
    return props


def _json_from_graph(props: dict[str, Any], field: str) -> dict[str, Any]:
    values = _from_graph(props)
    values[field] = json.loads(values.get(field) or "{}")
    return values


class Neo4jTransaction(StoreTransaction):
    """StoreTransaction backed by a managed neo4j transaction.

    Graph layout:
        (:User)-[:HAS_PROFILE]->(:Profile)
        (:User)-[:INTERESTED_IN]->(:User)
        (:User)-[:CONNECTED_WITH]->(:User), from the lower to the higher user ID
        (:User)-[:BLOCKS]->(:User)
        (:User)-[:HAS_NOTIFICATION]->(:Notification)
        (:User)-[:HAS_ACTIVITY]->(:Activity)
        (:RevokedToken)
    """

    def __init__(self, tx: ManagedTransaction) -> None:
        self.tx = tx

    def _single(self, query: str, **params: Any) -> Record | None:
        return self.tx.run(query, **params).single()

    def _insert(self, constraint: str, query: str, **params: Any) -> Record:
        try:
            record = self.tx.run(query, **params).single()
        except ConstraintError as e:
            raise UniqueViolation(constraint, str(e)) from e
        if record is None:
            raise StoreError("Insert matched no users")
        return record

    def lock_pair(self, user_a: UUID4, user_b: UUID4) -> None:
        # language=cypher
        query = """
        MATCH (u:User {user_id: $user_id})
        SET u._lock = true
        REMOVE u._lock
        """
        for user_id in canonical_pair(user_a, user_b):
            self.tx.run(query, user_id=str(user_id)).consume()

    def get_account(self, user_id: UUID4) -> Account | None:
        # language=cypher
        query = """
        MATCH (u:User {user_id: $user_id})
        RETURN u {.*} AS account
        """
        if record := self._single(query, user_id=str(user_id)):
            return Account(**_from_graph(record["account"]))
        return None

    def insert_account(self, account: Account) -> Account:
        # language=cypher
        query = """
        CREATE (u:User)
        SET u = $props
        RETURN u {.*} AS account
        """
        record = self._insert(ACCOUNT_ID, query, props=_to_graph(account))
        return Account(**_from_graph(record["account"]))

    def update_account(self, account: Account) -> Account:
        # language=cypher
        query = """
        MATCH (u:User {user_id: $user_id})
        SET u.profile_stage = $profile_stage,
            u.minimal_profile_completion =
                coalesce(u.minimal_profile_completion, false)
                OR $minimal_profile_completion
        RETURN u {.*} AS account
        """
        record = self._single(
            query,
            user_id=str(account.user_id),
            profile_stage=int(account.profile_stage),
            minimal_profile_completion=account.minimal_profile_completion,
        )
        if record is None:
            raise StoreError(f"Account {account.user_id} does not exist")
        return Account(**_from_graph(record["account"]))

    def get_profile(self, user_id: UUID4) -> Profile | None:
        # language=cypher
        query = """
        MATCH (:User {user_id: $user_id})-[:HAS_PROFILE]->(p:Profile)
        RETURN p {.*} AS profile
        """
        if record := self._single(query, user_id=str(user_id)):
            return _profile_from_graph(record["profile"])
        return None

    def insert_profile(self, profile: Profile) -> Profile:
        # language=cypher
        query = """
        MATCH (u:User {user_id: $user_id})
        CREATE (u)-[:HAS_PROFILE]->(p:Profile)
        SET p = $props
        RETURN p {.*} AS profile
        """
        record = self._insert(
            PROFILE_OWNER,
            query,
            user_id=str(profile.user_id),
            props=_profile_to_graph(profile),
        )
        return _profile_from_graph(record["profile"])

    def update_profile(self, profile: Profile) -> Profile:
        # language=cypher
        query = """
        MATCH (:User {user_id: $user_id})-[:HAS_PROFILE]->(p:Profile)
        SET p = $props
        RETURN p {.*} AS profile
        """
        record = self._single(
            query, user_id=str(profile.user_id), props=_profile_to_graph(profile)
        )
        if record is None:
            raise StoreError(f"Profile for {profile.user_id} does not exist")
        return _profile_from_graph(record["profile"])

    def get_interest(self, interest_id: UUID4) -> Interest | None:
        # language=cypher
        query = """
        MATCH ()-[r:INTERESTED_IN {interest_id: $interest_id}]->()
        RETURN r {.*} AS interest
        """
        if record := self._single(query, interest_id=str(interest_id)):
            return Interest(**_from_graph(record["interest"]))
        return None

    def get_interest_by_pair(
        self, from_user_id: UUID4, to_user_id: UUID4
    ) -> Interest | None:
        # language=cypher
        query = """
        MATCH ()-[r:INTERESTED_IN {pair_key: $pair_key}]->()
        RETURN r {.*} AS interest
        """
        pair_key = interest_pair_key(from_user_id, to_user_id)
        if record := self._single(query, pair_key=pair_key):
            return Interest(**_from_graph(record["interest"]))
        return None

    def insert_interest(self, interest: Interest) -> Interest:
        # language=cypher
        query = """
        MATCH (sender:User {user_id: $from_user_id})
        MATCH (recipient:User {user_id: $to_user_id})
        CREATE (sender)-[r:INTERESTED_IN]->(recipient)
        SET r = $props
        RETURN r {.*} AS interest
        """
        props = _to_graph(interest) | {"pair_key": interest.pair_key}
        record = self._insert(
            INTEREST_PAIR,
            query,
            from_user_id=str(interest.from_user_id),
            to_user_id=str(interest.to_user_id),
            props=props,
        )
        return Interest(**_from_graph(record["interest"]))

    def update_interest(self, interest: Interest) -> Interest:
        # language=cypher
        query = """
        MATCH ()-[r:INTERESTED_IN {interest_id: $interest_id}]->()
        SET r = $props
        RETURN r {.*} AS interest
        """
        props = _to_graph(interest) | {"pair_key": interest.pair_key}
        record = self._single(query, interest_id=str(interest.interest_id), props=props)
        if record is None:
            raise StoreError(f"Interest {interest.interest_id} does not exist")
        return Interest(**_from_graph(record["interest"]))

    def list_interests(
        self,
        user_id: UUID4,
        direction: InterestDirection,
        status: InterestStatus | None,
        limit: int,
        offset: int,
    ) -> list[Interest]:
        if direction == InterestDirection.RECEIVED:
            pattern = "()-[r:INTERESTED_IN]->(:User {user_id: $user_id})"
        else:
            pattern = "(:User {user_id: $user_id})-[r:INTERESTED_IN]->()"
        query = f"""
        MATCH {pattern}
        WHERE $status IS NULL OR r.status = $status
        RETURN r {{.*}} AS interest
        ORDER BY r.created_at DESC
        SKIP $offset
        LIMIT $limit
        """
        result = self.tx.run(
            query,
            user_id=str(user_id),
            status=status.value if status else None,
            offset=offset,
            limit=limit,
        )
        return [Interest(**_from_graph(record["interest"])) for record in result]

    def list_pending_between(self, user_a: UUID4, user_b: UUID4) -> list[Interest]:
        # language=cypher
        query = """
        MATCH (:User {user_id: $user_a})-[r:INTERESTED_IN]-(:User {user_id: $user_b})
        WHERE r.status = $pending
        RETURN r {.*} AS interest
        """
        result = self.tx.run(
            query,
            user_a=str(user_a),
            user_b=str(user_b),
            pending=InterestStatus.PENDING.value,
        )
        return [Interest(**_from_graph(record["interest"])) for record in result]

    def get_connection(self, connection_id: UUID4) -> Connection | None:
        # language=cypher
        query = """
        MATCH ()-[r:CONNECTED_WITH {connection_id: $connection_id}]->()
        RETURN r {.*} AS connection
        """
        if record := self._single(query, connection_id=str(connection_id)):
            return Connection(**_from_graph(record["connection"]))
        return None

    def get_connection_by_pair(
        self, user_a: UUID4, user_b: UUID4
    ) -> Connection | None:
        # language=cypher
        query = """
        MATCH ()-[r:CONNECTED_WITH {pair_key: $pair_key}]->()
        RETURN r {.*} AS connection
        """
        pair_key = connection_pair_key(user_a, user_b)
        if record := self._single(query, pair_key=pair_key):
            return Connection(**_from_graph(record["connection"]))
        return None

    def insert_connection(self, connection: Connection) -> Connection:
        # language=cypher
        query = """
        MATCH (low:User {user_id: $user1_id})
        MATCH (high:User {user_id: $user2_id})
        CREATE (low)-[r:CONNECTED_WITH]->(high)
        SET r = $props
        RETURN r {.*} AS connection
        """
        props = _to_graph(connection) | {"pair_key": connection.pair_key}
        record = self._insert(
            CONNECTION_PAIR,
            query,
            user1_id=str(connection.user1_id),
            user2_id=str(connection.user2_id),
            props=props,
        )
        return Connection(**_from_graph(record["connection"]))

    def update_connection(self, connection: Connection) -> Connection:
        # language=cypher
        query = """
        MATCH ()-[r:CONNECTED_WITH {connection_id: $connection_id}]->()
        SET r = $props
        RETURN r {.*} AS connection
        """
        props = _to_graph(connection) | {"pair_key": connection.pair_key}
        record = self._single(
            query, connection_id=str(connection.connection_id), props=props
        )
        if record is None:
            raise StoreError(f"Connection {connection.connection_id} does not exist")
        return Connection(**_from_graph(record["connection"]))

    def list_connections(
        self,
        user_id: UUID4,
        status: ConnectionStatus | None,
        limit: int,
        offset: int,
    ) -> list[Connection]:
        # language=cypher
        query = """
        MATCH (:User {user_id: $user_id})-[r:CONNECTED_WITH]-()
        WHERE $status IS NULL OR r.status = $status
        RETURN r {.*} AS connection
        ORDER BY r.connected_at DESC
        SKIP $offset
        LIMIT $limit
        """
        result = self.tx.run(
            query,
            user_id=str(user_id),
            status=status.value if status else None,
            offset=offset,
            limit=limit,
        )
        return [Connection(**_from_graph(record["connection"])) for record in result]

    def get_block(self, blocker_id: UUID4, blocked_id: UUID4) -> Block | None:
        # language=cypher
        query = """
        MATCH ()-[r:BLOCKS {pair_key: $pair_key}]->()
        RETURN r {.*} AS block
        """
        if record := self._single(query, pair_key=block_pair_key(blocker_id, blocked_id)):
            return Block(**_from_graph(record["block"]))
        return None

    def block_exists_between(self, user_a: UUID4, user_b: UUID4) -> bool:
        # language=cypher
        query = """
        RETURN EXISTS {
            MATCH (:User {user_id: $user_a})-[:BLOCKS]-(:User {user_id: $user_b})
        } AS is_blocked
        """
        if record := self._single(query, user_a=str(user_a), user_b=str(user_b)):
            return record["is_blocked"]
        return False

    def insert_block(self, block: Block) -> Block:
        # language=cypher
        query = """
        MATCH (blocker:User {user_id: $blocker_id})
        MATCH (blocked:User {user_id: $blocked_id})
        CREATE (blocker)-[r:BLOCKS]->(blocked)
        SET r = $props
        RETURN r {.*} AS block
        """
        props = _to_graph(block) | {"pair_key": block.pair_key}
        record = self._insert(
            BLOCK_PAIR,
            query,
            blocker_id=str(block.blocker_id),
            blocked_id=str(block.blocked_id),
            props=props,
        )
        return Block(**_from_graph(record["block"]))

    def delete_block(self, blocker_id: UUID4, blocked_id: UUID4) -> bool:
        # language=cypher
        query = """
        OPTIONAL MATCH ()-[r:BLOCKS {pair_key: $pair_key}]->()
        WITH r, r IS NOT NULL AS existed
        DELETE r
        RETURN existed
        """
        record = self._single(query, pair_key=block_pair_key(blocker_id, blocked_id))
        return bool(record and record["existed"])

    def list_blocks(self, blocker_id: UUID4, limit: int, offset: int) -> list[Block]:
        # language=cypher
        query = """
        MATCH (:User {user_id: $blocker_id})-[r:BLOCKS]->()
        RETURN r {.*} AS block
        ORDER BY r.created_at DESC
        SKIP $offset
        LIMIT $limit
        """
        result = self.tx.run(
            query, blocker_id=str(blocker_id), offset=offset, limit=limit
        )
        return [Block(**_from_graph(record["block"])) for record in result]

    def insert_notification(self, notification: Notification) -> Notification:
        # language=cypher
        query = """
        MATCH (u:User {user_id: $recipient_id})
        CREATE (u)-[:HAS_NOTIFICATION]->(n:Notification)
        SET n = $props
        RETURN n {.*} AS notification
        """
        record = self._insert(
            "notification_id",
            query,
            recipient_id=str(notification.recipient_id),
            props=_json_to_graph(notification, "payload"),
        )
        return Notification(**_json_from_graph(record["notification"], "payload"))

    def get_notification(self, notification_id: UUID4) -> Notification | None:
        # language=cypher
        query = """
        MATCH (n:Notification {notification_id: $notification_id})
        RETURN n {.*} AS notification
        """
        if record := self._single(query, notification_id=str(notification_id)):
            return Notification(**_json_from_graph(record["notification"], "payload"))
        return None

    def update_notification(self, notification: Notification) -> Notification:
        # language=cypher
        query = """
        MATCH (n:Notification {notification_id: $notification_id})
        SET n.is_read = $is_read, n.read_at = $read_at
        RETURN n {.*} AS notification
        """
        record = self._single(
            query,
            notification_id=str(notification.notification_id),
            is_read=notification.is_read,
            read_at=notification.read_at,
        )
        if record is None:
            raise StoreError(
                f"Notification {notification.notification_id} does not exist"
            )
        return Notification(**_json_from_graph(record["notification"], "payload"))

    def list_notifications(
        self, recipient_id: UUID4, unread_only: bool, limit: int, offset: int
    ) -> list[Notification]:
        # language=cypher
        query = """
        MATCH (:User {user_id: $recipient_id})-[:HAS_NOTIFICATION]->(n:Notification)
        WHERE NOT $unread_only OR n.is_read = false
        RETURN n {.*} AS notification
        ORDER BY n.created_at DESC
        SKIP $offset
        LIMIT $limit
        """
        result = self.tx.run(
            query,
            recipient_id=str(recipient_id),
            unread_only=unread_only,
            offset=offset,
            limit=limit,
        )
        return [
            Notification(**_json_from_graph(record["notification"], "payload"))
            for record in result
        ]

    def insert_activity(self, activity: Activity) -> Activity:
        # language=cypher
        query = """
        MATCH (u:User {user_id: $user_id})
        CREATE (u)-[:HAS_ACTIVITY]->(a:Activity)
        SET a = $props
        RETURN a {.*} AS activity
        """
        record = self._insert(
            "activity_id",
            query,
            user_id=str(activity.user_id),
            props=_json_to_graph(activity, "metadata"),
        )
        return Activity(**_json_from_graph(record["activity"], "metadata"))

    def list_activities(
        self, user_id: UUID4, limit: int, offset: int
    ) -> list[Activity]:
        # language=cypher
        query = """
        MATCH (:User {user_id: $user_id})-[:HAS_ACTIVITY]->(a:Activity)
        RETURN a {.*} AS activity
        ORDER BY a.created_at DESC
        SKIP $offset
        LIMIT $limit
        """
        result = self.tx.run(query, user_id=str(user_id), offset=offset, limit=limit)
        return [
            Activity(**_json_from_graph(record["activity"], "metadata"))
            for record in result
        ]

    def upsert_revoked_token(self, token: RevokedToken) -> RevokedToken:
        # language=cypher
        query = """
        MERGE (t:RevokedToken {jti: $jti})
        SET t.expires_at = $expires_at, t.revoked_at = $revoked_at
        RETURN t {.*} AS token
        """
        record = self._single(
            query,
            jti=token.jti,
            expires_at=token.expires_at,
            revoked_at=token.revoked_at,
        )
        if record is None:
            raise StoreError(f"Failed to revoke token {token.jti}")
        return RevokedToken(**_from_graph(record["token"]))

    def get_revoked_token(self, jti: str) -> RevokedToken | None:
        # language=cypher
        query = """
        MATCH (t:RevokedToken {jti: $jti})
        RETURN t {.*} AS token
        """
        if record := self._single(query, jti=jti):
            return RevokedToken(**_from_graph(record["token"]))
        return None

    def purge_revoked_tokens(self, now: datetime) -> int:
        # language=cypher
        query = """
        MATCH (t:RevokedToken)
        WHERE t.expires_at <= $now
        WITH collect(t) AS expired
        FOREACH (t IN expired | DELETE t)
        RETURN size(expired) AS purged
        """
        if record := self._single(query, now=now):
            return record["purged"]
        return 0


class Neo4jRelationshipStore(RelationshipStore):
    """RelationshipStore running transaction functions through the neo4j driver.

    Attributes:
        db_manager: Shared database manager owning the driver
    """

    def __init__(self, db_manager: DatabaseManager | None = None) -> None:
        self.db_manager = db_manager or DatabaseManager()

    @staticmethod
    def _run(tx: ManagedTransaction, work: Callable[..., T], *args: Any) -> T:
        return work(Neo4jTransaction(tx), *args)

    def _execute(self, mode: str, work: Callable[..., T], *args: Any) -> T:
        db_manager = self.db_manager
        try:
            with db_manager.driver.session(database=db_manager.database) as session:
                execute = getattr(session, f"execute_{mode}")
                return execute(self._run, work, *args)
        except (TransientError, ServiceUnavailable, SessionExpired) as e:
            raise TransientStoreError(str(e)) from e
        except (Neo4jError, DriverError) as e:
            raise StoreError(str(e)) from e

    def write(self, work: Callable[..., T], *args: Any) -> T:
        return self._execute("write", work, *args)

    def read(self, work: Callable[..., T], *args: Any) -> T:
        return self._execute("read", work, *args)

    def ensure_schema(self) -> None:
        """Create the uniqueness constraints and indexes, skipping existing ones."""
        db_manager = self.db_manager
        try:
            with db_manager.driver.session(database=db_manager.database) as session:
                for statement in SCHEMA_STATEMENTS:
                    session.run(statement).consume()
        except (Neo4jError, DriverError) as e:
            raise StoreError(f"Failed to create schema: {e}") from e
        log.info("Ensured %d schema statements", len(SCHEMA_STATEMENTS))

    def close(self) -> None:
        self.db_manager.close()
