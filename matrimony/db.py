from neo4j import Driver, GraphDatabase

from matrimony.config import Settings, settings
from matrimony.utils.meta import SingletonMeta


class DatabaseManager(metaclass=SingletonMeta):
    """Singleton manager for Neo4j database connections.

    This class manages the lifecycle of the Neo4j driver used by the
    relationship store, ensuring only one connection pool is active at a time.

    Attributes:
        _driver: The Neo4j driver instance
        _uri: URI of the Neo4j database
        _auth: Tuple of username and password for authentication
        _database: Name of the Neo4j database to connect to
    """

    def __init__(self, config: Settings = settings) -> None:
        """Initialize the database manager.

        Sets up connection parameters and verifies connectivity.

        Args:
            config: Settings to read connection parameters from

        Raises:
            neo4j.exceptions.ServiceUnavailable: If database is not reachable
            neo4j.exceptions.AuthError: If credentials are invalid
        """
        self._driver: Driver | None = None
        self._uri: str = config.NEO4J_URI
        self._auth: tuple[str, str] = (config.NEO4J_USER, config.NEO4J_PASSWORD)
        self._database: str = config.NEO4J_DATABASE
        self._pool_size: int = config.NEO4J_MAX_CONNECTION_POOL_SIZE
        self._connection_timeout: float = config.NEO4J_CONNECTION_TIMEOUT
        self._max_retry_time: float = config.NEO4J_MAX_TRANSACTION_RETRY_TIME
        self._verify_connectivity()

    def _verify_connectivity(self) -> None:
        """Verify database connectivity with current credentials.

        Raises:
            neo4j.exceptions.ServiceUnavailable: If database is not reachable
            neo4j.exceptions.AuthError: If credentials are invalid
        """
        with GraphDatabase.driver(self._uri, auth=self._auth) as test_driver:
            test_driver.verify_connectivity()

    @property
    def driver(self) -> Driver:
        """Get or create the Neo4j driver instance.

        Returns:
            The Neo4j driver instance that can be used for database operations
        """
        if not self._driver:
            self._driver = GraphDatabase.driver(
                self._uri,
                auth=self._auth,
                max_connection_pool_size=self._pool_size,
                connection_timeout=self._connection_timeout,
                max_transaction_retry_time=self._max_retry_time,
            )
        return self._driver

    @property
    def database(self) -> str:
        """Get the name of the Neo4j database."""
        return self._database

    def close(self) -> None:
        """Close the database connection.

        If no connection exists, this is a no-op.
        """
        if self._driver:
            self._driver.close()
            self._driver = None
