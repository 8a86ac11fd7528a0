"""Async Cassandra connection using cassandra-asyncio-driver.

The driver's ``Cluster`` hands out sessions with an ``aexecute()`` coroutine
alongside the usual blocking ``execute()``. Connecting is still synchronous;
every query issued by the services goes through ``aexecute``.

Schema is created idempotently at startup: keyspace first, then the table
groups declared next to each domain's models.
"""

import structlog
from cassandra.auth import PlainTextAuthProvider
from cassandra.policies import DCAwareRoundRobinPolicy, TokenAwarePolicy
from cassandra_asyncio.cluster import Cluster

from learnhub.config.settings import get_settings
from learnhub.courses.models import COURSES_TABLES_CQL
from learnhub.employees.models import EMPLOYEES_TABLES_CQL
from learnhub.progress.models import PROGRESS_TABLES_CQL
from learnhub.projects.models import PROJECTS_TABLES_CQL
from learnhub.training.models import TRAINING_TABLES_CQL


logger = structlog.get_logger(__name__)

# Creation order matters only for readability; tables are independent.
SCHEMA_GROUPS: dict[str, list[str]] = {
    "courses": COURSES_TABLES_CQL,
    "employees": EMPLOYEES_TABLES_CQL,
    "progress": PROGRESS_TABLES_CQL,
    "projects": PROJECTS_TABLES_CQL,
    "training": TRAINING_TABLES_CQL,
}


class AsyncCassandraConnection:
    """Process-wide Cassandra cluster/session holder."""

    _cluster: Cluster | None = None
    _session = None

    @classmethod
    def connect(cls):
        """Connect to the cluster, reusing an existing session.

        Raises:
            ConnectionError: If no contact point could be reached.
        """
        if cls._session is not None:
            return cls._session

        settings = get_settings()
        auth_provider = None
        if settings.cassandra_username and settings.cassandra_password:
            auth_provider = PlainTextAuthProvider(
                username=settings.cassandra_username,
                password=settings.cassandra_password,
            )

        cls._cluster = Cluster(
            contact_points=settings.cassandra_hosts,
            port=settings.cassandra_port,
            auth_provider=auth_provider,
            protocol_version=settings.cassandra_protocol_version,
            load_balancing_policy=TokenAwarePolicy(DCAwareRoundRobinPolicy()),
            connect_timeout=settings.cassandra_connect_timeout,
        )

        try:
            cls._session = cls._cluster.connect()
        except Exception as e:
            logger.error(
                "cassandra_connection_failed",
                hosts=settings.cassandra_hosts,
                error=str(e),
            )
            raise ConnectionError(f"Failed to connect to Cassandra: {e}") from e

        cls._session.default_timeout = settings.cassandra_request_timeout
        logger.info(
            "cassandra_connected",
            hosts=settings.cassandra_hosts,
            port=settings.cassandra_port,
            protocol_version=settings.cassandra_protocol_version,
        )
        return cls._session

    @classmethod
    def get_session(cls):
        return cls._session if cls._session is not None else cls.connect()

    @classmethod
    def disconnect(cls) -> None:
        if cls._session is not None:
            cls._session.shutdown()
            cls._session = None
        if cls._cluster is not None:
            cls._cluster.shutdown()
            cls._cluster = None
            logger.info("cassandra_disconnected")

    @classmethod
    def is_connected(cls) -> bool:
        return cls._session is not None and not cls._session.is_shutdown


def get_async_cassandra_session():
    """Return the shared session (dependency injection helper)."""
    return AsyncCassandraConnection.get_session()


def keyspace_cql(keyspace: str, production: bool) -> str:
    """CREATE KEYSPACE statement; production uses NetworkTopologyStrategy."""
    if production:
        replication = "'class': 'NetworkTopologyStrategy', 'datacenter1': 3"
    else:
        replication = "'class': 'SimpleStrategy', 'replication_factor': 1"
    return (
        f"CREATE KEYSPACE IF NOT EXISTS {keyspace} "
        f"WITH replication = {{{replication}}} AND durable_writes = true"
    )


async def init_schema(session, keyspace: str) -> None:
    """Create every table group inside ``keyspace``."""
    for group, statements in SCHEMA_GROUPS.items():
        for cql_template in statements:
            await session.aexecute(cql_template.format(keyspace=keyspace))
        logger.info("cassandra_tables_created", group=group, keyspace=keyspace)


async def init_async_cassandra():
    """Connect, create keyspace and tables, and return the session."""
    settings = get_settings()
    session = AsyncCassandraConnection.connect()

    await session.aexecute(
        keyspace_cql(settings.cassandra_keyspace, settings.is_production)
    )
    session.set_keyspace(settings.cassandra_keyspace)
    await init_schema(session, settings.cassandra_keyspace)

    logger.info("cassandra_initialized", keyspace=settings.cassandra_keyspace)
    return session


async def shutdown_async_cassandra() -> None:
    AsyncCassandraConnection.disconnect()
