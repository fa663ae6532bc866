"""
Database session management for the School Library MCP Server.

The library lives in one SQLite file. All sessions of a server process share
a single connection, so the loan ledger is only ever written by one
transaction at a time:

- Resources read through ``session_scope()``, which commits or rolls back
- Tools get a bare session from ``get_session()`` and the repositories
  commit through ``mcp_safe_commit``
- Writes that first read stock call ``lock_for_write`` so the read and the
  write happen under the same SQLite write lock
"""

import logging
from collections.abc import Callable, Generator
from contextlib import contextmanager
from typing import TypeVar

from sqlalchemy import create_engine, event, text
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from ..config import get_config
from .schema import Base

logger = logging.getLogger(__name__)

T = TypeVar("T")


class DatabaseOperationError(ValueError):
    """A query or commit failed inside the database layer."""


class DatabaseManager:
    """
    Owns the SQLite engine and session factory.

    Args:
        database_url: ``sqlite:///`` URL; defaults to the configured database file
    """

    def __init__(self, database_url: str | None = None):
        if database_url is None:
            database_url = get_config().get_database_url()
        if not database_url.startswith("sqlite"):
            raise ValueError(f"Only SQLite databases are supported, got {database_url}")

        self.database_url = database_url
        self._engine: Engine | None = None
        self._session_factory: sessionmaker | None = None

    @property
    def engine(self) -> Engine:
        if self._engine is None:
            self._engine = create_engine(
                self.database_url,
                poolclass=StaticPool,
                connect_args={"check_same_thread": False},
                echo=False,
            )

            @event.listens_for(self._engine, "connect")
            def enable_foreign_keys(dbapi_connection, connection_record):  # noqa: ARG001
                cursor = dbapi_connection.cursor()
                cursor.execute("PRAGMA foreign_keys=ON")
                cursor.close()

            logger.info("Database engine created: %s", self._engine.url)

        return self._engine

    @property
    def session_factory(self) -> sessionmaker:
        if self._session_factory is None:
            self._session_factory = sessionmaker(
                bind=self.engine,
                autocommit=False,
                autoflush=False,
                expire_on_commit=False,  # Responses are built after the commit
            )
        return self._session_factory

    def create_session(self) -> Session:
        """New session on the shared connection. The caller closes it."""
        return self.session_factory()

    @contextmanager
    def session_scope(self) -> Generator[Session, None, None]:
        """Session that commits on success and rolls back on error."""
        session = self.create_session()
        try:
            yield session
            session.commit()
        except Exception:
            logger.exception("Database error, rolling back")
            session.rollback()
            raise
        finally:
            session.close()

    def init_database(self, drop_existing: bool = False) -> None:
        """Create the library tables, dropping them first if asked."""
        if drop_existing:
            logger.warning("Dropping all library tables")
            Base.metadata.drop_all(bind=self.engine)

        Base.metadata.create_all(bind=self.engine)
        logger.info("Library schema ready at %s", self.engine.url)

    def verify_connection(self) -> bool:
        """True if the database file answers a trivial query."""
        try:
            with self.engine.connect() as conn:
                conn.execute(text("SELECT 1"))
            return True
        except Exception:
            logger.exception("Database connection failed")
            return False

    def close(self) -> None:
        if self._engine:
            self._engine.dispose()
            logger.info("Database engine disposed")
        self._engine = None
        self._session_factory = None


_db_manager: DatabaseManager | None = None


def get_db_manager(database_url: str | None = None) -> DatabaseManager:
    """
    The process-wide database manager.

    Args:
        database_url: Only used when the manager is first created
    """
    global _db_manager  # noqa: PLW0603

    if _db_manager is None:
        _db_manager = DatabaseManager(database_url)

    return _db_manager


def reset_db_manager() -> None:
    """Close and forget the process-wide database manager."""
    global _db_manager  # noqa: PLW0603

    if _db_manager is not None:
        _db_manager.close()
    _db_manager = None


def get_session() -> Session:
    """Session for a tool call; the repositories commit it."""
    return get_db_manager().create_session()


@contextmanager
def session_scope() -> Generator[Session, None, None]:
    """Read-side session used by the resources."""
    with get_db_manager().session_scope() as session:
        yield session


def lock_for_write(session: Session) -> None:
    """
    Take the SQLite write lock before reading what a write depends on.

    SQLite has no row locks and ignores ``SELECT ... FOR UPDATE``; the driver
    only opens a transaction at the first INSERT or UPDATE. Starting the
    transaction with ``BEGIN IMMEDIATE`` makes another process's stock
    check wait until this one commits or rolls back. If the connection is
    already in a write transaction it holds the lock and nothing is done.
    """
    connection = session.connection()
    if connection.connection.dbapi_connection.in_transaction:
        return
    try:
        connection.exec_driver_sql("BEGIN IMMEDIATE")
    except Exception as e:
        logger.exception("Could not take the database write lock")
        raise DatabaseOperationError(f"Database is busy: {e!s}") from e


def mcp_safe_commit(session: Session, operation: str) -> None:
    """
    Commit, rolling back and wrapping any failure.

    Raises:
        DatabaseOperationError: If the commit fails
    """
    try:
        session.commit()
    except Exception as e:
        session.rollback()
        raise DatabaseOperationError(f"Database operation '{operation}' failed: {e!s}") from e


def mcp_safe_query(session: Session, query_func: Callable[[Session], T], error_msg: str) -> T:
    """
    Run ``query_func`` against ``session``, wrapping any failure.

    Raises:
        DatabaseOperationError: If the query fails
    """
    try:
        return query_func(session)
    except Exception as e:
        logger.exception("Query failed")
        raise DatabaseOperationError(f"{error_msg}: Database query failed") from e
