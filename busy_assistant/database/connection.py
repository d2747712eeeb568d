"""
Database Connection Management.

This module handles the PostgreSQL (pgvector) connection via SQLAlchemy.
It provides:
- Connection pooling
- Session management
- Health checks
"""
from contextlib import contextmanager
from typing import Any, Dict, Generator, Optional

from sqlalchemy import create_engine, text
from sqlalchemy.orm import sessionmaker, Session
from sqlalchemy.exc import SQLAlchemyError

from busy_assistant.core.config import get_settings
from busy_assistant.core.logging_config import get_logger

logger = get_logger(__name__)


class DatabaseConnection:
    """
    Manages database connections and session lifecycle.

    Example:
        >>> db = DatabaseConnection()
        >>> with db.get_session() as session:
        ...     result = session.execute(text("SELECT 1"))
    """

    def __init__(self, connection_url: Optional[str] = None):
        """
        Initialize database engine with connection pooling.

        Args:
            connection_url: Optional connection URL. If not provided, uses settings.
        """
        self.settings = get_settings()

        db_url = connection_url or self.settings.database_url

        self.engine = create_engine(db_url, **self._engine_options(db_url))

        # expire_on_commit=False: records are read after the session closes
        self._session_factory = sessionmaker(
            bind=self.engine,
            autocommit=False,
            autoflush=False,
            expire_on_commit=False,
        )

        logger.info(f"Database connection initialized: {db_url.split('@')[-1] if '@' in db_url else db_url}")

    @staticmethod
    def _engine_options(db_url: str) -> Dict[str, Any]:
        if db_url.startswith("sqlite"):
            # SQLite is only used for local runs and tests
            return {"connect_args": {"check_same_thread": False}, "echo": False}
        return {
            "pool_pre_ping": True,
            "pool_size": 5,
            "max_overflow": 10,
            "echo": False,
        }

    @property
    def dialect(self) -> str:
        """Name of the SQL dialect in use (postgresql, sqlite, ...)."""
        return self.engine.dialect.name

    @contextmanager
    def get_session(self) -> Generator[Session, None, None]:
        """
        Get a database session with automatic cleanup.

        Usage:
            with db.get_session() as session:
                session.add(record)

        Transactions are rolled back on error, committed on success.

        Yields:
            SQLAlchemy Session object
        """
        session = self._session_factory()
        try:
            yield session
            session.commit()
        except SQLAlchemyError as e:
            session.rollback()
            logger.error(f"Database error, rolling back: {e}")
            raise
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()

    def check_connection(self) -> bool:
        """
        Test database connectivity.

        Returns:
            True if connection is healthy, False otherwise.
        """
        try:
            with self.get_session() as session:
                session.execute(text("SELECT 1"))
            logger.debug("Database connection check: OK")
            return True
        except SQLAlchemyError as e:
            logger.error(f"Database connection check failed: {e}")
            return False

    def close(self):
        """Close all connections in the pool."""
        self.engine.dispose()
        logger.info("Database connections closed")


# Module-level instance (singleton pattern)
_db_connection: Optional[DatabaseConnection] = None


def get_database() -> DatabaseConnection:
    """
    Get or create the database connection instance.

    This lazy initialization prevents connection before app startup.

    Returns:
        DatabaseConnection singleton instance
    """
    global _db_connection
    if _db_connection is None:
        _db_connection = DatabaseConnection()
    return _db_connection


def set_database(connection: Optional[DatabaseConnection]) -> None:
    """Replace the process-wide connection (used by tests)."""
    global _db_connection
    _db_connection = connection
