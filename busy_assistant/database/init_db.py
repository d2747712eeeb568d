"""
Database Initialization - Create application tables.

On PostgreSQL the pgvector extension is enabled first, since the
memories table carries a vector column and an HNSW index.
"""
from typing import Optional

from sqlalchemy import text

from busy_assistant.core.logging_config import get_logger
from busy_assistant.database.connection import DatabaseConnection, get_database
from busy_assistant.database.models import Base

logger = get_logger(__name__)


def init_tables(db: Optional[DatabaseConnection] = None) -> bool:
    """
    Create all tables if they don't exist.

    Called once during application startup.

    Returns:
        True if tables were created successfully
    """
    db = db or get_database()
    try:
        if db.dialect == "postgresql":
            with db.engine.begin() as conn:
                conn.execute(text("CREATE EXTENSION IF NOT EXISTS vector"))

        Base.metadata.create_all(db.engine)

        logger.info("Database tables initialized successfully")
        return True

    except Exception as e:
        logger.error(f"Failed to initialize tables: {e}")
        raise


def drop_tables(db: Optional[DatabaseConnection] = None) -> bool:
    """
    Drop all application tables (use with caution!).

    Returns:
        True if tables were dropped successfully
    """
    db = db or get_database()
    try:
        Base.metadata.drop_all(db.engine)

        logger.warning("Database tables dropped")
        return True

    except Exception as e:
        logger.error(f"Failed to drop tables: {e}")
        raise


if __name__ == "__main__":
    print("Initializing database tables...")
    init_tables()
    print("Done!")
