"""
Database module - PostgreSQL + pgvector access layer.

This module handles:
- Database connection management
- ORM models (users, sessions, messages, memories)
- Table initialization
"""
from busy_assistant.database.connection import DatabaseConnection, get_database, set_database
from busy_assistant.database.models import AuthSession, Base, Memory, Message, User
from busy_assistant.database.init_db import init_tables, drop_tables

__all__ = [
    # Connection
    "DatabaseConnection",
    "get_database",
    "set_database",
    # Models
    "Base",
    "User",
    "AuthSession",
    "Message",
    "Memory",
    # Init
    "init_tables",
    "drop_tables",
]
