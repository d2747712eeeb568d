"""
Chat Log - Append-only persistence of chat messages.

Only the last user message of each request and the final assistant
reply are recorded. Messages are never edited or deleted through the
application.
"""
from datetime import datetime
from typing import Dict, List, Optional

from busy_assistant.core.logging_config import get_logger
from busy_assistant.core.validators import clamp_limit
from busy_assistant.database.connection import DatabaseConnection, get_database
from busy_assistant.database.models import Message

logger = get_logger(__name__)

LOGGED_ROLES = ("user", "assistant")


class ChatLog:
    """
    Database-backed chat history for each user.

    Example:
        >>> log = ChatLog()
        >>> log.append(user_id, "user", "Remember that I love guitar")
        >>> log.recent(user_id, limit=10)
        [{"role": "user", "content": "Remember that I love guitar", ...}]
    """

    def __init__(self, db: Optional[DatabaseConnection] = None):
        self.db = db or get_database()

    def append(self, user_id: Optional[str], role: str, content: str) -> Dict:
        """
        Append one message to the log.

        Args:
            user_id: Owner of the message
            role: 'user' or 'assistant'
            content: Message text

        Returns:
            The stored message as a dict
        """
        if role not in LOGGED_ROLES:
            raise ValueError(f"Cannot log message with role {role!r}")

        with self.db.get_session() as session:
            message = Message(
                user_id=user_id,
                role=role,
                content=content,
                created_at=datetime.utcnow(),
            )
            session.add(message)
            session.flush()
            stored = message.to_dict()

        logger.debug(f"Logged {role} message for user={(user_id or '-')[:8]}")
        return stored

    def append_exchange(self, user_id: Optional[str], user_message: str, reply: str) -> None:
        """Record a user message and the assistant reply to it."""
        self.append(user_id, "user", user_message)
        self.append(user_id, "assistant", reply)

    def recent(self, user_id: str, limit: int = 50) -> List[Dict]:
        """
        Return the user's most recent messages, oldest first.

        Args:
            user_id: Owner of the messages
            limit: Maximum messages, clamped to [1, 100]
        """
        limit = clamp_limit(limit, default=50)
        with self.db.get_session() as session:
            rows = (
                session.query(Message)
                .filter(Message.user_id == user_id)
                .order_by(Message.created_at.desc())
                .limit(limit)
                .all()
            )
            return [row.to_dict() for row in reversed(rows)]
