"""
Services module - Business logic and orchestration.

Services contain the application logic between the HTTP layer and the
model / storage layers:
- No HTTP concerns (those belong in api/)
- No SQL (that belongs in memory/ and database/)
"""
from busy_assistant.services.chat_service import ChatService, ChatServiceError

__all__ = [
    "ChatService",
    "ChatServiceError",
]
