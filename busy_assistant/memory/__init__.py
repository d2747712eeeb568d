"""
Memory Package - Long-term user memories and the chat log.

## Memory store (pgvector)
- Free-text facts about a user, stored with an embedding
- Retrieved by cosine similarity, listed by recency
- Exposed through /memory and the agent tools

## Chat log
- Append-only record of user messages and assistant replies

Example:
    >>> from busy_assistant.memory import get_memory_store
    >>> store = get_memory_store()
    >>> store.store(user_id, "User prefers morning meetings")
"""
from busy_assistant.memory.chat_log import ChatLog
from busy_assistant.memory.store import (
    MemoryRecord,
    MemorySearchResult,
    MemoryStore,
    build_similarity_query,
    get_memory_store,
    set_memory_store,
)

__all__ = [
    "ChatLog",
    "MemoryRecord",
    "MemorySearchResult",
    "MemoryStore",
    "build_similarity_query",
    "get_memory_store",
    "set_memory_store",
]
