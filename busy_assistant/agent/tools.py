"""
Memory tools exposed to the chat model.

Tool results are always strings fed back into the conversation; a
failing tool reports the failure to the model instead of raising.
"""
import json
from typing import Any, Callable, Dict, List, Optional

from busy_assistant.core.logging_config import LoggerMixin
from busy_assistant.llm.prompts import RETRIEVE_MEMORIES_DESCRIPTION, STORE_MEMORY_DESCRIPTION
from busy_assistant.memory.store import MemoryStore, get_memory_store

STORE_MEMORY = "store_memory"
RETRIEVE_MEMORIES = "retrieve_memories"


class MemoryToolkit(LoggerMixin):
    """
    The store_memory / retrieve_memories tools bound to one user.

    Example:
        >>> toolkit = MemoryToolkit(user_id)
        >>> toolkit.execute("retrieve_memories", '{"query": "hobbies"}')
        'Found 1 relevant memories:\\n1. User enjoys playing guitar (similarity: 84.2%)'
    """

    def __init__(self, user_id: str, store: Optional[MemoryStore] = None):
        if not isinstance(user_id, str) or not user_id.strip():
            raise ValueError("Invalid userId: must be a non-empty string")
        self.user_id = user_id
        self.store = store or get_memory_store()
        self._handlers: Dict[str, Callable[..., str]] = {
            STORE_MEMORY: self.store_memory,
            RETRIEVE_MEMORIES: self.retrieve_memories,
        }

    @property
    def names(self) -> List[str]:
        return list(self._handlers)

    def schemas(self) -> List[Dict[str, Any]]:
        """OpenAI-style function schemas for both tools."""
        return [
            {
                "type": "function",
                "function": {
                    "name": STORE_MEMORY,
                    "description": STORE_MEMORY_DESCRIPTION,
                    "parameters": {
                        "type": "object",
                        "properties": {
                            "content": {
                                "type": "string",
                                "description": "The information to remember, reformulated clearly",
                            },
                            "category": {
                                "type": "string",
                                "description": 'Optional category like "personal", "work", "preferences", etc.',
                            },
                        },
                        "required": ["content"],
                    },
                },
            },
            {
                "type": "function",
                "function": {
                    "name": RETRIEVE_MEMORIES,
                    "description": RETRIEVE_MEMORIES_DESCRIPTION,
                    "parameters": {
                        "type": "object",
                        "properties": {
                            "query": {
                                "type": "string",
                                "description": "What to search for in the memories",
                            },
                            "limit": {
                                "type": "number",
                                "description": "Maximum number of memories to retrieve",
                            },
                        },
                        "required": ["query"],
                    },
                },
            },
        ]

    def execute(self, name: str, arguments: Any) -> str:
        """
        Run a tool call requested by the model.

        Args:
            name: Tool name
            arguments: JSON string (as sent by the model) or a dict

        Returns:
            The tool result text, or an error description
        """
        handler = self._handlers.get(name)
        if handler is None:
            self.logger.warning(f"Model requested unknown tool: {name}")
            return f"Unknown tool: {name}"

        try:
            args = json.loads(arguments) if isinstance(arguments, str) and arguments.strip() else (arguments or {})
        except json.JSONDecodeError as e:
            self.logger.warning(f"Bad arguments for {name}: {e}")
            return f"Invalid arguments for {name}: {e.msg}"

        if not isinstance(args, dict):
            return f"Invalid arguments for {name}: expected an object"

        self.logger.info(f"Executing tool {name} for user={self.user_id[:8]}...")
        try:
            return handler(**args)
        except TypeError as e:
            return f"Invalid arguments for {name}: {e}"

    def store_memory(self, content: str = "", category: Optional[str] = None, **_: Any) -> str:
        try:
            metadata = {"category": category} if category else None
            self.store.store(self.user_id, content, metadata)
            return f'Memory stored successfully: "{content}"'
        except Exception as e:
            self.logger.error(f"Error storing memory: {e}")
            return f"Failed to store memory: {getattr(e, 'message', None) or e}"

    def retrieve_memories(self, query: str = "", limit: Any = 5, **_: Any) -> str:
        try:
            memories = self.store.retrieve(self.user_id, query, limit)
            if not memories:
                return "No relevant memories found."
            lines = "\n".join(
                f"{i + 1}. {m.content} (similarity: {m.similarity * 100:.1f}%)"
                for i, m in enumerate(memories)
            )
            return f"Found {len(memories)} relevant memories:\n{lines}"
        except Exception as e:
            self.logger.error(f"Error retrieving memories: {e}")
            return f"Failed to retrieve memories: {getattr(e, 'message', None) or e}"
