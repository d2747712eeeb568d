"""
Chat Service - Business logic for conversational interactions.

This service orchestrates the chat flow:
1. Receives the conversation history from the client
2. Runs it through the selected mode (plain chat, tool loop, graph agent)
3. Appends the user message and the final reply to the chat log
4. Returns the reply

Modes:
- chat  : one plain completion with the memory system prompt, no tools
- agent : explicit tool-calling loop over the memory tools
- graph : LangGraph agent over the memory tools (default)
"""
from typing import Any, Dict, List, Optional

from busy_assistant.agent.graph import run_graph_agent
from busy_assistant.agent.tool_loop import run_tool_loop
from busy_assistant.agent.tools import MemoryToolkit
from busy_assistant.core.config import get_settings
from busy_assistant.core.exceptions import LLMError
from busy_assistant.core.logging_config import get_logger
from busy_assistant.llm.client import LLMClient
from busy_assistant.llm.prompts import get_memory_system_prompt
from busy_assistant.memory.chat_log import ChatLog
from busy_assistant.memory.store import MemoryStore, get_memory_store

logger = get_logger(__name__)

DEFAULT_MODE = "graph"


class ChatService:
    """
    Service for handling chat interactions with memory tools.

    Example:
        >>> service = ChatService()
        >>> service.process(user_id, [{"role": "user", "content": "I love guitar"}])
        "Got it! I'll remember that you love playing guitar."
    """

    def __init__(
        self,
        llm_client: Optional[Any] = None,
        memory_store: Optional[MemoryStore] = None,
        chat_log: Optional[ChatLog] = None,
        max_steps: Optional[int] = None,
    ):
        """
        Initialize the chat service.

        Args:
            llm_client: Chat model client. Created on first use if omitted.
            memory_store: Memory store for the tools
            chat_log: Chat log for persisting exchanges
            max_steps: Agent step bound (defaults to AGENT_MAX_STEPS)
        """
        self._llm_client = llm_client
        self.memory_store = memory_store or get_memory_store()
        self.chat_log = chat_log or ChatLog()
        self.max_steps = max_steps or get_settings().agent_max_steps
        logger.info(f"ChatService initialized (max_steps={self.max_steps})")

    @property
    def llm_client(self) -> Any:
        if self._llm_client is None:
            self._llm_client = LLMClient()
        return self._llm_client

    def process(
        self,
        user_id: str,
        messages: List[Dict[str, str]],
        mode: str = DEFAULT_MODE
    ) -> str:
        """
        Produce the assistant's reply to a conversation.

        Args:
            user_id: Authenticated user (scopes the memory tools)
            messages: Validated history, last message from the user
            mode: 'chat', 'agent' or 'graph'

        Returns:
            The assistant's reply text

        Raises:
            ChatServiceError: If the model or the chat log fails
        """
        logger.info(
            f"Processing chat: user={user_id[:8]}..., mode={mode}, "
            f"history_size={len(messages)}"
        )

        try:
            if mode == "chat":
                reply = self._plain_chat(messages)
            else:
                toolkit = MemoryToolkit(user_id, self.memory_store)
                runner = run_tool_loop if mode == "agent" else run_graph_agent
                reply = runner(self.llm_client, toolkit, messages, self.max_steps)

            self.chat_log.append_exchange(user_id, messages[-1]["content"], reply)

            logger.info(f"Chat processed: user={user_id[:8]}..., response_length={len(reply)}")
            return reply

        except LLMError as e:
            logger.error(f"LLM error during chat: {e}")
            raise ChatServiceError(str(e)) from e

        except Exception as e:
            logger.exception(f"Unexpected error in chat service: {e}")
            raise ChatServiceError("Failed to process chat request") from e

    def history(self, user_id: str, limit: int = 50) -> List[Dict]:
        """Return the user's persisted chat log, oldest first."""
        return self.chat_log.recent(user_id, limit)

    def _plain_chat(self, messages: List[Dict[str, str]]) -> str:
        system_parts = [get_memory_system_prompt()]
        system_parts.extend(m["content"] for m in messages[:-1] if m["role"] == "system")
        history = [m for m in messages[:-1] if m["role"] != "system"]
        return self.llm_client.generate(
            user_message=messages[-1]["content"],
            system_prompt="\n\n".join(system_parts),
            history=history or None,
        )


class ChatServiceError(Exception):
    """
    Raised when chat processing fails for any reason
    (model errors, chat log failures, ...).
    """
    pass
