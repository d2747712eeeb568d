"""
Busy tool server - newline-delimited JSON over stdio.

Protocol (one JSON object per line):
    -> {"id": 1, "method": "tools/list"}
    <- {"id": 1, "tools": [...]}
    -> {"id": 2, "method": "tools/call", "params": {"name": "get_status", "arguments": {}}}
    <- {"id": 2, "result": {"status": "running", "timestamp": "..."}}

Any other method answers {"error": "Unknown method"}. A failing line is
answered with {"error": ...} and the loop keeps reading. stdout carries
responses only; logs go to stderr.

Run with: python -m busy_assistant.mcp.server
"""
import json
import sys
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional, TextIO

from busy_assistant.core.config import get_settings
from busy_assistant.core.exceptions import ValidationError
from busy_assistant.core.logging_config import LoggerMixin, get_logger, setup_logging
from busy_assistant.mcp.memory_client import MemoryApiClient

logger = get_logger(__name__)

_AUTH_TOKEN = {
    "type": "string",
    "description": "Session token of the user the memory belongs to",
}

TOOLS: List[Dict[str, Any]] = [
    {
        "name": "get_status",
        "description": "Get the current status of the busy assistant",
        "inputSchema": {"type": "object", "properties": {}},
    },
    {
        "name": "execute_task",
        "description": "Execute a task with the busy assistant",
        "inputSchema": {
            "type": "object",
            "properties": {
                "task": {"type": "string", "description": "The task to execute"},
            },
            "required": ["task"],
        },
    },
    {
        "name": "store_memory",
        "description": "Store a memory for the user",
        "inputSchema": {
            "type": "object",
            "properties": {
                "auth_token": _AUTH_TOKEN,
                "content": {"type": "string", "description": "The memory content"},
                "metadata": {"type": "object", "description": "Optional metadata"},
            },
            "required": ["auth_token", "content"],
        },
    },
    {
        "name": "retrieve_memories",
        "description": "Search the user's memories by meaning",
        "inputSchema": {
            "type": "object",
            "properties": {
                "auth_token": _AUTH_TOKEN,
                "query": {"type": "string", "description": "What to search for"},
                "limit": {"type": "integer", "description": "Maximum results (1-100)"},
                "threshold": {"type": "number", "description": "Minimum similarity (0-1)"},
            },
            "required": ["auth_token", "query"],
        },
    },
    {
        "name": "list_memories",
        "description": "List the user's memories, newest first",
        "inputSchema": {
            "type": "object",
            "properties": {
                "auth_token": _AUTH_TOKEN,
                "limit": {"type": "integer"},
                "offset": {"type": "integer"},
            },
            "required": ["auth_token"],
        },
    },
    {
        "name": "get_memory",
        "description": "Fetch one memory by ID",
        "inputSchema": {
            "type": "object",
            "properties": {
                "auth_token": _AUTH_TOKEN,
                "id": {"type": "string", "description": "Memory ID"},
            },
            "required": ["auth_token", "id"],
        },
    },
    {
        "name": "update_memory",
        "description": "Replace a memory's content and metadata",
        "inputSchema": {
            "type": "object",
            "properties": {
                "auth_token": _AUTH_TOKEN,
                "id": {"type": "string", "description": "Memory ID"},
                "content": {"type": "string"},
                "metadata": {"type": "object"},
            },
            "required": ["auth_token", "id", "content"],
        },
    },
    {
        "name": "delete_memory",
        "description": "Delete a memory",
        "inputSchema": {
            "type": "object",
            "properties": {
                "auth_token": _AUTH_TOKEN,
                "id": {"type": "string", "description": "Memory ID"},
            },
            "required": ["auth_token", "id"],
        },
    },
]


class ToolServer(LoggerMixin):
    """
    Request handling for the stdio tool server.

    Separated from the read loop so it can be driven directly in tests.
    """

    def __init__(self, memory_client: Optional[MemoryApiClient] = None):
        self._memory_client = memory_client
        self._handlers: Dict[str, Callable[[Dict[str, Any]], Any]] = {
            "get_status": self._get_status,
            "execute_task": self._execute_task,
            "store_memory": self._store_memory,
            "retrieve_memories": self._retrieve_memories,
            "list_memories": self._list_memories,
            "get_memory": self._get_memory,
            "update_memory": self._update_memory,
            "delete_memory": self._delete_memory,
        }

    @property
    def memory_client(self) -> MemoryApiClient:
        if self._memory_client is None:
            self._memory_client = MemoryApiClient.from_settings()
        return self._memory_client

    # ============================================================
    # Protocol
    # ============================================================

    def handle_request(self, request: Any) -> Dict[str, Any]:
        """Answer one decoded request. Never raises."""
        if not isinstance(request, dict):
            return {"error": "Request must be a JSON object"}

        method = request.get("method")
        try:
            if method == "tools/list":
                response = {"tools": TOOLS}
            elif method == "tools/call":
                params = request.get("params") or {}
                response = {"result": self.call_tool(params.get("name"), params.get("arguments") or {})}
            else:
                response = {"error": "Unknown method"}
        except Exception as e:
            self.logger.error(f"Error processing {method}: {e}")
            response = {"error": str(e)}

        if "id" in request:
            response["id"] = request["id"]
        return response

    def handle_line(self, line: str) -> Optional[str]:
        """Answer one raw input line. Blank lines produce no output."""
        if not line.strip():
            return None

        try:
            request = json.loads(line)
        except json.JSONDecodeError as e:
            self.logger.error(f"Invalid JSON request: {e}")
            return json.dumps({"error": f"Invalid JSON: {e.msg}"})

        return json.dumps(self.handle_request(request), default=str)

    def serve(self, stdin: Optional[TextIO] = None, stdout: Optional[TextIO] = None) -> None:
        """Read requests until stdin closes."""
        stdin = stdin or sys.stdin
        stdout = stdout or sys.stdout

        self.logger.info("Busy tool server running on stdio")
        for line in stdin:
            output = self.handle_line(line)
            if output is not None:
                stdout.write(output + "\n")
                stdout.flush()
        self.logger.info("stdin closed, tool server exiting")

    # ============================================================
    # Tools
    # ============================================================

    def call_tool(self, name: Any, arguments: Dict[str, Any]) -> Any:
        handler = self._handlers.get(name)
        if handler is None:
            raise ValueError(f"Unknown tool: {name}")
        if not isinstance(arguments, dict):
            raise ValidationError("Tool arguments must be a JSON object", field="arguments")
        self.logger.debug(f"Calling tool {name}")
        return handler(arguments)

    @staticmethod
    def _get_status(arguments: Dict[str, Any]) -> Dict[str, Any]:
        return {
            "status": "running",
            "timestamp": datetime.utcnow().isoformat() + "Z",
        }

    @staticmethod
    def _execute_task(arguments: Dict[str, Any]) -> Dict[str, Any]:
        return {
            "task": arguments.get("task"),
            "status": "completed",
            "result": "Task executed successfully",
        }

    @staticmethod
    def _token(arguments: Dict[str, Any]) -> str:
        token = arguments.get("auth_token")
        if not token or not isinstance(token, str):
            raise ValidationError("auth_token is required for memory tools", field="auth_token")
        return token

    def _store_memory(self, arguments: Dict[str, Any]) -> Dict[str, Any]:
        return self.memory_client.store_memory(
            self._token(arguments), arguments.get("content"), arguments.get("metadata")
        )

    def _retrieve_memories(self, arguments: Dict[str, Any]) -> Dict[str, Any]:
        return self.memory_client.retrieve_memories(
            self._token(arguments),
            arguments.get("query"),
            limit=arguments.get("limit"),
            threshold=arguments.get("threshold"),
        )

    def _list_memories(self, arguments: Dict[str, Any]) -> Dict[str, Any]:
        return self.memory_client.list_memories(
            self._token(arguments), limit=arguments.get("limit"), offset=arguments.get("offset")
        )

    def _get_memory(self, arguments: Dict[str, Any]) -> Dict[str, Any]:
        return self.memory_client.get_memory(self._token(arguments), arguments.get("id"))

    def _update_memory(self, arguments: Dict[str, Any]) -> Dict[str, Any]:
        return self.memory_client.update_memory(
            self._token(arguments),
            arguments.get("id"),
            arguments.get("content"),
            arguments.get("metadata"),
        )

    def _delete_memory(self, arguments: Dict[str, Any]) -> Dict[str, Any]:
        return self.memory_client.delete_memory(self._token(arguments), arguments.get("id"))


def main() -> None:
    settings = get_settings()
    setup_logging(settings.log_level, settings.log_dir or None, stream=sys.stderr)
    ToolServer().serve()


if __name__ == "__main__":
    main()
