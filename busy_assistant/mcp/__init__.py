"""
Tool server module - line-delimited JSON tools over stdio.

- server.py        : the stdio server (python -m busy_assistant.mcp.server)
- memory_client.py : HTTP client the memory tools use
- client.py        : subprocess client used by the API's /tools routes
"""
from busy_assistant.mcp.client import ToolServerClient, get_tool_server_client
from busy_assistant.mcp.memory_client import MemoryApiClient
from busy_assistant.mcp.server import TOOLS, ToolServer

__all__ = [
    "MemoryApiClient",
    "TOOLS",
    "ToolServer",
    "ToolServerClient",
    "get_tool_server_client",
]
