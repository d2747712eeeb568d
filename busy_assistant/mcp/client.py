"""
Tool server client.

Starts ``python -m busy_assistant.mcp.server`` as a subprocess and talks
to it one request line / one response line at a time. Calls from
concurrent requests are serialised by a lock.
"""
import json
import queue
import subprocess
import sys
import threading
from typing import Any, Dict, List, Optional

from busy_assistant.core.config import get_settings
from busy_assistant.core.exceptions import ToolServerError
from busy_assistant.core.logging_config import LoggerMixin

SERVER_COMMAND = [sys.executable, "-m", "busy_assistant.mcp.server"]


class ToolServerClient(LoggerMixin):
    """
    Line-oriented client for the stdio tool server.

    Example:
        >>> client = ToolServerClient()
        >>> [tool["name"] for tool in client.list_tools()]
        ['get_status', 'execute_task', 'store_memory', ...]
        >>> client.call_tool("get_status", {})
        {'status': 'running', 'timestamp': '...'}
    """

    def __init__(self, command: Optional[List[str]] = None, timeout: Optional[float] = None):
        self.command = command or SERVER_COMMAND
        self.timeout = timeout or get_settings().tool_server_timeout_seconds

        self._process: Optional[subprocess.Popen] = None
        self._lines: "queue.Queue[Optional[str]]" = queue.Queue()
        self._lock = threading.Lock()
        self._next_id = 0

    def list_tools(self) -> List[Dict[str, Any]]:
        return self.request("tools/list").get("tools", [])

    def call_tool(self, name: str, arguments: Optional[Dict[str, Any]] = None) -> Any:
        response = self.request("tools/call", {"name": name, "arguments": arguments or {}})
        return response.get("result")

    def request(self, method: str, params: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        """
        Send one request and wait for its response line.

        Raises:
            ToolServerError: The server answered with an error, closed its
                stdout, or did not answer within the timeout
        """
        with self._lock:
            self._ensure_started()
            self._next_id += 1
            request_id = self._next_id
            payload = {"id": request_id, "method": method, "params": params or {}}

            try:
                self._process.stdin.write(json.dumps(payload) + "\n")
                self._process.stdin.flush()
            except (OSError, ValueError) as e:
                self._stop()
                raise ToolServerError(f"Tool server is not accepting requests: {e}") from e

            response = self._read_response(request_id)

        if "error" in response:
            raise ToolServerError(str(response["error"]))
        return response

    def close(self) -> None:
        with self._lock:
            self._stop()

    # ============================================================
    # Process management
    # ============================================================

    def _ensure_started(self) -> None:
        if self._process is not None and self._process.poll() is None:
            return

        self.logger.info(f"Starting tool server: {' '.join(self.command)}")
        self._lines = queue.Queue()
        self._process = subprocess.Popen(
            self.command,
            stdin=subprocess.PIPE,
            stdout=subprocess.PIPE,
            text=True,
            bufsize=1,
        )
        reader = threading.Thread(
            target=self._pump,
            args=(self._process.stdout, self._lines),
            name="tool-server-reader",
            daemon=True,
        )
        reader.start()

    @staticmethod
    def _pump(stream, lines: "queue.Queue[Optional[str]]") -> None:
        for line in stream:
            lines.put(line)
        lines.put(None)

    def _read_response(self, request_id: int) -> Dict[str, Any]:
        while True:
            try:
                line = self._lines.get(timeout=self.timeout)
            except queue.Empty:
                self.logger.error(f"Tool server did not answer within {self.timeout}s")
                self._stop()
                raise ToolServerError("Tool server timed out")

            if line is None:
                self._stop()
                raise ToolServerError("Tool server exited")

            try:
                response = json.loads(line)
            except json.JSONDecodeError:
                self.logger.warning(f"Ignoring non-JSON tool server output: {line.strip()[:100]}")
                continue

            if isinstance(response, dict) and response.get("id", request_id) == request_id:
                return response
            self.logger.warning(f"Ignoring stale tool server response: {line.strip()[:100]}")

    def _stop(self) -> None:
        if self._process is None:
            return
        if self._process.poll() is None:
            self._process.terminate()
            try:
                self._process.wait(timeout=5)
            except subprocess.TimeoutExpired:
                self._process.kill()
        self.logger.info("Tool server stopped")
        self._process = None


# Module-level instance
_tool_server_client: Optional[ToolServerClient] = None


def get_tool_server_client() -> ToolServerClient:
    """Get or create the process-wide tool server client."""
    global _tool_server_client
    if _tool_server_client is None:
        _tool_server_client = ToolServerClient()
    return _tool_server_client


def close_tool_server_client() -> None:
    """Stop the tool server subprocess, if one was started."""
    global _tool_server_client
    if _tool_server_client is not None:
        _tool_server_client.close()
        _tool_server_client = None
