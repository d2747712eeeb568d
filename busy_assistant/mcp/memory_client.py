"""
HTTP client for the /memory endpoints.

Used by the tool server: every call carries the caller's session token
as the session cookie, so the API enforces ownership as usual.
"""
from typing import Any, Dict, Optional

import requests

from busy_assistant.core.config import get_settings
from busy_assistant.core.exceptions import ToolServerError
from busy_assistant.core.logging_config import LoggerMixin


class MemoryApiClient(LoggerMixin):
    """
    Thin wrapper over the memory HTTP API.

    Example:
        >>> client = MemoryApiClient("http://127.0.0.1:8000")
        >>> client.store_memory(token, "User prefers dark mode")
        {"success": True, "memory": {...}}
    """

    def __init__(
        self,
        base_url: str,
        cookie_name: str = "session_token",
        timeout: float = 30,
        session: Optional[requests.Session] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.cookie_name = cookie_name
        self.timeout = timeout
        self.session = session or requests.Session()

    @classmethod
    def from_settings(cls) -> "MemoryApiClient":
        settings = get_settings()
        return cls(
            base_url=settings.api_base_url,
            cookie_name=settings.session_cookie_name,
            timeout=settings.tool_server_timeout_seconds,
        )

    def store_memory(
        self,
        auth_token: str,
        content: str,
        metadata: Optional[Dict[str, Any]] = None
    ) -> Dict[str, Any]:
        return self._request("POST", "/memory", auth_token, json={"content": content, "metadata": metadata})

    def retrieve_memories(
        self,
        auth_token: str,
        query: str,
        limit: Optional[int] = None,
        threshold: Optional[float] = None
    ) -> Dict[str, Any]:
        params = self._params(query=query, limit=limit, threshold=threshold)
        return self._request("GET", "/memory", auth_token, params=params)

    def list_memories(
        self,
        auth_token: str,
        limit: Optional[int] = None,
        offset: Optional[int] = None
    ) -> Dict[str, Any]:
        return self._request("GET", "/memory", auth_token, params=self._params(limit=limit, offset=offset))

    def get_memory(self, auth_token: str, memory_id: str) -> Dict[str, Any]:
        return self._request("GET", f"/memory/{memory_id}", auth_token)

    def update_memory(
        self,
        auth_token: str,
        memory_id: str,
        content: str,
        metadata: Optional[Dict[str, Any]] = None
    ) -> Dict[str, Any]:
        body = {"id": memory_id, "content": content, "metadata": metadata}
        return self._request("PUT", "/memory", auth_token, json=body)

    def delete_memory(self, auth_token: str, memory_id: str) -> Dict[str, Any]:
        return self._request("DELETE", "/memory", auth_token, params={"id": memory_id})

    @staticmethod
    def _params(**values: Any) -> Dict[str, Any]:
        return {key: value for key, value in values.items() if value is not None}

    def _request(self, method: str, path: str, auth_token: str, **kwargs: Any) -> Dict[str, Any]:
        """
        Send one request and decode the JSON body.

        Raises:
            ToolServerError: Network failure or a non-2xx response
        """
        url = f"{self.base_url}{path}"
        try:
            response = self.session.request(
                method,
                url,
                cookies={self.cookie_name: auth_token},
                timeout=self.timeout,
                **kwargs,
            )
        except requests.RequestException as e:
            self.logger.error(f"{method} {path} failed: {e}")
            raise ToolServerError(f"Memory API request failed: {e}") from e

        try:
            data = response.json()
        except ValueError:
            data = {}
        if not isinstance(data, dict):
            data = {"data": data}

        if not response.ok:
            message = data.get("message") or data.get("error") or f"HTTP {response.status_code}"
            self.logger.warning(f"{method} {path} -> {response.status_code}: {message}")
            raise ToolServerError(message)

        return data
