import io
import json
from types import SimpleNamespace
from unittest.mock import MagicMock

import pytest

from busy_assistant.core.exceptions import ToolServerError
from busy_assistant.mcp.client import ToolServerClient
from busy_assistant.mcp.memory_client import MemoryApiClient
from busy_assistant.mcp.server import TOOLS, ToolServer


@pytest.fixture
def memory_client():
    return MagicMock(spec=MemoryApiClient)


@pytest.fixture
def server(memory_client):
    return ToolServer(memory_client=memory_client)


def _answer(server, request):
    return json.loads(server.handle_line(json.dumps(request)))


class TestProtocol:
    def test_tools_list(self, server):
        response = _answer(server, {"id": 1, "method": "tools/list"})
        assert response["id"] == 1
        assert [tool["name"] for tool in response["tools"]] == [tool["name"] for tool in TOOLS]
        assert {"get_status", "execute_task", "store_memory", "delete_memory"} <= {t["name"] for t in TOOLS}

    def test_unknown_method(self, server):
        assert _answer(server, {"method": "resources/list"}) == {"error": "Unknown method"}

    def test_id_is_echoed_on_errors(self, server):
        assert _answer(server, {"id": "abc", "method": "nope"}) == {"error": "Unknown method", "id": "abc"}

    def test_blank_lines_are_ignored(self, server):
        assert server.handle_line("   \n") is None

    def test_bad_json_is_answered(self, server):
        response = json.loads(server.handle_line("{oops"))
        assert response["error"].startswith("Invalid JSON")

    def test_non_object_request(self, server):
        assert _answer(server, [1, 2, 3]) == {"error": "Request must be a JSON object"}

    def test_serve_keeps_going_after_a_bad_line(self, server):
        stdin = io.StringIO(
            "not json\n"
            "\n"
            + json.dumps({"id": 7, "method": "tools/call", "params": {"name": "get_status"}})
            + "\n"
        )
        stdout = io.StringIO()

        server.serve(stdin=stdin, stdout=stdout)

        lines = stdout.getvalue().splitlines()
        assert len(lines) == 2
        assert "error" in json.loads(lines[0])
        last = json.loads(lines[1])
        assert last["id"] == 7
        assert last["result"]["status"] == "running"


class TestTools:
    def test_get_status(self, server):
        result = _answer(server, {"method": "tools/call", "params": {"name": "get_status"}})["result"]
        assert result["status"] == "running"
        assert result["timestamp"].endswith("Z")

    def test_execute_task(self, server):
        response = _answer(
            server, {"method": "tools/call", "params": {"name": "execute_task", "arguments": {"task": "water plants"}}}
        )
        assert response["result"] == {
            "task": "water plants",
            "status": "completed",
            "result": "Task executed successfully",
        }

    def test_unknown_tool(self, server):
        response = _answer(server, {"method": "tools/call", "params": {"name": "fly"}})
        assert response == {"error": "Unknown tool: fly"}

    def test_memory_tools_require_token(self, server, memory_client):
        response = _answer(
            server, {"method": "tools/call", "params": {"name": "store_memory", "arguments": {"content": "x"}}}
        )
        assert "auth_token" in response["error"]
        memory_client.store_memory.assert_not_called()

    def test_memory_tools_forward_to_http_api(self, server, memory_client):
        memory_client.retrieve_memories.return_value = {"success": True, "memories": [], "count": 0}

        response = _answer(server, {
            "method": "tools/call",
            "params": {
                "name": "retrieve_memories",
                "arguments": {"auth_token": "tok", "query": "hobbies", "limit": 3},
            },
        })

        assert response["result"]["count"] == 0
        memory_client.retrieve_memories.assert_called_once_with("tok", "hobbies", limit=3, threshold=None)

    def test_get_memory_fetches_by_id(self, server, memory_client):
        memory_client.get_memory.return_value = {"success": True, "memory": {"id": "m1", "content": "Likes tea"}}

        response = _answer(server, {
            "id": 4,
            "method": "tools/call",
            "params": {"name": "get_memory", "arguments": {"auth_token": "tok", "id": "m1"}},
        })

        assert response["result"]["memory"]["content"] == "Likes tea"
        memory_client.get_memory.assert_called_once_with("tok", "m1")

    def test_http_errors_become_error_lines(self, server, memory_client):
        memory_client.delete_memory.side_effect = ToolServerError("Memory not found or unauthorized")

        response = _answer(server, {
            "id": 3,
            "method": "tools/call",
            "params": {"name": "delete_memory", "arguments": {"auth_token": "tok", "id": "m1"}},
        })

        assert response == {"error": "Memory not found or unauthorized", "id": 3}


class TestMemoryApiClient:
    def _client(self, response):
        session = MagicMock()
        session.request.return_value = response
        return MemoryApiClient("http://api.local/", cookie_name="session_token", timeout=5, session=session), session

    def test_sends_token_as_cookie(self):
        response = SimpleNamespace(ok=True, status_code=200, json=lambda: {"success": True})
        client, session = self._client(response)

        assert client.store_memory("tok", "Likes tea") == {"success": True}

        session.request.assert_called_once_with(
            "POST",
            "http://api.local/memory",
            cookies={"session_token": "tok"},
            timeout=5,
            json={"content": "Likes tea", "metadata": None},
        )

    def test_get_memory_uses_id_path(self):
        response = SimpleNamespace(ok=True, status_code=200, json=lambda: {"success": True})
        client, session = self._client(response)

        client.get_memory("tok", "m1")

        assert session.request.call_args.args == ("GET", "http://api.local/memory/m1")

    def test_drops_unset_query_params(self):
        response = SimpleNamespace(ok=True, status_code=200, json=lambda: {"memories": []})
        client, session = self._client(response)

        client.list_memories("tok", limit=5)

        assert session.request.call_args.kwargs["params"] == {"limit": 5}

    def test_error_response_raises_with_server_message(self):
        response = SimpleNamespace(
            ok=False,
            status_code=404,
            json=lambda: {"error": "not_found", "message": "Memory not found or unauthorized"},
        )
        client, _ = self._client(response)

        with pytest.raises(ToolServerError, match="Memory not found or unauthorized"):
            client.delete_memory("tok", "m1")


class TestToolServerClient:
    def test_round_trip_through_subprocess(self):
        client = ToolServerClient(timeout=60)
        try:
            names = [tool["name"] for tool in client.list_tools()]
            assert "get_status" in names

            assert client.call_tool("get_status")["status"] == "running"

            with pytest.raises(ToolServerError, match="Unknown tool"):
                client.call_tool("does_not_exist")

            # the server survives errors
            assert client.call_tool("execute_task", {"task": "t"})["status"] == "completed"
        finally:
            client.close()


class TestToolRoutes:
    @pytest.fixture
    def tool_client(self, app):
        from busy_assistant.mcp.client import get_tool_server_client

        fake = MagicMock(spec=ToolServerClient)
        app.dependency_overrides[get_tool_server_client] = lambda: fake
        return fake

    def test_list_requires_session(self, client, tool_client):
        assert client.get("/tools").status_code == 401
        tool_client.list_tools.assert_not_called()

    def test_list(self, client, auth_headers, tool_client):
        tool_client.list_tools.return_value = TOOLS

        body = client.get("/tools", headers=auth_headers).json()

        assert [tool["name"] for tool in body["tools"]] == [tool["name"] for tool in TOOLS]

    def test_call_forwards_session_token(self, client, auth_headers, tool_client):
        tool_client.call_tool.return_value = {"success": True, "count": 0}

        response = client.post(
            "/tools/list_memories", json={"arguments": {"limit": 5}}, headers=auth_headers
        )

        assert response.status_code == 200
        assert response.json()["result"] == {"success": True, "count": 0}
        token = auth_headers["Authorization"].split(" ", 1)[1]
        tool_client.call_tool.assert_called_once_with("list_memories", {"limit": 5, "auth_token": token})

    def test_tool_server_failure_is_502(self, client, auth_headers, tool_client):
        tool_client.call_tool.side_effect = ToolServerError("Unknown tool: fly")

        response = client.post("/tools/fly", json={"arguments": {}}, headers=auth_headers)

        assert response.status_code == 502
        assert response.json()["error"] == "tool_server_error"
