"""
Tool Routes - HTTP bridge to the auxiliary tool server.

The caller's session token is forwarded to memory tools as
``auth_token`` so the tool server acts on the caller's behalf.
"""
from typing import Dict

from fastapi import APIRouter, Depends, Request

from busy_assistant.api.deps import get_current_user, get_session_token
from busy_assistant.core.logging_config import get_logger
from busy_assistant.mcp.client import ToolServerClient, get_tool_server_client
from busy_assistant.models.auth import ToolCallRequest, ToolCallResponse, ToolListResponse
from busy_assistant.models.chat import ErrorResponse

logger = get_logger(__name__)

router = APIRouter(
    prefix="/tools",
    tags=["Tools"],
    responses={
        401: {"model": ErrorResponse, "description": "Missing or invalid session"},
        502: {"model": ErrorResponse, "description": "Tool server error"},
    }
)


@router.get("", response_model=ToolListResponse, summary="List tool server tools")
def list_tools(
    user: Dict = Depends(get_current_user),
    client: ToolServerClient = Depends(get_tool_server_client),
) -> ToolListResponse:
    return ToolListResponse(tools=client.list_tools())


@router.post("/{name}", response_model=ToolCallResponse, summary="Call a tool")
def call_tool(
    name: str,
    body: ToolCallRequest,
    request: Request,
    user: Dict = Depends(get_current_user),
    client: ToolServerClient = Depends(get_tool_server_client),
) -> ToolCallResponse:
    arguments = dict(body.arguments)
    arguments["auth_token"] = get_session_token(request)

    logger.info(f"Tool call: {name} by user={user['id'][:8]}...")
    return ToolCallResponse(result=client.call_tool(name, arguments))
