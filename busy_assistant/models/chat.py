"""
Request and Response models for the Chat API.

These Pydantic models define the contract between client and server.
They provide:
- Type validation
- Automatic documentation
- Request/response serialization

Message arrays are checked by ``core.validators`` rather than by field
constraints, so malformed histories produce the same 400 messages as
every other route.
"""
from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field


class ChatMessage(BaseModel):
    """One turn of a conversation."""
    role: str = Field(..., examples=["user"])
    content: str = Field(..., examples=["I love playing guitar on weekends"])


class ChatRequest(BaseModel):
    """
    Request model for the /chat endpoint.

    Attributes:
        messages: Full conversation history, last entry from the user.
        mode: 'chat' (no tools), 'agent' (tool loop) or 'graph' (LangGraph agent).
    """
    messages: Optional[Any] = Field(
        default=None,
        description="Conversation history as a list of {role, content}",
        examples=[[{"role": "user", "content": "What do I like to do on weekends?"}]]
    )
    mode: str = Field(
        default="graph",
        description="Chat mode: 'chat', 'agent' or 'graph'"
    )


class ChatResponse(BaseModel):
    """Response model for the /chat endpoint."""
    message: str = Field(
        ...,
        description="The assistant's reply"
    )
    success: bool = True
    mode: str
    timestamp: datetime = Field(
        default_factory=datetime.utcnow,
        description="Response generation timestamp"
    )


class ChatHistoryResponse(BaseModel):
    """Response model for GET /chat/history."""
    success: bool = True
    messages: List[Dict[str, Any]]
    count: int


class HealthResponse(BaseModel):
    """Response model for the /health endpoint."""
    status: str = Field(default="healthy")
    version: str
    timestamp: datetime = Field(default_factory=datetime.utcnow)
    database: Optional[str] = None


class ErrorResponse(BaseModel):
    """Standard error response model."""
    error: str
    message: str
    details: Optional[str] = None
