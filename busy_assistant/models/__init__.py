"""
Models module - Pydantic schemas for data validation.

This module defines:
- Request models: Input validation for API endpoints
- Response models: Output formatting for API responses
"""
from busy_assistant.models.auth import (
    LoginRequest,
    LoginResponse,
    ToolCallRequest,
    ToolCallResponse,
    ToolListResponse,
    UserResponse,
)
from busy_assistant.models.chat import (
    ChatHistoryResponse,
    ChatMessage,
    ChatRequest,
    ChatResponse,
    ErrorResponse,
    HealthResponse,
)
from busy_assistant.models.memory import (
    MemoryCreateRequest,
    MemoryDeleteResponse,
    MemoryListResponse,
    MemoryResponse,
    MemoryUpdateRequest,
)

__all__ = [
    "ChatHistoryResponse",
    "ChatMessage",
    "ChatRequest",
    "ChatResponse",
    "ErrorResponse",
    "HealthResponse",
    "LoginRequest",
    "LoginResponse",
    "MemoryCreateRequest",
    "MemoryDeleteResponse",
    "MemoryListResponse",
    "MemoryResponse",
    "MemoryUpdateRequest",
    "ToolCallRequest",
    "ToolCallResponse",
    "ToolListResponse",
    "UserResponse",
]
