"""
Chat Routes - API endpoints for conversational interactions.

This module defines the /chat endpoint which supports:
- mode='chat'  : plain conversation, no tools
- mode='agent' : tool-calling loop over the memory tools
- mode='graph' : LangGraph agent over the memory tools (default)

Requests are rate limited per authenticated user.
"""
from datetime import datetime
from typing import Dict, Optional

from fastapi import APIRouter, Depends, Response

from busy_assistant.api.deps import get_current_user
from busy_assistant.core.exceptions import AssistantException, RateLimitExceeded, ValidationError
from busy_assistant.core.logging_config import get_logger
from busy_assistant.core.rate_limiter import get_rate_limiter
from busy_assistant.core.validators import clamp_limit, validate_chat_messages, validate_mode
from busy_assistant.models.chat import ChatHistoryResponse, ChatRequest, ChatResponse, ErrorResponse
from busy_assistant.services.chat_service import ChatService, ChatServiceError

logger = get_logger(__name__)

router = APIRouter(
    prefix="/chat",
    tags=["Chat"],
    responses={
        400: {"model": ErrorResponse, "description": "Invalid messages or mode"},
        401: {"model": ErrorResponse, "description": "Missing or invalid session"},
        429: {"model": ErrorResponse, "description": "Rate limit exceeded"},
        500: {"model": ErrorResponse, "description": "Internal server error"}
    }
)

# Initialize services
_chat_service: Optional[ChatService] = None


def get_chat_service() -> ChatService:
    """Get or create the chat service instance."""
    global _chat_service
    if _chat_service is None:
        _chat_service = ChatService()
    return _chat_service


@router.post(
    "",
    response_model=ChatResponse,
    summary="Send a conversation to the assistant",
    description="""
    Send the conversation so far; the last message must come from the user.

    **Rate Limiting:**
    Requests are limited per user (RATE_LIMIT_PER_MINUTE).
    Check X-RateLimit-Remaining header for remaining requests.

    **Modes:**
    - `graph` (default): LangGraph agent that can store and recall memories
    - `agent`: the same tools driven by an explicit loop
    - `chat`: plain completion, no tools

    **Example:**
    - "Remember that I play guitar on weekends"
    - Later: "What do I usually do on weekends?"
    """
)
def send_message(
    request: ChatRequest,
    response: Response,
    user: Dict = Depends(get_current_user),
    chat_service: ChatService = Depends(get_chat_service),
) -> ChatResponse:
    """
    Run the conversation through the selected mode and return the reply.
    """
    # ============================================================
    # Input Validation
    # ============================================================

    is_valid, messages, error = validate_chat_messages(request.messages)
    if not is_valid:
        raise ValidationError(error, field="messages")

    is_valid, error = validate_mode(request.mode)
    if not is_valid:
        raise ValidationError(error, field="mode")

    # ============================================================
    # Rate Limiting
    # ============================================================

    rate_limiter = get_rate_limiter()
    is_allowed, remaining = rate_limiter.is_allowed(user["id"])

    response.headers["X-RateLimit-Limit"] = str(rate_limiter.limit)
    response.headers["X-RateLimit-Remaining"] = str(remaining)

    if not is_allowed:
        reset_time = rate_limiter.get_reset_time(user["id"])
        retry_after = max(1, int((reset_time - datetime.utcnow()).total_seconds()))
        raise RateLimitExceeded(retry_after=retry_after)

    # ============================================================
    # Process Request
    # ============================================================

    logger.info(
        f"Processing request: mode={request.mode}, "
        f"user={user['id'][:8]}..., "
        f"message={messages[-1]['content'][:50]}..."
    )

    try:
        reply = chat_service.process(user["id"], messages, request.mode)
    except ChatServiceError as e:
        logger.error(f"Service error: {e}")
        raise AssistantException("Failed to process chat request") from e

    return ChatResponse(message=reply, mode=request.mode)


@router.get(
    "/history",
    response_model=ChatHistoryResponse,
    summary="The caller's persisted chat log, oldest first",
)
def chat_history(
    limit: Optional[str] = None,
    user: Dict = Depends(get_current_user),
    chat_service: ChatService = Depends(get_chat_service),
) -> ChatHistoryResponse:
    messages = chat_service.history(user["id"], clamp_limit(limit, default=50))
    return ChatHistoryResponse(messages=messages, count=len(messages))
