"""
Custom Exceptions - Application-specific error classes.

This module defines a hierarchy of exceptions for clean error handling:
- Each exception has a status code and error code
- Used by the API layer for consistent error responses
- Internal failures (storage, embeddings) carry a generic message so
  nothing about the database or provider leaks to clients
"""
from typing import Optional


class AssistantException(Exception):
    """
    Base exception for all assistant errors.

    Subclass this for specific error types.
    """
    status_code: int = 500
    error_code: str = "internal_error"

    def __init__(self, message: str, details: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.details = details

    def to_dict(self) -> dict:
        """Convert to error response dict."""
        return {
            "error": self.error_code,
            "message": self.message,
            "details": self.details
        }


class ValidationError(AssistantException):
    """Raised when input validation fails."""
    status_code = 400
    error_code = "validation_error"

    def __init__(self, message: str, field: Optional[str] = None):
        super().__init__(message, details=f"field={field}" if field else None)
        self.field = field


class AuthenticationError(AssistantException):
    """Raised when a request has no valid session."""
    status_code = 401
    error_code = "unauthorized"

    def __init__(self, message: str = "Unauthorized"):
        super().__init__(message)


class NotFoundError(AssistantException):
    """
    Raised when a record does not exist for the requesting user.

    Records owned by someone else are reported the same way.
    """
    status_code = 404
    error_code = "not_found"

    def __init__(self, message: str = "Memory not found or unauthorized"):
        super().__init__(message)


class RateLimitExceeded(AssistantException):
    """Raised when a client exceeds the rate limit."""
    status_code = 429
    error_code = "rate_limit_exceeded"

    def __init__(self, retry_after: int = 60):
        super().__init__(
            message=f"Rate limit exceeded. Please wait {retry_after} seconds.",
            details=f"retry_after={retry_after}"
        )
        self.retry_after = retry_after


class StorageError(AssistantException):
    """Raised when the memory store cannot persist or read a record."""
    status_code = 500
    error_code = "storage_error"

    def __init__(self, message: str = "Memory storage operation failed"):
        super().__init__(message)


class EmbeddingError(AssistantException):
    """Raised when the embedding API call fails."""
    status_code = 500
    error_code = "embedding_error"

    def __init__(self, message: str = "Embedding generation failed"):
        super().__init__(message)


class LLMError(AssistantException):
    """Raised when every chat model provider failed."""
    status_code = 503
    error_code = "llm_error"

    def __init__(self, message: str = "LLM service unavailable"):
        super().__init__(message)


class ToolServerError(AssistantException):
    """Raised when the auxiliary tool server or its HTTP backend fails."""
    status_code = 502
    error_code = "tool_server_error"

    def __init__(self, message: str = "Tool server request failed"):
        super().__init__(message)
