"""
Input Validators - Sanitization, validation and clamping utilities.

This module provides the checks shared by the HTTP routes, the agent
tools and the memory store:
- Memory content and id validation
- Chat message array validation
- Clamping of limit / offset / threshold query values
"""
import math
import re
import uuid
from typing import Any, Dict, List, Optional, Tuple

from busy_assistant.core.logging_config import get_logger

logger = get_logger(__name__)

MAX_MEMORY_CONTENT_LENGTH = 8000
MAX_CHAT_MESSAGE_LENGTH = 8000

DEFAULT_LIMIT = 10
MIN_LIMIT = 1
MAX_LIMIT = 100
DEFAULT_OFFSET = 0
# Largest OFFSET both SQLite and PostgreSQL accept (signed 64-bit)
MAX_OFFSET = 2**63 - 1
DEFAULT_THRESHOLD = 0.7

VALID_ROLES = {"user", "assistant", "system"}
VALID_MODES = {"chat", "agent", "graph"}


def sanitize_message(message: str, max_length: int = MAX_CHAT_MESSAGE_LENGTH) -> str:
    """
    Sanitize a chat message before it is sent to a model.

    - Removes null bytes
    - Strips leading/trailing whitespace
    - Limits length

    Args:
        message: Raw message text
        max_length: Maximum allowed length

    Returns:
        Sanitized message
    """
    if not message:
        return ""

    cleaned = message.replace("\x00", "").strip()

    if len(cleaned) > max_length:
        cleaned = cleaned[:max_length]

    return cleaned


def validate_memory_content(
    content: Any,
    max_length: int = MAX_MEMORY_CONTENT_LENGTH
) -> Tuple[bool, Optional[str]]:
    """
    Validate memory content.

    Content is stored verbatim, so nothing is rewritten here.

    Args:
        content: Candidate memory content
        max_length: Maximum number of characters

    Returns:
        Tuple of (is_valid, error_message)
    """
    if content is None or not isinstance(content, str) or not content.strip():
        return False, "Content is required and must be a string"

    if len(content) > max_length:
        return False, f"Content must not exceed {max_length} characters"

    return True, None


def validate_metadata(metadata: Any) -> Tuple[bool, Optional[str]]:
    """
    Validate memory metadata.

    Returns:
        Tuple of (is_valid, error_message)
    """
    if metadata is None or isinstance(metadata, dict):
        return True, None
    return False, "Metadata must be a JSON object"


def validate_memory_id(memory_id: Any) -> Tuple[bool, Optional[str]]:
    """
    Validate a memory ID is a proper UUID.

    Args:
        memory_id: Memory ID to validate

    Returns:
        Tuple of (is_valid, error_message)
    """
    if not memory_id or not isinstance(memory_id, str):
        return False, "Memory ID is required"

    try:
        uuid.UUID(memory_id)
        return True, None
    except ValueError:
        return False, "Invalid memory ID format (must be UUID)"


def validate_chat_messages(messages: Any) -> Tuple[bool, List[Dict[str, str]], Optional[str]]:
    """
    Validate and normalize a chat history.

    Unknown roles are treated as system messages, matching how the
    history is handed to the model.

    Args:
        messages: Raw ``messages`` value from the request body

    Returns:
        Tuple of (is_valid, normalized_messages, error_message)
    """
    if not messages or not isinstance(messages, list):
        return False, [], "Messages array is required"

    normalized: List[Dict[str, str]] = []
    for index, item in enumerate(messages):
        if not isinstance(item, dict):
            return False, [], f"Message {index} must be an object"

        content = item.get("content")
        if not isinstance(content, str):
            return False, [], f"Message {index} content must be a string"

        role = item.get("role")
        if role not in VALID_ROLES:
            logger.debug(f"Treating message {index} with role={role!r} as system")
            role = "system"

        normalized.append({"role": role, "content": sanitize_message(content)})

    if normalized[-1]["role"] != "user" or not normalized[-1]["content"]:
        return False, [], "The last message must be a non-empty user message"

    return True, normalized, None


def validate_mode(mode: str) -> Tuple[bool, Optional[str]]:
    """
    Validate the chat mode.

    Args:
        mode: 'chat', 'agent' or 'graph'

    Returns:
        Tuple of (is_valid, error_message)
    """
    if mode not in VALID_MODES:
        return False, f"Invalid mode: {mode}. Must be one of: {sorted(VALID_MODES)}"

    return True, None


# ============================================================
# Clamping helpers
# ============================================================

def _parse_int(value: Any, default: int) -> int:
    if value is None or value == "":
        return default
    if isinstance(value, bool):
        return default
    if isinstance(value, (int, float)):
        return int(value) if math.isfinite(value) else default
    match = re.match(r"^\s*([+-]?\d+)", str(value))
    return int(match.group(1)) if match else default


def _parse_float(value: Any, default: float) -> float:
    if value is None or value == "" or isinstance(value, bool):
        return default
    try:
        parsed = float(value)
    except (TypeError, ValueError):
        return default
    return parsed if math.isfinite(parsed) else default


def clamp_limit(
    value: Any,
    default: int = DEFAULT_LIMIT,
    minimum: int = MIN_LIMIT,
    maximum: int = MAX_LIMIT
) -> int:
    """Parse a limit and clamp it into [minimum, maximum]."""
    return max(minimum, min(maximum, _parse_int(value, default)))


def clamp_offset(value: Any, default: int = DEFAULT_OFFSET) -> int:
    """Parse an offset and clamp it into [0, MAX_OFFSET]."""
    return max(0, min(MAX_OFFSET, _parse_int(value, default)))


def clamp_threshold(value: Any, default: float = DEFAULT_THRESHOLD) -> float:
    """Parse a similarity threshold and clamp it into [0.0, 1.0]."""
    return max(0.0, min(1.0, _parse_float(value, default)))
