"""
Shared FastAPI dependencies.

Routes depend on these instead of reaching for the singletons directly,
so tests can swap them through ``app.dependency_overrides``.
"""
from typing import Dict, Optional

from fastapi import Request

from busy_assistant.core.config import get_settings
from busy_assistant.core.exceptions import AuthenticationError
from busy_assistant.core.logging_config import get_logger
from busy_assistant.core.security import resolve_session
from busy_assistant.database.connection import get_database
from busy_assistant.memory.store import MemoryStore, get_memory_store

logger = get_logger(__name__)


def get_session_token(request: Request) -> Optional[str]:
    """Session token from the cookie, or from an ``Authorization: Bearer`` header."""
    token = request.cookies.get(get_settings().session_cookie_name)
    if token:
        return token

    authorization = request.headers.get("authorization", "")
    scheme, _, credentials = authorization.partition(" ")
    if scheme.lower() == "bearer" and credentials.strip():
        return credentials.strip()
    return None


def get_current_user(request: Request) -> Dict[str, str]:
    """
    Resolve the authenticated user for a request.

    Returns:
        {"id", "email", "name"} of the session's user

    Raises:
        AuthenticationError: No token, or an unknown / expired one
    """
    token = get_session_token(request)
    if not token:
        raise AuthenticationError()

    with get_database().get_session() as session:
        user = resolve_session(session, token)
        current = user.to_dict() if user is not None else None

    if current is None:
        logger.debug(f"Rejected session token on {request.url.path}")
        raise AuthenticationError()
    return current


def get_store() -> MemoryStore:
    return get_memory_store()
