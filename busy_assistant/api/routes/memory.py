"""
Memory Routes - CRUD and semantic search over the caller's memories.

- POST   /memory           : store a memory
- GET    /memory           : search (with ?query=) or list, newest first
- GET    /memory/{id}      : fetch one memory
- PUT    /memory           : replace content/metadata (re-embeds)
- DELETE /memory?id=       : delete one memory

Every route is scoped to the authenticated user. Records owned by
someone else are reported as not found.

Query values (limit, offset, threshold) are clamped rather than
rejected, so they are taken as raw strings.
"""
from typing import Dict, Optional

from fastapi import APIRouter, Depends

from busy_assistant.api.deps import get_current_user, get_store
from busy_assistant.core.config import get_settings
from busy_assistant.core.exceptions import (
    AssistantException,
    NotFoundError,
    StorageError,
    ValidationError,
)
from busy_assistant.core.logging_config import get_logger
from busy_assistant.core.validators import (
    DEFAULT_LIMIT,
    clamp_limit,
    clamp_offset,
    clamp_threshold,
    validate_memory_content,
    validate_memory_id,
    validate_metadata,
)
from busy_assistant.memory.store import MemoryStore
from busy_assistant.models.chat import ErrorResponse
from busy_assistant.models.memory import (
    MemoryCreateRequest,
    MemoryDeleteResponse,
    MemoryListResponse,
    MemoryResponse,
    MemoryUpdateRequest,
)

logger = get_logger(__name__)

router = APIRouter(
    prefix="/memory",
    tags=["Memory"],
    responses={
        400: {"model": ErrorResponse, "description": "Invalid input"},
        401: {"model": ErrorResponse, "description": "Missing or invalid session"},
        404: {"model": ErrorResponse, "description": "Memory not found or unauthorized"},
        500: {"model": ErrorResponse, "description": "Internal server error"},
    }
)


def _check_content(content) -> None:
    is_valid, error = validate_memory_content(content, get_settings().memory_max_content_length)
    if not is_valid:
        raise ValidationError(error, field="content")


def _check_metadata(metadata) -> None:
    is_valid, error = validate_metadata(metadata)
    if not is_valid:
        raise ValidationError(error, field="metadata")


def _check_id(memory_id) -> None:
    is_valid, error = validate_memory_id(memory_id)
    if not is_valid:
        raise ValidationError(error, field="id")


def _failure(action: str, user_id: str, error: Exception) -> AssistantException:
    """Client errors pass through; everything else becomes a generic 500."""
    if isinstance(error, AssistantException) and error.status_code < 500:
        return error
    logger.error(f"Memory {action} failed for user={user_id[:8]}...: {error}", exc_info=error)
    return StorageError(f"Failed to {action} memory")


@router.post(
    "",
    response_model=MemoryResponse,
    summary="Store a memory",
)
def create_memory(
    body: MemoryCreateRequest,
    user: Dict = Depends(get_current_user),
    store: MemoryStore = Depends(get_store),
) -> MemoryResponse:
    _check_content(body.content)
    _check_metadata(body.metadata)

    try:
        memory = store.store(user["id"], body.content, body.metadata)
    except Exception as e:
        raise _failure("store", user["id"], e) from e

    data = memory.to_dict()
    return MemoryResponse(memory={
        "id": data["id"],
        "content": data["content"],
        "metadata": data["metadata"],
        "createdAt": data["createdAt"],
    })


@router.get(
    "",
    response_model=MemoryListResponse,
    summary="Search or list memories",
    description="""
    With `query`: semantic search, ordered by descending similarity.
    Only memories with similarity strictly above `threshold` (default 0.7)
    are returned.

    Without `query`: the newest memories, paged by `limit` / `offset`.

    `limit` is clamped to 1..100 (default 10), `offset` to >= 0 and
    `threshold` to 0..1.
    """
)
def list_memories(
    query: Optional[str] = None,
    limit: Optional[str] = None,
    offset: Optional[str] = None,
    threshold: Optional[str] = None,
    user: Dict = Depends(get_current_user),
    store: MemoryStore = Depends(get_store),
) -> MemoryListResponse:
    limit_value = clamp_limit(limit, default=DEFAULT_LIMIT)

    try:
        if query and query.strip():
            memories = store.retrieve(
                user["id"],
                query,
                limit=limit_value,
                threshold=clamp_threshold(threshold),
            )
        else:
            memories = store.list(user["id"], limit=limit_value, offset=clamp_offset(offset))
    except Exception as e:
        raise _failure("retrieve", user["id"], e) from e

    results = [memory.to_dict() for memory in memories]
    return MemoryListResponse(memories=results, count=len(results))


@router.get(
    "/{memory_id}",
    response_model=MemoryResponse,
    summary="Fetch one memory",
)
def get_memory(
    memory_id: str,
    user: Dict = Depends(get_current_user),
    store: MemoryStore = Depends(get_store),
) -> MemoryResponse:
    _check_id(memory_id)

    try:
        memory = store.get(memory_id, user["id"])
    except Exception as e:
        raise _failure("retrieve", user["id"], e) from e

    if memory is None:
        raise NotFoundError()
    return MemoryResponse(memory=memory.to_dict())


@router.put(
    "",
    response_model=MemoryResponse,
    summary="Update a memory",
    description="Replaces content and metadata and regenerates the embedding. "
                "Omitting metadata resets it to an empty object."
)
def update_memory(
    body: MemoryUpdateRequest,
    user: Dict = Depends(get_current_user),
    store: MemoryStore = Depends(get_store),
) -> MemoryResponse:
    if not body.id or not body.content:
        raise ValidationError("Memory ID and content are required")
    _check_id(body.id)
    _check_content(body.content)
    _check_metadata(body.metadata)

    try:
        memory = store.update(body.id, user["id"], body.content, body.metadata)
    except Exception as e:
        raise _failure("update", user["id"], e) from e

    if memory is None:
        raise NotFoundError()

    data = memory.to_dict()
    return MemoryResponse(memory={
        "id": data["id"],
        "content": data["content"],
        "metadata": data["metadata"],
        "updatedAt": data["updatedAt"],
    })


@router.delete(
    "",
    response_model=MemoryDeleteResponse,
    summary="Delete a memory",
)
def delete_memory(
    id: Optional[str] = None,
    user: Dict = Depends(get_current_user),
    store: MemoryStore = Depends(get_store),
) -> MemoryDeleteResponse:
    _check_id(id)

    try:
        deleted = store.delete(id, user["id"])
    except Exception as e:
        raise _failure("delete", user["id"], e) from e

    if not deleted:
        raise NotFoundError()
    return MemoryDeleteResponse()
