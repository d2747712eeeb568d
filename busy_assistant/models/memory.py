"""
Request and response models for the /memory endpoints.

Fields are typed loosely; content, metadata and ids are checked by the
route with ``core.validators``.
"""
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field


class MemoryCreateRequest(BaseModel):
    """Body of POST /memory."""
    content: Optional[Any] = Field(
        default=None,
        description="Free-text memory, at most 8000 characters",
        examples=["User enjoys playing guitar on weekends"]
    )
    metadata: Optional[Any] = Field(
        default=None,
        description="Optional JSON object stored alongside the memory",
        examples=[{"category": "preference"}]
    )


class MemoryUpdateRequest(MemoryCreateRequest):
    """Body of PUT /memory."""
    id: Optional[Any] = Field(default=None, description="Memory UUID")


class MemoryResponse(BaseModel):
    success: bool = True
    memory: Dict[str, Any]


class MemoryListResponse(BaseModel):
    success: bool = True
    memories: List[Dict[str, Any]]
    count: int


class MemoryDeleteResponse(BaseModel):
    success: bool = True
    message: str = "Memory deleted successfully"
