"""Request and response models for the /auth and /tools endpoints."""
from typing import Any, Dict, List

from pydantic import BaseModel, Field


class LoginRequest(BaseModel):
    email: str = Field(..., examples=["admin@busy.com"])
    password: str = Field(..., min_length=1)


class UserResponse(BaseModel):
    id: str
    email: str
    name: str


class LoginResponse(BaseModel):
    success: bool = True
    user: UserResponse
    token: str


class ToolCallRequest(BaseModel):
    """Body of POST /tools/{name}."""
    arguments: Dict[str, Any] = Field(default_factory=dict)


class ToolListResponse(BaseModel):
    tools: List[Dict[str, Any]]


class ToolCallResponse(BaseModel):
    success: bool = True
    result: Any = None
