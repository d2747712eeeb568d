"""
API Routes module - Endpoint definitions.

Each file in this module defines routes for a specific domain:
- auth.py   : Login / logout / current user
- chat.py   : Conversational endpoints
- memory.py : Memory CRUD and semantic search
- tools.py  : Bridge to the auxiliary tool server
- health.py : Health check endpoints
"""
from busy_assistant.api.routes.auth import router as auth_router
from busy_assistant.api.routes.chat import router as chat_router
from busy_assistant.api.routes.health import router as health_router
from busy_assistant.api.routes.memory import router as memory_router
from busy_assistant.api.routes.tools import router as tools_router

__all__ = [
    "auth_router",
    "chat_router",
    "health_router",
    "memory_router",
    "tools_router",
]
