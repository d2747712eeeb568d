"""
Busy Assistant - memory-enabled chat assistant.

This package contains all application source code organized by responsibility:
- api/       : FastAPI routes and HTTP handling
- core/      : Configuration, logging, auth and cross-cutting utilities
- services/  : Business logic and orchestration
- llm/       : Chat model clients, embeddings and prompts
- agent/     : Memory tools, tool-calling loop and LangGraph agent
- database/  : ORM models, connection, table creation and seeding
- memory/    : Vector memory store and chat log
- mcp/       : Line-delimited JSON tool server and its clients
- models/    : Pydantic models for request/response schemas
"""
__version__ = "1.0.0"
