"""
API module - FastAPI routes and HTTP handling.

This module handles:
- Request validation and parsing
- Response formatting
- Error handling
- Route definitions

The application itself lives in ``busy_assistant.api.main``.
"""
