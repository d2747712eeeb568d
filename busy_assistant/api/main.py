"""
FastAPI Application Entry Point.

This module creates and configures the FastAPI application instance.
It handles:
1. Application initialization
2. Router registration
3. Middleware configuration (audit & security headers)
4. Exception handlers (custom exceptions)
5. Startup/shutdown events

Run with: uvicorn busy_assistant.api.main:app --reload
"""
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from busy_assistant import __version__
from busy_assistant.core.config import get_settings
from busy_assistant.core.logging_config import setup_logging, get_logger
from busy_assistant.core.exceptions import AssistantException, RateLimitExceeded
from busy_assistant.core.audit import AuditMiddleware, SecurityHeadersMiddleware
from busy_assistant.api.routes import (
    auth_router,
    chat_router,
    health_router,
    memory_router,
    tools_router,
)


# Initialize logging before anything else
settings = get_settings()
setup_logging(settings.log_level, settings.log_dir or None)
logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan manager.

    - Startup: create tables (and the pgvector extension) if missing
    - Shutdown: stop the tool server subprocess, close the pool
    """
    # Startup
    logger.info(f"Starting {settings.app_name} in {settings.app_env} mode")
    logger.info(f"LLM Models: {settings.llm_model_smart} / {settings.llm_model_fast}")
    logger.info(f"Embeddings: {settings.embedding_model} ({settings.embedding_dimension} dims)")
    logger.info(f"Rate Limit: {settings.rate_limit_per_minute} req/min")
    logger.info(f"Audit Logging: {settings.enable_audit_logging}")

    from busy_assistant.database.init_db import init_tables
    try:
        init_tables()
        logger.info("Checked/Initialized database tables.")
    except Exception as e:
        logger.error(f"Failed to auto-init tables: {e}")

    yield  # Application runs here

    # Shutdown
    logger.info(f"Shutting down {settings.app_name}")

    from busy_assistant.mcp.client import close_tool_server_client
    from busy_assistant.database.connection import get_database
    close_tool_server_client()
    get_database().close()


# Create FastAPI application
app = FastAPI(
    title="Busy Assistant API",
    description="""
    A chat assistant with long-term memory.

    ## Features

    - **Chat**: plain, tool-loop and LangGraph agent modes
    - **Memory**: store, search, update and delete personal memories
    - **Semantic Search**: pgvector cosine similarity over OpenAI embeddings
    - **Tool Server**: line-delimited JSON tools, bridged over HTTP
    - **Rate Limiting**: per-user chat limits
    """,
    version=__version__,
    lifespan=lifespan,
    docs_url="/docs",
    redoc_url="/redoc",
)


# ============================================================
# Middleware Configuration (Order matters!)
# ============================================================

app.add_middleware(SecurityHeadersMiddleware)

if settings.enable_audit_logging:
    app.add_middleware(AuditMiddleware)
    logger.info("Audit logging middleware enabled")

if settings.is_development():
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["http://localhost:8501", "http://127.0.0.1:8501"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    logger.warning("CORS configured for development (Streamlit origins allowed)")


# ============================================================
# Exception Handlers
# ============================================================

@app.exception_handler(RateLimitExceeded)
async def rate_limit_handler(request: Request, exc: RateLimitExceeded):
    """Handle rate limit exceeded errors."""
    return JSONResponse(
        status_code=exc.status_code,
        content=exc.to_dict(),
        headers={"Retry-After": str(exc.retry_after)}
    )


@app.exception_handler(AssistantException)
async def assistant_exception_handler(request: Request, exc: AssistantException):
    """Handle all custom assistant exceptions."""
    return JSONResponse(
        status_code=exc.status_code,
        content=exc.to_dict()
    )


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    """Malformed request bodies are client errors (400, not 422)."""
    errors = exc.errors()
    first = errors[0] if errors else {}
    location = ".".join(str(part) for part in first.get("loc", ()) if part != "body")
    return JSONResponse(
        status_code=400,
        content={
            "error": "validation_error",
            "message": first.get("msg", "Invalid request"),
            "details": f"field={location}" if location else None,
        }
    )


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    """
    Handle uncaught exceptions globally.

    Detailed error information is only included in development mode.
    """
    logger.exception(f"Unhandled exception: {exc}")

    return JSONResponse(
        status_code=500,
        content={
            "error": "internal_error",
            "message": "An unexpected error occurred",
            "details": str(exc) if settings.is_development() else None,
        }
    )


# ============================================================
# Routers
# ============================================================

app.include_router(health_router)
app.include_router(auth_router)
app.include_router(chat_router)
app.include_router(memory_router)
app.include_router(tools_router)


# ============================================================
# Root Endpoint
# ============================================================

@app.get("/", include_in_schema=False)
async def root():
    return {
        "message": "Busy Assistant API",
        "version": __version__,
        "documentation": "/docs",
        "health": "/health"
    }


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "busy_assistant.api.main:app",
        host="0.0.0.0",
        port=8000,
        reload=settings.is_development()
    )
