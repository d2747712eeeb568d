"""
Configuration management via environment variables.

This module loads configuration from a .env file using python-dotenv.
All configuration values are accessed through the Settings class.

Secrets (LLM and embedding API keys, the database URL) never live in code;
each deployment provides its own environment.
"""
import os
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv


# Load .env file from project root
# This must happen before accessing os.environ
env_path = Path(__file__).parent.parent.parent / ".env"
load_dotenv(env_path)


@dataclass(frozen=True)
class Settings:
    """
    Application settings loaded from environment variables.

    frozen=True makes the dataclass immutable, preventing accidental
    modification of settings at runtime.

    Attributes:
        app_name: Application identifier for logging
        app_env: Environment name (development, staging, production)
        log_level: Logging verbosity (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_dir: Directory for daily log files (empty = <project>/logs)
        database_url: PostgreSQL (pgvector) connection string
        groq_api_key: API key for the Groq chat models
        google_api_key: API key for the Gemini fallback models
        openai_api_key: API key for the embedding API
        embedding_model: Embedding model identifier
        embedding_dimension: Length of every stored embedding vector
        agent_max_steps: Upper bound on model calls per agent run
        memory_max_content_length: Maximum characters per memory
    """
    # Application settings
    app_name: str
    app_env: str
    log_level: str
    log_dir: str

    # Database settings
    database_url: str

    # Chat model settings
    groq_api_key: str
    google_api_key: str
    llm_model_smart: str
    llm_model_fast: str
    llm_temperature: float
    llm_max_tokens: int

    # Embedding settings
    openai_api_key: str
    embedding_model: str
    embedding_dimension: int

    # Agent / memory settings
    agent_max_steps: int
    memory_max_content_length: int

    # Auth settings
    session_cookie_name: str
    session_ttl_hours: int
    bcrypt_rounds: int

    # Safety settings
    rate_limit_per_minute: int
    enable_audit_logging: bool

    # Tool server settings
    api_base_url: str
    tool_server_timeout_seconds: int

    def is_development(self) -> bool:
        """Check if running in development environment."""
        return self.app_env.lower() == "development"

    def is_production(self) -> bool:
        """Check if running in production environment."""
        return self.app_env.lower() == "production"


def _get_env(key: str, default: Optional[str] = None) -> str:
    """
    Get environment variable with optional default.

    Args:
        key: Environment variable name
        default: Default value if not set

    Returns:
        Environment variable value

    Raises:
        ValueError: If required variable is not set and no default provided
    """
    value = os.environ.get(key, default)
    if value is None:
        raise ValueError(
            f"Required environment variable '{key}' is not set. "
            f"Please check your .env file."
        )
    return value


def _normalize_database_url(database_url: str) -> str:
    """Make hosted-provider URLs usable by SQLAlchemy's psycopg2 dialect."""
    if database_url.startswith("postgres://"):
        database_url = database_url.replace("postgres://", "postgresql+psycopg2://", 1)
    elif database_url.startswith("postgresql://"):
        database_url = database_url.replace("postgresql://", "postgresql+psycopg2://", 1)
    return database_url


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """
    Get cached settings instance.

    Settings are read once at startup; maxsize=1 ensures only one
    instance exists. Tests call get_settings.cache_clear() after
    changing the environment.

    Returns:
        Settings instance with all configuration values

    Raises:
        ValueError: If required environment variables are missing
    """
    database_url = os.environ.get("DATABASE_URL")

    if not database_url:
        # Fallback to constructing from components (local Postgres)
        host = _get_env("DB_HOST", "localhost")
        port = _get_env("DB_PORT", "5432")
        user = _get_env("DB_USER", "postgres")
        password = _get_env("DB_PASSWORD", "postgres")
        name = _get_env("DB_NAME", "busy_assistant")
        database_url = f"postgresql+psycopg2://{user}:{password}@{host}:{port}/{name}"

    return Settings(
        # Application
        app_name=_get_env("APP_NAME", "BusyAssistant"),
        app_env=_get_env("APP_ENV", "development"),
        log_level=_get_env("LOG_LEVEL", "INFO"),
        log_dir=_get_env("LOG_DIR", ""),

        # Database
        database_url=_normalize_database_url(database_url),

        # Chat models
        groq_api_key=_get_env("GROQ_API_KEY"),
        google_api_key=_get_env("GOOGLE_API_KEY"),
        llm_model_smart=_get_env("LLM_MODEL_SMART", "llama-3.3-70b-versatile"),
        llm_model_fast=_get_env("LLM_MODEL_FAST", "llama-3.1-8b-instant"),
        llm_temperature=float(_get_env("LLM_TEMPERATURE", "0.7")),
        llm_max_tokens=int(_get_env("LLM_MAX_TOKENS", "2048")),

        # Embeddings
        openai_api_key=_get_env("OPENAI_API_KEY", ""),
        embedding_model=_get_env("EMBEDDING_MODEL", "text-embedding-3-small"),
        embedding_dimension=int(_get_env("EMBEDDING_DIMENSION", "1536")),

        # Agent / memory
        agent_max_steps=int(_get_env("AGENT_MAX_STEPS", "8")),
        memory_max_content_length=int(_get_env("MEMORY_MAX_CONTENT_LENGTH", "8000")),

        # Auth
        session_cookie_name=_get_env("SESSION_COOKIE_NAME", "session_token"),
        session_ttl_hours=int(_get_env("SESSION_TTL_HOURS", "72")),
        bcrypt_rounds=int(_get_env("BCRYPT_ROUNDS", "10")),

        # Safety
        rate_limit_per_minute=int(_get_env("RATE_LIMIT_PER_MINUTE", "30")),
        enable_audit_logging=_get_env("ENABLE_AUDIT_LOGGING", "true").lower() == "true",

        # Tool server
        api_base_url=_get_env("API_BASE_URL", "http://127.0.0.1:8000"),
        tool_server_timeout_seconds=int(_get_env("TOOL_SERVER_TIMEOUT_SECONDS", "30")),
    )
