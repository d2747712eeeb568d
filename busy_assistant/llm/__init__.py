"""
LLM module - Language model integration.

This module handles all model interactions:
- Chat completions (Groq with Gemini fallback)
- Tool-enabled completions for the memory agents
- Embeddings for the memory store
- Prompt templates
"""
from busy_assistant.core.exceptions import LLMError
from busy_assistant.llm.client import LLMClient
from busy_assistant.llm.embeddings import (
    EmbeddingProvider,
    OpenAIEmbeddingProvider,
    get_embedding_provider,
    set_embedding_provider,
)

__all__ = [
    "LLMClient",
    "LLMError",
    "EmbeddingProvider",
    "OpenAIEmbeddingProvider",
    "get_embedding_provider",
    "set_embedding_provider",
]
