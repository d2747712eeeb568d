"""
Embedding providers.

Memories and search queries are embedded by an external API; the
vectors are then compared inside PostgreSQL by pgvector.
"""
from abc import ABC, abstractmethod
from typing import List, Optional

from openai import OpenAI

from busy_assistant.core.config import get_settings
from busy_assistant.core.logging_config import get_logger

logger = get_logger(__name__)


class EmbeddingProvider(ABC):
    """Abstract base class for embedding providers."""

    @abstractmethod
    def generate_embedding(self, text: str) -> List[float]:
        """
        Generate an embedding for a single text.

        Raises:
            Exception: If embedding generation fails
        """

    @abstractmethod
    def dimension(self) -> int:
        """Return the dimensionality of the produced vectors."""

    @abstractmethod
    def provider_name(self) -> str:
        """Return a human-readable provider name."""

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(dimension={self.dimension()}, provider={self.provider_name()})"


class OpenAIEmbeddingProvider(EmbeddingProvider):
    """
    Generates embeddings with OpenAI's embedding API.

    Example:
        >>> provider = OpenAIEmbeddingProvider(api_key="sk-...", dimension=1536)
        >>> len(provider.generate_embedding("User enjoys guitar"))
        1536
    """

    def __init__(
        self,
        api_key: str,
        model: str = "text-embedding-3-small",
        dimension: int = 1536,
        timeout: float = 30.0,
        max_retries: int = 2,
    ):
        """
        Initialize the OpenAI embedding provider.

        Args:
            api_key: OpenAI API key
            model: Embedding model to use
            dimension: Number of dimensions requested from the API
            timeout: Request timeout in seconds
            max_retries: Retries performed by the OpenAI SDK
        """
        self.client = OpenAI(api_key=api_key, timeout=timeout, max_retries=max_retries)
        self.model = model
        self._dimension = dimension
        logger.info(
            "OpenAI embedding provider initialized (model=%s, dimensions=%d)",
            model,
            dimension,
        )

    def generate_embedding(self, text: str) -> List[float]:
        response = self.client.embeddings.create(
            input=text, model=self.model, dimensions=self._dimension
        )
        embedding = response.data[0].embedding
        if len(embedding) != self._dimension:
            raise ValueError(
                f"OpenAI embedding length {len(embedding)} != configured dimension {self._dimension} "
                f"(model={self.model})"
            )
        logger.debug("Generated embedding for text (length: %d)", len(text))
        return embedding

    def dimension(self) -> int:
        return self._dimension

    def provider_name(self) -> str:
        return f"openai:{self.model}"


# Created once per process, never invalidated
_embedding_provider: Optional[EmbeddingProvider] = None


def get_embedding_provider() -> EmbeddingProvider:
    """Get or create the process-wide embedding provider."""
    global _embedding_provider
    if _embedding_provider is None:
        settings = get_settings()
        _embedding_provider = OpenAIEmbeddingProvider(
            api_key=settings.openai_api_key,
            model=settings.embedding_model,
            dimension=settings.embedding_dimension,
        )
    return _embedding_provider


def set_embedding_provider(provider: Optional[EmbeddingProvider]) -> None:
    """Install a specific provider (used by tests)."""
    global _embedding_provider
    _embedding_provider = provider
