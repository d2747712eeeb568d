"""
Memory Store - Vector-backed long-term user memories.

Every operation is scoped by the owning user id. A memory that belongs
to someone else is reported exactly like a missing one.

The heavy lifting is external:
- Embeddings come from the embedding provider (OpenAI)
- Cosine similarity is computed by pgvector's ``<=>`` operator
- Rows are mapped by SQLAlchemy
"""
import math
from contextlib import contextmanager
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, Generator, List, Optional, Sequence

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session
from sqlalchemy.sql import Select

from busy_assistant.core.exceptions import EmbeddingError, StorageError, ValidationError
from busy_assistant.core.logging_config import LoggerMixin
from busy_assistant.core.validators import (
    MAX_MEMORY_CONTENT_LENGTH,
    clamp_limit,
    clamp_offset,
    clamp_threshold,
    validate_memory_content,
    validate_memory_id,
    validate_metadata,
)
from busy_assistant.database.connection import DatabaseConnection, get_database
from busy_assistant.database.models import EMBEDDING_DIMENSION, Memory
from busy_assistant.llm.embeddings import EmbeddingProvider, get_embedding_provider

DEFAULT_RETRIEVE_LIMIT = 5
DEFAULT_LIST_LIMIT = 50


@dataclass
class MemoryRecord:
    """
    A stored memory as returned to callers (no embedding).

    Attributes:
        id: Memory UUID
        user_id: Owning user
        content: Free-text content
        metadata: Free-form metadata map
        created_at: Creation time (UTC)
        updated_at: Last update time (UTC)
    """
    id: str
    user_id: str
    content: str
    metadata: Dict[str, Any] = field(default_factory=dict)
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @classmethod
    def from_row(cls, row: Memory) -> "MemoryRecord":
        return cls(
            id=row.id,
            user_id=row.user_id,
            content=row.content,
            metadata=dict(row.extra_data or {}),
            created_at=row.created_at,
            updated_at=row.updated_at,
        )

    def to_dict(self) -> Dict[str, Any]:
        """Serialize with the camelCase keys used by the HTTP API."""
        return {
            "id": self.id,
            "userId": self.user_id,
            "content": self.content,
            "metadata": self.metadata,
            "createdAt": self.created_at.isoformat() if self.created_at else None,
            "updatedAt": self.updated_at.isoformat() if self.updated_at else None,
        }


@dataclass
class MemorySearchResult(MemoryRecord):
    """A memory returned by semantic search, with its cosine similarity."""
    similarity: float = 0.0

    @classmethod
    def from_match(cls, row: Memory, similarity: float) -> "MemorySearchResult":
        record = MemoryRecord.from_row(row)
        return cls(**record.__dict__, similarity=float(similarity))

    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        data["similarity"] = self.similarity
        return data


def build_similarity_query(
    user_id: str,
    query_embedding: Sequence[float],
    limit: int,
    threshold: float,
) -> Select:
    """
    Build the nearest-neighbour query for one user.

    similarity = 1 - cosine_distance; only rows strictly above the
    threshold are kept, closest first.
    """
    distance = Memory.embedding.cosine_distance(query_embedding)
    similarity = (1 - distance).label("similarity")
    return (
        select(Memory, similarity)
        .where(Memory.user_id == user_id)
        .where((1 - distance) > threshold)
        .order_by(distance)
        .limit(limit)
    )


class MemoryStore(LoggerMixin):
    """
    CRUD and similarity search over user memories.

    Example:
        >>> store = MemoryStore()
        >>> memory = store.store(user_id, "User enjoys playing guitar on weekends")
        >>> store.retrieve(user_id, "hobbies", limit=3)
        [MemorySearchResult(..., similarity=0.83)]
    """

    def __init__(
        self,
        db: Optional[DatabaseConnection] = None,
        embedder: Optional[EmbeddingProvider] = None,
        max_content_length: int = MAX_MEMORY_CONTENT_LENGTH,
        dimension: int = EMBEDDING_DIMENSION,
    ):
        """
        Initialize the store.

        Args:
            db: Database connection. Uses the process-wide one if omitted.
            embedder: Embedding provider. Resolved lazily if omitted.
            max_content_length: Maximum characters per memory
            dimension: Expected embedding length (matches the vector column)
        """
        self.db = db or get_database()
        self._embedder = embedder
        self.max_content_length = max_content_length
        self.dimension = dimension

    @property
    def embedder(self) -> EmbeddingProvider:
        return self._embedder or get_embedding_provider()

    # ============================================================
    # Operations
    # ============================================================

    def store(
        self,
        user_id: str,
        content: str,
        metadata: Optional[Dict[str, Any]] = None
    ) -> MemoryRecord:
        """
        Store a new memory with its embedding.

        Content is validated before the embedding API is called.

        Raises:
            ValidationError: Content missing/blank/oversized or bad metadata
            EmbeddingError: Embedding API failure
            StorageError: Invalid embedding or database failure
        """
        self._check_content(content)
        self._check_metadata(metadata)

        embedding = self._embed(content)

        now = datetime.utcnow()
        with self._session("store") as session:
            row = Memory(
                user_id=user_id,
                content=content,
                embedding=embedding,
                extra_data=dict(metadata or {}),
                created_at=now,
                updated_at=now,
            )
            session.add(row)
            session.flush()
            record = MemoryRecord.from_row(row)

        self.logger.info(f"Stored memory {record.id} for user={user_id[:8]}... ({len(content)} chars)")
        return record

    def get(self, memory_id: str, user_id: str) -> Optional[MemoryRecord]:
        """Fetch one memory owned by the user, or None."""
        if not validate_memory_id(memory_id)[0]:
            return None

        with self._session("read") as session:
            row = self._owned(session, memory_id, user_id)
            return MemoryRecord.from_row(row) if row else None

    def retrieve(
        self,
        user_id: str,
        query: str,
        limit: Any = DEFAULT_RETRIEVE_LIMIT,
        threshold: Any = None,
    ) -> List[MemorySearchResult]:
        """
        Semantic search over the user's memories.

        Args:
            user_id: Owner whose memories are searched
            query: Free-text query
            limit: Maximum results, clamped to [1, 100]
            threshold: Minimum similarity (exclusive), clamped to [0, 1]

        Returns:
            Matches ordered by descending similarity
        """
        if not isinstance(query, str) or not query.strip():
            raise ValidationError("Query is required and must be a string", field="query")

        limit = clamp_limit(limit, default=DEFAULT_RETRIEVE_LIMIT)
        threshold = clamp_threshold(threshold)

        query_embedding = self._embed(query)
        statement = build_similarity_query(user_id, query_embedding, limit, threshold)

        with self._session("search") as session:
            rows = session.execute(statement).all()
            results = [
                MemorySearchResult.from_match(row, similarity)
                for row, similarity in rows
                if similarity is not None and similarity > threshold
            ]

        self.logger.debug(
            f"Memory search: user={user_id[:8]}..., limit={limit}, "
            f"threshold={threshold}, hits={len(results)}"
        )
        return results

    def update(
        self,
        memory_id: str,
        user_id: str,
        content: str,
        metadata: Optional[Dict[str, Any]] = None
    ) -> Optional[MemoryRecord]:
        """
        Replace a memory's content, metadata and embedding.

        Returns:
            The updated memory, or None when the id is unknown, malformed
            or owned by another user (nothing is changed in that case)
        """
        self._check_content(content)
        self._check_metadata(metadata)

        if not validate_memory_id(memory_id)[0]:
            return None

        with self._session("read") as session:
            if self._owned(session, memory_id, user_id) is None:
                return None

        embedding = self._embed(content)

        with self._session("update") as session:
            row = self._owned(session, memory_id, user_id)
            if row is None:
                return None
            row.content = content
            row.embedding = embedding
            row.extra_data = dict(metadata or {})
            row.updated_at = datetime.utcnow()
            session.flush()
            record = MemoryRecord.from_row(row)

        self.logger.info(f"Updated memory {memory_id} for user={user_id[:8]}...")
        return record

    def delete(self, memory_id: str, user_id: str) -> bool:
        """Delete a memory owned by the user. Returns False if none matched."""
        if not validate_memory_id(memory_id)[0]:
            return False

        with self._session("delete") as session:
            removed = (
                session.query(Memory)
                .filter(Memory.id == memory_id, Memory.user_id == user_id)
                .delete(synchronize_session=False)
            )

        if removed:
            self.logger.info(f"Deleted memory {memory_id} for user={user_id[:8]}...")
        return removed > 0

    def list(
        self,
        user_id: str,
        limit: Any = DEFAULT_LIST_LIMIT,
        offset: Any = 0
    ) -> List[MemoryRecord]:
        """List the user's memories, newest first."""
        limit = clamp_limit(limit, default=DEFAULT_LIST_LIMIT)
        offset = clamp_offset(offset)

        with self._session("list") as session:
            rows = (
                session.query(Memory)
                .filter(Memory.user_id == user_id)
                .order_by(Memory.created_at.desc())
                .offset(offset)
                .limit(limit)
                .all()
            )
            return [MemoryRecord.from_row(row) for row in rows]

    # ============================================================
    # Helpers
    # ============================================================

    def _check_content(self, content: Any) -> None:
        is_valid, error = validate_memory_content(content, self.max_content_length)
        if not is_valid:
            raise ValidationError(error, field="content")

    @staticmethod
    def _check_metadata(metadata: Any) -> None:
        is_valid, error = validate_metadata(metadata)
        if not is_valid:
            raise ValidationError(error, field="metadata")

    def _embed(self, text: str) -> List[float]:
        try:
            vector = self.embedder.generate_embedding(text)
        except Exception as e:
            self.logger.error(f"Embedding generation failed: {e}")
            raise EmbeddingError() from e
        return self._validate_embedding(vector)

    def _validate_embedding(self, vector: Any) -> List[float]:
        """Reject vectors that pgvector would store incorrectly or refuse."""
        try:
            values = [float(v) for v in vector]
        except (TypeError, ValueError) as e:
            raise StorageError("Embedding is not a numeric vector") from e

        if len(values) != self.dimension:
            self.logger.error(
                f"Embedding has {len(values)} dimensions, expected {self.dimension}"
            )
            raise StorageError("Embedding has the wrong dimension")

        if not all(math.isfinite(v) for v in values):
            self.logger.error("Embedding contains non-finite values")
            raise StorageError("Embedding contains non-finite values")

        return values

    @staticmethod
    def _owned(session: Session, memory_id: str, user_id: str) -> Optional[Memory]:
        return (
            session.query(Memory)
            .filter(Memory.id == memory_id, Memory.user_id == user_id)
            .first()
        )

    @contextmanager
    def _session(self, operation: str) -> Generator[Session, None, None]:
        try:
            with self.db.get_session() as session:
                yield session
        except SQLAlchemyError as e:
            self.logger.error(f"Memory {operation} failed: {e}")
            raise StorageError(f"Failed to {operation} memory") from e


# Module-level instance
_memory_store: Optional[MemoryStore] = None


def get_memory_store() -> MemoryStore:
    """Get or create the process-wide memory store."""
    global _memory_store
    if _memory_store is None:
        _memory_store = MemoryStore()
    return _memory_store


def set_memory_store(store: Optional[MemoryStore]) -> None:
    """Replace the process-wide memory store (used by tests)."""
    global _memory_store
    _memory_store = store
