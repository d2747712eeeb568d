import uuid
from datetime import datetime, timedelta
from types import SimpleNamespace

import pytest
from sqlalchemy.dialects import postgresql

from busy_assistant.core.exceptions import EmbeddingError, StorageError, ValidationError
from busy_assistant.database.models import Memory
from busy_assistant.memory.store import MemoryStore, build_similarity_query

from conftest import DIMENSION, FakeEmbedder, fake_session


class TestStoreAndGet:
    def test_round_trip_keeps_content_and_metadata(self, store, user):
        stored = store.store(user["id"], "User enjoys playing guitar on weekends", {"category": "hobbies"})

        fetched = store.get(stored.id, user["id"])

        assert fetched is not None
        assert fetched.content == "User enjoys playing guitar on weekends"
        assert fetched.metadata == {"category": "hobbies"}
        assert fetched.created_at is not None
        assert uuid.UUID(fetched.id)

    def test_metadata_defaults_to_empty_map(self, store, user):
        stored = store.store(user["id"], "Prefers tea")
        assert store.get(stored.id, user["id"]).metadata == {}

    def test_to_dict_uses_camel_case(self, store, user):
        data = store.store(user["id"], "Lives in Lisbon").to_dict()
        assert set(data) == {"id", "userId", "content", "metadata", "createdAt", "updatedAt"}

    def test_oversized_content_rejected_before_embedding(self, store, embedder, user):
        with pytest.raises(ValidationError) as excinfo:
            store.store(user["id"], "x" * 8001)

        assert excinfo.value.message == "Content must not exceed 8000 characters"
        assert embedder.calls == []

    def test_blank_content_rejected(self, store, embedder, user):
        with pytest.raises(ValidationError):
            store.store(user["id"], "   ")
        assert embedder.calls == []

    def test_get_hides_other_users_memories(self, store, user, other_user):
        stored = store.store(user["id"], "Secret plan")
        assert store.get(stored.id, other_user["id"]) is None

    def test_get_with_malformed_id_is_not_found(self, store, user):
        assert store.get("definitely-not-a-uuid", user["id"]) is None

    def test_embedding_failure_is_wrapped(self, db, user):
        class BrokenEmbedder(FakeEmbedder):
            def generate_embedding(self, text):
                raise RuntimeError("upstream 500")

        broken = MemoryStore(db=db, embedder=BrokenEmbedder(), dimension=DIMENSION)
        with pytest.raises(EmbeddingError):
            broken.store(user["id"], "anything")

    def test_wrong_dimension_embedding_is_rejected(self, db, user):
        short = MemoryStore(db=db, embedder=FakeEmbedder(dimension=3), dimension=DIMENSION)
        with pytest.raises(StorageError):
            short.store(user["id"], "anything")

    @pytest.mark.parametrize("bad_value", [float("nan"), float("inf"), float("-inf")])
    def test_non_finite_embedding_is_never_stored(self, db, user, bad_value):
        class NonFiniteEmbedder(FakeEmbedder):
            def generate_embedding(self, text):
                vector = super().generate_embedding(text)
                vector[0] = bad_value
                return vector

        broken = MemoryStore(db=db, embedder=NonFiniteEmbedder(), dimension=DIMENSION)
        with pytest.raises(StorageError):
            broken.store(user["id"], "anything")
        assert broken.list(user["id"]) == []

    def test_non_finite_embedding_on_update_keeps_old_row(self, db, store, user):
        created = store.store(user["id"], "Likes tea")

        class NaNEmbedder(FakeEmbedder):
            def generate_embedding(self, text):
                return [float("nan")] * DIMENSION

        broken = MemoryStore(db=db, embedder=NaNEmbedder(), dimension=DIMENSION)
        with pytest.raises(StorageError):
            broken.update(created.id, user["id"], "Likes coffee")
        assert store.get(created.id, user["id"]).content == "Likes tea"


class TestUpdate:
    def test_update_replaces_content_and_reembeds(self, store, embedder, user):
        stored = store.store(user["id"], "Likes cats", {"category": "pets"})
        embedder.calls.clear()

        updated = store.update(stored.id, user["id"], "Likes dogs")

        assert updated.content == "Likes dogs"
        assert updated.metadata == {}
        assert updated.updated_at >= stored.updated_at
        assert embedder.calls == ["Likes dogs"]

    def test_update_of_other_users_memory_is_not_found_and_unchanged(self, store, embedder, user, other_user):
        stored = store.store(user["id"], "Original")
        embedder.calls.clear()

        assert store.update(stored.id, other_user["id"], "Hijacked") is None
        assert store.get(stored.id, user["id"]).content == "Original"
        assert embedder.calls == []

    def test_update_with_malformed_id_is_not_found(self, store, user):
        assert store.update("nope", user["id"], "content") is None

    def test_update_validates_content(self, store, user):
        stored = store.store(user["id"], "Original")
        with pytest.raises(ValidationError):
            store.update(stored.id, user["id"], "y" * 8001)


class TestDelete:
    def test_delete_own_memory(self, store, user):
        stored = store.store(user["id"], "Temporary")
        assert store.delete(stored.id, user["id"]) is True
        assert store.get(stored.id, user["id"]) is None

    def test_delete_other_users_memory_leaves_row(self, store, user, other_user):
        stored = store.store(user["id"], "Keep me")
        assert store.delete(stored.id, other_user["id"]) is False
        assert store.get(stored.id, user["id"]) is not None

    def test_delete_unknown_or_malformed_id(self, store, user):
        assert store.delete(str(uuid.uuid4()), user["id"]) is False
        assert store.delete("garbage", user["id"]) is False


class TestList:
    def _age(self, db, memory_id, minutes):
        with db.get_session() as session:
            row = session.get(Memory, memory_id)
            row.created_at = datetime.utcnow() - timedelta(minutes=minutes)

    def test_newest_first_with_paging(self, db, store, user):
        ids = [store.store(user["id"], f"memory {i}").id for i in range(3)]
        for minutes, memory_id in zip((30, 20, 10), ids):
            self._age(db, memory_id, minutes)

        assert [m.content for m in store.list(user["id"])] == ["memory 2", "memory 1", "memory 0"]
        assert [m.content for m in store.list(user["id"], limit=1, offset=1)] == ["memory 1"]

    def test_out_of_range_values_are_clamped(self, store, user):
        for i in range(3):
            store.store(user["id"], f"memory {i}")

        assert len(store.list(user["id"], limit=0)) == 1
        assert len(store.list(user["id"], limit=1000, offset=-5)) == 3
        assert len(store.list(user["id"], limit="abc")) == 3

    def test_huge_offset_returns_empty_page(self, store, user):
        store.store(user["id"], "only one")
        assert store.list(user["id"], offset="100000000000000000000000") == []

    def test_only_own_memories(self, store, user, other_user):
        store.store(user["id"], "mine")
        store.store(other_user["id"], "theirs")
        assert [m.content for m in store.list(user["id"])] == ["mine"]


class TestRetrieve:
    def _row(self, content):
        return SimpleNamespace(
            id=str(uuid.uuid4()),
            user_id="user-1",
            content=content,
            extra_data={},
            created_at=None,
            updated_at=None,
        )

    def _store_with_rows(self, rows, embedder=None):
        db = SimpleNamespace(get_session=lambda: fake_session(rows))
        return MemoryStore(db=db, embedder=embedder or FakeEmbedder(), dimension=DIMENSION)

    def test_results_carry_similarity(self):
        store = self._store_with_rows([(self._row("guitar"), 0.91), (self._row("music"), 0.8)])

        results = store.retrieve("user-1", "hobbies", limit=5, threshold=0.7)

        assert [r.content for r in results] == ["guitar", "music"]
        assert results[0].similarity == pytest.approx(0.91)
        assert results[0].to_dict()["similarity"] == pytest.approx(0.91)

    def test_threshold_is_strict(self):
        store = self._store_with_rows([(self._row("exact"), 1.0), (self._row("close"), 0.99)])

        results = store.retrieve("user-1", "query", threshold=1.0)

        assert all(r.similarity >= 1.0 for r in results)
        assert results == []

    def test_blank_query_rejected_without_embedding(self):
        embedder = FakeEmbedder()
        store = self._store_with_rows([], embedder)
        with pytest.raises(ValidationError):
            store.retrieve("user-1", "  ")
        assert embedder.calls == []


class TestSimilarityQuery:
    def _sql(self, **overrides):
        params = dict(user_id="user-1", query_embedding=[0.1] * DIMENSION, limit=5, threshold=0.7)
        params.update(overrides)
        return str(build_similarity_query(**params).compile(dialect=postgresql.dialect()))

    def test_uses_cosine_distance_operator(self):
        sql = self._sql()
        assert "<=>" in sql
        assert "AS similarity" in sql

    def test_scoped_ordered_and_limited(self):
        sql = self._sql()
        assert "memories.user_id =" in sql
        assert "ORDER BY memories.embedding <=>" in sql
        assert "LIMIT" in sql
