from datetime import datetime, timedelta
from types import SimpleNamespace
from unittest.mock import MagicMock

import pytest

from busy_assistant.core.config import _normalize_database_url, get_settings
from busy_assistant.core.exceptions import LLMError, NotFoundError, RateLimitExceeded, ValidationError
from busy_assistant.core.rate_limiter import RateLimiter
from busy_assistant.core.security import (
    authenticate_user,
    create_session,
    hash_password,
    resolve_session,
    revoke_session,
    verify_password,
)
from busy_assistant.database.models import AuthSession, User
from busy_assistant.database.seed import DEMO_EMAIL, seed_demo_user
from busy_assistant.llm.client import LLMClient
from busy_assistant.llm.embeddings import OpenAIEmbeddingProvider

from conftest import PASSWORD


class TestConfig:
    @pytest.mark.parametrize(
        "raw, expected",
        [
            ("postgres://u:p@h/db", "postgresql+psycopg2://u:p@h/db"),
            ("postgresql://u:p@h/db", "postgresql+psycopg2://u:p@h/db"),
            ("sqlite:///x.db", "sqlite:///x.db"),
        ],
    )
    def test_database_url_normalization(self, raw, expected):
        assert _normalize_database_url(raw) == expected

    def test_missing_required_key(self, monkeypatch):
        monkeypatch.delenv("GROQ_API_KEY")
        get_settings.cache_clear()
        try:
            with pytest.raises(ValueError, match="GROQ_API_KEY"):
                get_settings()
        finally:
            monkeypatch.undo()
            get_settings.cache_clear()

    def test_defaults(self):
        settings = get_settings()
        assert settings.session_cookie_name == "session_token"
        assert settings.memory_max_content_length == 8000
        assert settings.embedding_dimension == 8


class TestExceptions:
    def test_to_dict(self):
        assert ValidationError("bad", field="content").to_dict() == {
            "error": "validation_error",
            "message": "bad",
            "details": "field=content",
        }

    def test_not_found_default_message(self):
        error = NotFoundError()
        assert error.status_code == 404
        assert error.message == "Memory not found or unauthorized"

    def test_rate_limit_carries_retry_after(self):
        assert RateLimitExceeded(retry_after=12).retry_after == 12


class TestRateLimiter:
    def test_sliding_window(self):
        limiter = RateLimiter(requests_per_minute=2)
        start = datetime(2024, 1, 1, 12, 0, 0)

        assert limiter.is_allowed("u1", now=start) == (True, 1)
        assert limiter.is_allowed("u1", now=start + timedelta(seconds=10)) == (True, 0)
        assert limiter.is_allowed("u1", now=start + timedelta(seconds=20)) == (False, 0)
        assert limiter.get_reset_time("u1", now=start + timedelta(seconds=20)) == start + timedelta(minutes=1)

        assert limiter.is_allowed("u1", now=start + timedelta(seconds=61))[0]

    def test_idle_users_are_forgotten(self):
        limiter = RateLimiter(requests_per_minute=5)
        start = datetime(2024, 1, 1, 12, 0, 0)

        limiter.is_allowed("u1", now=start)
        limiter.get_reset_time("u2", now=start)
        assert set(limiter._requests) == {"u1"}

        later = start + timedelta(minutes=2)
        assert limiter.get_reset_time("u1", now=later) == later
        assert limiter._requests == {}

        assert limiter.is_allowed("u1", now=later) == (True, 4)
        assert len(limiter._requests["u1"]) == 1

    def test_users_are_independent(self):
        limiter = RateLimiter(requests_per_minute=1)
        assert limiter.is_allowed("u1")[0]
        assert not limiter.is_allowed("u1")[0]
        assert limiter.is_allowed("u2")[0]


class TestSecurity:
    def test_hash_and_verify(self):
        hashed = hash_password("s3cret", rounds=4)
        assert hashed != "s3cret"
        assert verify_password("s3cret", hashed)
        assert not verify_password("wrong", hashed)
        assert not verify_password("s3cret", "not-a-bcrypt-hash")

    def test_authenticate_normalizes_email(self, db, user):
        with db.get_session() as session:
            assert authenticate_user(session, "  ALICE@example.com", PASSWORD).id == user["id"]
            assert authenticate_user(session, "alice@example.com", "bad") is None
            assert authenticate_user(session, "nobody@example.com", PASSWORD) is None

    def test_session_lifecycle(self, db, user):
        with db.get_session() as session:
            token = create_session(session, user["id"]).token

        with db.get_session() as session:
            assert resolve_session(session, token).id == user["id"]
            assert revoke_session(session, token) is True

        with db.get_session() as session:
            assert resolve_session(session, token) is None
            assert resolve_session(session, None) is None

    def test_expired_session_is_deleted(self, db, user):
        with db.get_session() as session:
            token = create_session(session, user["id"], ttl_hours=1).token
            session.get(AuthSession, token).expires_at = datetime.utcnow() - timedelta(seconds=1)

        with db.get_session() as session:
            assert resolve_session(session, token) is None

        with db.get_session() as session:
            assert session.get(AuthSession, token) is None


def test_seed_is_idempotent(db):
    first = seed_demo_user(db, rounds=4)
    second = seed_demo_user(db, rounds=4)

    assert first.id == second.id
    with db.get_session() as session:
        assert session.query(User).filter(User.email == DEMO_EMAIL).count() == 1


class TestEmbeddings:
    def _provider(self, vectors):
        provider = OpenAIEmbeddingProvider(api_key="test", dimension=3)
        provider.client = MagicMock()
        provider.client.embeddings.create.return_value = SimpleNamespace(
            data=[SimpleNamespace(embedding=v) for v in vectors]
        )
        return provider

    def test_single_embedding(self):
        provider = self._provider([[0.1, 0.2, 0.3]])
        assert provider.generate_embedding("hello") == [0.1, 0.2, 0.3]
        provider.client.embeddings.create.assert_called_once_with(
            input="hello", model="text-embedding-3-small", dimensions=3
        )

    def test_dimension_mismatch(self):
        provider = self._provider([[0.1, 0.2]])
        with pytest.raises(ValueError):
            provider.generate_embedding("hello")


class TestLLMClient:
    def _client(self):
        client = LLMClient()
        client.groq_client = MagicMock()
        return client

    def test_complete_returns_plain_dict_with_tool_calls(self):
        client = self._client()
        call = SimpleNamespace(
            id="call_9",
            function=SimpleNamespace(name="store_memory", arguments='{"content": "x"}'),
        )
        client.groq_client.chat.completions.create.return_value = SimpleNamespace(
            choices=[SimpleNamespace(message=SimpleNamespace(content=None, tool_calls=[call]))]
        )

        reply = client.complete([{"role": "user", "content": "hi"}], tools=[{"type": "function"}])

        assert reply == {
            "role": "assistant",
            "content": "",
            "tool_calls": [{
                "id": "call_9",
                "type": "function",
                "function": {"name": "store_memory", "arguments": '{"content": "x"}'},
            }],
        }
        kwargs = client.groq_client.chat.completions.create.call_args.kwargs
        assert kwargs["tool_choice"] == "auto"

    def test_complete_falls_back_then_raises(self):
        client = self._client()
        client.groq_client.chat.completions.create.side_effect = RuntimeError("503")

        with pytest.raises(LLMError):
            client.complete([{"role": "user", "content": "hi"}])
        assert client.groq_client.chat.completions.create.call_count == 2

    def test_generate_uses_groq_first(self):
        client = self._client()
        client.groq_client.chat.completions.create.return_value = SimpleNamespace(
            choices=[SimpleNamespace(message=SimpleNamespace(content="hello"))]
        )

        assert client.generate("hi", system_prompt="be nice") == "hello"
        messages = client.groq_client.chat.completions.create.call_args.kwargs["messages"]
        assert messages[0] == {"role": "system", "content": "be nice"}
        assert messages[-1] == {"role": "user", "content": "hi"}
