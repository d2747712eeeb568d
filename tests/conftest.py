import os
import tempfile
from contextlib import contextmanager
from pathlib import Path
from types import SimpleNamespace
from typing import Any, Dict, List

import pytest

ROOT = Path(__file__).resolve().parents[1]
_TMP = Path(tempfile.mkdtemp(prefix="busy-assistant-tests-"))

# Settings are read at import time (the vector column size), so the
# environment has to be in place before anything from the package loads.
os.environ.update(
    {
        "APP_ENV": "test",
        "LOG_LEVEL": "WARNING",
        "LOG_DIR": str(_TMP / "logs"),
        "DATABASE_URL": f"sqlite:///{_TMP / 'default.db'}",
        "GROQ_API_KEY": "test-groq-key",
        "GOOGLE_API_KEY": "test-google-key",
        "OPENAI_API_KEY": "test-openai-key",
        "EMBEDDING_DIMENSION": "8",
        "BCRYPT_ROUNDS": "4",
        "AGENT_MAX_STEPS": "4",
        "RATE_LIMIT_PER_MINUTE": "1000",
        "ENABLE_AUDIT_LOGGING": "true",
        "TOOL_SERVER_TIMEOUT_SECONDS": "30",
    }
)

from busy_assistant.core.config import get_settings  # noqa: E402

get_settings.cache_clear()

from busy_assistant.core.rate_limiter import reset_rate_limiter  # noqa: E402
from busy_assistant.core.security import create_session, hash_password  # noqa: E402
from busy_assistant.database.connection import DatabaseConnection, set_database  # noqa: E402
from busy_assistant.database.init_db import drop_tables, init_tables  # noqa: E402
from busy_assistant.database.models import User  # noqa: E402
from busy_assistant.llm.embeddings import EmbeddingProvider, set_embedding_provider  # noqa: E402
from busy_assistant.memory.chat_log import ChatLog  # noqa: E402
from busy_assistant.memory.store import MemoryStore, set_memory_store  # noqa: E402

DIMENSION = 8
PASSWORD = "correct horse battery"


class FakeEmbedder(EmbeddingProvider):
    """Deterministic bag-of-characters embeddings."""

    def __init__(self, dimension: int = DIMENSION):
        self._dimension = dimension
        self.calls: List[str] = []

    def generate_embedding(self, text: str) -> List[float]:
        self.calls.append(text)
        vector = [0.0] * self._dimension
        for char in text.lower():
            vector[ord(char) % self._dimension] += 1.0
        norm = sum(v * v for v in vector) ** 0.5 or 1.0
        return [v / norm for v in vector]

    def dimension(self) -> int:
        return self._dimension

    def provider_name(self) -> str:
        return "fake"


class FakeLLM:
    """
    Scripted chat model.

    ``complete`` pops replies from the script (repeating the last one);
    ``generate`` returns ``text``.
    """

    def __init__(self, replies: List[Dict[str, Any]] = None, text: str = "Hello from the model"):
        self.replies = list(replies or [{"role": "assistant", "content": "Done."}])
        self.text = text
        self.complete_calls: List[List[Dict[str, Any]]] = []
        self.generate_calls: List[Dict[str, Any]] = []

    def complete(self, messages, tools=None):
        self.complete_calls.append(list(messages))
        if len(self.replies) > 1:
            return self.replies.pop(0)
        return dict(self.replies[0])

    def generate(self, user_message, system_prompt=None, history=None, model=None, stop=None):
        self.generate_calls.append(
            {"user_message": user_message, "system_prompt": system_prompt, "history": history}
        )
        return self.text


def tool_call(name: str, arguments: str, call_id: str = "call_1") -> Dict[str, Any]:
    return {
        "role": "assistant",
        "content": "",
        "tool_calls": [
            {"id": call_id, "type": "function", "function": {"name": name, "arguments": arguments}}
        ],
    }


@pytest.fixture
def db(tmp_path):
    connection = DatabaseConnection(f"sqlite:///{tmp_path / 'test.db'}")
    init_tables(connection)
    set_database(connection)
    yield connection
    set_database(None)
    drop_tables(connection)
    connection.close()


@pytest.fixture
def embedder():
    fake = FakeEmbedder()
    set_embedding_provider(fake)
    yield fake
    set_embedding_provider(None)


@pytest.fixture
def store(db, embedder):
    memory_store = MemoryStore(db=db, embedder=embedder, dimension=DIMENSION)
    set_memory_store(memory_store)
    yield memory_store
    set_memory_store(None)


@pytest.fixture
def chat_log(db):
    return ChatLog(db)


def _create_user(db, email: str, name: str) -> Dict[str, str]:
    with db.get_session() as session:
        user = User(email=email, name=name, password_hash=hash_password(PASSWORD, rounds=4))
        session.add(user)
        session.flush()
        return user.to_dict()


@pytest.fixture
def user(db):
    return _create_user(db, "alice@example.com", "Alice")


@pytest.fixture
def other_user(db):
    return _create_user(db, "bob@example.com", "Bob")


def bearer(db, user_id: str) -> Dict[str, str]:
    with db.get_session() as session:
        token = create_session(session, user_id).token
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def auth_headers(db, user):
    return bearer(db, user["id"])


@pytest.fixture
def fake_llm():
    return FakeLLM()


@pytest.fixture
def app(store, chat_log, fake_llm):
    from busy_assistant.api.main import app as fastapi_app
    from busy_assistant.api.routes.chat import get_chat_service
    from busy_assistant.services.chat_service import ChatService

    service = ChatService(llm_client=fake_llm, memory_store=store, chat_log=chat_log, max_steps=4)
    fastapi_app.dependency_overrides[get_chat_service] = lambda: service
    reset_rate_limiter()
    yield fastapi_app
    fastapi_app.dependency_overrides.clear()
    reset_rate_limiter()


@pytest.fixture
def client(app):
    from fastapi.testclient import TestClient

    return TestClient(app)


@contextmanager
def fake_session(rows):
    """Stand-in for DatabaseConnection.get_session returning fixed execute() rows."""
    yield SimpleNamespace(execute=lambda statement: SimpleNamespace(all=lambda: rows))
