import pytest

from busy_assistant.core.exceptions import LLMError
from busy_assistant.llm.prompts import MEMORY_SYSTEM_PROMPT
from busy_assistant.services.chat_service import ChatService, ChatServiceError

from conftest import FakeLLM, tool_call


@pytest.fixture
def make_service(store, chat_log):
    def _make(llm):
        return ChatService(llm_client=llm, memory_store=store, chat_log=chat_log, max_steps=4)
    return _make


def test_plain_chat_uses_memory_prompt_and_history(make_service, user):
    llm = FakeLLM(text="Nice to meet you, Alice.")
    service = make_service(llm)
    messages = [
        {"role": "system", "content": "Answer in one sentence."},
        {"role": "user", "content": "Hi"},
        {"role": "assistant", "content": "Hello!"},
        {"role": "user", "content": "I'm Alice"},
    ]

    reply = service.process(user["id"], messages, mode="chat")

    assert reply == "Nice to meet you, Alice."
    call = llm.generate_calls[0]
    assert call["user_message"] == "I'm Alice"
    assert call["system_prompt"].startswith(MEMORY_SYSTEM_PROMPT)
    assert "Answer in one sentence." in call["system_prompt"]
    assert call["history"] == messages[1:3]
    assert llm.complete_calls == []


def test_exchange_is_logged(make_service, user):
    service = make_service(FakeLLM([{"role": "assistant", "content": "Sure."}]))

    service.process(user["id"], [{"role": "user", "content": "Remember my birthday is in May"}])

    history = service.history(user["id"])
    assert [(m["role"], m["content"]) for m in history] == [
        ("user", "Remember my birthday is in May"),
        ("assistant", "Sure."),
    ]


@pytest.mark.parametrize("mode", ["agent", "graph"])
def test_agent_modes_write_to_the_store(make_service, store, user, mode):
    llm = FakeLLM([
        tool_call("store_memory", '{"content": "Birthday is in May", "category": "personal"}'),
        {"role": "assistant", "content": "Noted!"},
    ])
    service = make_service(llm)

    reply = service.process(user["id"], [{"role": "user", "content": "My birthday is in May"}], mode=mode)

    assert reply == "Noted!"
    memories = store.list(user["id"])
    assert [m.content for m in memories] == ["Birthday is in May"]
    assert memories[0].metadata == {"category": "personal"}


def test_llm_failure_becomes_service_error(make_service, chat_log, user):
    class FailingLLM(FakeLLM):
        def complete(self, messages, tools=None):
            raise LLMError("All chat model providers failed.")

    service = make_service(FailingLLM())

    with pytest.raises(ChatServiceError):
        service.process(user["id"], [{"role": "user", "content": "hello"}], mode="graph")
    assert chat_log.recent(user["id"]) == []
