import pytest

from busy_assistant.core.validators import (
    clamp_limit,
    clamp_offset,
    clamp_threshold,
    sanitize_message,
    validate_chat_messages,
    validate_memory_content,
    validate_memory_id,
    validate_metadata,
    validate_mode,
)


class TestMemoryContent:
    def test_accepts_normal_text(self):
        assert validate_memory_content("User enjoys guitar") == (True, None)

    @pytest.mark.parametrize("content", [None, "", "   ", 42, ["text"]])
    def test_rejects_missing_or_non_string(self, content):
        ok, error = validate_memory_content(content)
        assert not ok
        assert error == "Content is required and must be a string"

    def test_length_boundary(self):
        assert validate_memory_content("x" * 8000)[0]
        ok, error = validate_memory_content("x" * 8001)
        assert not ok
        assert error == "Content must not exceed 8000 characters"


def test_metadata_must_be_object_or_absent():
    assert validate_metadata(None)[0]
    assert validate_metadata({"category": "work"})[0]
    assert not validate_metadata(["work"])[0]
    assert not validate_metadata("work")[0]


def test_memory_id_must_be_uuid():
    assert validate_memory_id("3f2504e0-4f89-11d3-9a0c-0305e82c3301") == (True, None)
    assert validate_memory_id("") == (False, "Memory ID is required")
    assert validate_memory_id(None) == (False, "Memory ID is required")
    assert validate_memory_id("not-a-uuid") == (False, "Invalid memory ID format (must be UUID)")


class TestChatMessages:
    def test_missing_or_empty(self):
        for value in (None, [], "hello", {"role": "user"}):
            ok, _, error = validate_chat_messages(value)
            assert not ok
            assert error == "Messages array is required"

    def test_normalizes_roles_and_strips_content(self):
        ok, messages, error = validate_chat_messages([
            {"role": "narrator", "content": "be brief"},
            {"role": "user", "content": "  hi\x00  "},
        ])
        assert ok and error is None
        assert messages == [
            {"role": "system", "content": "be brief"},
            {"role": "user", "content": "hi"},
        ]

    def test_last_message_must_be_from_user(self):
        ok, _, error = validate_chat_messages([
            {"role": "user", "content": "hi"},
            {"role": "assistant", "content": "hello"},
        ])
        assert not ok
        assert "last message" in error

    def test_content_must_be_string(self):
        ok, _, error = validate_chat_messages([{"role": "user", "content": 5}])
        assert not ok
        assert error == "Message 0 content must be a string"


def test_validate_mode():
    for mode in ("chat", "agent", "graph"):
        assert validate_mode(mode) == (True, None)
    assert not validate_mode("sql")[0]


def test_sanitize_message_truncates():
    assert sanitize_message("a" * 20, max_length=5) == "aaaaa"
    assert sanitize_message("") == ""


class TestClamping:
    @pytest.mark.parametrize(
        "raw, expected",
        [(None, 10), ("", 10), ("abc", 10), ("0", 1), ("-3", 1), ("500", 100), ("25", 25), ("7.9", 7), (42, 42)],
    )
    def test_limit(self, raw, expected):
        assert clamp_limit(raw) == expected

    @pytest.mark.parametrize(
        "raw, expected",
        [(None, 0), ("-10", 0), ("abc", 0), ("30", 30), ("1" + "0" * 25, 2**63 - 1), (10**30, 2**63 - 1)],
    )
    def test_offset(self, raw, expected):
        assert clamp_offset(raw) == expected

    @pytest.mark.parametrize(
        "raw, expected",
        [(None, 0.7), ("nan", 0.7), ("abc", 0.7), ("-1", 0.0), ("5", 1.0), ("0.25", 0.25), ("inf", 0.7)],
    )
    def test_threshold(self, raw, expected):
        assert clamp_threshold(raw) == expected
