from datetime import datetime, timedelta, timezone

import pytest
from pydantic import ValidationError

from mnemochat.core.models import (
    ChatMessage,
    ChatRequest,
    ChatResponse,
    ChatRole,
    ChatSession,
    ContextUsage,
    PromptTurn,
    SemanticMemoryEntry,
    coerce_datetime,
)
from mnemochat.errors import InvalidRequestError


def test_coerce_datetime_handles_z_suffix_and_naive():
    parsed = coerce_datetime("2024-03-01T12:00:00Z")
    assert parsed == datetime(2024, 3, 1, 12, tzinfo=timezone.utc)

    naive = coerce_datetime(datetime(2024, 3, 1, 12))
    assert naive.tzinfo is timezone.utc


def test_coerce_datetime_falls_back_to_default():
    default = datetime(2020, 1, 1, tzinfo=timezone.utc)
    assert coerce_datetime("not a date", default=default) == default
    assert coerce_datetime(None) is None


def test_session_auto_titled_flag():
    session = ChatSession(user_id="alice", title="Hi", metadata={"auto_generated": True})
    assert session.auto_titled is True
    assert ChatSession(user_id="alice", title="Hi").auto_titled is False


def test_session_touch_never_moves_backwards():
    session = ChatSession(user_id="alice", title="Hi")
    original = session.updated_at

    session.touch(original - timedelta(hours=1))
    assert session.updated_at == original

    later = original + timedelta(seconds=5)
    session.touch(later)
    assert session.updated_at == later


def test_message_is_frozen():
    message = ChatMessage(
        session_id="s-1", user_id="alice", role=ChatRole.USER, content="hello", embedding=[1.0]
    )
    with pytest.raises(ValidationError):
        message.content = "changed"


def test_memory_importance_bounds():
    with pytest.raises(ValidationError):
        SemanticMemoryEntry(user_id="alice", content="x", embedding=[1.0], importance_score=1.5)
    entry = SemanticMemoryEntry(user_id="alice", content="x", embedding=[1.0], importance_score=1.0)
    assert entry.tags == []


def test_prompt_turn_to_dict():
    turn = PromptTurn(role=ChatRole.SYSTEM, content="Be helpful.")
    assert turn.to_dict() == {"role": "system", "content": "Be helpful."}


class TestChatRequest:
    def test_accepts_wire_names(self):
        request = ChatRequest.from_payload(
            {"message": "hi", "sessionId": "s-1", "systemPrompt": "Be brief."}
        )
        assert request.session_id == "s-1"
        assert request.system_prompt == "Be brief."

    def test_accepts_field_names(self):
        request = ChatRequest(message="hi", session_id="s-1")
        assert request.session_id == "s-1"
        assert request.system_prompt is None

    def test_malformed_payload_is_invalid_request(self):
        with pytest.raises(InvalidRequestError):
            ChatRequest.from_payload({"message": ["not", "text"]})


def test_response_payload_uses_wire_names():
    response = ChatResponse(
        message="Hello",
        session_id="s-1",
        tokens_used=10,
        context_used=ContextUsage(similar_messages=1, semantic_memory=2, recent_messages=3),
        memory_id="m-1",
    )
    assert response.to_payload() == {
        "message": "Hello",
        "sessionId": "s-1",
        "tokensUsed": 10,
        "contextUsed": {"similarMessages": 1, "semanticMemory": 2, "recentMessages": 3},
    }
