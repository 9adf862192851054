from datetime import datetime, timedelta, timezone

import pytest

from mnemochat.core.config import DEFAULT_SYSTEM_PROMPT
from mnemochat.core.context import MEMORY_HEADER, SIMILAR_HEADER, ContextAssembler
from mnemochat.core.models import ChatMessage, ChatRole, MemoryHit, MessageHit, SemanticMemoryEntry


def _message(content, role=ChatRole.USER, offset=0):
    return ChatMessage(
        session_id="s-1",
        user_id="alice",
        role=role,
        content=content,
        embedding=[1.0],
        created_at=datetime(2024, 1, 1, tzinfo=timezone.utc) + timedelta(seconds=offset),
    )


def _memory_hit(content, summary=None, similarity=0.9):
    entry = SemanticMemoryEntry(
        user_id="alice",
        content=content,
        summary=summary,
        embedding=[1.0],
        importance_score=0.7,
    )
    return MemoryHit(entry=entry, similarity=similarity)


@pytest.fixture
def assembler():
    return ContextAssembler()


def test_minimal_prompt(assembler):
    turns = assembler.assemble("hello")

    assert [turn.role for turn in turns] == [ChatRole.SYSTEM, ChatRole.USER]
    assert turns[0].content == DEFAULT_SYSTEM_PROMPT
    assert turns[1].content == "hello"


@pytest.mark.parametrize("prompt", [None, "", "   "])
def test_blank_system_prompt_falls_back_to_default(assembler, prompt):
    assert assembler.build_system_content(prompt) == DEFAULT_SYSTEM_PROMPT


def test_custom_system_prompt(assembler):
    assert assembler.build_system_content("Be terse.") == "Be terse."


def test_memory_and_similar_sections(assembler):
    memory_hits = [
        _memory_hit("User: a\nAssistant: b", summary="User asked about: a. Assistant responded: b"),
        _memory_hit("User: c\nAssistant: d"),
    ]
    similar_hits = [
        MessageHit(message=_message("x" * 250, ChatRole.ASSISTANT), similarity=0.8),
        MessageHit(message=_message("short one"), similarity=0.7),
    ]

    content = assembler.build_system_content("Base.", memory_hits, similar_hits)

    assert content == (
        "Base."
        f"\n\n{MEMORY_HEADER}\n"
        "1. User asked about: a. Assistant responded: b\n"
        "2. User: c\nAssistant: d"
        f"\n\n{SIMILAR_HEADER}\n"
        f"1. assistant: {'x' * 200}…\n"
        "2. user: short one"
    )


def test_empty_sections_are_omitted(assembler):
    content = assembler.build_system_content(
        "Base.", [], [MessageHit(message=_message("hi"), similarity=0.9)]
    )
    assert MEMORY_HEADER not in content
    assert SIMILAR_HEADER in content


def test_history_window_keeps_last_eight_in_order(assembler):
    history = [
        _message(f"m{i}", ChatRole.USER if i % 2 == 0 else ChatRole.ASSISTANT, offset=i)
        for i in range(10)
    ]

    turns = assembler.assemble("now", recent_history=history)

    assert len(turns) == 10
    assert turns[0].role is ChatRole.SYSTEM
    assert [turn.content for turn in turns[1:-1]] == [f"m{i}" for i in range(2, 10)]
    assert turns[1].role is ChatRole.USER
    assert turns[2].role is ChatRole.ASSISTANT
    assert turns[-1].content == "now"


def test_assembly_is_deterministic(assembler):
    history = [_message("earlier")]
    hits = [_memory_hit("fact")]
    first = assembler.assemble("now", system_prompt="S", memory_hits=hits, recent_history=history)
    second = assembler.assemble("now", system_prompt="S", memory_hits=hits, recent_history=history)
    assert first == second
