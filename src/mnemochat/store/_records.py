from __future__ import annotations

import json
import sqlite3
from typing import Any

from ..core.models import (
    ChatMessage,
    ChatRole,
    ChatSession,
    SemanticMemoryEntry,
    SessionSummary,
    coerce_datetime,
)
from ..errors import SerializationError
from .serialization import (
    deserialize_embedding,
    json_loads_dict,
    json_loads_list,
    serialize_datetime,
    serialize_embedding,
)


def sqlite_record_from_session(session: ChatSession) -> dict[str, Any]:
    return {
        "session_id": session.session_id,
        "user_id": session.user_id,
        "title": session.title,
        "created_at": serialize_datetime(session.created_at),
        "updated_at": serialize_datetime(session.updated_at),
        "metadata": json.dumps(session.metadata, ensure_ascii=False, default=str),
    }


def sqlite_session_from_row(row: sqlite3.Row) -> ChatSession:
    return ChatSession(
        session_id=row["session_id"],
        user_id=row["user_id"],
        title=row["title"],
        created_at=coerce_datetime(row["created_at"]),
        updated_at=coerce_datetime(row["updated_at"]),
        metadata=json_loads_dict(row["metadata"]),
    )


def sqlite_summary_from_row(row: sqlite3.Row) -> SessionSummary:
    session = sqlite_session_from_row(row)
    return SessionSummary(
        session_id=session.session_id,
        title=session.title,
        last_message=row["last_message"],
        message_count=row["message_count"] or 0,
        created_at=session.created_at,
        updated_at=session.updated_at,
        auto_titled=session.auto_titled,
    )


def sqlite_record_from_message(message: ChatMessage) -> dict[str, Any]:
    if not message.embedding:
        raise ValueError(f"Message {message.message_id} has no embedding.")
    return {
        "message_id": message.message_id,
        "session_id": message.session_id,
        "user_id": message.user_id,
        "role": message.role.value,
        "content": message.content,
        "embedding": serialize_embedding(message.embedding),
        "embedding_dim": len(message.embedding),
        "tokens_used": message.tokens_used,
        "model_used": message.model_used,
        "created_at": serialize_datetime(message.created_at),
    }


def sqlite_message_from_row(row: sqlite3.Row) -> ChatMessage:
    try:
        role = ChatRole(row["role"])
    except ValueError as e:
        raise SerializationError(f"Unknown role {row['role']!r} on {row['message_id']}") from e
    return ChatMessage(
        message_id=row["message_id"],
        session_id=row["session_id"],
        user_id=row["user_id"],
        role=role,
        content=row["content"],
        embedding=deserialize_embedding(row["embedding"]),
        tokens_used=row["tokens_used"],
        model_used=row["model_used"],
        created_at=coerce_datetime(row["created_at"]),
    )


def sqlite_record_from_memory(entry: SemanticMemoryEntry) -> dict[str, Any]:
    return {
        "memory_id": entry.memory_id,
        "user_id": entry.user_id,
        "content": entry.content,
        "summary": entry.summary,
        "embedding": serialize_embedding(entry.embedding),
        "embedding_dim": len(entry.embedding),
        "importance_score": entry.importance_score,
        "tags": json.dumps(entry.tags, ensure_ascii=False),
        "created_at": serialize_datetime(entry.created_at),
    }


def sqlite_memory_from_row(row: sqlite3.Row) -> SemanticMemoryEntry:
    return SemanticMemoryEntry(
        memory_id=row["memory_id"],
        user_id=row["user_id"],
        content=row["content"],
        summary=row["summary"],
        embedding=deserialize_embedding(row["embedding"]) or [],
        importance_score=row["importance_score"],
        tags=json_loads_list(row["tags"]),
        created_at=coerce_datetime(row["created_at"]),
    )
