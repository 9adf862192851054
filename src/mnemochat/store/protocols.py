from __future__ import annotations

from typing import Protocol, runtime_checkable

from ..core.models import (
    ChatMessage,
    ChatSession,
    MemoryHit,
    MessageHit,
    SemanticMemoryEntry,
    SessionSummary,
)


@runtime_checkable
class SupportsClose(Protocol):
    async def close(self) -> None: ...


@runtime_checkable
class SessionStore(Protocol):
    async def create_session(self, session: ChatSession) -> None: ...

    async def get_session(self, session_id: str) -> ChatSession | None: ...

    async def update_session(self, session: ChatSession) -> None: ...

    async def list_sessions(self, user_id: str, limit: int = 50) -> list[SessionSummary]: ...

    async def delete_session(self, session_id: str, user_id: str) -> bool: ...


@runtime_checkable
class MessageStore(Protocol):
    async def append_message(self, message: ChatMessage) -> None: ...

    async def recent_messages(
        self, session_id: str, user_id: str, limit: int
    ) -> list[ChatMessage]: ...


@runtime_checkable
class SupportsMessageSearch(Protocol):
    async def search_messages(
        self,
        user_id: str,
        query_embedding: list[float],
        *,
        threshold: float,
        limit: int,
    ) -> list[MessageHit]: ...


@runtime_checkable
class MemoryEntryStore(Protocol):
    async def append_memory(self, entry: SemanticMemoryEntry) -> None: ...

    async def list_memories(self, user_id: str, limit: int = 50) -> list[SemanticMemoryEntry]: ...


@runtime_checkable
class SupportsMemorySearch(Protocol):
    async def search_memory(
        self,
        user_id: str,
        query_embedding: list[float],
        *,
        threshold: float,
        limit: int,
    ) -> list[MemoryHit]: ...


@runtime_checkable
class ChatStore(
    SessionStore,
    MessageStore,
    SupportsMessageSearch,
    MemoryEntryStore,
    SupportsMemorySearch,
    SupportsClose,
    Protocol,
):
    """Everything the conversation pipeline needs from the durable store."""
