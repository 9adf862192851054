from __future__ import annotations

from abc import ABC, abstractmethod

from ..core.models import (
    ChatMessage,
    ChatSession,
    MemoryHit,
    MessageHit,
    SemanticMemoryEntry,
    SessionSummary,
)


class BaseChatStore(ABC):
    """
    Abstract base class for chat store implementations.

    Every read is scoped to an owning user: implementations must never
    return another user's sessions, messages or memory entries.
    """

    store_type: str = "base"

    async def initialize(self) -> None:
        """Prepare connections and schema. Safe to call more than once."""
        return None

    # --------------------
    # Sessions
    # --------------------

    @abstractmethod
    async def create_session(self, session: ChatSession) -> None:
        """
        Persist a new session.

        Args:
            session (ChatSession): The session to create.
        """
        pass

    @abstractmethod
    async def get_session(self, session_id: str) -> ChatSession | None:
        """
        Load a session by ID regardless of owner.

        Ownership is checked by the caller so that a foreign session can be
        reported as such instead of as missing.

        Returns:
            Optional[ChatSession]: The session or None if not found.
        """
        pass

    @abstractmethod
    async def update_session(self, session: ChatSession) -> None:
        """
        Write back a session's title, metadata and ``updated_at``.

        Args:
            session (ChatSession): The modified session.
        """
        pass

    @abstractmethod
    async def list_sessions(self, user_id: str, limit: int = 50) -> list[SessionSummary]:
        """
        List a user's sessions, most recently updated first.

        Args:
            user_id (str): Owning user.
            limit (int, optional): Maximum number of sessions. Defaults to 50.
        """
        pass

    @abstractmethod
    async def delete_session(self, session_id: str, user_id: str) -> bool:
        """
        Delete a session and all of its messages.

        Returns:
            bool: True if a session owned by ``user_id`` was deleted.
        """
        pass

    # --------------------
    # Messages
    # --------------------

    @abstractmethod
    async def append_message(self, message: ChatMessage) -> None:
        """
        Append an immutable message. Messages without an embedding are rejected.

        Args:
            message (ChatMessage): The message to store.
        """
        pass

    @abstractmethod
    async def recent_messages(
        self, session_id: str, user_id: str, limit: int
    ) -> list[ChatMessage]:
        """
        Return the newest ``limit`` messages of a session in chronological order.

        Args:
            session_id (str): Session to read.
            user_id (str): Owning user.
            limit (int): Size of the window.

        Returns:
            List[ChatMessage]: Oldest message of the window first.
        """
        pass

    @abstractmethod
    async def search_messages(
        self,
        user_id: str,
        query_embedding: list[float],
        *,
        threshold: float,
        limit: int,
    ) -> list[MessageHit]:
        """
        Retrieve a user's past messages similar to a given embedding.

        Args:
            user_id (str): Owning user.
            query_embedding (List[float]): The embedding vector for similarity comparison.
            threshold (float): Minimum cosine similarity.
            limit (int): Maximum number of hits.

        Returns:
            List[MessageHit]: Hits ranked by similarity, newest first on ties.
        """
        pass

    # --------------------
    # Semantic memory
    # --------------------

    @abstractmethod
    async def append_memory(self, entry: SemanticMemoryEntry) -> None:
        """
        Append a write-once semantic memory entry.

        Args:
            entry (SemanticMemoryEntry): The consolidated memory.
        """
        pass

    @abstractmethod
    async def list_memories(self, user_id: str, limit: int = 50) -> list[SemanticMemoryEntry]:
        """List a user's memory entries, newest first."""
        pass

    @abstractmethod
    async def search_memory(
        self,
        user_id: str,
        query_embedding: list[float],
        *,
        threshold: float,
        limit: int,
    ) -> list[MemoryHit]:
        """
        Retrieve a user's memory entries similar to a given embedding.

        Returns:
            List[MemoryHit]: Hits ranked by similarity, newest first on ties.
        """
        pass

    async def close(self) -> None:
        return None
