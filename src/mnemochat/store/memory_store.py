from __future__ import annotations

import itertools
import logging
import time
from asyncio import Lock

import numpy as np

from ..core.models import (
    ChatMessage,
    ChatSession,
    MemoryHit,
    MessageHit,
    SemanticMemoryEntry,
    SessionSummary,
)
from ..core.scoring import cosine_similarities, rank_hits
from .base import BaseChatStore
from .logging import elapsed_ms, store_log_context

logger = logging.getLogger(__name__)


class InMemoryChatStore(BaseChatStore):
    """Process-local chat store.

    Similarity is computed with numpy over the requesting user's rows only.
    An insertion counter orders messages that share a timestamp.
    """

    store_type = "memory"

    def __init__(self) -> None:
        self._sessions: dict[str, ChatSession] = {}
        self._messages: dict[str, list[tuple[int, ChatMessage]]] = {}
        self._memories: list[tuple[int, SemanticMemoryEntry]] = []
        self._sequence = itertools.count()
        self._lock = Lock()

    async def create_session(self, session: ChatSession) -> None:
        async with self._lock:
            if session.session_id in self._sessions:
                raise ValueError(f"Session {session.session_id} already exists.")
            self._sessions[session.session_id] = session.model_copy(deep=True)
            self._messages[session.session_id] = []
        logger.info(
            "Created session %s",
            session.session_id,
            extra=store_log_context(
                self.store_type, record_id=session.session_id, user_id=session.user_id
            ),
        )

    async def get_session(self, session_id: str) -> ChatSession | None:
        async with self._lock:
            session = self._sessions.get(session_id)
            return session.model_copy(deep=True) if session else None

    async def update_session(self, session: ChatSession) -> None:
        async with self._lock:
            existing = self._sessions.get(session.session_id)
            if existing is None or existing.user_id != session.user_id:
                raise ValueError(f"Session {session.session_id} does not exist.")
            self._sessions[session.session_id] = session.model_copy(deep=True)

    async def list_sessions(self, user_id: str, limit: int = 50) -> list[SessionSummary]:
        async with self._lock:
            owned = [s for s in self._sessions.values() if s.user_id == user_id]
            owned.sort(key=lambda s: s.updated_at, reverse=True)
            summaries = []
            for session in owned[:limit]:
                messages = self._messages.get(session.session_id, [])
                summaries.append(
                    SessionSummary(
                        session_id=session.session_id,
                        title=session.title,
                        last_message=messages[-1][1].content if messages else None,
                        message_count=len(messages),
                        created_at=session.created_at,
                        updated_at=session.updated_at,
                        auto_titled=session.auto_titled,
                    )
                )
            return summaries

    async def delete_session(self, session_id: str, user_id: str) -> bool:
        async with self._lock:
            session = self._sessions.get(session_id)
            if session is None or session.user_id != user_id:
                return False
            del self._sessions[session_id]
            removed = len(self._messages.pop(session_id, []))
        logger.info(
            "Deleted session %s",
            session_id,
            extra=store_log_context(
                self.store_type, record_id=session_id, user_id=user_id, messages=removed
            ),
        )
        return True

    async def append_message(self, message: ChatMessage) -> None:
        if not message.embedding:
            raise ValueError("InMemoryChatStore requires embeddings to store messages.")
        async with self._lock:
            session = self._sessions.get(message.session_id)
            if session is None or session.user_id != message.user_id:
                raise ValueError(
                    f"Message {message.message_id} references unknown session "
                    f"{message.session_id}."
                )
            self._messages[message.session_id].append((next(self._sequence), message))

    async def recent_messages(
        self, session_id: str, user_id: str, limit: int
    ) -> list[ChatMessage]:
        if limit <= 0:
            return []
        async with self._lock:
            session = self._sessions.get(session_id)
            if session is None or session.user_id != user_id:
                return []
            ordered = sorted(
                self._messages.get(session_id, []),
                key=lambda pair: (pair[1].created_at, pair[0]),
            )
            return [message for _, message in ordered[-limit:]]

    async def search_messages(
        self,
        user_id: str,
        query_embedding: list[float],
        *,
        threshold: float,
        limit: int,
    ) -> list[MessageHit]:
        start = time.perf_counter()
        async with self._lock:
            candidates = [
                message
                for bucket in self._messages.values()
                for _, message in bucket
                if message.user_id == user_id and message.embedding
            ]
        hits = self._score(
            query_embedding,
            candidates,
            lambda message, score: MessageHit(message=message, similarity=score),
        )
        ranked = rank_hits(hits, threshold=threshold, limit=limit)
        logger.debug(
            "Message search returned %d hits",
            len(ranked),
            extra=store_log_context(
                self.store_type, user_id=user_id, duration_ms=elapsed_ms(start)
            ),
        )
        return ranked

    async def append_memory(self, entry: SemanticMemoryEntry) -> None:
        if not entry.embedding:
            raise ValueError("InMemoryChatStore requires embeddings to store memories.")
        async with self._lock:
            self._memories.append((next(self._sequence), entry))

    async def list_memories(self, user_id: str, limit: int = 50) -> list[SemanticMemoryEntry]:
        async with self._lock:
            owned = [pair for pair in self._memories if pair[1].user_id == user_id]
        owned.sort(key=lambda pair: (pair[1].created_at, pair[0]), reverse=True)
        return [entry for _, entry in owned[:limit]]

    async def search_memory(
        self,
        user_id: str,
        query_embedding: list[float],
        *,
        threshold: float,
        limit: int,
    ) -> list[MemoryHit]:
        start = time.perf_counter()
        async with self._lock:
            candidates = [entry for _, entry in self._memories if entry.user_id == user_id]
        hits = self._score(
            query_embedding,
            candidates,
            lambda entry, score: MemoryHit(entry=entry, similarity=score),
        )
        ranked = rank_hits(hits, threshold=threshold, limit=limit)
        logger.debug(
            "Memory search returned %d hits",
            len(ranked),
            extra=store_log_context(
                self.store_type, user_id=user_id, duration_ms=elapsed_ms(start)
            ),
        )
        return ranked

    @staticmethod
    def _score(query_embedding, candidates, make_hit):
        dimension = len(query_embedding)
        comparable = [c for c in candidates if len(c.embedding) == dimension]
        if not comparable:
            return []
        matrix = np.asarray([c.embedding for c in comparable], dtype=float)
        scores = cosine_similarities(query_embedding, matrix)
        return [make_hit(c, float(score)) for c, score in zip(comparable, scores)]
