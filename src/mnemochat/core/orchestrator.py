from __future__ import annotations

import logging
import time
from typing import Any

from ..embeddings.gateway import EmbeddingGateway
from ..errors import InvalidRequestError, StoreWriteFailedError, UnauthorizedError
from ..llm.completion import CompletionGateway
from ..store.logging import elapsed_ms, pipeline_log_context
from ..store.protocols import ChatStore
from .config import PipelineConfig
from .consolidation import MemoryConsolidationEngine
from .context import ContextAssembler
from .models import (
    ChatMessage,
    ChatRequest,
    ChatResponse,
    ChatRole,
    ChatSession,
    ContextUsage,
    SemanticMemoryEntry,
)
from .retrieval import SimilaritySearchService
from .session import SessionManager

logger = logging.getLogger(__name__)


class ConversationOrchestrator:
    """Single entry point for one chat turn.

    Holds only its collaborators; every call to ``handle`` is independent.
    The lifecycle is: validate, embed the user text, search message history
    and semantic memory concurrently, resolve the session and read recent
    history, persist the user message, assemble the prompt, call the
    completion service, persist the assistant message, consolidate memory
    (best effort) and retitle auto-titled sessions.

    The user message is written before the completion call and is kept even
    if the completion fails.
    """

    def __init__(
        self,
        store: ChatStore,
        embeddings: EmbeddingGateway,
        completion: CompletionGateway,
        *,
        config: PipelineConfig | None = None,
        retrieval: SimilaritySearchService | None = None,
        sessions: SessionManager | None = None,
        assembler: ContextAssembler | None = None,
        consolidation: MemoryConsolidationEngine | None = None,
    ):
        """
        Initializes the ConversationOrchestrator.

        Args:
            store: Durable store for sessions, messages and memory entries.
            embeddings: Gateway to the embedding service.
            completion: Gateway to the chat-completion service.
            config: Pipeline constants. Defaults to ``PipelineConfig()``.
            retrieval: Optional similarity search override.
            sessions: Optional session manager override.
            assembler: Optional context assembler override.
            consolidation: Optional consolidation engine override.
        """
        self.store = store
        self.embeddings = embeddings
        self.completion = completion
        self.config = config or PipelineConfig()

        self.retrieval = retrieval or SimilaritySearchService(store, self.config.retrieval)
        self.sessions = sessions or SessionManager(
            store, self.config.session, self.config.retrieval
        )
        self.assembler = assembler or ContextAssembler(self.config.context, self.config.retrieval)
        self.consolidation = consolidation or MemoryConsolidationEngine(
            store, embeddings, self.config.consolidation
        )

    async def chat(
        self,
        user_id: str,
        message: str,
        *,
        session_id: str | None = None,
        system_prompt: str | None = None,
    ) -> ChatResponse:
        return await self.handle(
            user_id,
            ChatRequest(message=message, session_id=session_id, system_prompt=system_prompt),
        )

    async def handle(self, user_id: str, request: ChatRequest | dict[str, Any]) -> ChatResponse:
        start = time.perf_counter()
        if isinstance(request, dict):
            request = ChatRequest.from_payload(request)
        if not user_id:
            raise UnauthorizedError("An authenticated user id is required")
        if not request.message or not request.message.strip():
            raise InvalidRequestError("Message is required")

        message = request.message
        user_embedding = await self.embeddings.embed(message)
        retrieved = await self.retrieval.search_both(user_id, user_embedding)

        session, created = await self.sessions.resolve(user_id, request.session_id, message)
        history = [] if created else await self.sessions.recent_history(session)

        await self._persist(
            ChatMessage(
                session_id=session.session_id,
                user_id=user_id,
                role=ChatRole.USER,
                content=message,
                embedding=user_embedding,
            )
        )

        turns = self.assembler.assemble(
            message,
            system_prompt=request.system_prompt,
            memory_hits=retrieved.memories,
            similar_hits=retrieved.similar_messages,
            recent_history=history,
        )
        logger.info(
            "Sending %d context turns to completion service",
            len(turns),
            extra=pipeline_log_context(
                "assembly", user_id=user_id, session_id=session.session_id
            ),
        )
        result = await self.completion.complete(turns)

        assistant_embedding = await self.embeddings.embed(result.text)
        await self._persist(
            ChatMessage(
                session_id=session.session_id,
                user_id=user_id,
                role=ChatRole.ASSISTANT,
                content=result.text,
                embedding=assistant_embedding,
                tokens_used=result.tokens_used,
                model_used=result.model,
            )
        )

        memory = await self._consolidate(user_id, message, result.text)
        await self._retitle(session, message)

        usage = ContextUsage(
            similar_messages=len(retrieved.similar_messages),
            semantic_memory=len(retrieved.memories),
            recent_messages=len(history),
        )
        logger.info(
            "Chat turn completed",
            extra=pipeline_log_context(
                "chat",
                user_id=user_id,
                session_id=session.session_id,
                duration_ms=elapsed_ms(start),
                tokens_used=result.tokens_used,
                memory_persisted=memory is not None,
                **usage.model_dump(),
            ),
        )
        return ChatResponse(
            message=result.text,
            session_id=session.session_id,
            tokens_used=result.tokens_used,
            context_used=usage,
            memory_id=memory.memory_id if memory else None,
        )

    async def _persist(self, message: ChatMessage) -> None:
        try:
            await self.store.append_message(message)
        except StoreWriteFailedError:
            raise
        except Exception as e:
            logger.exception(
                "Error storing %s message",
                message.role.value,
                extra=pipeline_log_context(
                    "persist", user_id=message.user_id, session_id=message.session_id
                ),
            )
            raise StoreWriteFailedError(
                f"Failed to store {message.role.value} message",
                store_type=getattr(self.store, "store_type", type(self.store).__name__),
                record_id=message.message_id,
                original_error=e,
            ) from e

    async def _consolidate(
        self, user_id: str, user_text: str, assistant_text: str
    ) -> SemanticMemoryEntry | None:
        try:
            return await self.consolidation.consolidate(user_id, user_text, assistant_text)
        except Exception:
            logger.exception(
                "Error updating semantic memory",
                extra=pipeline_log_context("consolidation", user_id=user_id),
            )
            return None

    async def _retitle(self, session: ChatSession, latest_user_message: str) -> None:
        try:
            await self.sessions.retitle(session, latest_user_message)
        except Exception:
            logger.exception(
                "Error updating session title",
                extra=pipeline_log_context(
                    "retitle", user_id=session.user_id, session_id=session.session_id
                ),
            )
