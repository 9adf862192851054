from __future__ import annotations

import asyncio
import logging
import math
import time
from dataclasses import dataclass, field
from enum import Enum

from ..errors import InvalidRequestError
from ..store.logging import elapsed_ms, pipeline_log_context
from ..store.protocols import SupportsMemorySearch, SupportsMessageSearch
from .config import RetrievalConfig
from .models import MemoryHit, MessageHit
from .scoring import rank_hits

logger = logging.getLogger(__name__)


class Corpus(str, Enum):
    MESSAGES = "messages"
    MEMORY = "memory"


@dataclass
class RetrievalResult:
    """Outcome of the two independent lookups for one user turn.

    The two lists are kept apart; merging them into a prompt is the
    context assembler's job.
    """

    similar_messages: list[MessageHit] = field(default_factory=list)
    memories: list[MemoryHit] = field(default_factory=list)


class SimilaritySearchService:
    """Nearest-neighbour lookups over a user's message history and memory store."""

    def __init__(
        self,
        store: SupportsMessageSearch | SupportsMemorySearch,
        config: RetrievalConfig | None = None,
    ):
        self.store = store
        self.config = config or RetrievalConfig()

    async def search(
        self,
        user_id: str,
        query_vector: list[float],
        corpus: Corpus | str,
        *,
        threshold: float,
        limit: int,
    ) -> list[MessageHit] | list[MemoryHit]:
        """Return hits with similarity >= ``threshold``, best first, at most ``limit``.

        Results from the store are re-ranked and re-filtered here so that the
        threshold, limit and tie-breaking guarantees hold for any backend.
        """
        corpus = Corpus(corpus)
        self._validate(user_id, query_vector, threshold, limit)
        if limit == 0:
            return []

        start = time.perf_counter()
        if corpus is Corpus.MESSAGES:
            hits = await self.store.search_messages(
                user_id, query_vector, threshold=threshold, limit=limit
            )
            hits = [hit for hit in hits if hit.message.user_id == user_id]
        else:
            hits = await self.store.search_memory(
                user_id, query_vector, threshold=threshold, limit=limit
            )
            hits = [hit for hit in hits if hit.entry.user_id == user_id]

        ranked = rank_hits(hits, threshold=threshold, limit=limit)
        logger.debug(
            "Similarity search over %s returned %d hits",
            corpus.value,
            len(ranked),
            extra=pipeline_log_context(
                "retrieval", user_id=user_id, duration_ms=elapsed_ms(start), corpus=corpus.value
            ),
        )
        return ranked

    async def search_messages(self, user_id: str, query_vector: list[float]) -> list[MessageHit]:
        return await self.search(
            user_id,
            query_vector,
            Corpus.MESSAGES,
            threshold=self.config.message_threshold,
            limit=self.config.message_limit,
        )

    async def search_memory(self, user_id: str, query_vector: list[float]) -> list[MemoryHit]:
        return await self.search(
            user_id,
            query_vector,
            Corpus.MEMORY,
            threshold=self.config.memory_threshold,
            limit=self.config.memory_limit,
        )

    async def search_both(self, user_id: str, query_vector: list[float]) -> RetrievalResult:
        """Run both lookups concurrently and wait for both to finish.

        If either lookup fails the other is cancelled and the error propagates.
        """
        tasks = [
            asyncio.ensure_future(self.search_messages(user_id, query_vector)),
            asyncio.ensure_future(self.search_memory(user_id, query_vector)),
        ]
        try:
            similar_messages, memories = await asyncio.gather(*tasks)
        except BaseException:
            for task in tasks:
                task.cancel()
            raise
        return RetrievalResult(similar_messages=similar_messages, memories=memories)

    @staticmethod
    def _validate(user_id: str, query_vector: list[float], threshold: float, limit: int) -> None:
        if not user_id:
            raise InvalidRequestError("Similarity search requires a user id")
        if not query_vector:
            raise InvalidRequestError("Similarity search requires a query vector")
        if math.isnan(threshold) or not -1.0 <= threshold <= 1.0:
            raise InvalidRequestError(f"Similarity threshold must be within [-1, 1], got {threshold!r}")
        if limit < 0:
            raise InvalidRequestError(f"Result limit must be non-negative, got {limit}")
