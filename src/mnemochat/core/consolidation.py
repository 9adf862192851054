"""
Importance scoring and promotion of exchanges into long-term memory.

Every completed user/assistant exchange is scored with a cheap, offline
heuristic. Exchanges scoring above the persistence threshold are summarised
extractively, tagged against a fixed taxonomy, embedded and written to the
semantic memory store. Most exchanges fall below the threshold and are
simply discarded.
"""

from __future__ import annotations

import logging
import re
import time

from ..embeddings.gateway import EmbeddingGateway
from ..store.logging import elapsed_ms, pipeline_log_context
from ..store.protocols import MemoryEntryStore
from .config import ConsolidationConfig
from .models import SemanticMemoryEntry

logger = logging.getLogger(__name__)

_WORD_SPLIT_RE = re.compile(r"\W+")


def _combined(user_text: str, assistant_text: str) -> str:
    return f"{user_text} {assistant_text}"


def format_exchange(user_text: str, assistant_text: str) -> str:
    return f"User: {user_text}\nAssistant: {assistant_text}"


class MemoryConsolidationEngine:
    """Decides which exchanges become semantic memory entries."""

    def __init__(
        self,
        store: MemoryEntryStore,
        embeddings: EmbeddingGateway,
        config: ConsolidationConfig | None = None,
    ):
        self.store = store
        self.embeddings = embeddings
        self.config = config or ConsolidationConfig()

    def score(self, user_text: str, assistant_text: str) -> float:
        """Importance in [0, 1] from exchange length and keyword hits.

        Starts at the base score, adds the long-exchange bonuses when the
        combined word count passes each breakpoint, and adds the keyword bonus
        once per distinct keyword found (case-insensitive substring).
        """
        cfg = self.config
        combined = _combined(user_text, assistant_text)
        word_count = len(combined.split())

        score = cfg.base_score
        if word_count > cfg.long_exchange_words:
            score += cfg.long_exchange_bonus
        if word_count > cfg.very_long_exchange_words:
            score += cfg.very_long_exchange_bonus

        lowered = combined.lower()
        matches = {keyword for keyword in cfg.importance_keywords if keyword.lower() in lowered}
        score += cfg.keyword_bonus * len(matches)

        # Rounded so that e.g. base + two keyword bonuses compares equal to 0.6.
        return max(0.0, min(round(score, 6), 1.0))

    def should_persist(self, importance: float) -> bool:
        return importance > self.config.persist_threshold

    def summarize(self, user_text: str, assistant_text: str) -> str:
        user_preview = self._preview(user_text)
        assistant_preview = self._preview(assistant_text)
        return f"User asked about: {user_preview}. Assistant responded: {assistant_preview}"

    def tag(self, user_text: str, assistant_text: str) -> list[str]:
        """Topic tags whose keywords appear as whole tokens, in taxonomy order."""
        tokens = set(_WORD_SPLIT_RE.split(_combined(user_text, assistant_text).lower()))
        tokens.discard("")
        return [
            tag
            for tag, keywords in self.config.tag_keywords.items()
            if any(keyword in tokens for keyword in keywords)
        ]

    async def consolidate(
        self,
        user_id: str,
        user_text: str,
        assistant_text: str,
    ) -> SemanticMemoryEntry | None:
        """Score the exchange and persist a memory entry if it clears the threshold.

        Returns the stored entry, or None when the exchange was discarded.
        """
        start = time.perf_counter()
        importance = self.score(user_text, assistant_text)
        if not self.should_persist(importance):
            logger.debug(
                "Exchange below consolidation threshold",
                extra=pipeline_log_context(
                    "consolidation", user_id=user_id, importance=importance
                ),
            )
            return None

        content = format_exchange(user_text, assistant_text)
        entry = SemanticMemoryEntry(
            user_id=user_id,
            content=content,
            summary=self.summarize(user_text, assistant_text),
            embedding=await self.embeddings.embed(content),
            importance_score=importance,
            tags=self.tag(user_text, assistant_text),
        )
        await self.store.append_memory(entry)
        logger.info(
            "Updated semantic memory with importance score %.2f",
            importance,
            extra=pipeline_log_context(
                "consolidation",
                user_id=user_id,
                duration_ms=elapsed_ms(start),
                memory_id=entry.memory_id,
                tags=entry.tags,
            ),
        )
        return entry

    def _preview(self, text: str) -> str:
        limit = self.config.summary_preview_chars
        if len(text) <= limit:
            return text
        return text[:limit] + self.config.summary_ellipsis
