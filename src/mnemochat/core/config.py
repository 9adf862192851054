from __future__ import annotations

from dataclasses import dataclass, field

DEFAULT_SYSTEM_PROMPT = (
    "You are a helpful AI assistant with access to the user's conversation "
    "history and relevant context."
)

IMPORTANCE_KEYWORDS: tuple[str, ...] = (
    "remember",
    "important",
    "project",
    "deadline",
    "meeting",
    "task",
    "goal",
    "plan",
    "decision",
    "idea",
    "problem",
    "solution",
)

TAG_KEYWORDS: dict[str, tuple[str, ...]] = {
    "work": ("work", "job", "office", "meeting", "project", "deadline"),
    "personal": ("personal", "family", "friend", "hobby", "vacation"),
    "tech": ("technology", "software", "programming", "computer", "app"),
    "learning": ("learn", "study", "education", "course", "tutorial"),
    "health": ("health", "exercise", "doctor", "medical", "wellness"),
    "finance": ("money", "budget", "investment", "financial", "bank"),
}


@dataclass(frozen=True)
class RetrievalConfig:
    message_threshold: float = 0.6
    message_limit: int = 5
    memory_threshold: float = 0.6
    memory_limit: int = 3
    history_fetch_limit: int = 10
    history_context_limit: int = 8


@dataclass(frozen=True)
class ConsolidationConfig:
    base_score: float = 0.5
    long_exchange_words: int = 100
    long_exchange_bonus: float = 0.2
    very_long_exchange_words: int = 200
    very_long_exchange_bonus: float = 0.1
    keyword_bonus: float = 0.05
    persist_threshold: float = 0.6
    importance_keywords: tuple[str, ...] = IMPORTANCE_KEYWORDS
    tag_keywords: dict[str, tuple[str, ...]] = field(default_factory=lambda: dict(TAG_KEYWORDS))
    summary_preview_chars: int = 100
    summary_ellipsis: str = "..."


@dataclass(frozen=True)
class SessionConfig:
    title_max_chars: int = 50
    title_ellipsis: str = "…"


@dataclass(frozen=True)
class ContextConfig:
    default_system_prompt: str = DEFAULT_SYSTEM_PROMPT
    similar_preview_chars: int = 200
    ellipsis: str = "…"


@dataclass(frozen=True)
class ModelConfig:
    embedding_model: str = "text-embedding-3-small"
    embedding_dimensions: int | None = None
    chat_model: str = "gpt-4.1-2025-04-14"
    temperature: float = 0.7
    max_tokens: int = 2000


@dataclass(frozen=True)
class PipelineConfig:
    """All tunables of the conversation pipeline in one place."""

    retrieval: RetrievalConfig = field(default_factory=RetrievalConfig)
    consolidation: ConsolidationConfig = field(default_factory=ConsolidationConfig)
    session: SessionConfig = field(default_factory=SessionConfig)
    context: ContextConfig = field(default_factory=ContextConfig)
    models: ModelConfig = field(default_factory=ModelConfig)
