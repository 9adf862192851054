from __future__ import annotations

from .models import (
    ChatMessage,
    ChatRequest,
    ChatResponse,
    ChatRole,
    ChatSession,
    ContextUsage,
    MemoryHit,
    MessageHit,
    PromptTurn,
    SemanticMemoryEntry,
    SessionSummary,
)
from .config import (
    ConsolidationConfig,
    ContextConfig,
    ModelConfig,
    PipelineConfig,
    RetrievalConfig,
    SessionConfig,
)
from .consolidation import MemoryConsolidationEngine
from .context import ContextAssembler
from .retrieval import Corpus, RetrievalResult, SimilaritySearchService
from .session import SessionManager
from .orchestrator import ConversationOrchestrator
from .builder import ChatPipelineBuilder

__all__ = [
    "ChatMessage",
    "ChatPipelineBuilder",
    "ChatRequest",
    "ChatResponse",
    "ChatRole",
    "ChatSession",
    "ConsolidationConfig",
    "ContextAssembler",
    "ContextConfig",
    "ContextUsage",
    "ConversationOrchestrator",
    "Corpus",
    "MemoryConsolidationEngine",
    "MemoryHit",
    "MessageHit",
    "ModelConfig",
    "PipelineConfig",
    "PromptTurn",
    "RetrievalConfig",
    "RetrievalResult",
    "SemanticMemoryEntry",
    "SessionConfig",
    "SessionManager",
    "SessionSummary",
    "SimilaritySearchService",
]
