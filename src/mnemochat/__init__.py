from __future__ import annotations

from .configs import build_orchestrator, load_config_from_env
from .core.builder import ChatPipelineBuilder
from .core.config import PipelineConfig
from .core.models import ChatRequest, ChatResponse, ContextUsage
from .core.orchestrator import ConversationOrchestrator
from .errors import (
    CompletionFailedError,
    ConfigurationError,
    EmbeddingUnavailableError,
    InvalidRequestError,
    MnemochatError,
    SerializationError,
    SessionNotFoundError,
    SessionNotOwnedError,
    StoreError,
    StoreWriteFailedError,
    UnauthorizedError,
)

__all__ = [
    "ChatPipelineBuilder",
    "ChatRequest",
    "ChatResponse",
    "ContextUsage",
    "ConversationOrchestrator",
    "PipelineConfig",
    "build_orchestrator",
    "load_config_from_env",
    # Error types
    "MnemochatError",
    "InvalidRequestError",
    "SessionNotFoundError",
    "UnauthorizedError",
    "SessionNotOwnedError",
    "EmbeddingUnavailableError",
    "CompletionFailedError",
    "StoreError",
    "StoreWriteFailedError",
    "SerializationError",
    "ConfigurationError",
]
