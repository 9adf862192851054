"""
Environment-driven configuration.

Every constant of the pipeline has a default in ``mnemochat.core.config``;
this module lets deployments override them through ``MNEMOCHAT_*``
environment variables and builds a ready orchestrator from the result.
"""

from __future__ import annotations

import os
from collections.abc import Callable, Mapping
from dataclasses import replace
from typing import TypeVar

from langchain_core.embeddings.embeddings import Embeddings
from langchain_core.language_models.chat_models import BaseChatModel

from .core.builder import ChatPipelineBuilder
from .core.config import PipelineConfig
from .core.orchestrator import ConversationOrchestrator
from .errors import ConfigurationError
from .store.protocols import ChatStore

T = TypeVar("T")

DEFAULT_DB_PATH = ".mnemochat/mnemochat.sqlite"


def _read(
    environ: Mapping[str, str],
    names: tuple[str, ...],
    parse: Callable[[str], T],
    default: T,
) -> T:
    for name in names:
        raw = environ.get(name)
        if raw is None or raw.strip() == "":
            continue
        try:
            return parse(raw.strip())
        except ValueError as e:
            raise ConfigurationError(f"Invalid value for {name}: {raw!r}") from e
    return default


def _unit_interval(raw: str) -> float:
    value = float(raw)
    if not 0.0 <= value <= 1.0:
        raise ValueError("expected a value between 0 and 1")
    return value


def _positive_int(raw: str) -> int:
    value = int(raw)
    if value <= 0:
        raise ValueError("expected a positive integer")
    return value


def load_config_from_env(environ: Mapping[str, str] | None = None) -> PipelineConfig:
    """Build a PipelineConfig from ``MNEMOCHAT_*`` variables.

    Model names fall back to ``OPENAI_MODEL`` / ``OPENAI_EMBEDDING_MODEL``.

    Raises:
        ConfigurationError: A variable is set to an unparsable or out-of-range value.
    """
    env = os.environ if environ is None else environ
    base = PipelineConfig()

    models = replace(
        base.models,
        chat_model=_read(env, ("MNEMOCHAT_CHAT_MODEL", "OPENAI_MODEL"), str, base.models.chat_model),
        embedding_model=_read(
            env,
            ("MNEMOCHAT_EMBEDDING_MODEL", "OPENAI_EMBEDDING_MODEL"),
            str,
            base.models.embedding_model,
        ),
        embedding_dimensions=_read(
            env, ("MNEMOCHAT_EMBEDDING_DIMENSIONS",), _positive_int, base.models.embedding_dimensions
        ),
        temperature=_read(env, ("MNEMOCHAT_TEMPERATURE",), float, base.models.temperature),
        max_tokens=_read(env, ("MNEMOCHAT_MAX_TOKENS",), _positive_int, base.models.max_tokens),
    )
    retrieval = replace(
        base.retrieval,
        message_threshold=_read(
            env, ("MNEMOCHAT_MESSAGE_THRESHOLD",), _unit_interval, base.retrieval.message_threshold
        ),
        message_limit=_read(
            env, ("MNEMOCHAT_MESSAGE_LIMIT",), _positive_int, base.retrieval.message_limit
        ),
        memory_threshold=_read(
            env, ("MNEMOCHAT_MEMORY_THRESHOLD",), _unit_interval, base.retrieval.memory_threshold
        ),
        memory_limit=_read(
            env, ("MNEMOCHAT_MEMORY_LIMIT",), _positive_int, base.retrieval.memory_limit
        ),
    )
    consolidation = replace(
        base.consolidation,
        persist_threshold=_read(
            env,
            ("MNEMOCHAT_PERSIST_THRESHOLD",),
            _unit_interval,
            base.consolidation.persist_threshold,
        ),
    )
    context = replace(
        base.context,
        default_system_prompt=_read(
            env, ("MNEMOCHAT_SYSTEM_PROMPT",), str, base.context.default_system_prompt
        ),
    )
    return replace(
        base,
        models=models,
        retrieval=retrieval,
        consolidation=consolidation,
        context=context,
    )


def build_orchestrator(
    store: ChatStore,
    *,
    config: PipelineConfig | None = None,
    embeddings: Embeddings | None = None,
    llm: BaseChatModel | None = None,
) -> ConversationOrchestrator:
    """Wire an orchestrator; unspecified models come from langchain-openai."""
    return (
        ChatPipelineBuilder(store)
        .with_config(config or load_config_from_env())
        .with_embeddings(embeddings)
        .with_chat_model(llm)
        .build()
    )
