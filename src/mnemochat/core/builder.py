from __future__ import annotations

from dataclasses import replace

from langchain_core.embeddings.embeddings import Embeddings
from langchain_core.language_models.chat_models import BaseChatModel
from langchain_openai import ChatOpenAI, OpenAIEmbeddings

from ..embeddings.gateway import EmbeddingGateway
from ..llm.completion import CompletionGateway
from ..store.protocols import ChatStore
from .config import (
    ConsolidationConfig,
    ContextConfig,
    ModelConfig,
    PipelineConfig,
    RetrievalConfig,
    SessionConfig,
)
from .orchestrator import ConversationOrchestrator


class ChatPipelineBuilder:
    """Fluent builder for a ConversationOrchestrator without a long constructor signature."""

    def __init__(self, store: ChatStore) -> None:
        self._store = store
        self._embeddings: Embeddings | None = None
        self._llm: BaseChatModel | None = None
        self._config = PipelineConfig()

    def with_config(self, config: PipelineConfig) -> ChatPipelineBuilder:
        self._config = config
        return self

    def with_embeddings(self, embeddings: Embeddings | None) -> ChatPipelineBuilder:
        self._embeddings = embeddings
        return self

    def with_chat_model(self, llm: BaseChatModel | None) -> ChatPipelineBuilder:
        self._llm = llm
        return self

    def with_retrieval_config(self, config: RetrievalConfig) -> ChatPipelineBuilder:
        self._config = replace(self._config, retrieval=config)
        return self

    def with_similarity_thresholds(
        self,
        *,
        messages: float | None = None,
        memory: float | None = None,
    ) -> ChatPipelineBuilder:
        retrieval = self._config.retrieval
        if messages is not None:
            retrieval = replace(retrieval, message_threshold=messages)
        if memory is not None:
            retrieval = replace(retrieval, memory_threshold=memory)
        return self.with_retrieval_config(retrieval)

    def with_consolidation_config(self, config: ConsolidationConfig) -> ChatPipelineBuilder:
        self._config = replace(self._config, consolidation=config)
        return self

    def with_session_config(self, config: SessionConfig) -> ChatPipelineBuilder:
        self._config = replace(self._config, session=config)
        return self

    def with_context_config(self, config: ContextConfig) -> ChatPipelineBuilder:
        self._config = replace(self._config, context=config)
        return self

    def with_model_config(self, config: ModelConfig) -> ChatPipelineBuilder:
        self._config = replace(self._config, models=config)
        return self

    def with_system_prompt(self, prompt: str) -> ChatPipelineBuilder:
        return self.with_context_config(
            replace(self._config.context, default_system_prompt=prompt)
        )

    def build(self) -> ConversationOrchestrator:
        models = self._config.models
        embeddings = self._embeddings or self._default_embeddings(models)
        llm = self._llm or self._default_chat_model(models)
        return ConversationOrchestrator(
            store=self._store,
            embeddings=EmbeddingGateway(
                embeddings,
                model=models.embedding_model if self._embeddings is None else None,
                dimensions=models.embedding_dimensions,
            ),
            completion=CompletionGateway(
                llm,
                model=models.chat_model if self._llm is None else None,
            ),
            config=self._config,
        )

    @staticmethod
    def _default_embeddings(models: ModelConfig) -> Embeddings:
        if models.embedding_dimensions is not None:
            return OpenAIEmbeddings(
                model=models.embedding_model,
                dimensions=models.embedding_dimensions,
            )
        return OpenAIEmbeddings(model=models.embedding_model)

    @staticmethod
    def _default_chat_model(models: ModelConfig) -> BaseChatModel:
        return ChatOpenAI(
            model=models.chat_model,
            temperature=models.temperature,
            max_tokens=models.max_tokens,
        )
