import hashlib
import re

import pytest
from langchain_core.embeddings import Embeddings
from langchain_core.messages import AIMessage

from mnemochat.core.models import ChatMessage, ChatRole, ChatSession, SemanticMemoryEntry
from mnemochat.embeddings.gateway import EmbeddingGateway
from mnemochat.llm.completion import CompletionGateway
from mnemochat.store.memory_store import InMemoryChatStore

EMBEDDING_DIM = 64

_TOKEN_RE = re.compile(r"\w+")


def bag_of_words(text: str, dim: int = EMBEDDING_DIM) -> list[float]:
    """Deterministic hashed bag-of-words vector; shared words mean high cosine."""
    vector = [0.0] * dim
    for token in _TOKEN_RE.findall(text.lower()):
        index = int(hashlib.md5(token.encode("utf-8")).hexdigest(), 16) % dim
        vector[index] += 1.0
    return vector


class DummyEmbeddings(Embeddings):
    def __init__(self, dim: int = EMBEDDING_DIM):
        self.dim = dim
        self.calls: list[str] = []

    def embed_documents(self, texts: list[str]) -> list[list[float]]:
        return [self.embed_query(text) for text in texts]

    def embed_query(self, text: str) -> list[float]:
        self.calls.append(text)
        return bag_of_words(text, self.dim)

    async def aembed_query(self, text: str) -> list[float]:
        return self.embed_query(text)


class DummyChatModel:
    """Stands in for a LangChain chat model; records every prompt it receives."""

    model_name = "dummy-chat"

    def __init__(self, reply: str = "Noted.", *, total_tokens: int = 42, error=None):
        self.reply = reply
        self.total_tokens = total_tokens
        self.error = error
        self.calls: list[list] = []

    async def ainvoke(self, messages, **kwargs):
        self.calls.append(list(messages))
        if self.error is not None:
            raise self.error
        return AIMessage(
            content=self.reply,
            usage_metadata={
                "input_tokens": self.total_tokens - 2,
                "output_tokens": 2,
                "total_tokens": self.total_tokens,
            },
            response_metadata={"model_name": self.model_name},
        )


@pytest.fixture
def dummy_embeddings():
    return DummyEmbeddings()


@pytest.fixture
def embedding_gateway(dummy_embeddings):
    return EmbeddingGateway(dummy_embeddings, model="dummy-embed")


@pytest.fixture
def chat_model():
    return DummyChatModel()


@pytest.fixture
def completion_gateway(chat_model):
    return CompletionGateway(chat_model)


@pytest.fixture
def memory_store():
    return InMemoryChatStore()


@pytest.fixture
def chat_session():
    return ChatSession(
        session_id="session-1",
        user_id="alice",
        title="Planning",
        metadata={"auto_generated": True},
    )


@pytest.fixture
def make_message():
    def _make(content, *, session_id="session-1", user_id="alice", role=ChatRole.USER, **kwargs):
        return ChatMessage(
            session_id=session_id,
            user_id=user_id,
            role=role,
            content=content,
            embedding=kwargs.pop("embedding", None) or bag_of_words(content),
            **kwargs,
        )

    return _make


@pytest.fixture
def make_memory():
    def _make(content, *, user_id="alice", importance_score=0.7, **kwargs):
        return SemanticMemoryEntry(
            user_id=user_id,
            content=content,
            summary=kwargs.pop("summary", None),
            embedding=kwargs.pop("embedding", None) or bag_of_words(content),
            importance_score=importance_score,
            **kwargs,
        )

    return _make


@pytest.fixture
def embed():
    return bag_of_words


@pytest.fixture
def make_chat_model():
    return DummyChatModel
