import asyncio
from unittest.mock import AsyncMock, MagicMock

import pytest

from mnemochat.core.config import RetrievalConfig
from mnemochat.core.models import ChatMessage, ChatRole, MessageHit
from mnemochat.core.retrieval import Corpus, SimilaritySearchService
from mnemochat.errors import InvalidRequestError, StoreError


async def _seed(store, chat_session, make_message, make_memory):
    await store.create_session(chat_session)
    await store.append_message(make_message("the phoenix launch deadline is march"))
    await store.append_message(make_message("completely unrelated banana smoothie"))
    await store.append_memory(make_memory("phoenix launch deadline march notes"))

    other = chat_session.model_copy(update={"session_id": "session-bob", "user_id": "bob"})
    await store.create_session(other)
    await store.append_message(
        make_message(
            "the phoenix launch deadline is march", session_id="session-bob", user_id="bob"
        )
    )
    await store.append_memory(make_memory("phoenix launch deadline march notes", user_id="bob"))


@pytest.mark.asyncio
async def test_search_messages_respects_threshold_and_owner(
    memory_store, chat_session, make_message, make_memory, embed
):
    await _seed(memory_store, chat_session, make_message, make_memory)
    service = SimilaritySearchService(memory_store)

    hits = await service.search_messages("alice", embed("phoenix launch deadline march"))

    assert [hit.message.content for hit in hits] == ["the phoenix launch deadline is march"]
    assert all(hit.message.user_id == "alice" for hit in hits)
    assert all(hit.similarity >= 0.6 for hit in hits)


@pytest.mark.asyncio
async def test_search_memory_only_returns_owned_entries(
    memory_store, chat_session, make_message, make_memory, embed
):
    await _seed(memory_store, chat_session, make_message, make_memory)
    service = SimilaritySearchService(memory_store)

    hits = await service.search_memory("alice", embed("phoenix launch deadline march"))

    assert len(hits) == 1
    assert hits[0].entry.user_id == "alice"


@pytest.mark.asyncio
async def test_search_for_unknown_user_is_empty(
    memory_store, chat_session, make_message, make_memory, embed
):
    await _seed(memory_store, chat_session, make_message, make_memory)
    service = SimilaritySearchService(memory_store)

    result = await service.search_both("carol", embed("phoenix launch deadline march"))

    assert result.similar_messages == []
    assert result.memories == []


@pytest.mark.asyncio
async def test_threshold_negative_one_returns_everything_up_to_limit(
    memory_store, chat_session, make_message, make_memory, embed
):
    await _seed(memory_store, chat_session, make_message, make_memory)
    service = SimilaritySearchService(memory_store)

    hits = await service.search(
        "alice", embed("phoenix"), Corpus.MESSAGES, threshold=-1.0, limit=10
    )
    assert len(hits) == 2
    assert hits[0].similarity >= hits[1].similarity


@pytest.mark.asyncio
async def test_zero_limit_skips_store():
    store = MagicMock()
    store.search_messages = AsyncMock()
    service = SimilaritySearchService(store)

    hits = await service.search("alice", [1.0], "messages", threshold=0.5, limit=0)

    assert hits == []
    store.search_messages.assert_not_called()


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "user_id, vector, threshold, limit",
    [
        ("", [1.0], 0.5, 5),
        ("alice", [], 0.5, 5),
        ("alice", [1.0], 1.5, 5),
        ("alice", [1.0], float("nan"), 5),
        ("alice", [1.0], 0.5, -1),
    ],
)
async def test_invalid_parameters_raise(memory_store, user_id, vector, threshold, limit):
    service = SimilaritySearchService(memory_store)
    with pytest.raises(InvalidRequestError):
        await service.search(user_id, vector, Corpus.MEMORY, threshold=threshold, limit=limit)


@pytest.mark.asyncio
async def test_results_from_backend_are_reranked_and_refiltered():
    def hit(content, similarity, user_id="alice"):
        message = ChatMessage(
            session_id="s-1", user_id=user_id, role=ChatRole.USER, content=content, embedding=[1.0]
        )
        return MessageHit(message=message, similarity=similarity)

    store = MagicMock()
    store.search_messages = AsyncMock(
        return_value=[hit("low", 0.65), hit("foreign", 0.99, "bob"), hit("below", 0.2), hit("high", 0.9)]
    )
    service = SimilaritySearchService(store, RetrievalConfig(message_limit=5))

    hits = await service.search_messages("alice", [1.0])

    assert [h.message.content for h in hits] == ["high", "low"]


@pytest.mark.asyncio
async def test_search_both_cancels_sibling_on_failure():
    started = asyncio.Event()
    cancelled = asyncio.Event()

    async def slow_memory_search(*args, **kwargs):
        started.set()
        try:
            await asyncio.sleep(10)
        except asyncio.CancelledError:
            cancelled.set()
            raise
        return []

    async def failing_message_search(*args, **kwargs):
        await started.wait()
        raise StoreError("read failed", store_type="test")

    store = MagicMock()
    store.search_messages = failing_message_search
    store.search_memory = slow_memory_search
    service = SimilaritySearchService(store)

    with pytest.raises(StoreError):
        await service.search_both("alice", [1.0])
    await asyncio.wait_for(cancelled.wait(), timeout=1)
    assert cancelled.is_set()
