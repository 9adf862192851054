from datetime import datetime, timedelta, timezone

import numpy as np
import pytest

from mnemochat.core.models import ChatMessage, ChatRole, MessageHit
from mnemochat.core.scoring import cosine_similarities, cosine_similarity, rank_hits


def _hit(similarity: float, created_at: datetime, content: str = "x") -> MessageHit:
    message = ChatMessage(
        session_id="s-1",
        user_id="alice",
        role=ChatRole.USER,
        content=content,
        embedding=[1.0],
        created_at=created_at,
    )
    return MessageHit(message=message, similarity=similarity)


def test_cosine_similarity_basic():
    assert cosine_similarity([1.0, 0.0], [1.0, 0.0]) == pytest.approx(1.0)
    assert cosine_similarity([1.0, 0.0], [0.0, 1.0]) == pytest.approx(0.0)
    assert cosine_similarity([1.0, 0.0], [-1.0, 0.0]) == pytest.approx(-1.0)


def test_cosine_similarity_degenerate_inputs():
    assert cosine_similarity(None, [1.0]) == 0.0
    assert cosine_similarity([], []) == 0.0
    assert cosine_similarity([1.0, 2.0], [1.0]) == 0.0
    assert cosine_similarity([0.0, 0.0], [1.0, 1.0]) == 0.0


def test_cosine_similarities_matches_pairwise():
    matrix = np.array([[1.0, 0.0], [0.0, 2.0], [0.0, 0.0]])
    scores = cosine_similarities([1.0, 1.0], matrix)
    assert scores[0] == pytest.approx(cosine_similarity([1.0, 1.0], [1.0, 0.0]))
    assert scores[1] == pytest.approx(cosine_similarity([1.0, 1.0], [0.0, 2.0]))
    assert scores[2] == 0.0


def test_rank_hits_filters_orders_and_caps():
    now = datetime(2024, 1, 2, tzinfo=timezone.utc)
    hits = [
        _hit(0.59, now, "below"),
        _hit(0.6, now, "boundary"),
        _hit(0.9, now, "best"),
        _hit(0.7, now, "middle"),
    ]
    ranked = rank_hits(hits, threshold=0.6, limit=2)
    assert [hit.message.content for hit in ranked] == ["best", "middle"]

    ranked = rank_hits(hits, threshold=0.6, limit=10)
    assert [hit.message.content for hit in ranked] == ["best", "middle", "boundary"]


def test_rank_hits_ties_prefer_most_recent():
    now = datetime(2024, 1, 2, tzinfo=timezone.utc)
    older = _hit(0.8, now - timedelta(days=1), "older")
    newer = _hit(0.8, now, "newer")
    ranked = rank_hits([older, newer], threshold=0.0, limit=2)
    assert [hit.message.content for hit in ranked] == ["newer", "older"]


def test_rank_hits_zero_limit():
    now = datetime(2024, 1, 2, tzinfo=timezone.utc)
    assert rank_hits([_hit(1.0, now)], threshold=0.0, limit=0) == []
