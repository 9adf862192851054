from __future__ import annotations

from collections.abc import Sequence
from typing import TypeVar

import numpy as np

from .models import MemoryHit, MessageHit

HitT = TypeVar("HitT", MessageHit, MemoryHit)


def cosine_similarity(vec1: Sequence[float] | None, vec2: Sequence[float] | None) -> float:
    """Calculate cosine similarity between two vectors.

    Returns 0.0 for missing, empty, mismatched or zero-norm vectors.
    """
    if vec1 is None or vec2 is None or len(vec1) == 0 or len(vec2) == 0:
        return 0.0
    if len(vec1) != len(vec2):
        return 0.0

    a = np.asarray(vec1, dtype=float)
    b = np.asarray(vec2, dtype=float)
    norm1 = np.linalg.norm(a)
    norm2 = np.linalg.norm(b)
    if norm1 == 0 or norm2 == 0:
        return 0.0
    return float(np.dot(a, b) / (norm1 * norm2))


def cosine_similarities(query: Sequence[float], matrix: np.ndarray) -> np.ndarray:
    """Vectorised cosine similarity of ``query`` against each row of ``matrix``."""
    if matrix.size == 0:
        return np.zeros(0)
    q = np.asarray(query, dtype=float)
    q_norm = np.linalg.norm(q)
    row_norms = np.linalg.norm(matrix, axis=1)
    denom = row_norms * q_norm
    with np.errstate(divide="ignore", invalid="ignore"):
        scores = np.where(denom > 0, matrix @ q / denom, 0.0)
    return scores


def rank_hits(hits: Sequence[HitT], *, threshold: float, limit: int) -> list[HitT]:
    """Filter hits below ``threshold``, order them and cap at ``limit``.

    Ordering is similarity descending, ties broken by the most recent
    timestamp first.
    """
    if limit <= 0:
        return []
    eligible = [hit for hit in hits if hit.similarity >= threshold]
    eligible.sort(key=lambda hit: (hit.similarity, hit.created_at), reverse=True)
    return eligible[:limit]
