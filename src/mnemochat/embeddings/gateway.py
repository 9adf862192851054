from __future__ import annotations

import logging
import time

import numpy as np
from langchain_core.embeddings.embeddings import Embeddings

from ..errors import EmbeddingUnavailableError, InvalidRequestError
from ..store.logging import elapsed_ms

logger = logging.getLogger(__name__)


class EmbeddingGateway:
    """Thin wrapper around a langchain ``Embeddings`` model.

    Makes exactly one call to the embedding service per ``embed``. Any
    failure, or a vector that would corrupt similarity ranking (empty,
    non-finite, all zeros, wrong dimension), surfaces as
    ``EmbeddingUnavailableError``; no fallback vector is ever returned.
    """

    def __init__(
        self,
        embeddings: Embeddings,
        *,
        model: str | None = None,
        dimensions: int | None = None,
    ) -> None:
        self.embeddings = embeddings
        self.model = model or getattr(embeddings, "model", None)
        self.dimensions = dimensions

    async def embed(self, text: str) -> list[float]:
        if not text or not text.strip():
            raise InvalidRequestError("Cannot embed empty text")

        start = time.perf_counter()
        try:
            vector = await self.embeddings.aembed_query(text)
        except Exception as e:
            logger.exception(
                "Embedding request failed",
                extra={"model": self.model, "duration_ms": round(elapsed_ms(start), 2)},
            )
            raise EmbeddingUnavailableError(
                "Embedding service request failed",
                model=self.model,
                original_error=e,
            ) from e

        vector = self._validate(vector)
        logger.debug(
            "Embedded %d characters into %d dimensions",
            len(text),
            len(vector),
            extra={"model": self.model, "duration_ms": round(elapsed_ms(start), 2)},
        )
        return vector

    def _validate(self, vector: list[float] | None) -> list[float]:
        if vector is None or len(vector) == 0:
            raise EmbeddingUnavailableError("Embedding service returned an empty vector", model=self.model)
        try:
            array = np.asarray(vector, dtype=float)
        except (TypeError, ValueError) as e:
            raise EmbeddingUnavailableError(
                "Embedding service returned a non-numeric vector",
                model=self.model,
                original_error=e,
            ) from e
        if array.ndim != 1:
            raise EmbeddingUnavailableError("Embedding service returned a malformed vector", model=self.model)
        if self.dimensions is not None and array.shape[0] != self.dimensions:
            raise EmbeddingUnavailableError(
                f"Expected {self.dimensions} dimensions, got {array.shape[0]}",
                model=self.model,
            )
        if not np.all(np.isfinite(array)):
            raise EmbeddingUnavailableError("Embedding contains non-finite values", model=self.model)
        if not np.any(array):
            raise EmbeddingUnavailableError("Embedding service returned a zero vector", model=self.model)
        return array.tolist()
