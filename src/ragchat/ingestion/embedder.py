"""Batched, rate-paced embedding of chunk text."""

from __future__ import annotations

import asyncio
import logging
import math
import time
from typing import TYPE_CHECKING

from pydantic import BaseModel

from ragchat.config import Settings, settings
from ragchat.errors import CapabilityUnavailable, EmbeddingDimensionMismatch, ValidationError

if TYPE_CHECKING:
    from langchain_core.embeddings import Embeddings

    from ragchat.ingestion.models import Chunk

logger = logging.getLogger(__name__)

# text-embedding-3-large list price, USD per 1K tokens
COST_PER_1K_TOKENS = 0.00013


class CostEstimate(BaseModel):
    tokens: int
    cost_estimate: float


def get_embedding_function(config: Settings = settings) -> Embeddings:
    """Return the configured OpenAI embedding model."""
    from langchain_openai import OpenAIEmbeddings

    return OpenAIEmbeddings(
        model=config.embedding_model,
        dimensions=config.embedding_dimensions,
        api_key=config.openai_api_key,
        request_timeout=config.request_timeout,
    )


class EmbeddingBatcher:
    """Convert texts to fixed-dimension vectors in sequential batches.

    Parameters
    ----------
    embeddings:
        Any LangChain ``Embeddings`` implementation.  ``None`` means the
        capability is not configured; every call then raises
        :class:`~ragchat.errors.CapabilityUnavailable`.
    dimension:
        Expected vector length; every returned vector is checked.
    batch_size:
        Number of texts sent per upstream call.
    batch_delay:
        Seconds to sleep between batches to stay under rate limits.
    """

    def __init__(
        self,
        embeddings: Embeddings | None,
        *,
        dimension: int = settings.embedding_dimensions,
        batch_size: int = settings.embedding_batch_size,
        batch_delay: float = settings.embedding_batch_delay,
    ) -> None:
        if batch_size < 1:
            raise ValueError(f"batch_size must be >= 1, got {batch_size}")
        self._embeddings = embeddings
        self.dimension = dimension
        self.batch_size = batch_size
        self.batch_delay = batch_delay

    @classmethod
    def from_settings(cls, config: Settings = settings) -> EmbeddingBatcher:
        embeddings = get_embedding_function(config) if config.openai_api_key else None
        return cls(
            embeddings,
            dimension=config.embedding_dimensions,
            batch_size=config.embedding_batch_size,
            batch_delay=config.embedding_batch_delay,
        )

    @property
    def configured(self) -> bool:
        return self._embeddings is not None

    # -- public API -----------------------------------------------------------

    async def embed_many(self, texts: list[str]) -> list[list[float]]:
        """Embed *texts*, returning one vector per input in input order.

        Blank texts are never sent upstream; their slots are filled with a
        zero vector.  Raises :class:`ValidationError` when every input is
        blank.
        """
        if not texts:
            return []

        positions = [i for i, text in enumerate(texts) if text.strip()]
        if not positions:
            raise ValidationError("No valid texts to embed")

        backend = self._require_backend()
        to_send = [texts[i] for i in positions]
        vectors: list[list[float]] = []

        t0 = time.monotonic()
        for start in range(0, len(to_send), self.batch_size):
            batch = to_send[start : start + self.batch_size]
            try:
                batch_vectors = await backend.aembed_documents(batch)
            except Exception as exc:
                raise CapabilityUnavailable(f"Failed to generate embeddings: {exc}") from exc

            if len(batch_vectors) != len(batch):
                raise CapabilityUnavailable(
                    f"Embedding backend returned {len(batch_vectors)} vectors for {len(batch)} texts"
                )
            for vector in batch_vectors:
                self._check_dimension(vector)
            vectors.extend(batch_vectors)
            logger.debug("  embedded %d / %d", len(vectors), len(to_send))

            if start + self.batch_size < len(to_send):
                await asyncio.sleep(self.batch_delay)

        logger.info(
            "Embedded %d texts (dim=%d) in %.1fs", len(vectors), self.dimension, time.monotonic() - t0
        )

        result = [[0.0] * self.dimension for _ in texts]
        for position, vector in zip(positions, vectors):
            result[position] = list(vector)
        if len(positions) < len(texts):
            logger.warning("Skipped %d blank text(s) during embedding", len(texts) - len(positions))
        return result

    async def embed_one(self, text: str) -> list[float]:
        """Embed a single non-blank text (typically a search query)."""
        if not text.strip():
            raise ValidationError("Text cannot be empty")
        backend = self._require_backend()
        try:
            vector = await backend.aembed_query(text)
        except Exception as exc:
            raise CapabilityUnavailable(f"Failed to generate embedding: {exc}") from exc
        self._check_dimension(vector)
        return list(vector)

    async def embed_chunks(self, chunks: list[Chunk]) -> list[Chunk]:
        """Return copies of *chunks* with their ``embedding`` populated."""
        if not chunks:
            return []
        logger.info("Generating embeddings for %d chunks", len(chunks))
        vectors = await self.embed_many([chunk.content for chunk in chunks])
        return [
            chunk.model_copy(update={"embedding": vector})
            for chunk, vector in zip(chunks, vectors)
        ]

    async def test_connection(self) -> bool:
        try:
            await self.embed_one("Test connection")
            return True
        except Exception:
            logger.warning("Embedding connection test failed", exc_info=True)
            return False

    # -- internals ------------------------------------------------------------

    def _require_backend(self) -> Embeddings:
        if self._embeddings is None:
            raise CapabilityUnavailable("Embedding model is not configured (missing OPENAI_API_KEY)")
        return self._embeddings

    def _check_dimension(self, vector: list[float]) -> None:
        if len(vector) != self.dimension:
            raise EmbeddingDimensionMismatch(self.dimension, len(vector))


def cosine_similarity(a: list[float], b: list[float]) -> float:
    """Cosine similarity of *a* and *b*, clamped to ``[0, 1]``.

    Returns ``0.0`` when either vector has zero magnitude.
    """
    if len(a) != len(b):
        raise ValueError(f"Vectors must have the same dimensions ({len(a)} != {len(b)})")

    dot = sum(x * y for x, y in zip(a, b))
    magnitude = math.sqrt(sum(x * x for x in a)) * math.sqrt(sum(y * y for y in b))
    if magnitude == 0:
        return 0.0
    return min(1.0, max(0.0, dot / magnitude))


def estimate_cost(count: int, avg_tokens: int = 100) -> CostEstimate:
    """Rough embedding cost for *count* texts of *avg_tokens* tokens each."""
    tokens = count * avg_tokens
    return CostEstimate(
        tokens=tokens,
        cost_estimate=round(tokens / 1000 * COST_PER_1K_TOKENS, 6),
    )
