"""Unit tests for the embedding batcher and vector helpers."""

from __future__ import annotations

import asyncio
import math
from unittest.mock import AsyncMock, MagicMock

import pytest
from langchain_core.embeddings import DeterministicFakeEmbedding

from ragchat.errors import CapabilityUnavailable, EmbeddingDimensionMismatch, ValidationError
from ragchat.ingestion.embedder import EmbeddingBatcher, cosine_similarity, estimate_cost
from ragchat.ingestion.models import Chunk, ChunkMetadata

DIM = 16


def _counting_backend(dim: int = 4) -> MagicMock:
    backend = MagicMock()
    backend.aembed_documents = AsyncMock(
        side_effect=lambda batch: [[float(len(text))] * dim for text in batch]
    )
    return backend


# ── embed_many ─────────────────────────────────────────────────────────


def test_embed_many_empty_returns_empty(batcher: EmbeddingBatcher) -> None:
    assert asyncio.run(batcher.embed_many([])) == []


def test_embed_many_preserves_order_and_cardinality(
    batcher: EmbeddingBatcher, fake_embeddings: DeterministicFakeEmbedding
) -> None:
    texts = [f"text number {i}" for i in range(23)]
    vectors = asyncio.run(batcher.embed_many(texts))

    assert len(vectors) == len(texts)
    assert all(len(v) == DIM for v in vectors)
    for text, vector in zip(texts, vectors):
        assert vector == pytest.approx(fake_embeddings.embed_query(text))


def test_embed_many_sends_sequential_batches() -> None:
    backend = _counting_backend()
    batcher = EmbeddingBatcher(backend, dimension=4, batch_size=10, batch_delay=0)

    asyncio.run(batcher.embed_many([f"t{i}" for i in range(23)]))

    sizes = [len(call.args[0]) for call in backend.aembed_documents.await_args_list]
    assert sizes == [10, 10, 3]


def test_embed_many_fills_blank_slots_with_zero_vectors() -> None:
    backend = _counting_backend()
    batcher = EmbeddingBatcher(backend, dimension=4, batch_delay=0)

    vectors = asyncio.run(batcher.embed_many(["hello", "   ", "world!"]))

    assert vectors == [[5.0] * 4, [0.0] * 4, [6.0] * 4]
    sent = backend.aembed_documents.await_args_list[0].args[0]
    assert sent == ["hello", "world!"]


def test_embed_many_all_blank_is_validation_error(batcher: EmbeddingBatcher) -> None:
    with pytest.raises(ValidationError):
        asyncio.run(batcher.embed_many(["", "  "]))


def test_embed_many_dimension_mismatch() -> None:
    batcher = EmbeddingBatcher(DeterministicFakeEmbedding(size=8), dimension=DIM, batch_delay=0)
    with pytest.raises(EmbeddingDimensionMismatch) as exc_info:
        asyncio.run(batcher.embed_many(["hello"]))
    assert exc_info.value.expected == DIM
    assert exc_info.value.actual == 8


def test_embed_many_backend_failure_is_capability_error() -> None:
    backend = MagicMock()
    backend.aembed_documents = AsyncMock(side_effect=RuntimeError("rate limited"))
    batcher = EmbeddingBatcher(backend, dimension=4, batch_delay=0)

    with pytest.raises(CapabilityUnavailable, match="rate limited"):
        asyncio.run(batcher.embed_many(["hello"]))


def test_embed_many_short_response_is_capability_error() -> None:
    backend = MagicMock()
    backend.aembed_documents = AsyncMock(return_value=[[1.0] * 4])
    batcher = EmbeddingBatcher(backend, dimension=4, batch_delay=0)

    with pytest.raises(CapabilityUnavailable):
        asyncio.run(batcher.embed_many(["a", "b"]))


def test_unconfigured_batcher_raises() -> None:
    batcher = EmbeddingBatcher(None, dimension=4)
    assert not batcher.configured
    with pytest.raises(CapabilityUnavailable):
        asyncio.run(batcher.embed_many(["hello"]))
    assert asyncio.run(batcher.test_connection()) is False


def test_batch_size_must_be_positive() -> None:
    with pytest.raises(ValueError):
        EmbeddingBatcher(None, batch_size=0)


# ── embed_one / embed_chunks ───────────────────────────────────────────


def test_embed_one_rejects_blank(batcher: EmbeddingBatcher) -> None:
    with pytest.raises(ValidationError):
        asyncio.run(batcher.embed_one("   "))


def test_embed_one_returns_configured_dimension(batcher: EmbeddingBatcher) -> None:
    assert len(asyncio.run(batcher.embed_one("query"))) == DIM
    assert asyncio.run(batcher.test_connection()) is True


def test_embed_chunks_returns_copies_with_vectors(batcher: EmbeddingBatcher) -> None:
    chunks = [
        Chunk(
            id=f"doc_{i}",
            document_id="doc",
            content=f"chunk {i}",
            index=i,
            metadata=ChunkMetadata(start_char=0, end_char=6),
        )
        for i in range(3)
    ]
    embedded = asyncio.run(batcher.embed_chunks(chunks))

    assert [c.id for c in embedded] == [c.id for c in chunks]
    assert all(c.embedding is not None and len(c.embedding) == DIM for c in embedded)
    assert all(c.embedding is None for c in chunks)


# ── cosine_similarity / estimate_cost ──────────────────────────────────


def test_cosine_identity() -> None:
    v = [0.3, -1.2, 4.0, 0.5]
    assert cosine_similarity(v, v) == pytest.approx(1.0)


def test_cosine_symmetry() -> None:
    a = [1.0, 2.0, 3.0]
    b = [2.0, 0.5, 1.0]
    assert cosine_similarity(a, b) == pytest.approx(cosine_similarity(b, a))


def test_cosine_orthogonal_and_opposite() -> None:
    assert cosine_similarity([1.0, 0.0], [0.0, 1.0]) == 0.0
    assert cosine_similarity([1.0, 0.0], [-1.0, 0.0]) == 0.0


def test_cosine_known_value() -> None:
    assert cosine_similarity([1.0, 1.0], [1.0, 0.0]) == pytest.approx(1 / math.sqrt(2))


def test_cosine_zero_vector() -> None:
    assert cosine_similarity([0.0, 0.0], [1.0, 2.0]) == 0.0


def test_cosine_dimension_mismatch() -> None:
    with pytest.raises(ValueError):
        cosine_similarity([1.0], [1.0, 2.0])


def test_estimate_cost() -> None:
    estimate = estimate_cost(1000)
    assert estimate.tokens == 100_000
    assert estimate.cost_estimate == pytest.approx(0.013)
    assert estimate_cost(10, avg_tokens=50).tokens == 500
