"""Shared pytest configuration and fixtures."""

from __future__ import annotations

import pytest
from langchain_core.embeddings import DeterministicFakeEmbedding

from ragchat.ingestion.embedder import EmbeddingBatcher
from ragchat.ingestion.pipeline import IngestionPipeline
from ragchat.retrieval.memory_store import InMemoryVectorStore
from ragchat.retrieval.retriever import SemanticRetriever

DIM = 16


def pytest_configure(config: pytest.Config) -> None:
    """Register custom markers."""
    config.addinivalue_line("markers", "integration: marks tests requiring external services")


@pytest.fixture()
def fake_embeddings() -> DeterministicFakeEmbedding:
    """Same text → same vector, no network."""
    return DeterministicFakeEmbedding(size=DIM)


@pytest.fixture()
def batcher(fake_embeddings: DeterministicFakeEmbedding) -> EmbeddingBatcher:
    return EmbeddingBatcher(fake_embeddings, dimension=DIM, batch_size=10, batch_delay=0)


@pytest.fixture()
def memory_store() -> InMemoryVectorStore:
    return InMemoryVectorStore("test-index", dimension=DIM, max_vectors=1000)


@pytest.fixture()
def pipeline(batcher: EmbeddingBatcher, memory_store: InMemoryVectorStore) -> IngestionPipeline:
    return IngestionPipeline(batcher, memory_store)


@pytest.fixture()
def retriever(memory_store: InMemoryVectorStore, batcher: EmbeddingBatcher) -> SemanticRetriever:
    return SemanticRetriever(memory_store, batcher)
