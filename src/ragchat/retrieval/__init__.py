"""
Retrieval — vector index adapters, metadata filters and semantic search.

This module wraps the vector store behind a clean interface so that
the agent layer never needs to know which DB is backing retrieval.

Public surface
--------------
- :class:`SemanticRetriever` — query embedding + filtered search.
- :class:`VectorStoreBase` — abstract backend (subclass for Pinecone, etc.).
- :class:`ChromaVectorStore` — default Chroma backend.
- :class:`InMemoryVectorStore` — process-local backend for offline mode and tests.
- :class:`RetrievedDocument`, :class:`IndexStats` — read models.
"""

from ragchat.retrieval.base import VectorStoreBase
from ragchat.retrieval.memory_store import InMemoryVectorStore
from ragchat.retrieval.models import IndexStats, RetrievedDocument
from ragchat.retrieval.retriever import SemanticRetriever

__all__ = [
    "ChromaVectorStore",
    "IndexStats",
    "InMemoryVectorStore",
    "RetrievedDocument",
    "SemanticRetriever",
    "VectorStoreBase",
]


def __getattr__(name: str):  # noqa: ANN001
    """Lazy-import ChromaVectorStore to avoid pulling in chromadb at import time."""
    if name == "ChromaVectorStore":
        from ragchat.retrieval.chroma_store import ChromaVectorStore

        return ChromaVectorStore
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
