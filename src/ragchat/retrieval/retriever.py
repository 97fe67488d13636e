"""Semantic retriever — query embedding plus filtered vector search.

This module is the **primary public interface** for the read path.  Tools,
evaluation scripts and tests use it directly::

    retriever = SemanticRetriever(store, batcher)
    docs = await retriever.search("What are our gym benefits?", k=5)
    for d in docs:
        print(d.short_ref(), d.content[:80])
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any

from ragchat.errors import ValidationError
from ragchat.ingestion.embedder import EmbeddingBatcher
from ragchat.retrieval.base import VectorStoreBase
from ragchat.retrieval.models import RetrievedDocument

logger = logging.getLogger(__name__)


class SemanticRetriever:
    """High-level retriever that wraps any :class:`VectorStoreBase`.

    Parameters
    ----------
    store:
        A concrete vector-store backend.
    embedder:
        Batcher used to embed the query text.
    default_k:
        Default number of results returned by :meth:`search`.
    score_threshold:
        Minimum similarity score; results below this are discarded.
    """

    def __init__(
        self,
        store: VectorStoreBase,
        embedder: EmbeddingBatcher,
        *,
        default_k: int = 5,
        score_threshold: float = 0.0,
    ) -> None:
        self.store = store
        self.embedder = embedder
        self.default_k = default_k
        self.score_threshold = score_threshold

    async def search(
        self,
        query: str,
        *,
        k: int | None = None,
        filter: dict[str, Any] | None = None,
    ) -> list[RetrievedDocument]:
        """Embed *query* and return the nearest chunks.

        Raises :class:`~ragchat.errors.ValidationError` for a blank query
        before touching the embedder or the index.
        """
        if not query or not query.strip():
            raise ValidationError("Search query cannot be empty")
        embedding = await self.embedder.embed_one(query)
        results = await self.search_by_embedding(embedding, k=k, filter=filter)
        logger.info("Found %d documents for %r", len(results), query)
        return results

    async def search_by_embedding(
        self,
        embedding: list[float],
        *,
        k: int | None = None,
        filter: dict[str, Any] | None = None,
    ) -> list[RetrievedDocument]:
        """Same as :meth:`search` but accepts a pre-computed embedding."""
        k = k or self.default_k
        hits = await asyncio.to_thread(self.store.similarity_search, embedding, k=k, filter=filter)
        return [hit for hit in hits if hit.score >= self.score_threshold]
