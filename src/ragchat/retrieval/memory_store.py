"""Process-local vector store.

Backs offline mode (no Chroma server configured) and deterministic tests.
Data lives only as long as the store object.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from ragchat.ingestion.embedder import cosine_similarity
from ragchat.retrieval.base import VectorStoreBase
from ragchat.retrieval.filters import matches_filter
from ragchat.retrieval.models import IndexStats, RetrievedDocument, chunk_to_record, record_to_retrieved

if TYPE_CHECKING:
    from ragchat.ingestion.models import Chunk

logger = logging.getLogger(__name__)


class InMemoryVectorStore(VectorStoreBase):
    """Dictionary-backed store with brute-force cosine ranking.

    Parameters
    ----------
    index_name:
        Name reported by :meth:`stats` consumers.
    dimension:
        Expected vector length.
    max_vectors:
        Capacity used to compute ``index_fullness`` (0 = unbounded).
    """

    def __init__(self, index_name: str = "memory", dimension: int = 3072, *, max_vectors: int = 0) -> None:
        super().__init__(index_name, dimension)
        self.max_vectors = max_vectors
        self._records: dict[str, tuple[list[float], dict[str, Any]]] | None = None

    def connect(self) -> None:
        if self._records is None:
            self._records = {}

    def reset(self) -> None:
        self._records = None

    @property
    def _data(self) -> dict[str, tuple[list[float], dict[str, Any]]]:
        records = self._records
        if records is None:
            records = self._records = {}
        return records

    def upsert(self, chunks: list[Chunk]) -> list[str]:
        if not chunks:
            return []
        self._validate_for_write(chunks)
        for chunk in chunks:
            self._data[chunk.id] = (list(chunk.embedding or []), chunk_to_record(chunk))
        logger.info("Stored %d chunks in memory index %r", len(chunks), self.index_name)
        return [chunk.id for chunk in chunks]

    def similarity_search(
        self,
        query_embedding: list[float],
        *,
        k: int = 5,
        filter: dict[str, Any] | None = None,
    ) -> list[RetrievedDocument]:
        scored = [
            (cosine_similarity(query_embedding, vector), record)
            for vector, record in self._data.values()
            if matches_filter(record, filter)
        ]
        scored.sort(key=lambda item: item[0], reverse=True)
        return [
            record_to_retrieved(record, content=record["text"], score=score)
            for score, record in scored[:k]
        ]

    def delete_by_document_id(self, document_id: str, *, from_index: int = 0) -> None:
        doomed = [
            cid
            for cid, (_, record) in self._data.items()
            if record["documentId"] == document_id and record["index"] >= from_index
        ]
        for cid in doomed:
            del self._data[cid]
        logger.info("Deleted %d chunks for document %s", len(doomed), document_id)

    def delete_all(self) -> None:
        self._data.clear()

    def stats(self) -> IndexStats:
        count = len(self._data)
        return IndexStats(
            total_vector_count=count,
            index_fullness=count / self.max_vectors if self.max_vectors else 0.0,
            dimension=self.dimension,
        )
