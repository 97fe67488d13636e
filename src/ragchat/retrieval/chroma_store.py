"""Chroma implementation of the vector-store abstraction."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

import chromadb

from ragchat.config import settings
from ragchat.errors import IndexUnavailable, IndexWriteError
from ragchat.retrieval.base import VectorStoreBase
from ragchat.retrieval.filters import to_chroma_where
from ragchat.retrieval.models import IndexStats, RetrievedDocument, chunk_to_record, record_to_retrieved

if TYPE_CHECKING:
    from ragchat.ingestion.models import Chunk

logger = logging.getLogger(__name__)


class ChromaVectorStore(VectorStoreBase):
    """Chroma-backed vector store.

    The client and collection are created lazily on first use and cached
    until :meth:`reset`.

    Parameters
    ----------
    collection_name:
        Name of the Chroma collection (the "index").
    host / port:
        Chroma server address, used when no *client* is injected.
    dimension:
        Expected embedding length.
    max_vectors:
        Capacity used to compute ``index_fullness``; Chroma itself has no
        notion of fullness, so 0 reports ``0.0``.
    client:
        Pre-built Chroma client (e.g. ``chromadb.EphemeralClient()`` in tests).
    upsert_batch_size:
        Max records per upsert call.
    """

    def __init__(
        self,
        collection_name: str = settings.chroma_collection,
        *,
        host: str = settings.chroma_host,
        port: int = settings.chroma_port,
        dimension: int = settings.embedding_dimensions,
        max_vectors: int = settings.chroma_max_vectors,
        client: Any = None,
        upsert_batch_size: int = 1000,
    ) -> None:
        super().__init__(collection_name, dimension)
        self._host = host
        self._port = port
        self.max_vectors = max_vectors
        self.upsert_batch_size = upsert_batch_size
        self._injected_client = client
        self._client: Any = None
        self._collection: Any = None

    # -- lifecycle ------------------------------------------------------------

    def connect(self) -> None:
        if self._collection is not None:
            return
        try:
            client = self._injected_client or chromadb.HttpClient(host=self._host, port=self._port)
            collection = client.get_or_create_collection(
                name=self.index_name,
                metadata={"hnsw:space": "cosine"},
            )
        except Exception as exc:
            raise IndexUnavailable(
                f"Failed to connect to Chroma collection {self.index_name!r}: {exc}"
            ) from exc
        logger.info("Connected to Chroma collection %r", self.index_name)
        self._client = client
        self._collection = collection

    def reset(self) -> None:
        self._client = None
        self._collection = None

    @property
    def collection(self) -> Any:
        self.connect()
        return self._collection

    # -- VectorStoreBase overrides --------------------------------------------

    def upsert(self, chunks: list[Chunk]) -> list[str]:
        if not chunks:
            return []
        self._validate_for_write(chunks)
        collection = self.collection

        ids: list[str] = []
        embeddings: list[list[float]] = []
        documents: list[str] = []
        metadatas: list[dict[str, Any]] = []
        for chunk in chunks:
            record = chunk_to_record(chunk)
            ids.append(chunk.id)
            embeddings.append(list(chunk.embedding or []))
            documents.append(record.pop("text"))
            metadatas.append(record)

        try:
            for start in range(0, len(ids), self.upsert_batch_size):
                end = start + self.upsert_batch_size
                collection.upsert(
                    ids=ids[start:end],
                    embeddings=embeddings[start:end],
                    documents=documents[start:end],
                    metadatas=metadatas[start:end],
                )
        except Exception as exc:
            raise IndexWriteError(f"Failed to store document chunks: {exc}") from exc

        logger.info("Stored %d chunks in Chroma collection %r", len(ids), self.index_name)
        return ids

    def similarity_search(
        self,
        query_embedding: list[float],
        *,
        k: int = 5,
        filter: dict[str, Any] | None = None,
    ) -> list[RetrievedDocument]:
        collection = self.collection
        where = to_chroma_where(filter)
        try:
            if collection.count() == 0:
                return []
            results = collection.query(
                query_embeddings=[query_embedding],
                n_results=k,
                where=where,
                include=["documents", "metadatas", "distances"],
            )
        except Exception as exc:
            raise IndexUnavailable(f"Failed to perform similarity search: {exc}") from exc

        docs = (results.get("documents") or [[]])[0]
        metas = (results.get("metadatas") or [[]])[0]
        distances = (results.get("distances") or [[]])[0]

        # cosine space: distance = 1 - similarity
        return [
            record_to_retrieved(meta, content=content, score=1.0 - dist)
            for content, meta, dist in zip(docs, metas, distances)
        ]

    def delete_by_document_id(self, document_id: str, *, from_index: int = 0) -> None:
        where: dict[str, Any] = {"documentId": {"$eq": document_id}}
        if from_index > 0:
            where = {"$and": [where, {"index": {"$gte": from_index}}]}
        try:
            self.collection.delete(where=where)
        except IndexUnavailable:
            raise
        except Exception as exc:
            raise IndexUnavailable(f"Failed to delete chunks for {document_id}: {exc}") from exc
        logger.info("Deleted chunks for document %s", document_id)

    def delete_all(self) -> None:
        self.connect()
        try:
            self._client.delete_collection(self.index_name)
        except Exception as exc:
            raise IndexUnavailable(f"Failed to clear collection {self.index_name!r}: {exc}") from exc
        self.reset()
        logger.info("Cleared Chroma collection %r", self.index_name)

    def stats(self) -> IndexStats:
        try:
            count = self.collection.count()
        except IndexUnavailable:
            raise
        except Exception as exc:
            raise IndexUnavailable(f"Failed to get index stats: {exc}") from exc
        return IndexStats(
            total_vector_count=count,
            index_fullness=count / self.max_vectors if self.max_vectors else 0.0,
            dimension=self.dimension,
        )

    def health_check(self) -> bool:
        try:
            self.connect()
            self._client.heartbeat()
            return True
        except Exception:
            logger.warning("Chroma health-check failed", exc_info=True)
            return False
