"""Write path: normalise → chunk → embed → upsert.

The upload boundary hands over already-extracted plain text plus the
original file facts; PDF/Word extraction happens upstream.
"""

from __future__ import annotations

import asyncio
import logging
import math
from datetime import datetime, timezone
from typing import Any

from ragchat.errors import IndexWriteError, RagChatError
from ragchat.ingestion.chunker import CHARS_PER_PAGE, ChunkingConfig, chunk_document
from ragchat.ingestion.embedder import EmbeddingBatcher
from ragchat.ingestion.models import Document, DocumentMetadata, DocumentStatus, UploadResult
from ragchat.ingestion.normalizer import detect_language, normalize_text
from ragchat.retrieval.base import VectorStoreBase

logger = logging.getLogger(__name__)


class IngestionPipeline:
    """Drive documents through the write path and manage their deletion.

    Parameters
    ----------
    embedder:
        Batcher that attaches vectors to chunks.
    store:
        Target vector index.
    chunking:
        Chunking parameters (defaults: 1500 / 200).
    """

    def __init__(
        self,
        embedder: EmbeddingBatcher,
        store: VectorStoreBase,
        *,
        chunking: ChunkingConfig | None = None,
    ) -> None:
        self.embedder = embedder
        self.store = store
        self.chunking = chunking or ChunkingConfig()

    def create_document(
        self,
        text: str,
        *,
        original_name: str,
        mime_type: str = "text/plain",
        size: int | None = None,
        page_count: int | None = None,
    ) -> Document:
        """Build a :class:`Document` in ``processing`` state from raw text."""
        content = normalize_text(text)
        if page_count is None:
            page_count = max(1, math.ceil(len(content) / CHARS_PER_PAGE))
        return Document(
            filename=original_name,
            content=content,
            metadata=DocumentMetadata(
                original_name=original_name,
                mime_type=mime_type,
                size=size if size is not None else len(text.encode("utf-8")),
                page_count=page_count,
                language=detect_language(content),
                source=original_name,
            ),
            status=DocumentStatus.PROCESSING,
        )

    async def ingest_document(self, document: Document) -> UploadResult:
        """Chunk, embed and store *document*, updating its status in place.

        The document is only marked ``completed`` when the index confirmed
        every chunk; any failure marks it ``failed``.
        """
        document.status = DocumentStatus.PROCESSING
        try:
            chunks = chunk_document(document, self.chunking)
            logger.info("Created %d chunks from %s", len(chunks), document.filename)

            embedded = await self.embedder.embed_chunks(chunks)
            stored_ids = await asyncio.to_thread(self.store.upsert, embedded)
            if len(stored_ids) != len(chunks):
                raise IndexWriteError(
                    f"Index acknowledged {len(stored_ids)} of {len(chunks)} chunks"
                )
            # Ids are positional, so a shorter re-ingest leaves a stale tail behind.
            await asyncio.to_thread(self.store.delete_by_document_id, document.id, from_index=len(chunks))
        except RagChatError as exc:
            document.status = DocumentStatus.FAILED
            logger.error("Document %s failed to process: %s", document.id, exc)
            return UploadResult(
                success=False,
                document_id=document.id,
                message="Failed to process document",
                error=str(exc),
            )

        document.metadata.chunk_count = len(chunks)
        document.status = DocumentStatus.COMPLETED
        document.processed_at = datetime.now(timezone.utc)
        return UploadResult(
            success=True,
            document_id=document.id,
            chunk_count=len(chunks),
            message=(
                f"Successfully processed {document.filename}. Created {len(chunks)} "
                "chunks and stored in vector database."
            ),
        )

    async def ingest_text(
        self,
        text: str,
        *,
        original_name: str,
        mime_type: str = "text/plain",
        size: int | None = None,
        page_count: int | None = None,
    ) -> UploadResult:
        """Convenience wrapper: :meth:`create_document` + :meth:`ingest_document`."""
        document = self.create_document(
            text,
            original_name=original_name,
            mime_type=mime_type,
            size=size,
            page_count=page_count,
        )
        logger.info("Extracted %d characters from %s", len(document.content), original_name)
        return await self.ingest_document(document)

    async def delete_document(self, document_id: str) -> None:
        """Remove every chunk of *document_id* (no-op for unknown ids)."""
        await asyncio.to_thread(self.store.delete_by_document_id, document_id)

    async def delete_all_documents(self) -> int:
        """Empty the index and return how many chunks were removed."""
        before = await asyncio.to_thread(self.store.stats)
        await asyncio.to_thread(self.store.delete_all)
        logger.info("Removed %d chunks from index %r", before.total_vector_count, self.store.index_name)
        return before.total_vector_count

    async def test_connections(self) -> dict[str, Any]:
        """Probe the embedding model and the vector store."""
        errors: list[str] = []
        embeddings_ok = await self.embedder.test_connection()
        if not embeddings_ok:
            errors.append("Embedding connection failed")
        store_ok = await asyncio.to_thread(self.store.health_check)
        if not store_ok:
            errors.append("Vector store connection failed")
        return {"embeddings": embeddings_ok, "vector_store": store_ok, "errors": errors}
