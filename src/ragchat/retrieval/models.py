"""Read models returned by the vector index and the persisted record shape."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel

from ragchat.ingestion.models import Chunk, ChunkMetadata


class RetrievedDocument(BaseModel):
    """A search hit: chunk content, its metadata and a similarity score.

    Not persisted — produced only by search operations.
    """

    content: str
    metadata: ChunkMetadata
    score: float
    document_id: str

    def short_ref(self) -> str:
        """Return a compact ``[title p.N]`` reference string."""
        title = self.metadata.document_title or self.metadata.source or "unknown"
        page = self.metadata.page_number if self.metadata.page_number is not None else "?"
        return f"[{title} p.{page}]"


class IndexStats(BaseModel):
    """Read-only index diagnostics."""

    total_vector_count: int = 0
    index_fullness: float = 0.0
    dimension: int = 0


def chunk_to_record(chunk: Chunk) -> dict[str, Any]:
    """Flatten *chunk* into the persisted wire record (without the vector).

    Keys: ``id, documentId, index, startChar, endChar, pageNumber, source,
    documentTitle, text``.  ``pageNumber`` is omitted when unknown because
    metadata stores reject null values.
    """
    record: dict[str, Any] = {
        "id": chunk.id,
        "documentId": chunk.document_id,
        "index": chunk.index,
        "startChar": chunk.metadata.start_char,
        "endChar": chunk.metadata.end_char,
        "source": chunk.metadata.source,
        "documentTitle": chunk.metadata.document_title,
        "text": chunk.content,
    }
    if chunk.metadata.page_number is not None:
        record["pageNumber"] = chunk.metadata.page_number
    return record


def record_to_retrieved(
    metadata: dict[str, Any] | None,
    *,
    content: str | None,
    score: float,
) -> RetrievedDocument:
    """Rebuild a :class:`RetrievedDocument` from stored metadata."""
    meta = metadata or {}
    return RetrievedDocument(
        content=content if content is not None else meta.get("text", ""),
        metadata=ChunkMetadata(
            start_char=meta.get("startChar", 0),
            end_char=meta.get("endChar", 0),
            page_number=meta.get("pageNumber"),
            source=meta.get("source", ""),
            document_title=meta.get("documentTitle", ""),
        ),
        score=score,
        document_id=meta.get("documentId", ""),
    )
