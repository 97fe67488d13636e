"""Domain models for uploaded documents and their chunks."""

from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from uuid import uuid4

from pydantic import BaseModel, Field


class DocumentStatus(str, Enum):
    UPLOADING = "uploading"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"


class DocumentMetadata(BaseModel):
    """Upload-side facts about a document.

    Attributes
    ----------
    original_name:
        File name as supplied by the uploader.
    mime_type:
        MIME type reported at the upload boundary.
    size:
        Size of the original file in bytes.
    page_count:
        Page count if known (estimated for plain text).
    language:
        Heuristic language code (``"en"``, ``"es"``, ``"fr"``, ``"unknown"``).
    source:
        Source locator stored on every chunk; defaults to the file name.
    chunk_count:
        Number of chunks persisted for the document (set on completion).
    """

    original_name: str
    mime_type: str = "text/plain"
    size: int = 0
    page_count: int | None = None
    language: str | None = None
    source: str
    chunk_count: int | None = None


class Document(BaseModel):
    """A document travelling through normalisation, chunking and indexing."""

    id: str = Field(default_factory=lambda: str(uuid4()))
    filename: str
    content: str
    metadata: DocumentMetadata
    uploaded_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    processed_at: datetime | None = None
    status: DocumentStatus = DocumentStatus.UPLOADING


class ChunkMetadata(BaseModel):
    """Positional metadata for a chunk; ``end_char`` is inclusive."""

    start_char: int
    end_char: int
    page_number: int | None = None
    source: str = ""
    document_title: str = ""


class Chunk(BaseModel):
    """A bounded substring of a document, optionally carrying its embedding."""

    id: str
    document_id: str
    content: str
    index: int
    metadata: ChunkMetadata
    embedding: list[float] | None = None


class UploadResult(BaseModel):
    """Outcome of pushing one document through the write path."""

    success: bool
    message: str
    document_id: str | None = None
    chunk_count: int = 0
    error: str | None = None
