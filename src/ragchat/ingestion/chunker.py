"""Boundary-aware sliding-window chunking."""

from __future__ import annotations

import logging

from pydantic import BaseModel, Field

from ragchat.ingestion.models import Chunk, ChunkMetadata, Document

logger = logging.getLogger(__name__)

CHARS_PER_PAGE = 2000


class ChunkingConfig(BaseModel):
    """Chunking parameters.

    Attributes
    ----------
    chunk_size:
        Maximum number of characters per window.
    chunk_overlap:
        Number of characters shared by consecutive windows.
    separators:
        Break boundaries in priority order (strongest first).  The empty
        string stands for "hard cut allowed".
    """

    chunk_size: int = Field(default=1500, ge=1)
    chunk_overlap: int = Field(default=200, ge=0)
    separators: list[str] = Field(default_factory=lambda: ["\n\n", "\n", ". ", " ", ""])


def estimate_page_number(start_char: int) -> int:
    """Plain-text page estimate: one page per 2000 characters."""
    return start_char // CHARS_PER_PAGE + 1


def find_break(text: str, start: int, end: int, separators: list[str]) -> int:
    """Return the position at which the window ``text[start:end]`` should end.

    Every non-empty separator is searched backward from *end* for its last
    occurrence lying strictly after *start*; the break just past the
    rightmost such occurrence wins.  Returns *end* (a hard cut) when no
    separator occurs inside the window.
    """
    rightmost = -1
    for separator in separators:
        if not separator:
            continue
        pos = text.rfind(separator, start + 1, end)
        if pos != -1:
            rightmost = max(rightmost, pos + len(separator))

    return rightmost if rightmost > start else end


def chunk_document(document: Document, config: ChunkingConfig | None = None) -> list[Chunk]:
    """Split *document* into overlapping chunks with positional metadata.

    Parameters
    ----------
    document:
        The (already normalised) document to split.
    config:
        Chunking parameters; defaults to 1500 / 200 with the standard
        separator list.

    Returns
    -------
    list[Chunk]
        Chunks with contiguous ``index`` values starting at 0.  A blank
        document yields no chunks.
    """
    config = config or ChunkingConfig()
    text = document.content

    if not text.strip():
        return []

    if len(text) <= config.chunk_size:
        return [_make_chunk(document, text, 0, len(text), 0)]

    chunks: list[Chunk] = []
    start = 0
    while start < len(text):
        end = min(start + config.chunk_size, len(text))
        if end < len(text):
            end = find_break(text, start, end, config.separators)

        content = text[start:end].strip()
        if content:
            chunks.append(_make_chunk(document, content, start, end, len(chunks)))

        if end >= len(text):
            break
        # max() keeps the window moving even when overlap >= window length
        start = max(start + 1, end - config.chunk_overlap)

    logger.debug("Chunked document %s into %d chunks", document.id, len(chunks))
    return chunks


def _make_chunk(document: Document, content: str, start: int, end: int, index: int) -> Chunk:
    return Chunk(
        id=f"{document.id}_{index}",
        document_id=document.id,
        content=content,
        index=index,
        metadata=ChunkMetadata(
            start_char=start,
            end_char=end - 1,
            page_number=estimate_page_number(start),
            source=document.metadata.source,
            document_title=document.filename,
        ),
    )
