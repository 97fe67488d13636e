"""Abstract base class for vector-store backends.

Adding a new backend (Pinecone, Qdrant …) only requires subclassing
:class:`VectorStoreBase` and implementing the abstract methods.  The rest
of the stack is backend-agnostic.

Embedding is **not** a store concern: chunks arrive with their vectors
already attached and queries arrive as vectors.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Any

from ragchat.errors import IndexWriteError
from ragchat.retrieval.models import IndexStats, RetrievedDocument

if TYPE_CHECKING:
    from ragchat.ingestion.models import Chunk


class VectorStoreBase(ABC):
    """Backend-agnostic vector-index interface.

    Parameters
    ----------
    index_name:
        Logical name of the collection / index / namespace.
    dimension:
        Vector length every stored embedding must have.
    """

    def __init__(self, index_name: str, dimension: int) -> None:
        self.index_name = index_name
        self.dimension = dimension

    # -- required overrides ---------------------------------------------------

    @abstractmethod
    def connect(self) -> None:
        """Establish (or reuse) the backend connection."""
        ...

    @abstractmethod
    def reset(self) -> None:
        """Drop the cached connection; the next call reconnects."""
        ...

    @abstractmethod
    def upsert(self, chunks: list[Chunk]) -> list[str]:
        """Persist *chunks* (content + metadata + vector) and return their ids.

        Raises :class:`~ragchat.errors.IndexWriteError` on any failure; the
        caller must then treat the index state as unknown.
        """
        ...

    @abstractmethod
    def similarity_search(
        self,
        query_embedding: list[float],
        *,
        k: int = 5,
        filter: dict[str, Any] | None = None,
    ) -> list[RetrievedDocument]:
        """Return up to *k* nearest chunks by cosine similarity.

        When *filter* is given only chunks whose metadata satisfies it are
        ranked (see :mod:`ragchat.retrieval.filters`).
        """
        ...

    @abstractmethod
    def delete_by_document_id(self, document_id: str, *, from_index: int = 0) -> None:
        """Remove the chunks of *document_id* whose ``index >= from_index``.

        With the default *from_index* every chunk goes.  Unknown ids are a
        no-op.
        """
        ...

    @abstractmethod
    def delete_all(self) -> None:
        """Empty the index."""
        ...

    @abstractmethod
    def stats(self) -> IndexStats:
        ...

    # -- optional overrides ---------------------------------------------------

    def health_check(self) -> bool:
        """Return ``True`` when the backend is reachable."""
        try:
            self.stats()
            return True
        except Exception:
            return False

    # -- shared helpers -------------------------------------------------------

    def _validate_for_write(self, chunks: list[Chunk]) -> None:
        """Reject the whole batch before writing if any vector is unusable."""
        for chunk in chunks:
            if chunk.embedding is None:
                raise IndexWriteError(f"Chunk {chunk.id} has no embedding")
            if len(chunk.embedding) != self.dimension:
                raise IndexWriteError(
                    f"Chunk {chunk.id} has dimension {len(chunk.embedding)}, "
                    f"index expects {self.dimension}"
                )
