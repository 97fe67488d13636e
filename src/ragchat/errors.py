"""Exception hierarchy shared by the ingestion, retrieval and agent layers.

Local, caller-correctable problems (:class:`ValidationError`, a single
:class:`ToolExecutionError`) are turned into information for the model by
the agent loop.  Systemic failures (:class:`CapabilityUnavailable`) travel
up to the turn boundary.
"""

from __future__ import annotations


class RagChatError(Exception):
    """Base class for every error raised by ragchat."""


class ValidationError(RagChatError):
    """Bad input (empty query, unsupported filter, …). Never retried."""


class InvalidToolInput(ValidationError):
    """Tool arguments failed schema validation; nothing was executed."""

    def __init__(self, tool_name: str, detail: str) -> None:
        super().__init__(f"Invalid input for tool {tool_name!r}: {detail}")
        self.tool_name = tool_name
        self.detail = detail


class CapabilityUnavailable(RagChatError):
    """An external capability (embeddings, chat model, images, vector store) failed or is unconfigured."""


class IndexUnavailable(CapabilityUnavailable):
    """The vector store could not be reached or refused the credentials."""


class EmbeddingDimensionMismatch(RagChatError):
    """A returned vector does not have the configured dimensionality."""

    def __init__(self, expected: int, actual: int) -> None:
        super().__init__(f"Embedding dimension mismatch: expected {expected}, got {actual}")
        self.expected = expected
        self.actual = actual


class IndexWriteError(RagChatError):
    """An upsert failed in full or in part; index state is unknown."""


class ToolExecutionError(RagChatError):
    """A tool raised while running; reported back to the model as a tool message."""

    def __init__(self, tool_name: str, detail: str) -> None:
        super().__init__(f"Tool {tool_name!r} failed: {detail}")
        self.tool_name = tool_name
        self.detail = detail
