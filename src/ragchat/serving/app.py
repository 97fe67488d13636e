"""FastAPI application exposing chat and document management as a REST API.

Run with::

    uvicorn ragchat.serving.app:create_app --factory
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from functools import wraps
from typing import Any, Callable, TypeVar

from fastapi import FastAPI, HTTPException, Request
from pydantic import BaseModel, Field

from ragchat.agent.chat import ChatRequest, ChatResponse, ChatService
from ragchat.agent.images import OpenAIImageGenerator
from ragchat.agent.llm import get_llm
from ragchat.agent.registry import ToolRegistry
from ragchat.agent.tools import GET_KNOWLEDGE_BASE_INFO, KnowledgeBaseInfo, build_default_registry
from ragchat.config import Settings, settings
from ragchat.errors import CapabilityUnavailable, RagChatError, ValidationError
from ragchat.ingestion.chunker import ChunkingConfig
from ragchat.ingestion.embedder import EmbeddingBatcher
from ragchat.ingestion.models import UploadResult
from ragchat.ingestion.pipeline import IngestionPipeline
from ragchat.retrieval.base import VectorStoreBase
from ragchat.retrieval.retriever import SemanticRetriever

logger = logging.getLogger(__name__)

T = TypeVar("T")


# ── Service wiring ────────────────────────────────────────────────────


@dataclass
class Services:
    """Explicitly constructed service graph shared by all routes."""

    store: VectorStoreBase
    pipeline: IngestionPipeline
    registry: ToolRegistry
    chat: ChatService


def build_services(config: Settings = settings, *, store: VectorStoreBase | None = None) -> Services:
    """Build every service from *config*.

    Nothing connects here: the vector store connects on first use and the
    chat model is ``None`` (offline mode) when no credentials are set.
    """
    if store is None:
        from ragchat.retrieval.chroma_store import ChromaVectorStore

        store = ChromaVectorStore(
            config.chroma_collection,
            host=config.chroma_host,
            port=config.chroma_port,
            dimension=config.embedding_dimensions,
            max_vectors=config.chroma_max_vectors,
        )
    embedder = EmbeddingBatcher.from_settings(config)
    pipeline = IngestionPipeline(
        embedder,
        store,
        chunking=ChunkingConfig(chunk_size=config.chunk_size, chunk_overlap=config.chunk_overlap),
    )
    retriever = SemanticRetriever(store, embedder, default_k=config.retrieval_default_k)
    registry = build_default_registry(retriever, OpenAIImageGenerator.from_settings(config))
    chat = ChatService(get_llm(config), registry, max_iterations=config.agent_max_iterations)
    return Services(store=store, pipeline=pipeline, registry=registry, chat=chat)


# ── Request / Response schemas ────────────────────────────────────────


class DocumentUpload(BaseModel):
    """Already-extracted document text plus the original file facts."""

    text: str = Field(min_length=1)
    original_name: str = Field(min_length=1)
    mime_type: str = "text/plain"
    size: int | None = Field(default=None, ge=0)
    page_count: int | None = Field(default=None, ge=1)


class ConversationCreated(BaseModel):
    conversation_id: str


class DeleteResult(BaseModel):
    success: bool = True
    document_id: str | None = None
    deleted_count: int | None = None


# ── Error mapping ─────────────────────────────────────────────────────


def handle_api_errors(fn: Callable[..., T]) -> Callable[..., T]:
    """Map ragchat errors onto HTTP status codes.

    - ValidationError -> 400 Bad Request
    - CapabilityUnavailable -> 503 Service Unavailable
    - other RagChatError -> 500 Internal Server Error
    """

    @wraps(fn)
    async def wrapper(*args: Any, **kwargs: Any) -> Any:
        try:
            return await fn(*args, **kwargs)
        except ValidationError as exc:
            raise HTTPException(status_code=400, detail=str(exc)) from exc
        except CapabilityUnavailable as exc:
            logger.warning("Capability unavailable in %s: %s", fn.__name__, exc)
            raise HTTPException(status_code=503, detail=str(exc)) from exc
        except RagChatError as exc:
            logger.exception("Unexpected error in %s", fn.__name__)
            raise HTTPException(status_code=500, detail=str(exc)) from exc

    return wrapper


# ── Application ───────────────────────────────────────────────────────


def create_app(services: Services | None = None) -> FastAPI:
    """Create the API; *services* defaults to :func:`build_services`."""
    logging.basicConfig(level=settings.log_level)

    api = FastAPI(
        title="ragchat API",
        version="0.1.0",
        description="Conversational retrieval-augmented chat over uploaded documents.",
    )
    api.state.services = services or build_services()

    def _services(request: Request) -> Services:
        return request.app.state.services

    @api.get("/health")
    async def health() -> dict[str, str]:
        """Liveness probe."""
        return {"status": "ok"}

    @api.get("/health/connections")
    async def connections(request: Request) -> dict[str, Any]:
        """Probe the embedding model and the vector store."""
        return await _services(request).pipeline.test_connections()

    @api.post("/conversations", response_model=ConversationCreated)
    async def create_conversation(request: Request) -> ConversationCreated:
        return ConversationCreated(conversation_id=_services(request).chat.create_conversation())

    @api.post("/chat", response_model=ChatResponse)
    async def chat(body: ChatRequest, request: Request) -> ChatResponse:
        """Run one conversational turn."""
        return await _services(request).chat.chat(body)

    @api.post("/documents", response_model=UploadResult)
    @handle_api_errors
    async def upload_document(body: DocumentUpload, request: Request) -> UploadResult:
        """Chunk, embed and index extracted document text."""
        return await _services(request).pipeline.ingest_text(
            body.text,
            original_name=body.original_name,
            mime_type=body.mime_type,
            size=body.size,
            page_count=body.page_count,
        )

    @api.delete("/documents/{document_id}", response_model=DeleteResult)
    @handle_api_errors
    async def delete_document(document_id: str, request: Request) -> DeleteResult:
        await _services(request).pipeline.delete_document(document_id)
        return DeleteResult(document_id=document_id)

    @api.delete("/documents", response_model=DeleteResult)
    @handle_api_errors
    async def delete_all_documents(request: Request) -> DeleteResult:
        deleted = await _services(request).pipeline.delete_all_documents()
        return DeleteResult(deleted_count=deleted)

    @api.get("/knowledge-base", response_model=KnowledgeBaseInfo)
    @handle_api_errors
    async def knowledge_base(request: Request) -> KnowledgeBaseInfo:
        """Index statistics, as reported to the agent."""
        return await _services(request).registry.execute(GET_KNOWLEDGE_BASE_INFO, {})

    return api
