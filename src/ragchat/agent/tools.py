"""Tool definitions exposed to the agent.

Each tool is a self-contained capability the model can invoke on its own:
broad retrieval, source-scoped retrieval, knowledge-base statistics,
question contextualisation and image generation.

Dependency-injection note
-------------------------
Tools are bound to concrete services by :func:`build_default_registry`.
In production those come from settings; in tests lightweight fakes
(in-memory store, fake embeddings, mocked image generator) are injected.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from ragchat.agent.images import ImageGenerator, ImageQuality, ImageSize, ImageStyle
from ragchat.agent.registry import ToolRegistry, ToolSpec
from ragchat.errors import CapabilityUnavailable
from ragchat.retrieval.models import RetrievedDocument
from ragchat.retrieval.retriever import SemanticRetriever

logger = logging.getLogger(__name__)

RETRIEVE_DOCUMENTS = "retrieve_documents"
SEARCH_BY_SOURCE = "search_by_source"
GET_KNOWLEDGE_BASE_INFO = "get_knowledge_base_info"
CONTEXTUALIZE_QUESTION = "contextualize_question"
GENERATE_IMAGE = "generate_image"


# ---------------------------------------------------------------------------
# Input schemas
# ---------------------------------------------------------------------------


class RetrieveDocumentsInput(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    query: str = Field(min_length=1, max_length=1000, description="Natural-language search query")
    num_results: int = Field(default=5, ge=1, le=20, description="Number of results to return")
    filter: dict[str, Any] | None = Field(
        default=None,
        description='Optional metadata filter, e.g. {"source": "handbook.pdf"}',
    )


class SearchBySourceInput(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    source: str = Field(min_length=1, description="The document title or source to search within")
    query: str = Field(
        min_length=1, max_length=1000, description="The search query within the specified source"
    )
    num_results: int = Field(default=5, ge=1, le=20, description="Number of results to return")


class KnowledgeBaseInfoInput(BaseModel):
    pass


class ContextualizeQuestionInput(BaseModel):
    question: str = Field(min_length=1, description="The follow-up question to contextualize")
    conversation_history: str = Field(default="", description="Recent conversation history for context")


class GenerateImageInput(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    prompt: str = Field(min_length=1, max_length=4000, description="Detailed description of the image")
    size: ImageSize = Field(default="1024x1024", description="Size of the generated image")
    quality: ImageQuality = Field(default="standard", description="Quality of the generated image")
    style: ImageStyle = Field(
        default="vivid",
        description="vivid for hyper-real and dramatic images, natural for more natural looking ones",
    )


# ---------------------------------------------------------------------------
# Outputs
# ---------------------------------------------------------------------------


class RetrievalToolOutput(BaseModel):
    documents: list[RetrievedDocument]
    total_results: int
    search_query: str
    source: str | None = None


class KnowledgeBaseInfo(BaseModel):
    total_documents: int
    index_fullness: float
    dimensions: int
    index_name: str
    message: str


class ContextualizedQuestion(BaseModel):
    original_question: str
    contextualized_question: str
    has_context: bool


class GeneratedImage(BaseModel):
    image_url: str
    original_prompt: str
    revised_prompt: str | None = None
    size: str
    quality: str
    style: str
    message: str = ""


# ---------------------------------------------------------------------------
# Pure helpers
# ---------------------------------------------------------------------------


def source_filter(source: str) -> dict[str, Any]:
    """Filter matching chunks whose ``source`` or ``documentTitle`` equals *source*."""
    return {
        "$or": [
            {"source": {"$eq": source}},
            {"documentTitle": {"$eq": source}},
        ]
    }


def contextualize(question: str, conversation_history: str) -> ContextualizedQuestion:
    """Prefix *question* with the conversation history, when there is any."""
    has_context = bool(conversation_history.strip())
    contextualized = (
        f"{conversation_history}\n\nBased on the above conversation, please answer: {question}"
        if has_context
        else question
    )
    return ContextualizedQuestion(
        original_question=question,
        contextualized_question=contextualized,
        has_context=has_context,
    )


# ---------------------------------------------------------------------------
# Registry factory
# ---------------------------------------------------------------------------


def build_default_registry(
    retriever: SemanticRetriever,
    image_generator: ImageGenerator | None = None,
) -> ToolRegistry:
    """Register the five built-in tools; ``retrieve_documents`` is the default."""
    registry = ToolRegistry(default=RETRIEVE_DOCUMENTS)

    async def retrieve_documents(args: RetrieveDocumentsInput) -> RetrievalToolOutput:
        logger.info("Retrieving documents for %r (limit=%d)", args.query, args.num_results)
        documents = await retriever.search(args.query, k=args.num_results, filter=args.filter or None)
        return RetrievalToolOutput(
            documents=documents,
            total_results=len(documents),
            search_query=args.query,
        )

    async def search_by_source(args: SearchBySourceInput) -> RetrievalToolOutput:
        documents = await retriever.search(
            args.query, k=args.num_results, filter=source_filter(args.source)
        )
        logger.info("Found %d documents in source %r", len(documents), args.source)
        return RetrievalToolOutput(
            documents=documents,
            total_results=len(documents),
            search_query=args.query,
            source=args.source,
        )

    async def get_knowledge_base_info(args: KnowledgeBaseInfoInput) -> KnowledgeBaseInfo:
        stats = await asyncio.to_thread(retriever.store.stats)
        return KnowledgeBaseInfo(
            total_documents=stats.total_vector_count,
            index_fullness=stats.index_fullness,
            dimensions=stats.dimension,
            index_name=retriever.store.index_name,
            message=(
                f"Knowledge base contains {stats.total_vector_count} document chunks with "
                f"{stats.dimension} dimensions. Index is {stats.index_fullness * 100:.2f}% full."
            ),
        )

    async def contextualize_question(args: ContextualizeQuestionInput) -> ContextualizedQuestion:
        return contextualize(args.question, args.conversation_history)

    async def generate_image(args: GenerateImageInput) -> GeneratedImage:
        if image_generator is None:
            raise CapabilityUnavailable("Image generation is not configured")
        result = await image_generator.generate(
            args.prompt, size=args.size, quality=args.quality, style=args.style
        )
        message = f'I\'ve created an image based on your description: "{args.prompt}".'
        if result.revised_prompt:
            message += f' The prompt was refined to: "{result.revised_prompt}"'
        return GeneratedImage(
            image_url=result.url,
            original_prompt=args.prompt,
            revised_prompt=result.revised_prompt,
            size=args.size,
            quality=args.quality,
            style=args.style,
            message=message,
        )

    registry.register(
        ToolSpec(
            name=RETRIEVE_DOCUMENTS,
            description=(
                "Retrieve relevant documents from the knowledge base using semantic search. "
                "Use this tool when you need information to answer user questions."
            ),
            args_schema=RetrieveDocumentsInput,
            handler=retrieve_documents,
        )
    )
    registry.register(
        ToolSpec(
            name=SEARCH_BY_SOURCE,
            description=(
                "Search for documents from a specific source or document title. "
                "Use this when the user asks about a specific document."
            ),
            args_schema=SearchBySourceInput,
            handler=search_by_source,
        )
    )
    registry.register(
        ToolSpec(
            name=GET_KNOWLEDGE_BASE_INFO,
            description="Get statistics about the knowledge base: chunk count, dimensions and fullness.",
            args_schema=KnowledgeBaseInfoInput,
            handler=get_knowledge_base_info,
        )
    )
    registry.register(
        ToolSpec(
            name=CONTEXTUALIZE_QUESTION,
            description=(
                "Reformulate a follow-up question to be standalone based on conversation history. "
                "Use this for follow-up questions that reference previous context."
            ),
            args_schema=ContextualizeQuestionInput,
            handler=contextualize_question,
        )
    )
    registry.register(
        ToolSpec(
            name=GENERATE_IMAGE,
            description=(
                "Generate an image from a text description. Use this tool when users ask to "
                "create, generate, draw, or make an image of something."
            ),
            args_schema=GenerateImageInput,
            handler=generate_image,
        )
    )
    return registry
