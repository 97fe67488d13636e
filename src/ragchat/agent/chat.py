"""Chat turn orchestration — the boundary between callers and the graph.

:class:`ChatService` validates a request, rebuilds typed history from the
supplied context, runs the agent and extracts the final answer together
with any retrieval sources and generated image.
"""

from __future__ import annotations

import json
import logging
from typing import Any
from uuid import UUID, uuid4

from langchain_core.language_models import BaseChatModel
from langchain_core.messages import AIMessage, BaseMessage, HumanMessage, ToolMessage
from pydantic import BaseModel, ConfigDict, Field
from pydantic import ValidationError as SchemaError

from ragchat.agent.graph import build_graph, create_initial_state, recursion_limit_for
from ragchat.agent.nodes import DEFAULT_MAX_ITERATIONS
from ragchat.agent.prompts import offline_response
from ragchat.agent.registry import ToolRegistry
from ragchat.agent.state import ConversationMessage, HistoryToolCall
from ragchat.agent.tools import GENERATE_IMAGE, RETRIEVE_DOCUMENTS, SEARCH_BY_SOURCE
from ragchat.retrieval.models import RetrievedDocument

logger = logging.getLogger(__name__)

RETRIEVAL_TOOLS = frozenset({RETRIEVE_DOCUMENTS, SEARCH_BY_SOURCE})


# ── Request / Response schemas ────────────────────────────────────────


class ChatRequest(BaseModel):
    """One user turn."""

    model_config = ConfigDict(str_strip_whitespace=True)

    message: str = Field(min_length=1, max_length=4000)
    conversation_id: UUID
    context: str | None = Field(default=None, description='Prior turns as "role: content" lines')
    history: list[ConversationMessage] = Field(default_factory=list)


class ImageMetadata(BaseModel):
    original_prompt: str
    revised_prompt: str | None = None
    size: str
    quality: str
    style: str


class ChatResponse(BaseModel):
    """Result of one turn; ``success=False`` carries a user-visible error."""

    success: bool
    message: str = ""
    message_id: str | None = None
    sources: list[RetrievedDocument] = Field(default_factory=list)
    image_url: str | None = None
    image_metadata: ImageMetadata | None = None
    error: str | None = None


# ── History parsing ───────────────────────────────────────────────────


def parse_conversation_context(context: str | None) -> list[ConversationMessage]:
    """Parse ``"user: ..."`` / ``"assistant: ..."`` lines into typed messages.

    Blank lines, lines with any other prefix and lines with no content
    after the prefix are skipped.
    """
    if not context:
        return []
    parsed: list[ConversationMessage] = []
    for line in context.splitlines():
        line = line.strip()
        role, sep, content = line.partition(":")
        role = role.strip().lower()
        content = content.strip()
        if not sep or role not in ("user", "assistant") or not content:
            if line:
                logger.debug("Skipping malformed context line: %.80s", line)
            continue
        parsed.append(ConversationMessage(role=role, content=content))
    return parsed


def to_langchain_messages(history: list[ConversationMessage]) -> list[BaseMessage]:
    """Convert boundary history into LangChain messages.

    Tool messages without a ``tool_call_id`` cannot be paired with a
    request and are dropped.
    """
    messages: list[BaseMessage] = []
    for entry in history:
        if entry.role == "user":
            messages.append(HumanMessage(content=entry.content))
        elif entry.role == "assistant":
            tool_calls = _history_tool_calls(entry.tool_calls)
            messages.append(AIMessage(content=entry.content, tool_calls=tool_calls))
        elif entry.tool_call_id:
            messages.append(
                ToolMessage(content=entry.content, tool_call_id=entry.tool_call_id, name=entry.name)
            )
    return messages


def _history_tool_calls(raw: list[dict[str, Any]]) -> list[dict[str, Any]]:
    calls = []
    for entry in raw:
        try:
            calls.append(HistoryToolCall.model_validate(entry).model_dump())
        except SchemaError:
            logger.warning("Skipping malformed history tool call: %s", entry)
    return calls


# ── Result extraction ─────────────────────────────────────────────────


def message_text(message: BaseMessage) -> str:
    content = message.content
    if isinstance(content, str):
        return content
    parts = []
    for block in content:
        if isinstance(block, str):
            parts.append(block)
        elif isinstance(block, dict) and block.get("type") == "text":
            parts.append(block.get("text", ""))
    return "".join(parts)


def final_answer(messages: list[BaseMessage]) -> str | None:
    """Return the last non-empty assistant text, if any."""
    for message in reversed(messages):
        if isinstance(message, AIMessage):
            text = message_text(message).strip()
            if text:
                return text
    return None


def _tool_payload(message: ToolMessage) -> dict[str, Any] | None:
    if isinstance(message.artifact, dict):
        return message.artifact
    try:
        payload = json.loads(message_text(message))
    except json.JSONDecodeError:
        logger.debug("Could not parse result of tool %s", message.name)
        return None
    return payload if isinstance(payload, dict) else None


def extract_attachments(
    messages: list[BaseMessage],
) -> tuple[list[RetrievedDocument], str | None, ImageMetadata | None]:
    """Scan tool-call / tool-result pairs for sources and a generated image.

    Sources are deduplicated by chunk content, keeping first-seen order.
    The latest successful image wins.
    """
    results = {m.tool_call_id: m for m in messages if isinstance(m, ToolMessage)}
    sources: list[RetrievedDocument] = []
    seen: set[str] = set()
    image_url: str | None = None
    image_metadata: ImageMetadata | None = None

    for message in messages:
        if not isinstance(message, AIMessage):
            continue
        for call in message.tool_calls:
            result = results.get(call.get("id"))
            if result is None or result.status == "error":
                continue
            payload = _tool_payload(result)
            if payload is None:
                continue
            tool_name = result.name or call["name"]

            if tool_name == GENERATE_IMAGE and payload.get("image_url"):
                image_url = payload["image_url"]
                image_metadata = ImageMetadata.model_validate(payload)
            elif tool_name in RETRIEVAL_TOOLS:
                for raw in payload.get("documents", []):
                    document = RetrievedDocument.model_validate(raw)
                    if document.content not in seen:
                        seen.add(document.content)
                        sources.append(document)

    return sources, image_url, image_metadata


# ── Service ───────────────────────────────────────────────────────────


class ChatService:
    """Runs conversational turns against the agent graph.

    Parameters
    ----------
    llm:
        Tool-calling chat model; ``None`` switches to offline mode, where
        every turn gets a clearly labelled simulated response.
    registry:
        Tools the model may call.
    max_iterations:
        ACT rounds allowed per turn.
    """

    def __init__(
        self,
        llm: BaseChatModel | None,
        registry: ToolRegistry,
        *,
        max_iterations: int = DEFAULT_MAX_ITERATIONS,
    ) -> None:
        self.llm = llm
        self.registry = registry
        self.max_iterations = max_iterations
        self._graph = build_graph(llm, registry) if llm is not None else None

    @property
    def offline(self) -> bool:
        return self._graph is None

    @staticmethod
    def create_conversation() -> str:
        conversation_id = str(uuid4())
        logger.info("Created new conversation: %s", conversation_id)
        return conversation_id

    async def chat(self, request: ChatRequest | dict[str, Any]) -> ChatResponse:
        """Run one turn; never raises."""
        try:
            if not isinstance(request, ChatRequest):
                request = ChatRequest.model_validate(request)
        except SchemaError as exc:
            first = exc.errors()[0]
            return ChatResponse(success=False, error=first.get("msg", "Invalid input"))

        logger.info(
            "Starting chat completion (conversation=%s, length=%d, offline=%s)",
            request.conversation_id,
            len(request.message),
            self.offline,
        )

        if self._graph is None:
            return ChatResponse(
                success=True,
                message=offline_response(request.message),
                message_id=_message_id(),
            )

        try:
            history = parse_conversation_context(request.context) + request.history
            messages = [*to_langchain_messages(history), HumanMessage(content=request.message)]
            result = await self._graph.ainvoke(
                create_initial_state(messages, max_iterations=self.max_iterations),
                config={"recursion_limit": recursion_limit_for(self.max_iterations)},
            )
        except Exception as exc:
            logger.exception("Chat completion failed")
            return ChatResponse(success=False, message="Failed to generate response", error=str(exc))

        final_messages: list[BaseMessage] = result["messages"]
        logger.info("Agent finished with %d messages", len(final_messages))

        answer = final_answer(final_messages)
        if answer is None:
            logger.error("No valid AI message found in response")
            return ChatResponse(
                success=False,
                message="Sorry, I could not generate a proper response.",
                error="No valid response from agent",
            )

        sources, image_url, image_metadata = extract_attachments(final_messages)
        return ChatResponse(
            success=True,
            message=answer,
            message_id=_message_id(),
            sources=sources,
            image_url=image_url,
            image_metadata=image_metadata,
        )


def _message_id() -> str:
    return f"msg_{uuid4().hex}"
