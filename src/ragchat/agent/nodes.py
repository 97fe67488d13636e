"""Graph nodes — THINK (model turn) and ACT (tool execution).

Node contract
-------------
* Accepts the full :class:`AgentState` dict.
* Returns a *partial* dict with **only the keys that changed**.
* Services (chat model, tool registry) are bound by the ``make_*``
  factories; nodes keep no hidden global state, so each one is
  independently testable.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from typing import Any
from uuid import uuid4

from langchain_core.language_models import BaseChatModel
from langchain_core.messages import AIMessage, BaseMessage
from langgraph.graph import END

from ragchat.agent.prompts import build_system_message, unable_to_complete
from ragchat.agent.registry import ToolRegistry
from ragchat.agent.state import AgentState, Phase, has_pending_tool_calls, next_phase

logger = logging.getLogger(__name__)

DEFAULT_MAX_ITERATIONS = 8

Node = Callable[[AgentState], Awaitable[dict[str, Any]]]


# ── 1. THINK ──────────────────────────────────────────────────────────


def make_think_node(llm: BaseChatModel, registry: ToolRegistry) -> Node:
    """Build the THINK node: system instruction + history → model.

    The model sees every registered tool via ``bind_tools``.  Once the turn
    has used up ``max_iterations`` ACT rounds the node answers with a
    degraded message instead of calling the model again.
    """
    model = llm.bind_tools(registry.as_langchain_tools())
    system_message = build_system_message(registry)

    async def think(state: AgentState) -> dict[str, Any]:
        iteration = state.get("iteration", 0)
        max_iterations = state.get("max_iterations", DEFAULT_MAX_ITERATIONS)
        if iteration >= max_iterations:
            logger.warning("Agent hit the iteration ceiling (%d); answering without tools", max_iterations)
            return {"messages": [AIMessage(content=unable_to_complete(max_iterations))]}

        response = await model.ainvoke([system_message, *state["messages"]])
        if has_pending_tool_calls(response):
            logger.info(
                "Model requested %d tool call(s): %s",
                len(response.tool_calls),
                [call["name"] for call in response.tool_calls],
            )
        return {"messages": [response]}

    return think


# ── 2. ACT ────────────────────────────────────────────────────────────


def make_act_node(registry: ToolRegistry) -> Node:
    """Build the ACT node: run every pending tool call of the last message.

    Calls run concurrently.  The gathered tasks are shielded, so when the
    turn is abandoned the in-flight tools still run to completion; their
    results are simply discarded.
    """

    async def act(state: AgentState) -> dict[str, Any]:
        last = state["messages"][-1] if state["messages"] else None
        if not has_pending_tool_calls(last):
            return {"iteration": state.get("iteration", 0) + 1}

        calls = [
            {**call, "id": call.get("id") or f"call_{uuid4().hex[:12]}"}
            for call in last.tool_calls
        ]
        results = await asyncio.shield(
            asyncio.gather(*(registry.arun_call(call) for call in calls))
        )

        by_id = {message.tool_call_id: message for message in results}
        tool_messages = []
        for call, positional in zip(calls, results):
            tool_messages.append(by_id.get(call["id"], positional))

        failed = sum(1 for message in tool_messages if message.status == "error")
        logger.info("Executed %d tool call(s), %d failed", len(tool_messages), failed)

        # Every ToolMessage must answer a request id recorded on the AI message.
        # add_messages replaces the request in place because the message id is kept.
        updates: list[BaseMessage] = []
        if calls != last.tool_calls:
            updates.append(last.model_copy(update={"tool_calls": calls}))
        return {
            "messages": [*updates, *tool_messages],
            "iteration": state.get("iteration", 0) + 1,
        }

    return act


# ── 3. ROUTING (conditional edge) ─────────────────────────────────────


def should_continue(state: AgentState) -> str:
    """Conditional edge after ``think``.

    Returns
    -------
    str
        ``"act"`` when the last message requests tools, ``END`` otherwise.
    """
    messages = state.get("messages") or []
    last = messages[-1] if messages else None
    phase = next_phase(Phase.THINK, has_tool_calls=has_pending_tool_calls(last))
    return "act" if phase is Phase.ACT else END
