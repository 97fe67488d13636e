"""LangGraph graph definition — the conversational tool-using agent.

This module wires the nodes defined in :mod:`ragchat.agent.nodes` into a
compiled :class:`StateGraph`:

1. **Think** — the chat model reads the history and either answers or
   requests one or more tools.
2. **Act** — the requested tools run concurrently and their results are
   appended as tool messages.
3. **Loop** — control returns to *think* until the model stops asking for
   tools (or the iteration ceiling forces a degraded answer).

The graph can be tested locally by injecting a mocked chat model and an
in-memory tool registry (see tests).
"""

from __future__ import annotations

from typing import Any

from langchain_core.language_models import BaseChatModel
from langchain_core.messages import BaseMessage
from langgraph.graph import END, StateGraph

from ragchat.agent.nodes import (
    DEFAULT_MAX_ITERATIONS,
    make_act_node,
    make_think_node,
    should_continue,
)
from ragchat.agent.registry import ToolRegistry
from ragchat.agent.state import AgentState


def build_graph(llm: BaseChatModel, registry: ToolRegistry) -> Any:
    """Construct and return the compiled LangGraph agent.

    Graph topology::

        ┌─────────┐
        │  START  │
        └────┬────┘
             ▼
        ┌─────────┐  tool calls  ┌─────────┐
        │  think  ├─────────────►│   act   │
        │         │◄─────────────┤         │
        └────┬────┘              └─────────┘
             │ final answer
             ▼
          [ END ]

    Returns
    -------
    CompiledStateGraph
        A compiled workflow ready for ``.ainvoke()`` / ``.astream()``.
    """
    workflow = StateGraph(AgentState)

    # -- Nodes ---------------------------------------------------------------
    workflow.add_node("think", make_think_node(llm, registry))
    workflow.add_node("act", make_act_node(registry))

    # -- Edges ---------------------------------------------------------------
    workflow.set_entry_point("think")
    workflow.add_conditional_edges("think", should_continue, {"act": "act", END: END})
    workflow.add_edge("act", "think")

    return workflow.compile()


# ---------------------------------------------------------------------------
# Convenience helpers
# ---------------------------------------------------------------------------


def create_initial_state(
    messages: list[BaseMessage],
    *,
    max_iterations: int = DEFAULT_MAX_ITERATIONS,
) -> dict[str, Any]:
    """Build the initial state dict for ``graph.ainvoke()``.

    Usage::

        graph = build_graph(llm, registry)
        state = create_initial_state([HumanMessage("What are our gym benefits?")])
        result = await graph.ainvoke(state)
        print(result["messages"][-1].content)
    """
    return {
        "messages": list(messages),
        "iteration": 0,
        "max_iterations": max_iterations,
    }


def recursion_limit_for(max_iterations: int) -> int:
    """LangGraph step budget large enough for *max_iterations* ACT rounds."""
    # one think per round, one act per round, the final think, plus slack
    return 2 * max_iterations + 5
