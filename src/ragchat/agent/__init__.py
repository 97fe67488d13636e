"""
Agent — conversational tool-using agent built with LangGraph.

This module contains **zero** infrastructure dependencies.  It wires a
chat model and a typed tool registry into a think/act state machine that
can be tested locally with a mocked model and an in-memory vector store.

Public API
----------
- :class:`ChatService` — run one conversational turn end to end.
- :func:`build_graph` — compile the think/act workflow.
- :func:`create_initial_state` — bootstrap the state dict for ``graph.ainvoke()``.
- :func:`build_default_registry` — register the built-in tools.
- :class:`AgentState` — the TypedDict flowing through every node.
"""

from ragchat.agent.chat import ChatRequest, ChatResponse, ChatService
from ragchat.agent.graph import build_graph, create_initial_state
from ragchat.agent.registry import ToolRegistry, ToolSpec
from ragchat.agent.state import AgentState, ConversationMessage, Phase, next_phase
from ragchat.agent.tools import build_default_registry

__all__ = [
    "AgentState",
    "ChatRequest",
    "ChatResponse",
    "ChatService",
    "ConversationMessage",
    "Phase",
    "ToolRegistry",
    "ToolSpec",
    "build_default_registry",
    "build_graph",
    "create_initial_state",
    "next_phase",
]
