"""Agent state definition and the THINK / ACT / DONE state machine.

The state is the single source of truth flowing through both graph
nodes.  Phase transitions are expressed as a pure function so the control
flow can be tested without a model.
"""

from __future__ import annotations

from enum import Enum
from typing import Annotated, Any, Literal, TypedDict

from langchain_core.messages import AIMessage, BaseMessage
from langgraph.graph.message import add_messages
from pydantic import BaseModel, Field


# ---------------------------------------------------------------------------
# Phase machine
# ---------------------------------------------------------------------------


class Phase(str, Enum):
    THINK = "think"
    ACT = "act"
    DONE = "done"


def next_phase(phase: Phase, *, has_tool_calls: bool = False) -> Phase:
    """Return the phase that follows *phase*.

    THINK moves to ACT when the model requested tools and to DONE
    otherwise; ACT always hands control back to THINK; DONE is terminal.
    """
    if phase is Phase.THINK:
        return Phase.ACT if has_tool_calls else Phase.DONE
    if phase is Phase.ACT:
        return Phase.THINK
    return Phase.DONE


def has_pending_tool_calls(message: BaseMessage | None) -> bool:
    """True when *message* is an assistant message carrying tool calls."""
    return isinstance(message, AIMessage) and bool(message.tool_calls)


# ---------------------------------------------------------------------------
# Boundary message model
# ---------------------------------------------------------------------------


class HistoryToolCall(BaseModel):
    """A tool request recorded on an assistant history entry."""

    name: str = Field(min_length=1)
    args: dict[str, Any] = Field(default_factory=dict)
    id: str | None = None


class ConversationMessage(BaseModel):
    """Typed history entry accepted at the chat boundary.

    ``tool_calls`` stay raw here; each entry is checked against
    :class:`HistoryToolCall` on conversion and malformed ones are skipped.
    """

    role: Literal["user", "assistant", "tool"]
    content: str
    tool_calls: list[dict[str, Any]] = Field(default_factory=list)
    tool_call_id: str | None = None
    name: str | None = None


# ---------------------------------------------------------------------------
# Agent state
# ---------------------------------------------------------------------------


class AgentState(TypedDict):
    """Typed state that flows through the LangGraph agent.

    Attributes
    ----------
    messages:
        Conversation history managed by LangGraph's ``add_messages`` reducer.
    iteration:
        Number of completed ACT rounds in this turn (starts at 0).
    max_iterations:
        Ceiling on ACT rounds; when reached THINK answers without the model.
    """

    messages: Annotated[list[BaseMessage], add_messages]
    iteration: int
    max_iterations: int
