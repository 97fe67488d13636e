"""Prompt templates and fixed response texts for the chat agent.

Keeping prompts in one place makes them easy to audit and version.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from langchain_core.messages import SystemMessage

if TYPE_CHECKING:
    from ragchat.agent.registry import ToolRegistry

# ── System instruction ────────────────────────────────────────────────

SYSTEM_TEMPLATE = """\
You are a helpful AI assistant with access to a knowledge base and image
generation capabilities. When users ask questions:

1. Use the retrieve_documents tool to find relevant information from the knowledge base
2. If you need information from a specific document, use the search_by_source tool
3. Always cite your sources when providing information from retrieved documents,
   using the document title and page, e.g. [Employee-Handbook.pdf p.3]
4. If no relevant information is found, say so clearly
5. Use the generate_image tool when users ask to create, generate, draw, or make an image
6. Be concise but comprehensive in your responses

Available tools:
{tool_list}

Always strive to provide accurate, helpful responses based on the available knowledge.
"""


def build_system_message(registry: ToolRegistry) -> SystemMessage:
    """Render the system instruction listing every registered tool."""
    tool_list = "\n".join(
        f"- {spec.name}: {spec.description.split('. ')[0].rstrip('.')}"
        for spec in registry.specs()
    )
    return SystemMessage(content=SYSTEM_TEMPLATE.format(tool_list=tool_list))


# ── Degraded answers ──────────────────────────────────────────────────

UNABLE_TO_COMPLETE = (
    "I'm sorry, I was unable to complete this request within {max_iterations} "
    "tool rounds. Please try rephrasing or narrowing your question."
)

OFFLINE_RESPONSE = (
    'TEST MODE: I received your message "{message}". Please configure an '
    "OpenAI API key to enable full retrieval-augmented chat."
)


def unable_to_complete(max_iterations: int) -> str:
    return UNABLE_TO_COMPLETE.format(max_iterations=max_iterations)


def offline_response(message: str) -> str:
    return OFFLINE_RESPONSE.format(message=message)
