"""LLM initialisation — single place to swap providers.

Supports two modes:

1. **OpenAI cloud** (default) — set ``OPENAI_API_KEY``.
2. **OpenAI-compatible endpoint** — set ``LLM_BASE_URL`` (e.g. a vLLM
   server exposing ``/v1/chat/completions``); ``ChatOpenAI`` works
   unchanged against it.

When neither is configured :func:`get_llm` returns ``None`` and the chat
service answers in offline mode.
"""

from __future__ import annotations

import logging
from typing import Any

from langchain_openai import ChatOpenAI

from ragchat.config import Settings, settings

logger = logging.getLogger(__name__)


def get_llm(config: Settings = settings) -> ChatOpenAI | None:
    """Return the configured chat model, or ``None`` when unconfigured."""
    kwargs: dict[str, Any] = {
        "model": config.llm_model_name,
        "temperature": config.llm_temperature,
        "timeout": config.request_timeout,
    }

    if config.llm_base_url:
        logger.info("Using OpenAI-compatible endpoint: %s", config.llm_base_url)
        kwargs["base_url"] = config.llm_base_url
        # Self-hosted endpoints don't need a real key; LangChain requires a non-empty value.
        kwargs["api_key"] = config.openai_api_key or "EMPTY"
    elif config.openai_api_key:
        kwargs["api_key"] = config.openai_api_key
    else:
        logger.warning("No OpenAI API key or LLM base URL configured; chat runs in offline mode")
        return None

    return ChatOpenAI(**kwargs)
