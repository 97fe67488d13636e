"""Unit tests for the external capability factories (chat model, images)."""

from __future__ import annotations

import asyncio
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

import pytest

from ragchat.agent.images import OpenAIImageGenerator
from ragchat.agent.llm import get_llm
from ragchat.config import Settings
from ragchat.errors import CapabilityUnavailable


def _settings(**overrides: object) -> Settings:
    base = {"openai_api_key": "", "llm_base_url": "", "_env_file": None}
    base.update(overrides)
    return Settings(**base)


# ── Chat model ─────────────────────────────────────────────────────────


def test_get_llm_unconfigured_is_none() -> None:
    config = _settings()
    assert not config.openai_configured
    assert get_llm(config) is None


def test_get_llm_openai_cloud() -> None:
    llm = get_llm(_settings(openai_api_key="sk-test", llm_model_name="gpt-4o-mini", llm_temperature=0.2))
    assert llm is not None
    assert llm.model_name == "gpt-4o-mini"
    assert llm.temperature == 0.2


def test_get_llm_compatible_endpoint_without_key() -> None:
    config = _settings(llm_base_url="http://llm-server.local/v1")
    assert config.openai_configured
    llm = get_llm(config)
    assert llm is not None
    assert llm.openai_api_base == "http://llm-server.local/v1"


# ── Image generation ───────────────────────────────────────────────────


def test_image_generator_requires_key() -> None:
    generator = OpenAIImageGenerator("")
    with pytest.raises(CapabilityUnavailable):
        asyncio.run(generator.generate("a cat"))


def _generator_with_client(response: object) -> tuple[OpenAIImageGenerator, MagicMock]:
    generator = OpenAIImageGenerator("sk-test", model="dall-e-3")
    client = MagicMock()
    client.images.generate = AsyncMock(return_value=response)
    generator._client = client
    return generator, client


def test_image_generator_returns_url() -> None:
    response = SimpleNamespace(data=[SimpleNamespace(url="https://img/cat.png", revised_prompt="A cat")])
    generator, client = _generator_with_client(response)

    result = asyncio.run(generator.generate("a cat", size="1792x1024", quality="hd", style="natural"))

    assert result.url == "https://img/cat.png"
    assert result.revised_prompt == "A cat"
    client.images.generate.assert_awaited_once_with(
        model="dall-e-3", prompt="a cat", n=1, size="1792x1024", quality="hd", style="natural"
    )


def test_image_generator_without_url() -> None:
    generator, _ = _generator_with_client(SimpleNamespace(data=[]))
    with pytest.raises(CapabilityUnavailable):
        asyncio.run(generator.generate("a cat"))


def test_image_generator_reset_drops_client() -> None:
    generator, _ = _generator_with_client(SimpleNamespace(data=[]))
    generator.reset()
    assert generator._client is None
