"""Shared configuration loaded from environment / .env file."""

from __future__ import annotations

from pydantic import Field
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application-wide settings, populated from env vars or .env file."""

    # LLM
    openai_api_key: str = Field(default="", description="OpenAI API key; empty enables offline mode")
    llm_model_name: str = Field(default="gpt-4o", description="Chat model identifier")
    llm_temperature: float = 0.7
    llm_base_url: str = Field(
        default="",
        description=(
            "Base URL for an OpenAI-compatible chat endpoint. Leave empty to "
            "use OpenAI cloud, e.g. 'http://llm-server.local/v1' for vLLM."
        ),
    )
    request_timeout: float = Field(default=60.0, description="Per-request timeout (seconds) for OpenAI calls")

    # Embedding
    embedding_model: str = "text-embedding-3-large"
    embedding_dimensions: int = 3072
    embedding_batch_size: int = 10
    embedding_batch_delay: float = Field(default=0.1, description="Pause (seconds) between embedding batches")

    # Vector store
    chroma_host: str = "localhost"
    chroma_port: int = 8000
    chroma_collection: str = "ragchat"
    chroma_max_vectors: int = Field(default=0, description="Index capacity used for fullness; 0 = unknown")

    # Chunking
    chunk_size: int = 1500
    chunk_overlap: int = 200

    # Agent
    retrieval_default_k: int = 5
    agent_max_iterations: int = Field(default=8, description="Max ACT rounds per conversational turn")

    # Image generation
    image_model: str = "dall-e-3"

    log_level: str = "INFO"

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8"}

    @property
    def openai_configured(self) -> bool:
        return bool(self.openai_api_key or self.llm_base_url)


# Singleton: import `settings` wherever needed.
settings = Settings()
