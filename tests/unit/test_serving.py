"""Unit tests for the serving layer."""

from __future__ import annotations

from uuid import uuid4

import pytest
from fastapi.testclient import TestClient

from ragchat.agent.chat import ChatService
from ragchat.agent.tools import build_default_registry
from ragchat.config import Settings
from ragchat.errors import IndexUnavailable
from ragchat.ingestion.embedder import EmbeddingBatcher
from ragchat.ingestion.pipeline import IngestionPipeline
from ragchat.retrieval.memory_store import InMemoryVectorStore
from ragchat.retrieval.retriever import SemanticRetriever
from ragchat.serving.app import Services, build_services, create_app


@pytest.fixture()
def services(
    pipeline: IngestionPipeline, memory_store: InMemoryVectorStore, retriever: SemanticRetriever
) -> Services:
    registry = build_default_registry(retriever)
    return Services(
        store=memory_store,
        pipeline=pipeline,
        registry=registry,
        chat=ChatService(None, registry),
    )


@pytest.fixture()
def client(services: Services) -> TestClient:
    return TestClient(create_app(services))


def test_health_endpoint(client: TestClient) -> None:
    """GET /health should return 200 with status ok."""
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json() == {"status": "ok"}


def test_connections_endpoint(client: TestClient) -> None:
    response = client.get("/health/connections")
    assert response.status_code == 200
    assert response.json() == {"embeddings": True, "vector_store": True, "errors": []}


def test_create_conversation(client: TestClient) -> None:
    response = client.post("/conversations")
    assert response.status_code == 200
    assert len(response.json()["conversation_id"]) == 36


def test_chat_offline(client: TestClient) -> None:
    response = client.post("/chat", json={"message": "hello", "conversation_id": str(uuid4())})
    assert response.status_code == 200
    body = response.json()
    assert body["success"] is True
    assert body["message"].startswith("TEST MODE")
    assert body["sources"] == []


def test_chat_rejects_bad_request(client: TestClient) -> None:
    response = client.post("/chat", json={"message": "hello"})
    assert response.status_code == 422


def test_document_lifecycle(client: TestClient) -> None:
    upload = client.post(
        "/documents",
        json={"text": "Gym membership is reimbursed monthly.", "original_name": "Benefits.pdf"},
    )
    assert upload.status_code == 200
    body = upload.json()
    assert body["success"] is True
    assert body["chunk_count"] == 1

    info = client.get("/knowledge-base").json()
    assert info["total_documents"] == 1
    assert info["index_name"] == "test-index"

    deleted = client.delete(f"/documents/{body['document_id']}")
    assert deleted.status_code == 200
    assert deleted.json()["document_id"] == body["document_id"]
    assert client.get("/knowledge-base").json()["total_documents"] == 0


def test_delete_all_documents(client: TestClient) -> None:
    for name in ("a.txt", "b.txt"):
        client.post("/documents", json={"text": f"Contents of {name}.", "original_name": name})

    response = client.delete("/documents")
    assert response.status_code == 200
    assert response.json()["deleted_count"] == 2


def test_upload_without_embeddings_reports_failure(memory_store: InMemoryVectorStore) -> None:
    pipeline = IngestionPipeline(EmbeddingBatcher(None, dimension=16), memory_store)
    registry = build_default_registry(SemanticRetriever(memory_store, pipeline.embedder))
    app = create_app(Services(memory_store, pipeline, registry, ChatService(None, registry)))

    response = TestClient(app).post("/documents", json={"text": "Some text.", "original_name": "x.txt"})
    assert response.status_code == 200
    assert response.json()["success"] is False


def test_build_services_offline() -> None:
    config = Settings(openai_api_key="", llm_base_url="", _env_file=None)
    services = build_services(config, store=InMemoryVectorStore(dimension=config.embedding_dimensions))

    assert services.chat.offline
    assert not services.pipeline.embedder.configured
    assert services.pipeline.chunking.chunk_size == 1500
    assert services.registry.default == "retrieve_documents"


def test_knowledge_base_reports_unavailable_store(
    client: TestClient, memory_store: InMemoryVectorStore, monkeypatch: pytest.MonkeyPatch
) -> None:
    def down() -> None:
        raise IndexUnavailable("Failed to get index stats: connection refused")

    monkeypatch.setattr(memory_store, "stats", down)
    response = client.get("/knowledge-base")
    assert response.status_code == 503
    assert "connection refused" in response.json()["detail"]
