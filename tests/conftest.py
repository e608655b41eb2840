"""Shared pytest configuration and fixtures."""

from __future__ import annotations

import json
from collections.abc import Callable

import httpx
import pytest

from rag_ingest.errors import PersistenceError
from rag_ingest.ingestion.models import Chunk
from rag_ingest.storage.base import ChunkStoreBase


def pytest_configure(config: pytest.Config) -> None:
    """Register custom markers."""
    config.addinivalue_line("markers", "integration: marks tests requiring external services")


# ── Fakes ──────────────────────────────────────────────────────────────


def fake_vector(text: str) -> list[float]:
    """Deterministic, content-derived 3-d vector."""
    return [float(len(text)), float(sum(map(ord, text)) % 997), 1.0]


class FakeEmbeddingProvider:
    """``httpx.MockTransport`` handler mimicking the OpenAI embeddings API.

    *statuses* are consumed one per request; a non-200 entry makes that
    request fail with the given status.
    """

    def __init__(self, statuses: list[int] | None = None, *, reverse: bool = False) -> None:
        self.requests: list[dict] = []
        self.headers: list[httpx.Headers] = []
        self._statuses = list(statuses or [])
        self._reverse = reverse

    def __call__(self, request: httpx.Request) -> httpx.Response:
        payload = json.loads(request.content)
        self.requests.append(payload)
        self.headers.append(request.headers)
        if self._statuses:
            status = self._statuses.pop(0)
            if status != 200:
                return httpx.Response(status, text=f"provider error {status}")
        data = [
            {"object": "embedding", "index": i, "embedding": fake_vector(text)}
            for i, text in enumerate(payload["input"])
        ]
        if self._reverse:
            data.reverse()
        return httpx.Response(200, json={"object": "list", "data": data, "model": payload["model"]})


class FakeChunkStore(ChunkStoreBase):
    """In-memory store; optionally fails when writing chunk *fail_at*."""

    def __init__(self, fail_at: int | None = None) -> None:
        super().__init__("test-chunks")
        self.fail_at = fail_at
        self.records: list[dict] = []
        self.write_order: list[int] = []

    async def persist(self, chunk: Chunk) -> Chunk:
        self.write_order.append(chunk.chunk_index)
        if chunk.chunk_index == self.fail_at:
            raise PersistenceError("DB insert failed: duplicate key")
        stored = chunk.model_copy(update={"id": f"chunk-{len(self.records)}"})
        self.records.append(stored.to_record())
        return stored

    async def health_check(self) -> bool:
        return True


# ── Fixtures ───────────────────────────────────────────────────────────


@pytest.fixture()
def embedding_provider() -> FakeEmbeddingProvider:
    return FakeEmbeddingProvider()


@pytest.fixture()
def mock_client() -> Callable[[Callable[[httpx.Request], httpx.Response]], httpx.AsyncClient]:
    """Factory for ``httpx.AsyncClient`` instances backed by a handler."""

    def _make(handler: Callable[[httpx.Request], httpx.Response]) -> httpx.AsyncClient:
        return httpx.AsyncClient(transport=httpx.MockTransport(handler))

    return _make


@pytest.fixture()
def fake_store() -> FakeChunkStore:
    return FakeChunkStore()


@pytest.fixture()
def failing_store() -> Callable[[int], FakeChunkStore]:
    return FakeChunkStore


@pytest.fixture()
def provider_factory() -> Callable[..., FakeEmbeddingProvider]:
    return FakeEmbeddingProvider


@pytest.fixture()
def vector_for() -> Callable[[str], list[float]]:
    return fake_vector
