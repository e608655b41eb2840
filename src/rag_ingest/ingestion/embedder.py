"""Embedding client for OpenAI-compatible ``/embeddings`` endpoints.

All texts of one document are sent in a single batched request.  Transient
provider failures (HTTP 429, 5xx, timeouts, dropped connections) are retried
with exponential backoff; other client errors fail immediately.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Sequence
from typing import TYPE_CHECKING, Any

import httpx

from rag_ingest.errors import EmbeddingServiceError

if TYPE_CHECKING:
    from langchain_core.embeddings import Embeddings

    from rag_ingest.config import Settings

logger = logging.getLogger(__name__)


def _is_retryable_status(status: int) -> bool:
    return status == 429 or status >= 500


def _require_sync_caller(method: str) -> None:
    try:
        asyncio.get_running_loop()
    except RuntimeError:
        return
    raise RuntimeError(
        f"{method}() cannot run inside an event loop; await a{method}() instead"
    )


class EmbeddingClient:
    """Batched, order-preserving embedding calls.

    Parameters
    ----------
    api_key:
        Provider credential.  An empty key makes every call fail with a
        configuration :class:`~rag_ingest.errors.EmbeddingServiceError`.
    model:
        Embedding model identifier.
    base_url:
        Base URL of the OpenAI-compatible API.
    dimensions:
        Optional vector size requested from the provider and enforced on
        the response.
    timeout:
        Per-request timeout in seconds.
    max_retries:
        Total number of attempts for retryable failures.
    backoff_seconds:
        Base delay; attempt *n* waits ``backoff_seconds * 2 ** (n - 1)``.
    client:
        Optional shared ``httpx.AsyncClient``.
    """

    def __init__(
        self,
        *,
        api_key: str,
        model: str = "text-embedding-3-small",
        base_url: str = "https://api.openai.com/v1",
        dimensions: int | None = None,
        timeout: float = 30.0,
        max_retries: int = 3,
        backoff_seconds: float = 1.0,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self.api_key = api_key
        self.model = model
        self.base_url = base_url.rstrip("/")
        self.dimensions = dimensions
        self.timeout = timeout
        self.max_retries = max(1, max_retries)
        self.backoff_seconds = backoff_seconds
        self._client = client

    @classmethod
    def from_settings(cls, settings: Settings, client: httpx.AsyncClient | None = None) -> EmbeddingClient:
        return cls(
            api_key=settings.openai_api_key,
            model=settings.embedding_model,
            base_url=settings.embedding_base_url,
            dimensions=settings.embedding_dimensions,
            timeout=settings.embedding_timeout_seconds,
            max_retries=settings.embedding_max_retries,
            backoff_seconds=settings.embedding_backoff_seconds,
            client=client,
        )

    # -- public API -----------------------------------------------------------

    async def embed(self, texts: Sequence[str]) -> list[list[float]]:
        """Return one vector per text; output *i* belongs to ``texts[i]``."""
        if not self.api_key:
            raise EmbeddingServiceError.missing_credential()
        if not texts:
            return []

        payload: dict[str, Any] = {"input": list(texts), "model": self.model}
        if self.dimensions:
            payload["dimensions"] = self.dimensions

        data = await self._post_with_retries(payload)
        vectors = self._parse_vectors(data, expected=len(texts))
        logger.info("Embedded %d texts (model=%s, dim=%d)", len(vectors), self.model, len(vectors[0]))
        return vectors

    async def embed_query(self, text: str) -> list[float]:
        """Embed a single text."""
        return (await self.embed([text]))[0]

    def as_langchain_embeddings(self) -> Embeddings:
        """Return a LangChain ``Embeddings`` adapter backed by this client.

        LangChain is imported only here so the ingestion path does not
        depend on it.
        """
        from langchain_core.embeddings import Embeddings

        outer = self

        class _LCEmbeddings(Embeddings):
            """Adapter that satisfies LangChain's embeddings protocol."""

            # The sync methods drive their own event loop; async callers must use
            # the aembed_* variants.
            def embed_documents(self, texts: list[str]) -> list[list[float]]:
                _require_sync_caller("embed_documents")
                return asyncio.run(outer.embed(texts))

            def embed_query(self, text: str) -> list[float]:
                _require_sync_caller("embed_query")
                return asyncio.run(outer.embed_query(text))

            async def aembed_documents(self, texts: list[str]) -> list[list[float]]:
                return await outer.embed(texts)

            async def aembed_query(self, text: str) -> list[float]:
                return await outer.embed_query(text)

        return _LCEmbeddings()

    # -- internals ------------------------------------------------------------

    async def _post_with_retries(self, payload: dict[str, Any]) -> dict[str, Any]:
        url = f"{self.base_url}/embeddings"
        headers = {"Authorization": f"Bearer {self.api_key}", "Content-Type": "application/json"}

        for attempt in range(1, self.max_retries + 1):
            try:
                resp = await self._send(url, headers, payload)
            except httpx.TransportError as exc:
                error = EmbeddingServiceError(f"Embedding request failed: {exc}")
                retryable = True
            else:
                if resp.is_success:
                    try:
                        return resp.json()
                    except ValueError as exc:
                        raise EmbeddingServiceError(
                            "Embedding response is not valid JSON", status=resp.status_code, body=resp.text
                        ) from exc
                error = EmbeddingServiceError(
                    f"Embedding request failed: HTTP {resp.status_code}: {resp.text}",
                    status=resp.status_code,
                    body=resp.text,
                )
                retryable = _is_retryable_status(resp.status_code)

            if not retryable or attempt == self.max_retries:
                raise error
            wait = self.backoff_seconds * 2 ** (attempt - 1)
            logger.warning(
                "Retry %d/%d for embeddings (wait %.1fs): %s", attempt, self.max_retries, wait, error
            )
            await asyncio.sleep(wait)

        raise AssertionError("unreachable")

    async def _send(self, url: str, headers: dict[str, str], payload: dict[str, Any]) -> httpx.Response:
        if self._client is not None:
            return await self._client.post(url, headers=headers, json=payload, timeout=self.timeout)
        async with httpx.AsyncClient(timeout=self.timeout) as client:
            return await client.post(url, headers=headers, json=payload)

    def _parse_vectors(self, data: dict[str, Any], *, expected: int) -> list[list[float]]:
        items = data.get("data") if isinstance(data, dict) else None
        if not isinstance(items, list) or len(items) != expected:
            got = len(items) if isinstance(items, list) else 0
            raise EmbeddingServiceError(f"Embedding response has {got} vectors, expected {expected}")
        if not all(isinstance(item, dict) for item in items):
            raise EmbeddingServiceError("Embedding response items must be objects")

        if all(isinstance(item.get("index"), int) for item in items):
            items = sorted(items, key=lambda item: item["index"])

        vectors = [item.get("embedding") for item in items]
        if any(not v for v in vectors):
            raise EmbeddingServiceError("Embedding response contains an empty vector")

        dims = {len(v) for v in vectors}
        if len(dims) != 1:
            raise EmbeddingServiceError(f"Embedding response has mixed dimensionality: {sorted(dims)}")
        dim = dims.pop()
        if self.dimensions and dim != self.dimensions:
            raise EmbeddingServiceError(
                f"Embedding dimensionality {dim} does not match configured {self.dimensions}"
            )
        return [[float(x) for x in v] for v in vectors]
