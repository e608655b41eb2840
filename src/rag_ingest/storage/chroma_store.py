"""Chroma implementation of the chunk-store abstraction."""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING, Any
from uuid import uuid4

import chromadb

from rag_ingest.errors import PersistenceError
from rag_ingest.ingestion.models import Chunk
from rag_ingest.storage.base import ChunkStoreBase

if TYPE_CHECKING:
    from rag_ingest.config import Settings

logger = logging.getLogger(__name__)


def _chunk_metadata(chunk: Chunk) -> dict[str, Any]:
    """Flatten chunk provenance into Chroma metadata (str/int/float/bool only)."""
    meta: dict[str, Any] = {
        "project_id": chunk.project_id,
        "file_name": chunk.file_name,
        "file_path": chunk.file_path,
        "chunk_index": chunk.chunk_index,
    }
    if chunk.embedding_model:
        meta["embedding_model"] = chunk.embedding_model
    return meta


class ChromaChunkStore(ChunkStoreBase):
    """Chroma-backed chunk store.

    Parameters
    ----------
    collection_name:
        Name of the Chroma collection.
    host:
        Chroma server hostname.
    port:
        Chroma server port.
    distance_metric:
        HNSW space used when the collection is created.
    """

    def __init__(
        self,
        collection_name: str = "document_chunks",
        *,
        host: str = "localhost",
        port: int = 8000,
        distance_metric: str = "cosine",
    ) -> None:
        super().__init__(collection_name)
        self.host = host
        self.port = port
        self.distance_metric = distance_metric
        self._client: Any = None
        self._collection: Any = None

    @classmethod
    def from_settings(cls, settings: Settings) -> ChromaChunkStore:
        return cls(settings.chroma_collection, host=settings.chroma_host, port=settings.chroma_port)

    # -- connection ------------------------------------------------------------

    def _get_client(self) -> Any:
        # Blocking; call from a worker thread.
        if self._client is None:
            self._client = chromadb.HttpClient(host=self.host, port=self.port)
        return self._client

    def _get_collection(self) -> Any:
        if self._collection is None:
            self._collection = self._get_client().get_or_create_collection(
                name=self.collection_name,
                metadata={"hnsw:space": self.distance_metric},
            )
        return self._collection

    def _add(self, chunk_id: str, chunk: Chunk) -> None:
        self._get_collection().add(
            ids=[chunk_id],
            embeddings=[chunk.embedding],
            documents=[chunk.text],
            metadatas=[_chunk_metadata(chunk)],
        )

    def _heartbeat(self) -> None:
        self._get_client().heartbeat()

    # -- ChunkStoreBase overrides ---------------------------------------------

    async def persist(self, chunk: Chunk) -> Chunk:
        chunk_id = chunk.id or str(uuid4())
        try:
            # chromadb's HTTP client is synchronous.
            await asyncio.to_thread(self._add, chunk_id, chunk)
        except Exception as exc:
            raise PersistenceError(f"DB insert failed: {exc}", chunk_index=chunk.chunk_index) from exc
        return chunk.model_copy(update={"id": chunk_id})

    async def health_check(self) -> bool:
        try:
            await asyncio.to_thread(self._heartbeat)
            return True
        except Exception:
            logger.warning("Chroma health-check failed", exc_info=True)
            return False
