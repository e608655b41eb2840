"""Ingestion pipeline — extract → chunk → embed → persist for one document.

Usage::

    pipeline = IngestionPipeline.from_settings(settings)
    chunks   = await pipeline.ingest(IngestRequest(fileUrl=..., fileName=..., projectId=...))

Every run creates a new, independent set of chunks; re-ingesting the same
file appends rather than replaces.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from rag_ingest.ingestion.chunker import DEFAULT_MAX_WORDS_PER_CHUNK, chunk_text
from rag_ingest.ingestion.embedder import EmbeddingClient
from rag_ingest.ingestion.loader import TextExtractor
from rag_ingest.ingestion.models import Chunk, IngestRequest

if TYPE_CHECKING:
    from rag_ingest.config import Settings
    from rag_ingest.storage.base import ChunkStoreBase

logger = logging.getLogger(__name__)


class IngestionPipeline:
    """Run the ingestion stages sequentially for a single document.

    Parameters
    ----------
    extractor:
        Source-document reader.
    embedder:
        Embedding client; called once per document with all chunk texts.
    store:
        Chunk store; chunks are written one at a time, fail-fast.
    max_words_per_chunk:
        Chunker window size.
    """

    def __init__(
        self,
        extractor: TextExtractor,
        embedder: EmbeddingClient,
        store: ChunkStoreBase,
        *,
        max_words_per_chunk: int = DEFAULT_MAX_WORDS_PER_CHUNK,
    ) -> None:
        self.extractor = extractor
        self.embedder = embedder
        self.store = store
        self.max_words_per_chunk = max_words_per_chunk

    @classmethod
    def from_settings(cls, settings: Settings) -> IngestionPipeline:
        from rag_ingest.storage import build_chunk_store

        return cls(
            TextExtractor.from_settings(settings),
            EmbeddingClient.from_settings(settings),
            build_chunk_store(settings),
            max_words_per_chunk=settings.max_words_per_chunk,
        )

    async def ingest(self, request: IngestRequest) -> list[Chunk]:
        """Ingest the document described by *request*.

        Returns
        -------
        list[Chunk]
            The persisted chunks, in ``chunk_index`` order.

        Raises
        ------
        ValidationError
            A required request field is missing; nothing is fetched.
        ExtractionError, EmbeddingServiceError
            Raised before any chunk is written.
        PersistenceError
            A write failed; chunks before it remain stored.
        """
        request.require_fields()

        text = await self.extractor.extract(request.file_url)
        texts = chunk_text(text, self.max_words_per_chunk)
        logger.info(
            "Chunked %s into %d chunks (max_words=%d)",
            request.file_name,
            len(texts),
            self.max_words_per_chunk,
        )
        if not texts:
            logger.info("No text in %s; nothing to ingest", request.file_name)
            return []

        embeddings = await self.embedder.embed(texts)

        chunks = [
            Chunk(
                project_id=request.project_id,
                file_name=request.file_name,
                file_path=request.file_url,
                chunk_index=idx,
                text=segment,
                embedding=vector,
                embedding_model=self.embedder.model,
            )
            for idx, (segment, vector) in enumerate(zip(texts, embeddings, strict=True))
        ]

        persisted = await self.store.persist_all(chunks)
        logger.info(
            "Persisted %d chunks for %s (project=%s)",
            len(persisted),
            request.file_name,
            request.project_id,
        )
        return persisted
