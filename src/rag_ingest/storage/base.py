"""Abstract base class for chunk-store backends.

Adding a backend only requires subclassing :class:`ChunkStoreBase` and
implementing :meth:`~ChunkStoreBase.persist` and
:meth:`~ChunkStoreBase.health_check`.  Ordering and fail-fast behaviour
of multi-chunk writes live here, so every backend shares them.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from collections.abc import Iterable

from rag_ingest.errors import PersistenceError
from rag_ingest.ingestion.models import Chunk

logger = logging.getLogger(__name__)


class ChunkStoreBase(ABC):
    """Backend-agnostic chunk persistence.

    Parameters
    ----------
    collection_name:
        Logical name of the table / collection chunks are written to.
    """

    def __init__(self, collection_name: str) -> None:
        self.collection_name = collection_name

    # -- required overrides ---------------------------------------------------

    @abstractmethod
    async def persist(self, chunk: Chunk) -> Chunk:
        """Write a single chunk and return what was stored.

        The returned chunk carries any store-assigned fields (``id``).
        Raises :class:`~rag_ingest.errors.PersistenceError` on failure.
        """
        ...

    @abstractmethod
    async def health_check(self) -> bool:
        """Return ``True`` when the backend is reachable and ready."""
        ...

    # -- shared behaviour -----------------------------------------------------

    async def persist_all(self, chunks: Iterable[Chunk]) -> list[Chunk]:
        """Write *chunks* one at a time in ``chunk_index`` order.

        Writes are not atomic: on the first failure the remaining chunks
        are skipped and the error propagates, leaving the chunks already
        written in place.
        """
        ordered = sorted(chunks, key=lambda c: c.chunk_index)
        persisted: list[Chunk] = []
        for chunk in ordered:
            try:
                persisted.append(await self.persist(chunk))
            except PersistenceError as exc:
                if exc.chunk_index is None:
                    exc.chunk_index = chunk.chunk_index
                logger.error(
                    "Persisted %d of %d chunks before failure at chunk %d",
                    len(persisted),
                    len(ordered),
                    chunk.chunk_index,
                )
                raise
        return persisted
