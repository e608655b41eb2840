"""
Storage — chunk persistence behind a backend-agnostic interface.

Public surface
--------------
- :class:`ChunkStoreBase` — abstract backend.
- :class:`PostgrestChunkStore` — default Supabase REST backend.
- :class:`ChromaChunkStore` — Chroma backend (imported lazily).
- :func:`build_chunk_store` — pick a backend from settings.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from rag_ingest.storage.base import ChunkStoreBase
from rag_ingest.storage.postgrest_store import PostgrestChunkStore

if TYPE_CHECKING:
    from rag_ingest.config import Settings

__all__ = [
    "ChromaChunkStore",
    "ChunkStoreBase",
    "PostgrestChunkStore",
    "build_chunk_store",
]


def build_chunk_store(settings: Settings) -> ChunkStoreBase:
    """Return the backend named by ``settings.chunk_store_backend``."""
    backend = settings.chunk_store_backend.lower()
    if backend == "postgrest":
        return PostgrestChunkStore.from_settings(settings)
    if backend == "chroma":
        from rag_ingest.storage.chroma_store import ChromaChunkStore

        return ChromaChunkStore.from_settings(settings)
    raise ValueError(
        f"Unsupported chunk_store_backend={settings.chunk_store_backend!r}. "
        "Choose from: postgrest, chroma."
    )


def __getattr__(name: str):  # noqa: ANN001
    """Lazy-import ChromaChunkStore to avoid pulling in chromadb at import time."""
    if name == "ChromaChunkStore":
        from rag_ingest.storage.chroma_store import ChromaChunkStore

        return ChromaChunkStore
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
