"""PostgREST (Supabase REST) implementation of the chunk-store abstraction."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

import httpx

from rag_ingest.errors import PersistenceError
from rag_ingest.ingestion.models import Chunk
from rag_ingest.storage.base import ChunkStoreBase

if TYPE_CHECKING:
    from rag_ingest.config import Settings

logger = logging.getLogger(__name__)


class PostgrestChunkStore(ChunkStoreBase):
    """Insert chunk rows through the Supabase REST API.

    Parameters
    ----------
    url:
        Supabase project URL, e.g. ``https://xyz.supabase.co``.
    service_key:
        Service-role key, sent both as ``apikey`` and bearer token.
    table:
        Target table.
    timeout:
        Per-write timeout in seconds.
    client:
        Optional shared ``httpx.AsyncClient``.
    """

    def __init__(
        self,
        url: str,
        service_key: str,
        *,
        table: str = "document_chunks",
        timeout: float = 30.0,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        super().__init__(table)
        self._url = url.rstrip("/")
        self._service_key = service_key
        self._timeout = timeout
        self._client = client

    @classmethod
    def from_settings(cls, settings: Settings, client: httpx.AsyncClient | None = None) -> PostgrestChunkStore:
        return cls(
            settings.supabase_url,
            settings.supabase_service_role_key,
            table=settings.chunk_table,
            timeout=settings.store_timeout_seconds,
            client=client,
        )

    @property
    def endpoint(self) -> str:
        return f"{self._url}/rest/v1/{self.collection_name}"

    def _headers(self) -> dict[str, str]:
        return {
            "apikey": self._service_key,
            "Authorization": f"Bearer {self._service_key}",
            "Content-Type": "application/json",
            "Prefer": "return=representation",
        }

    async def _request(self, method: str, **kwargs: Any) -> httpx.Response:
        if self._client is not None:
            return await self._client.request(
                method, self.endpoint, headers=self._headers(), timeout=self._timeout, **kwargs
            )
        async with httpx.AsyncClient(timeout=self._timeout) as client:
            return await client.request(method, self.endpoint, headers=self._headers(), **kwargs)

    # -- ChunkStoreBase overrides ---------------------------------------------

    async def persist(self, chunk: Chunk) -> Chunk:
        if not (self._url and self._service_key):
            raise PersistenceError("Supabase configuration missing", chunk_index=chunk.chunk_index)

        try:
            resp = await self._request("POST", json=[chunk.to_record()])
        except httpx.HTTPError as exc:
            raise PersistenceError(f"DB insert failed: {exc}", chunk_index=chunk.chunk_index) from exc

        if not resp.is_success:
            raise PersistenceError(f"DB insert failed: {resp.text}", chunk_index=chunk.chunk_index)

        try:
            rows = resp.json() if resp.content else []
        except ValueError:
            logger.warning("Store returned a non-JSON body for chunk %d", chunk.chunk_index)
            rows = []
        if isinstance(rows, list) and rows and isinstance(rows[0], dict):
            stored_id = rows[0].get("id")
            if stored_id is not None:
                chunk = chunk.model_copy(update={"id": str(stored_id)})
        logger.debug("Stored chunk %d of %s as id=%s", chunk.chunk_index, chunk.file_name, chunk.id)
        return chunk

    async def health_check(self) -> bool:
        if not (self._url and self._service_key):
            return False
        try:
            resp = await self._request("GET", params={"select": "id", "limit": "1"})
            return resp.is_success
        except httpx.HTTPError:
            logger.warning("PostgREST health-check failed", exc_info=True)
            return False
