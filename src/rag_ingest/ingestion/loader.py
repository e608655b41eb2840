"""Text extraction — download a stored document and return its text.

Only plain-text payloads are handled; the response body is decoded with the
charset announced by the server.
"""

from __future__ import annotations

import logging
import re
from typing import TYPE_CHECKING

import httpx

from rag_ingest.errors import ExtractionError

if TYPE_CHECKING:
    from rag_ingest.config import Settings

logger = logging.getLogger(__name__)

# Postgres TEXT rejects NUL, and other C0 controls are noise for embeddings.
_CONTROL_CHARS = re.compile(r"[\x00-\x08\x0b\x0c\x0e-\x1f]")


def _strip_control_chars(text: str) -> str:
    return _CONTROL_CHARS.sub("", text)


class TextExtractor:
    """Fetch document text from a URL.

    Parameters
    ----------
    timeout:
        Request timeout in seconds.
    client:
        Optional shared ``httpx.AsyncClient``.  When omitted a short-lived
        client is opened per call.
    """

    def __init__(self, *, timeout: float = 60.0, client: httpx.AsyncClient | None = None) -> None:
        self.timeout = timeout
        self._client = client

    @classmethod
    def from_settings(cls, settings: Settings, client: httpx.AsyncClient | None = None) -> TextExtractor:
        return cls(timeout=settings.fetch_timeout_seconds, client=client)

    async def extract(self, file_url: str) -> str:
        """Download *file_url* and return its text content."""
        try:
            if self._client is not None:
                resp = await self._client.get(file_url, timeout=self.timeout, follow_redirects=True)
            else:
                async with httpx.AsyncClient(timeout=self.timeout, follow_redirects=True) as client:
                    resp = await client.get(file_url)
        except httpx.HTTPError as exc:
            raise ExtractionError(f"File download failed: {exc}") from exc

        if not resp.is_success:
            logger.warning("Download of %s returned HTTP %d", file_url, resp.status_code)
            raise ExtractionError("File download failed", status=resp.status_code)

        text = _strip_control_chars(resp.text)
        logger.info("Extracted %d chars from %s", len(text), file_url)
        return text
