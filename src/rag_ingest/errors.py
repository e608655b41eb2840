"""Exception taxonomy for the ingestion and presentation layers.

The ingestion endpoint maps :class:`ValidationError` to ``400`` and every
other :class:`RagIngestError` to ``500``.  :class:`PresentationParseError`
never leaves the presentation package.
"""

from __future__ import annotations


class RagIngestError(Exception):
    """Base class for all errors raised by this package."""


class ValidationError(RagIngestError):
    """Required request input is missing or empty."""


class ExtractionError(RagIngestError):
    """The source document could not be fetched."""

    def __init__(self, message: str, *, status: int | None = None) -> None:
        super().__init__(message)
        self.status = status


class EmbeddingServiceError(RagIngestError):
    """The embedding provider failed, or is not configured.

    Attributes
    ----------
    status:
        HTTP status returned by the provider (``None`` for transport
        failures and configuration errors).
    body:
        Raw response body, kept for diagnostics.
    is_configuration_error:
        ``True`` when no credential is configured and no call was made.
    """

    def __init__(
        self,
        message: str,
        *,
        status: int | None = None,
        body: str | None = None,
        is_configuration_error: bool = False,
    ) -> None:
        super().__init__(message)
        self.status = status
        self.body = body
        self.is_configuration_error = is_configuration_error

    @classmethod
    def missing_credential(cls) -> EmbeddingServiceError:
        return cls("Embedding provider API key is not configured", is_configuration_error=True)


class PersistenceError(RagIngestError):
    """A chunk write was rejected by the backing store."""

    def __init__(self, message: str, *, chunk_index: int | None = None) -> None:
        super().__init__(message)
        self.chunk_index = chunk_index


class PresentationParseError(RagIngestError):
    """A retrieval payload could not be decoded into a list of records."""
