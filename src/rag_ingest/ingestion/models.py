"""Domain models shared by the ingestion pipeline and the chunk stores."""

from __future__ import annotations

import json
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from rag_ingest.errors import ValidationError


class IngestRequest(BaseModel):
    """Body of an ingestion request.

    Fields are optional at the model level so that a missing value is
    reported as :class:`~rag_ingest.errors.ValidationError` by
    :meth:`require_fields` instead of a schema error.
    """

    model_config = ConfigDict(populate_by_name=True)

    file_url: str | None = Field(default=None, alias="fileUrl")
    file_name: str | None = Field(default=None, alias="fileName")
    project_id: str | None = Field(default=None, alias="projectId")

    def require_fields(self) -> None:
        if not (self.file_url and self.file_name and self.project_id):
            raise ValidationError("Missing required fields")


class Chunk(BaseModel):
    """A persisted (or about to be persisted) document chunk.

    Attributes
    ----------
    id:
        Store-assigned identifier; ``None`` until the chunk is written.
    project_id:
        Owning project — partitions the retrieval space.
    file_name / file_path:
        Provenance of the source document.
    chunk_index:
        Zero-based position within the source document.
    text:
        Literal chunk content.
    embedding:
        Vector produced by ``embedding_model``.
    embedding_model:
        Model identifier, so vectors from different models are never mixed
        unknowingly.
    score:
        Relevance score; only set on retrieval views.
    """

    model_config = ConfigDict(frozen=True)

    id: str | None = None
    project_id: str
    file_name: str
    file_path: str
    chunk_index: int = Field(ge=0)
    text: str = Field(min_length=1)
    embedding: list[float]
    embedding_model: str | None = None
    score: float | None = None

    def to_record(self) -> dict[str, Any]:
        """Return the row written to the ``document_chunks`` table."""
        record: dict[str, Any] = {
            "project_id": self.project_id,
            "file_name": self.file_name,
            "file_path": self.file_path,
            "chunk_index": self.chunk_index,
            "chunk_text": self.text,
            "embedding": self.embedding,
        }
        if self.embedding_model:
            record["metadata"] = {"embedding_model": self.embedding_model}
        return record

    @classmethod
    def from_record(cls, row: dict[str, Any]) -> Chunk:
        """Rebuild a chunk from a stored row.

        The embedding may come back as JSON text when the column is not a
        native vector type.
        """
        embedding = row.get("embedding") or []
        if isinstance(embedding, str):
            embedding = json.loads(embedding)
        metadata = row.get("metadata") or {}
        return cls(
            id=str(row["id"]) if row.get("id") is not None else None,
            project_id=row["project_id"],
            file_name=row["file_name"],
            file_path=row["file_path"],
            chunk_index=row["chunk_index"],
            text=row.get("chunk_text") or row["text"],
            embedding=embedding,
            embedding_model=metadata.get("embedding_model"),
            score=row.get("score"),
        )
