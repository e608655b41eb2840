"""Typed views of retrieval payloads shown next to a chat answer."""

from __future__ import annotations

from typing import Any

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator


class RetrievedChunk(BaseModel):
    """One chunk returned by retrieval, as displayed to the user.

    ``text`` also accepts the stored column name ``chunk_text`` and the
    vector-store name ``content``.
    """

    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    id: str | None = None
    text: str = Field(validation_alias=AliasChoices("text", "chunk_text", "content"))
    file_name: str | None = None
    file_path: str | None = None
    score: float | None = None

    @field_validator("id", mode="before")
    @classmethod
    def _coerce_id(cls, value: Any) -> Any:
        if isinstance(value, int) and not isinstance(value, bool):
            return str(value)
        return value


class ParseResult(BaseModel):
    """Outcome of decoding a retrieval payload.

    Attributes
    ----------
    records:
        Decoded records; empty when nothing was retrieved *or* when the
        payload was malformed.
    malformed:
        ``True`` when the payload could not be decoded into a list.
    """

    records: list[Any] = Field(default_factory=list)
    malformed: bool = False


class BotMessage(BaseModel):
    """A generated answer together with the chunks retrieved for it."""

    response_text: str
    tokens_used: int | None = None
    response_time_ms: int | None = None
    llm_provider: str | None = None
    retrieved_chunks: list[RetrievedChunk] = Field(default_factory=list)

    @field_validator("retrieved_chunks", mode="before")
    @classmethod
    def _parse_chunks(cls, value: Any) -> list[RetrievedChunk]:
        from rag_ingest.presentation.parser import parse_retrieved_chunks, to_retrieved_chunks

        return to_retrieved_chunks(parse_retrieved_chunks(value))
