"""Markdown rendering of a chat answer and its retrieved chunks."""

from __future__ import annotations

from typing import TYPE_CHECKING

from rag_ingest.presentation.models import BotMessage, RetrievedChunk

if TYPE_CHECKING:
    from rag_ingest.config import Settings

DEFAULT_PREVIEW_CHARS = 120


def _preview(text: str, limit: int) -> str:
    """Single-line preview of *text*, cut to *limit* characters."""
    flat = " ".join(text.split())
    if len(flat) <= limit:
        return flat
    return flat[: limit - 1].rstrip() + "…"


def render_retrieved_chunks(
    chunks: list[RetrievedChunk],
    *,
    preview_chars: int = DEFAULT_PREVIEW_CHARS,
) -> str:
    """Render *chunks* as a collapsible ``<details>`` block.

    Each entry shows its 1-based position, the score when one is present,
    and a truncated text preview.  Returns ``""`` for an empty list.
    """
    if not chunks:
        return ""

    lines = [
        "<details>",
        f"<summary>View retrieved chunks ({len(chunks)})</summary>",
        "",
    ]
    for position, chunk in enumerate(chunks, 1):
        header = f"**Chunk {position}**"
        if chunk.score is not None:
            header += f" (score: {chunk.score:g})"
        lines.append(f"- {header}: {_preview(chunk.text, preview_chars)}")
    lines += ["", "</details>"]
    return "\n".join(lines)


def render_bot_message(message: BotMessage, *, preview_chars: int = DEFAULT_PREVIEW_CHARS) -> str:
    """Render an answer, its usage line, and (if any) its retrieved chunks."""
    usage = [f"{message.tokens_used or 0} tokens"]
    if message.response_time_ms:
        usage.append(f"{message.response_time_ms}ms")
    if message.llm_provider:
        usage.append(message.llm_provider)

    parts = [message.response_text.strip(), f"_{' · '.join(usage)}_"]
    if message.retrieved_chunks:
        parts.append(render_retrieved_chunks(message.retrieved_chunks, preview_chars=preview_chars))
    return "\n\n".join(parts)


class ChunkRenderer:
    """Renderer bound to a configured preview length."""

    def __init__(self, preview_chars: int = DEFAULT_PREVIEW_CHARS) -> None:
        self.preview_chars = preview_chars

    @classmethod
    def from_settings(cls, settings: Settings) -> ChunkRenderer:
        return cls(preview_chars=settings.chunk_preview_chars)

    def render_chunks(self, chunks: list[RetrievedChunk]) -> str:
        return render_retrieved_chunks(chunks, preview_chars=self.preview_chars)

    def render_message(self, message: BotMessage) -> str:
        return render_bot_message(message, preview_chars=self.preview_chars)
