"""
Presentation — turn retrieval payloads back into typed chunks for display.

Public surface
--------------
- :func:`parse_retrieved_chunks` — lenient decode, never raises.
- :func:`try_parse_retrieved_chunks` — same, but reports malformed input.
- :func:`to_retrieved_chunks` — typed :class:`RetrievedChunk` view.
- :func:`render_retrieved_chunks`, :func:`render_bot_message` — Markdown output.
- :class:`ChunkRenderer` — the same, with the configured preview length.
"""

from rag_ingest.presentation.models import BotMessage, ParseResult, RetrievedChunk
from rag_ingest.presentation.parser import (
    parse_retrieved_chunks,
    to_retrieved_chunks,
    try_parse_retrieved_chunks,
)
from rag_ingest.presentation.renderer import ChunkRenderer, render_bot_message, render_retrieved_chunks

__all__ = [
    "BotMessage",
    "ChunkRenderer",
    "ParseResult",
    "RetrievedChunk",
    "parse_retrieved_chunks",
    "render_bot_message",
    "render_retrieved_chunks",
    "to_retrieved_chunks",
    "try_parse_retrieved_chunks",
]
