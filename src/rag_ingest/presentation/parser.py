"""Lenient decoding of retrieval payloads.

Retrieval results reach the chat view either as a native list or as the
JSON text a database column stored.  A malformed payload must never break
the chat view, so these helpers degrade to an empty list instead of
raising.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Iterable
from typing import Any

import pydantic

from rag_ingest.errors import PresentationParseError
from rag_ingest.presentation.models import ParseResult, RetrievedChunk

logger = logging.getLogger(__name__)


def _decode(raw: Any) -> list[Any]:
    """Decode *raw* into a list or raise :class:`PresentationParseError`."""
    if isinstance(raw, list):
        return raw
    if isinstance(raw, tuple):
        return list(raw)
    if isinstance(raw, (bytes, bytearray)):
        try:
            raw = raw.decode("utf-8")
        except UnicodeDecodeError as exc:
            raise PresentationParseError("payload is not UTF-8") from exc
    if isinstance(raw, str):
        try:
            decoded = json.loads(raw)
        except (ValueError, RecursionError) as exc:
            raise PresentationParseError(f"payload is not JSON: {exc}") from exc
        if not isinstance(decoded, list):
            raise PresentationParseError(f"payload decodes to {type(decoded).__name__}, not a list")
        return decoded
    raise PresentationParseError(f"unsupported payload type {type(raw).__name__}")


def _is_absent(raw: Any) -> bool:
    # Truth-test builtins only; other objects may have an ambiguous __bool__.
    if raw is None:
        return True
    if isinstance(raw, (str, bytes, bytearray, list, tuple, dict, int, float)):
        return not raw
    return False


def try_parse_retrieved_chunks(raw: Any) -> ParseResult:
    """Decode *raw* and report whether it was malformed.

    Absent payloads (``None``, ``""``, ...) are "nothing retrieved", not
    malformed.
    """
    if _is_absent(raw):
        return ParseResult()
    try:
        return ParseResult(records=_decode(raw))
    except PresentationParseError as exc:
        logger.warning("Ignoring malformed retrieved-chunks payload: %s", exc)
        return ParseResult(malformed=True)


def parse_retrieved_chunks(raw: Any) -> list[Any]:
    """Return the retrieved records in *raw*, or ``[]`` when there are none.

    Lists are returned unchanged; JSON text is decoded and must yield a
    list.  Never raises.
    """
    return try_parse_retrieved_chunks(raw).records


def to_retrieved_chunks(records: Iterable[Any]) -> list[RetrievedChunk]:
    """Validate *records* into :class:`RetrievedChunk` objects.

    Records that do not fit the read shape are skipped.
    """
    chunks: list[RetrievedChunk] = []
    for position, record in enumerate(records, 1):
        if isinstance(record, RetrievedChunk):
            chunks.append(record)
            continue
        try:
            chunks.append(RetrievedChunk.model_validate(record))
        except pydantic.ValidationError as exc:
            logger.debug("Skipping retrieved chunk %d: %s", position, exc)
    return chunks
