"""FastAPI application exposing document ingestion over HTTP."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import AsyncIterator, Callable
from contextlib import asynccontextmanager

import pydantic
from fastapi import Depends, FastAPI, Request, Response
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from rag_ingest.config import settings
from rag_ingest.errors import ValidationError
from rag_ingest.ingestion.embedder import EmbeddingClient
from rag_ingest.ingestion.models import IngestRequest
from rag_ingest.ingestion.pipeline import IngestionPipeline

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(_: FastAPI) -> AsyncIterator[None]:
    logging.basicConfig(level=settings.log_level)
    yield


app = FastAPI(
    title="RAG Ingest API",
    version="0.1.0",
    description="Chunk, embed and store uploaded documents for retrieval.",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_allow_origins,
    allow_methods=["GET", "POST", "OPTIONS"],
    allow_headers=["authorization", "x-client-info", "apikey", "content-type"],
)


# ── Request / Response schemas ────────────────────────────────────────
class IngestResponse(BaseModel):
    """Number of chunks written for the document."""

    chunks: int


class EmbeddingResponse(BaseModel):
    embedding: list[float]


# ── Dependencies (overridable in tests) ───────────────────────────────
def build_pipeline() -> IngestionPipeline:
    return IngestionPipeline.from_settings(settings)


def get_pipeline_factory() -> Callable[[], IngestionPipeline]:
    """Return the pipeline builder; called only after the body validates."""
    return build_pipeline


def get_embedding_client() -> EmbeddingClient:
    return EmbeddingClient.from_settings(settings)


def _error(message: str, status_code: int) -> JSONResponse:
    return JSONResponse({"error": message}, status_code=status_code)


async def _read_json_object(request: Request) -> dict:
    try:
        body = await request.json()
    except ValueError as exc:
        raise ValidationError("Invalid JSON body") from exc
    if not isinstance(body, dict):
        raise ValidationError("Invalid JSON body")
    return body


# ── Routes ────────────────────────────────────────────────────────────
@app.get("/health")
async def health() -> dict[str, str]:
    """Liveness probe."""
    return {"status": "ok"}


@app.options("/ingest")
@app.options("/embedding")
async def preflight() -> Response:
    """Answer CORS preflight requests with an empty success."""
    return Response(status_code=200)


@app.post("/ingest", response_model=IngestResponse)
async def ingest(
    request: Request,
    make_pipeline: Callable[[], IngestionPipeline] = Depends(get_pipeline_factory),
) -> Response:
    """Chunk, embed and store one uploaded document."""
    try:
        ingest_request = IngestRequest.model_validate(await _read_json_object(request))
        ingest_request.require_fields()
        pipeline = make_pipeline()
        run = pipeline.ingest(ingest_request)
        if settings.ingest_timeout_seconds > 0:
            persisted = await asyncio.wait_for(run, timeout=settings.ingest_timeout_seconds)
        else:
            persisted = await run
    except ValidationError as exc:
        return _error(str(exc), 400)
    except pydantic.ValidationError:
        return _error("Missing required fields", 400)
    except asyncio.TimeoutError:
        logger.error("Ingestion timed out after %.0fs", settings.ingest_timeout_seconds)
        return _error(f"Ingestion timed out after {settings.ingest_timeout_seconds:g}s", 500)
    except Exception as exc:
        logger.exception("Ingestion failed")
        return _error(str(exc) or type(exc).__name__, 500)

    return JSONResponse(IngestResponse(chunks=len(persisted)).model_dump())


@app.post("/embedding", response_model=EmbeddingResponse)
async def embedding(request: Request, client: EmbeddingClient = Depends(get_embedding_client)) -> Response:
    """Embed a single text, e.g. a user query before retrieval."""
    try:
        body = await _read_json_object(request)
    except ValidationError as exc:
        return _error(str(exc), 400)
    text = body.get("input")
    if not text or not isinstance(text, str):
        return _error("Missing or invalid input", 400)

    try:
        vector = await client.embed_query(text)
    except Exception as exc:
        logger.exception("Embedding request failed")
        return _error(str(exc) or type(exc).__name__, 500)

    return JSONResponse(EmbeddingResponse(embedding=vector).model_dump())
