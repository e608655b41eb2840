"""Shared configuration loaded from environment / .env file.

Only the serving layer reads the :data:`settings` singleton.  Ingestion,
storage and presentation components take their options as explicit
constructor arguments (each offers a ``from_settings`` factory).
"""

from __future__ import annotations

from pydantic import Field
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application-wide settings, populated from env vars or .env file."""

    # Embedding provider (OpenAI-compatible /embeddings endpoint)
    openai_api_key: str = Field(default="", description="Credential for the embedding provider")
    embedding_model: str = Field(
        default="text-embedding-3-small",
        description="Embedding model identifier; stamped on every stored chunk",
    )
    embedding_base_url: str = Field(
        default="https://api.openai.com/v1",
        description=(
            "Base URL of the embeddings API.  Point it at any OpenAI-compatible "
            "server (vLLM, Azure proxy, ...) to swap providers."
        ),
    )
    embedding_dimensions: int | None = Field(
        default=None,
        description="Requested vector size; responses of another size are rejected",
    )
    embedding_timeout_seconds: float = 30.0
    embedding_max_retries: int = Field(default=3, ge=1, description="Total attempts per batch")
    embedding_backoff_seconds: float = Field(default=1.0, ge=0.0)

    # Extraction
    fetch_timeout_seconds: float = 60.0

    # Chunking
    max_words_per_chunk: int = Field(default=300, gt=0)

    # Chunk store
    chunk_store_backend: str = Field(default="postgrest", description="'postgrest' or 'chroma'")
    supabase_url: str = ""
    supabase_service_role_key: str = ""
    chunk_table: str = "document_chunks"
    store_timeout_seconds: float = 30.0

    chroma_host: str = "localhost"
    chroma_port: int = 8000
    chroma_collection: str = "document_chunks"

    # Serving
    ingest_timeout_seconds: float = Field(
        default=300.0,
        description="Upper bound for one ingestion run; 0 disables the bound",
    )
    cors_allow_origins: list[str] = ["*"]
    log_level: str = "INFO"

    # Presentation
    chunk_preview_chars: int = Field(default=120, gt=1)

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8"}


# Module-level instance used by the serving layer.
settings = Settings()
