"""
settings.py
===========
Configuration surface for the document Q&A service.

Values are read once from the environment (populated from `.env` by the
backend entry point) and frozen into a `Settings` instance that is passed
explicitly to every client and pipeline.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Optional, Tuple

from rag_pipeline.exceptions import ConfigurationError

EMBEDDING_BACKENDS = ("openai", "local")
CONTEXT_POLICIES = ("top", "concat")


def _clean_env(name: str, default: str = "") -> str:
    value = os.getenv(name, default)
    return value.strip().strip('"').strip("'")


def _optional_env(name: str) -> Optional[str]:
    value = _clean_env(name, "")
    return value or None


def _int_env(name: str, default: int) -> int:
    raw = _clean_env(name, str(default))
    try:
        return int(raw)
    except ValueError as exc:
        raise ConfigurationError(f"{name} must be an integer, got {raw!r}") from exc


def _float_env(name: str, default: float) -> float:
    raw = _clean_env(name, str(default))
    try:
        return float(raw)
    except ValueError as exc:
        raise ConfigurationError(f"{name} must be a number, got {raw!r}") from exc


@dataclass(frozen=True)
class Settings:
    # language-model service
    openai_api_key: str = ""
    openai_base_url: Optional[str] = None
    embedding_backend: str = "openai"
    embedding_model: str = "text-embedding-3-small"
    embedding_dim: int = 1536
    local_embed_model: str = "all-MiniLM-L6-v2"
    chat_model: str = "gpt-4o-mini"
    chat_temperature: float = 0.2

    # vector store
    chroma_host: str = "localhost"
    chroma_port: int = 8000
    chroma_api_key: Optional[str] = None
    collection_name: str = "pdf_collection"

    # pipelines
    retrieval_top_k: int = 3
    context_policy: str = "top"
    request_timeout_seconds: float = 60.0
    ingest_chunk_chars: int = 0
    ingest_chunk_overlap: int = 200

    # gateway
    max_upload_mb: int = 20
    cors_origins: Tuple[str, ...] = ("*",)
    port: int = 8080
    log_level: str = "INFO"

    def __post_init__(self) -> None:
        if self.embedding_backend not in EMBEDDING_BACKENDS:
            raise ConfigurationError(
                f"EMBEDDING_BACKEND must be one of {EMBEDDING_BACKENDS}, got {self.embedding_backend!r}"
            )
        if self.context_policy not in CONTEXT_POLICIES:
            raise ConfigurationError(
                f"CONTEXT_POLICY must be one of {CONTEXT_POLICIES}, got {self.context_policy!r}"
            )
        if self.retrieval_top_k < 1:
            raise ConfigurationError("RETRIEVAL_TOP_K must be >= 1")
        if self.embedding_dim < 1:
            raise ConfigurationError("EMBEDDING_DIM must be >= 1")
        if self.request_timeout_seconds <= 0:
            raise ConfigurationError("REQUEST_TIMEOUT_SECONDS must be positive")
        if self.ingest_chunk_chars < 0:
            raise ConfigurationError("INGEST_CHUNK_CHARS must be >= 0")
        if self.ingest_chunk_chars and not 0 <= self.ingest_chunk_overlap < self.ingest_chunk_chars:
            raise ConfigurationError("INGEST_CHUNK_OVERLAP must be smaller than INGEST_CHUNK_CHARS")

    @property
    def store_uses_tls(self) -> bool:
        """A vector-store credential selects the encrypted, authenticated transport."""
        return self.chroma_api_key is not None

    @property
    def max_upload_bytes(self) -> int:
        return self.max_upload_mb * 1024 * 1024

    @classmethod
    def from_env(cls) -> "Settings":
        origins = tuple(
            item.strip() for item in _clean_env("CORS_ORIGINS", "*").split(",") if item.strip()
        )
        return cls(
            openai_api_key          = _clean_env("OPENAI_API_KEY", ""),
            openai_base_url         = _optional_env("OPENAI_BASE_URL"),
            embedding_backend       = _clean_env("EMBEDDING_BACKEND", "openai").lower(),
            embedding_model         = _clean_env("EMBEDDING_MODEL", "text-embedding-3-small"),
            embedding_dim           = _int_env("EMBEDDING_DIM", 1536),
            local_embed_model       = _clean_env("LOCAL_EMBED_MODEL", "all-MiniLM-L6-v2"),
            chat_model              = _clean_env("CHAT_MODEL", "gpt-4o-mini"),
            chat_temperature        = _float_env("CHAT_TEMPERATURE", 0.2),
            chroma_host             = _clean_env("CHROMA_HOST", "localhost"),
            chroma_port             = _int_env("CHROMA_PORT", 8000),
            chroma_api_key          = _optional_env("CHROMA_API_KEY"),
            collection_name         = _clean_env("COLLECTION_NAME", "pdf_collection"),
            retrieval_top_k         = _int_env("RETRIEVAL_TOP_K", 3),
            context_policy          = _clean_env("CONTEXT_POLICY", "top").lower(),
            request_timeout_seconds = _float_env("REQUEST_TIMEOUT_SECONDS", 60.0),
            ingest_chunk_chars      = _int_env("INGEST_CHUNK_CHARS", 0),
            ingest_chunk_overlap    = _int_env("INGEST_CHUNK_OVERLAP", 200),
            max_upload_mb           = _int_env("MAX_UPLOAD_MB", 20),
            cors_origins            = origins or ("*",),
            port                    = _int_env("PORT", 8080),
            log_level               = _clean_env("LOG_LEVEL", "INFO").upper(),
        )
