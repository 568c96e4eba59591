"""
embedder.py
===========
Convert text strings into dense embedding vectors.

Primary:  OpenAI-compatible embeddings endpoint (e.g. text-embedding-3-small, 1536-d).
Optional: sentence-transformers model run in-process (EMBEDDING_BACKEND=local).

No retries and no silent fallbacks: provider failures are translated into the
Upstream* error kinds and surfaced to the caller, which decides what to do.
"""

from __future__ import annotations

import logging
from threading import Lock
from typing import Any, List, Optional

import openai
from openai import OpenAI

from rag_pipeline.exceptions import (
    UpstreamError,
    UpstreamRejected,
    UpstreamTransient,
    UpstreamUnavailable,
)
from rag_pipeline.settings import Settings

logger = logging.getLogger(__name__)


def translate_openai_error(exc: Exception, operation: str) -> UpstreamError:
    """Map an `openai` SDK exception onto the upstream error taxonomy."""
    if isinstance(exc, (openai.APITimeoutError, openai.APIConnectionError)):
        return UpstreamUnavailable(f"{operation}: {exc}")
    if isinstance(exc, openai.RateLimitError):
        return UpstreamTransient(f"{operation}: rate limited ({exc})")
    if isinstance(exc, openai.APIStatusError):
        if exc.status_code >= 500:
            return UpstreamTransient(f"{operation}: HTTP {exc.status_code}")
        return UpstreamRejected(f"{operation}: HTTP {exc.status_code} ({exc.message})")
    return UpstreamRejected(f"{operation}: {exc}")


def build_openai_client(settings: Settings) -> OpenAI:
    """Shared OpenAI client for the embedding and generation wrappers."""
    # An unset key still lets the process start; calls then fail with 401 (UpstreamRejected).
    return OpenAI(
        api_key     = settings.openai_api_key or "missing",
        base_url    = settings.openai_base_url,
        timeout     = settings.request_timeout_seconds,
        max_retries = 0,
    )


class EmbeddingClient:
    """Embedding Client over the OpenAI embeddings endpoint."""

    def __init__(self, client: Any, model: str, dimension: int):
        self._client = client
        self.model = model
        self.dimension = dimension

    @classmethod
    def from_settings(cls, settings: Settings, client: Optional[OpenAI] = None) -> "EmbeddingClient":
        return cls(
            client    = client or build_openai_client(settings),
            model     = settings.embedding_model,
            dimension = settings.embedding_dim,
        )

    def embed_many(self, texts: List[str]) -> List[List[float]]:
        """Return one vector per input text, in input order."""
        if not texts:
            return []
        try:
            response = self._client.embeddings.create(model=self.model, input=texts)
        except openai.OpenAIError as exc:
            raise translate_openai_error(exc, "embedding") from exc

        data = sorted(response.data, key=lambda item: item.index)
        vectors = [list(item.embedding) for item in data]
        if len(vectors) != len(texts):
            raise UpstreamRejected(
                f"embedding: expected {len(texts)} vectors, provider returned {len(vectors)}"
            )
        logger.debug("Embedded %d text(s) with %s.", len(texts), self.model)
        return vectors

    def embed(self, text: str) -> List[float]:
        """Embed a single string. Empty input is passed through to the provider."""
        return self.embed_many([text])[0]


class LocalEmbeddingClient:
    """sentence-transformers backend; the model is loaded lazily on first use."""

    def __init__(self, model_name: str):
        self.model = model_name
        self._st_model = None
        self._model_lock = Lock()
        self.dimension: Optional[int] = None

    def _get_model(self):
        if self._st_model is None:
            with self._model_lock:
                if self._st_model is None:
                    from sentence_transformers import SentenceTransformer  # type: ignore
                    self._st_model = SentenceTransformer(self.model)
                    self.dimension = self._st_model.get_sentence_embedding_dimension()
                    logger.info("Embedder backend: sentence_transformers (%s)", self.model)
        return self._st_model

    def embed_many(self, texts: List[str]) -> List[List[float]]:
        if not texts:
            return []
        try:
            model = self._get_model()
            vecs = model.encode(
                texts,
                batch_size=32,
                show_progress_bar=False,
                convert_to_numpy=True,
                normalize_embeddings=True,
            )
        except (OSError, ImportError) as exc:
            raise UpstreamUnavailable(f"local embedding model {self.model}: {exc}") from exc
        return [v.tolist() for v in vecs]

    def embed(self, text: str) -> List[float]:
        return self.embed_many([text])[0]


def build_embedder(settings: Settings, client: Optional[OpenAI] = None):
    if settings.embedding_backend == "local":
        return LocalEmbeddingClient(settings.local_embed_model)
    return EmbeddingClient.from_settings(settings, client=client)
