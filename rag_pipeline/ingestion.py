"""
ingestion.py
============
Ingestion Pipeline: uploaded PDF → text → embedding → stored point.

One pass, no retries between stages:
  1. extract text (partial text from a partly readable file is accepted)
  2. reject an empty document
  3. embed (whole document, or fixed-size passages when splitting is enabled)
  4. ensure the collection exists
  5. insert one new point per passage with the text as payload

The temporary copy of an upload is removed on every exit path.
"""

from __future__ import annotations

import logging
import os
import tempfile
import uuid
from dataclasses import dataclass
from datetime import UTC, datetime
from pathlib import Path
from typing import Callable, Optional, Tuple

from rag_pipeline.chroma_client import DocumentChunk, VectorStoreClient
from rag_pipeline.chunker import split_text
from rag_pipeline.exceptions import EmptyDocument, RAGError
from rag_pipeline.pdf_extractor import extract_text

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class IngestionResult:
    success: bool
    characters: int = 0
    chunk_ids: Tuple[str, ...] = ()
    error_kind: Optional[str] = None
    message: str = ""

    @classmethod
    def failed(cls, exc: RAGError) -> "IngestionResult":
        return cls(success=False, error_kind=exc.kind, message=exc.user_message)


class IngestionPipeline:
    def __init__(
        self,
        embedder,
        store: VectorStoreClient,
        collection_name: str,
        extractor: Callable[[str], str] = extract_text,
        chunk_chars: int = 0,
        chunk_overlap: int = 0,
        metric: str = "cosine",
    ):
        self._embedder = embedder
        self._store = store
        self._extractor = extractor
        self.collection_name = collection_name
        self.chunk_chars = chunk_chars
        self.chunk_overlap = chunk_overlap
        self.metric = metric

    def ingest_bytes(self, content: bytes, filename: str = "document.pdf") -> IngestionResult:
        """Write an upload to a request-unique temp file, ingest it, always clean up."""
        tmp_path = ""
        try:
            with tempfile.NamedTemporaryFile(suffix=".pdf", delete=False, mode="wb") as tmp:
                tmp.write(content)
                tmp_path = tmp.name
            return self.ingest_file(tmp_path, source=filename)
        finally:
            if tmp_path and os.path.exists(tmp_path):
                os.unlink(tmp_path)

    def ingest_file(self, file_path: str, source: Optional[str] = None) -> IngestionResult:
        source = source or Path(file_path).name
        try:
            text = self._extractor(file_path)
            if not text or not text.strip():
                raise EmptyDocument(f"{source}: no extractable text")

            passages = split_text(text, self.chunk_chars, self.chunk_overlap)
            vectors = self._embedder.embed_many(passages)

            dimension = getattr(self._embedder, "dimension", None) or len(vectors[0])
            self._store.ensure_collection(self.collection_name, dimension, self.metric)

            ingested_at = datetime.now(UTC).isoformat(timespec="seconds")
            chunks = [
                DocumentChunk(
                    id      = str(uuid.uuid4()),
                    vector  = vector,
                    payload = {
                        "text":        passage,
                        "source":      source,
                        "char_count":  len(passage),
                        "chunk_index": index,
                        "chunk_count": len(passages),
                        "ingested_at": ingested_at,
                    },
                )
                for index, (passage, vector) in enumerate(zip(passages, vectors))
            ]
            self._store.upsert_many(self.collection_name, chunks)
        except RAGError as exc:
            logger.warning("Ingestion of %s failed [%s]: %s", source, exc.kind, exc)
            return IngestionResult.failed(exc)

        logger.info(
            "Ingested %s: %d chars in %d chunk(s) into '%s'.",
            source, len(text), len(chunks), self.collection_name,
        )
        return IngestionResult(
            success    = True,
            characters = len(text),
            chunk_ids  = tuple(chunk.id for chunk in chunks),
            message    = "File processed!",
        )
