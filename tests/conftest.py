"""
Shared test fixtures.

Provides: an in-memory stand-in for the chromadb client API, deterministic
embedding and generation fakes that record their calls, a PipelineContext
assembled from them, and a tiny PDF builder.
"""

from __future__ import annotations

import hashlib
import math
from typing import Any, Dict, List, Optional

import pytest

from rag_pipeline.chroma_client import VectorStoreClient
from rag_pipeline.context import PipelineContext
from rag_pipeline.settings import Settings

DIM = 64


# ---------------------------------------------------------------------------
# Chroma client stand-in
# ---------------------------------------------------------------------------

class NotFoundError(Exception):
    """Same class name chromadb raises for a missing collection."""


class UniqueConstraintError(Exception):
    """Same class name chromadb raises when a collection already exists."""


class InvalidArgumentError(Exception):
    """Same class name chromadb raises for rejected arguments."""


def _cosine_distance(a: List[float], b: List[float]) -> float:
    dot = sum(x * y for x, y in zip(a, b))
    na = math.sqrt(sum(x * x for x in a))
    nb = math.sqrt(sum(y * y for y in b))
    if na == 0.0 or nb == 0.0:
        return 1.0
    return 1.0 - max(min(dot / (na * nb), 1.0), -1.0)


class FakeCollection:
    def __init__(self, name: str, metadata: Optional[Dict[str, Any]] = None):
        self.name = name
        self.metadata = metadata
        self.rows: List[Dict[str, Any]] = []

    def count(self) -> int:
        return len(self.rows)

    def add(self, ids, embeddings, documents, metadatas=None) -> None:
        metadatas = metadatas or [None] * len(ids)
        for row_id, embedding, document, metadata in zip(ids, embeddings, documents, metadatas):
            self.rows.append({
                "id": row_id, "embedding": embedding, "document": document, "metadata": metadata,
            })

    def query(self, query_embeddings, n_results, include=None):
        if n_results > len(self.rows):
            raise ValueError(f"n_results {n_results} exceeds {len(self.rows)} elements")
        query_vec = query_embeddings[0]
        ranked = sorted(self.rows, key=lambda row: _cosine_distance(query_vec, row["embedding"]))
        top = ranked[:n_results]
        return {
            "ids":       [[row["id"] for row in top]],
            "documents": [[row["document"] for row in top]],
            "metadatas": [[row["metadata"] for row in top]],
            "distances": [[_cosine_distance(query_vec, row["embedding"]) for row in top]],
        }


class FakeChromaClient:
    def __init__(self):
        self.collections: Dict[str, FakeCollection] = {}
        self.create_calls = 0

    def get_collection(self, name: str) -> FakeCollection:
        if name not in self.collections:
            raise NotFoundError(f"Collection [{name}] does not exist")
        return self.collections[name]

    def create_collection(self, name: str, metadata=None) -> FakeCollection:
        self.create_calls += 1
        if name in self.collections:
            raise UniqueConstraintError(f"Collection {name} already exists")
        self.collections[name] = FakeCollection(name, metadata)
        return self.collections[name]


# ---------------------------------------------------------------------------
# Language-model fakes
# ---------------------------------------------------------------------------

def hash_embedding(text: str, dim: int = DIM) -> List[float]:
    """Deterministic bag-of-words vector: shared words → high cosine similarity."""
    values = [0.0] * dim
    for token in text.lower().replace("?", " ").replace(".", " ").split():
        digest = hashlib.sha256(token.encode("utf-8")).digest()
        idx = int.from_bytes(digest[:2], "big") % dim
        values[idx] += 1.0
    norm = sum(v * v for v in values) ** 0.5
    return [v / norm for v in values] if norm else values


class FakeEmbedder:
    def __init__(self, dimension: int = DIM):
        self.dimension = dimension
        self.calls: List[List[str]] = []
        self.error: Optional[Exception] = None

    def embed_many(self, texts: List[str]) -> List[List[float]]:
        self.calls.append(list(texts))
        if self.error is not None:
            raise self.error
        return [hash_embedding(text, self.dimension) for text in texts]

    def embed(self, text: str) -> List[float]:
        return self.embed_many([text])[0]


class FakeGenerator:
    def __init__(self, reply: str = "Paris."):
        self.reply = reply
        self.prompts: List[Any] = []
        self.error: Optional[Exception] = None

    def generate(self, prompt) -> str:
        self.prompts.append(prompt)
        if self.error is not None:
            raise self.error
        return self.reply


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------

@pytest.fixture
def settings() -> Settings:
    return Settings(embedding_dim=DIM, collection_name="test_collection", request_timeout_seconds=5.0)


@pytest.fixture
def chroma() -> FakeChromaClient:
    return FakeChromaClient()


@pytest.fixture
def store(chroma: FakeChromaClient) -> VectorStoreClient:
    return VectorStoreClient(client=chroma)


@pytest.fixture
def embedder() -> FakeEmbedder:
    return FakeEmbedder()


@pytest.fixture
def generator() -> FakeGenerator:
    return FakeGenerator()


@pytest.fixture
def pipeline(settings, embedder, store, generator) -> PipelineContext:
    return PipelineContext.assemble(settings, embedder=embedder, store=store, generator=generator)


# ---------------------------------------------------------------------------
# PDF builder
# ---------------------------------------------------------------------------

def make_pdf(*page_texts: str) -> bytes:
    """Build a minimal valid PDF with one Helvetica text line per page."""
    n_pages = len(page_texts)
    font_obj = 3 + 2 * n_pages
    objects: List[bytes] = [
        b"<< /Type /Catalog /Pages 2 0 R >>",
        (
            "<< /Type /Pages /Kids [" + " ".join(f"{3 + 2 * i} 0 R" for i in range(n_pages))
            + f"] /Count {n_pages} >>"
        ).encode(),
    ]
    for i, text in enumerate(page_texts):
        escaped = text.replace("\\", "\\\\").replace("(", "\\(").replace(")", "\\)")
        stream = f"BT /F1 12 Tf 72 720 Td ({escaped}) Tj ET".encode("latin-1")
        objects.append(
            (
                f"<< /Type /Page /Parent 2 0 R /MediaBox [0 0 612 792] "
                f"/Resources << /Font << /F1 {font_obj} 0 R >> >> /Contents {4 + 2 * i} 0 R >>"
            ).encode()
        )
        objects.append(b"<< /Length %d >>\nstream\n" % len(stream) + stream + b"\nendstream")
    objects.append(b"<< /Type /Font /Subtype /Type1 /BaseFont /Helvetica >>")

    out = bytearray(b"%PDF-1.4\n")
    offsets = []
    for number, body in enumerate(objects, start=1):
        offsets.append(len(out))
        out += b"%d 0 obj\n" % number + body + b"\nendobj\n"
    xref_at = len(out)
    out += b"xref\n0 %d\n" % (len(objects) + 1)
    out += b"0000000000 65535 f \n"
    for offset in offsets:
        out += b"%010d 00000 n \n" % offset
    out += b"trailer\n<< /Size %d /Root 1 0 R >>\nstartxref\n%d\n%%%%EOF\n" % (len(objects) + 1, xref_at)
    return bytes(out)


@pytest.fixture
def pdf_bytes() -> bytes:
    return make_pdf("The capital of France is Paris.")
