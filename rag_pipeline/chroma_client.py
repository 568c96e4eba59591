"""
chroma_client.py
================
Vector Store Client: collection management, point upsert and similarity
search against a Chroma server.

Transport is chosen by the presence of a credential:
  • no CHROMA_API_KEY  → plain HTTP to a local server
  • CHROMA_API_KEY set → HTTPS, token attached to every call as a header

The underlying chromadb client is created lazily on first use (its constructor
already talks to the server) and then reused for the life of the process.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from threading import Lock
from typing import Any, Dict, List, Optional, Sequence

from rag_pipeline.exceptions import (
    CollectionMissing,
    StoreError,
    StoreRejected,
    StoreUnavailable,
)
from rag_pipeline.settings import Settings

logger = logging.getLogger(__name__)

_TOKEN_HEADER = "x-chroma-token"
_DIMENSION_KEY = "dimension"
_SPACE_KEY = "hnsw:space"

# Message shapes chromadb uses across releases: "Collection [x] does not exist",
# "Collection x does not exist.", "Collection x not found".
_MISSING_COLLECTION_RE = re.compile(
    r"\bcollection\b.*\b(does not exists?|not found)\b", re.IGNORECASE | re.DOTALL
)
_MISSING_COLLECTION_TYPES = ("NotFoundError", "InvalidCollectionException", "ValueError")
_REJECTION_TYPES = ("InvalidArgumentError", "InvalidDimensionException")


@dataclass(frozen=True)
class DocumentChunk:
    """A point written to the store. `payload["text"]` holds the passage."""

    id: str
    vector: List[float]
    payload: Dict[str, Any] = field(default_factory=dict)

    @property
    def text(self) -> str:
        return str(self.payload.get("text", ""))


@dataclass(frozen=True)
class SearchHit:
    id: str
    text: str
    payload: Dict[str, Any]
    score: float


def _is_missing_collection(exc: Exception) -> bool:
    return (
        type(exc).__name__ in _MISSING_COLLECTION_TYPES
        and _MISSING_COLLECTION_RE.search(str(exc)) is not None
    )


def _is_already_exists(exc: Exception) -> bool:
    if type(exc).__name__ == "UniqueConstraintError":
        return True
    return "already exists" in str(exc).lower()


def _translate(exc: Exception, operation: str) -> StoreError:
    if isinstance(exc, StoreError):
        return exc
    if _is_missing_collection(exc):
        return CollectionMissing(f"{operation}: {exc}")
    if type(exc).__name__ in _REJECTION_TYPES and "dimension" in str(exc).lower():
        return StoreRejected(f"{operation}: {exc}")
    return StoreUnavailable(f"{operation}: {exc}")


class VectorStoreClient:
    """Thread-safe wrapper; holds no per-request state."""

    def __init__(
        self,
        host: str = "localhost",
        port: int = 8000,
        api_key: Optional[str] = None,
        client: Optional[Any] = None,
    ):
        self.host = host
        self.port = port
        self._api_key = api_key
        self._client = client
        self._client_lock = Lock()

    @classmethod
    def from_settings(cls, settings: Settings, client: Optional[Any] = None) -> "VectorStoreClient":
        return cls(
            host    = settings.chroma_host,
            port    = settings.chroma_port,
            api_key = settings.chroma_api_key,
            client  = client,
        )

    @property
    def uses_tls(self) -> bool:
        return self._api_key is not None

    # ------------------------------------------------------------------
    # Connection
    # ------------------------------------------------------------------

    def _connect(self) -> Any:
        import chromadb
        from chromadb.config import Settings as ChromaSettings

        headers = {_TOKEN_HEADER: self._api_key} if self._api_key else None
        client = chromadb.HttpClient(
            host     = self.host,
            port     = self.port,
            ssl      = self.uses_tls,
            headers  = headers,
            settings = ChromaSettings(anonymized_telemetry=False),
        )
        logger.info(
            "Vector store connected: %s:%d [%s]",
            self.host, self.port, "tls+token" if self.uses_tls else "plain",
        )
        return client

    def _get_client(self) -> Any:
        if self._client is None:
            with self._client_lock:
                if self._client is None:
                    try:
                        self._client = self._connect()
                    except Exception as exc:
                        raise StoreUnavailable(f"connect {self.host}:{self.port}: {exc}") from exc
        return self._client

    def _get_collection(self, name: str) -> Any:
        client = self._get_client()
        try:
            return client.get_collection(name=name)
        except Exception as exc:
            raise _translate(exc, f"get collection '{name}'") from exc

    # ------------------------------------------------------------------
    # Operations
    # ------------------------------------------------------------------

    def ensure_collection(self, name: str, dimensionality: int, metric: str = "cosine") -> None:
        """
        Create the collection if absent. An existing collection with the same
        configuration is success; one configured differently is StoreRejected.
        """
        client = self._get_client()
        try:
            collection = client.get_collection(name=name)
        except Exception as exc:
            if not _is_missing_collection(exc):
                raise _translate(exc, f"get collection '{name}'") from exc
            collection = self._create_collection(client, name, dimensionality, metric)

        metadata = collection.metadata or {}
        existing_dim = metadata.get(_DIMENSION_KEY)
        existing_space = metadata.get(_SPACE_KEY, metric)
        if (existing_dim is not None and int(existing_dim) != dimensionality) or existing_space != metric:
            raise StoreRejected(
                f"collection '{name}' is configured as {existing_dim}-d/{existing_space}, "
                f"requested {dimensionality}-d/{metric}"
            )

    def _create_collection(self, client: Any, name: str, dimensionality: int, metric: str) -> Any:
        try:
            collection = client.create_collection(
                name     = name,
                metadata = {_SPACE_KEY: metric, _DIMENSION_KEY: dimensionality},
            )
            logger.info("Vector collection '%s' created (%d-d, %s).", name, dimensionality, metric)
            return collection
        except Exception as exc:
            if not _is_already_exists(exc):
                raise _translate(exc, f"create collection '{name}'") from exc
        # Another request created it between our lookup and create.
        return self._get_collection(name)

    def upsert(self, collection_name: str, chunk: DocumentChunk) -> None:
        self.upsert_many(collection_name, [chunk])

    def upsert_many(self, collection_name: str, chunks: Sequence[DocumentChunk]) -> None:
        """Insert new points. Ids are generated by the caller and never reused."""
        if not chunks:
            return
        collection = self._get_collection(collection_name)

        expected = (collection.metadata or {}).get(_DIMENSION_KEY)
        if expected is not None:
            for chunk in chunks:
                if len(chunk.vector) != int(expected):
                    raise StoreRejected(
                        f"vector length {len(chunk.vector)} does not match collection "
                        f"'{collection_name}' dimensionality {expected}"
                    )

        metadatas = [
            {key: value for key, value in chunk.payload.items() if key != "text"} or None
            for chunk in chunks
        ]
        try:
            collection.add(
                ids        = [chunk.id for chunk in chunks],
                embeddings = [list(chunk.vector) for chunk in chunks],
                documents  = [chunk.text for chunk in chunks],
                metadatas  = metadatas,
            )
        except Exception as exc:
            raise _translate(exc, f"upsert into '{collection_name}'") from exc
        logger.debug("Upserted %d point(s) into '%s'.", len(chunks), collection_name)

    def search(self, collection_name: str, query_vector: Sequence[float], k: int) -> List[SearchHit]:
        """
        Return up to `k` hits ordered by descending cosine similarity.

        Raises CollectionMissing if the collection does not exist; an existing
        but empty collection yields an empty list.
        """
        if k < 1:
            raise ValueError("k must be >= 1")
        collection = self._get_collection(collection_name)
        try:
            total = collection.count()
            if total == 0:
                return []
            results = collection.query(
                query_embeddings = [list(query_vector)],
                n_results        = min(k, total),
                include          = ["documents", "metadatas", "distances"],
            )
        except Exception as exc:
            raise _translate(exc, f"search '{collection_name}'") from exc

        ids       = (results.get("ids") or [[]])[0]
        documents = (results.get("documents") or [[]])[0]
        metadatas = (results.get("metadatas") or [[]])[0]
        distances = (results.get("distances") or [[]])[0]

        hits: List[SearchHit] = []
        for idx, point_id in enumerate(ids):
            text = documents[idx] if idx < len(documents) and documents[idx] is not None else ""
            metadata = dict(metadatas[idx] or {}) if idx < len(metadatas) else {}
            distance = float(distances[idx]) if idx < len(distances) else 1.0
            hits.append(SearchHit(
                id      = str(point_id),
                text    = text,
                payload = {**metadata, "text": text},
                score   = 1.0 - distance,
            ))
        return hits

    def count(self, collection_name: str) -> int:
        collection = self._get_collection(collection_name)
        try:
            return collection.count()
        except Exception as exc:
            raise _translate(exc, f"count '{collection_name}'") from exc
