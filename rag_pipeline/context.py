"""
context.py
==========
`PipelineContext` bundles the three client handles and both pipelines.

It is built once at process start and shared by reference with every request;
nothing in it is mutated afterwards.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Optional

from rag_pipeline.chroma_client import VectorStoreClient
from rag_pipeline.embedder import build_embedder, build_openai_client
from rag_pipeline.ingestion import IngestionPipeline
from rag_pipeline.llm_engine import GenerationClient
from rag_pipeline.retriever import RAGAnswerer
from rag_pipeline.settings import Settings


@dataclass(frozen=True)
class PipelineContext:
    settings: Settings
    embedder: Any
    store: VectorStoreClient
    generator: GenerationClient
    ingestion: IngestionPipeline
    answerer: RAGAnswerer

    @classmethod
    def assemble(cls, settings: Settings, embedder, store, generator) -> "PipelineContext":
        ingestion = IngestionPipeline(
            embedder        = embedder,
            store           = store,
            collection_name = settings.collection_name,
            chunk_chars     = settings.ingest_chunk_chars,
            chunk_overlap   = settings.ingest_chunk_overlap,
        )
        answerer = RAGAnswerer(
            embedder        = embedder,
            store           = store,
            generator       = generator,
            collection_name = settings.collection_name,
            top_k           = settings.retrieval_top_k,
            context_policy  = settings.context_policy,
        )
        return cls(settings, embedder, store, generator, ingestion, answerer)

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        openai_client: Optional[Any] = None,
        chroma_client: Optional[Any] = None,
    ) -> "PipelineContext":
        openai_client = openai_client or build_openai_client(settings)
        return cls.assemble(
            settings,
            embedder  = build_embedder(settings, client=openai_client),
            store     = VectorStoreClient.from_settings(settings, client=chroma_client),
            generator = GenerationClient.from_settings(settings, client=openai_client),
        )
