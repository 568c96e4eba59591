"""
api/health.py
=============
GET /api/health — liveness and readiness probe for the document Q&A backend.
"""

import asyncio

from fastapi import APIRouter, Depends

from backend.api.deps import get_pipeline
from rag_pipeline.context import PipelineContext
from rag_pipeline.exceptions import CollectionMissing, StoreError

router = APIRouter()


@router.get("/api/health")
async def health_check(pipeline: PipelineContext = Depends(get_pipeline)):
    """Return service status and vector store readiness."""
    collection = pipeline.settings.collection_name
    try:
        point_count = await asyncio.to_thread(pipeline.store.count, collection)
        store_ready = True
    except CollectionMissing:
        point_count = 0
        store_ready = True
    except StoreError:
        point_count = 0
        store_ready = False

    return {
        "status":            "ok",
        "store_ready":       store_ready,
        "collection":        collection,
        "point_count":       point_count,
        "embedding_backend": pipeline.settings.embedding_backend,
        "chat_model":        pipeline.settings.chat_model,
        "api_version":       "1.0.0",
    }
