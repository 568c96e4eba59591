"""
api/ingest.py
=============
POST /ingest
------------
Accepts a multipart/form-data request with:
  • file : UploadFile (PDF, ≤ MAX_UPLOAD_MB)

Runs the ingestion pipeline in a worker thread and reports the number of
characters stored, or a typed failure reason.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Optional

from fastapi import APIRouter, Depends, File, UploadFile, status
from fastapi.responses import JSONResponse

from backend.api.deps import get_pipeline
from backend.schemas.response import ErrorResponse, IngestResponse
from rag_pipeline.context import PipelineContext
from rag_pipeline.exceptions import EmptyDocument, ExtractionFailed, UpstreamUnavailable

logger = logging.getLogger(__name__)

router = APIRouter()

_CLIENT_ERROR_KINDS = {ExtractionFailed.kind, EmptyDocument.kind}


def _error(status_code: int, error: str, detail: str) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content=ErrorResponse(error=error, detail=detail).model_dump(),
    )


@router.post(
    "/ingest",
    response_model=IngestResponse,
    responses={413: {"model": ErrorResponse}, 422: {"model": ErrorResponse}, 503: {"model": ErrorResponse}},
)
async def ingest(
    file: Optional[UploadFile] = File(None, description="PDF document"),
    pipeline: PipelineContext = Depends(get_pipeline),
):
    """Extract, embed and store one uploaded document."""
    if file is None:
        return _error(status.HTTP_422_UNPROCESSABLE_ENTITY, "NoFile", "No file uploaded.")

    content = await file.read()
    limit = pipeline.settings.max_upload_bytes
    if len(content) > limit:
        return _error(
            status.HTTP_413_REQUEST_ENTITY_TOO_LARGE,
            "FileTooLarge",
            f"File exceeds {pipeline.settings.max_upload_mb} MB limit ({len(content) / 1e6:.2f} MB uploaded).",
        )

    filename = file.filename or "document.pdf"
    try:
        result = await asyncio.wait_for(
            asyncio.to_thread(pipeline.ingestion.ingest_bytes, content, filename),
            timeout=pipeline.settings.request_timeout_seconds,
        )
    except asyncio.TimeoutError:
        logger.warning("Ingestion of %s exceeded %.0fs deadline.", filename, pipeline.settings.request_timeout_seconds)
        exc = UpstreamUnavailable("request deadline exceeded")
        return _error(status.HTTP_503_SERVICE_UNAVAILABLE, exc.kind, "Processing took too long. Please try again.")

    if not result.success:
        status_code = (
            status.HTTP_422_UNPROCESSABLE_ENTITY
            if result.error_kind in _CLIENT_ERROR_KINDS
            else status.HTTP_503_SERVICE_UNAVAILABLE
        )
        return _error(status_code, result.error_kind or "IngestionFailed", result.message)

    return IngestResponse(
        message    = result.message,
        characters = result.characters,
        chunks     = len(result.chunk_ids),
        chunk_ids  = list(result.chunk_ids),
    )
