"""
main.py
=======
FastAPI application entry point for the document Q&A service.

Run locally:
  uvicorn backend.main:app --reload --port 8080
  # or
  python -m backend

The lifespan handler builds the client handles and pipelines once at startup
so they are never re-created per request.
"""

from __future__ import annotations

import logging
import os
from contextlib import asynccontextmanager
from typing import Optional

from dotenv import load_dotenv  # type: ignore
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from backend.api.chat import router as chat_router
from backend.api.health import router as health_router
from backend.api.ingest import router as ingest_router
from backend.schemas.response import ErrorResponse
from rag_pipeline.context import PipelineContext
from rag_pipeline.settings import Settings

# Load .env from project root (one level above this file's package)
load_dotenv(os.path.join(os.path.dirname(__file__), "..", ".env"))

logger = logging.getLogger(__name__)


def configure_logging(level: str) -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
    )


# ---------------------------------------------------------------------------
# Lifespan: startup / shutdown
# ---------------------------------------------------------------------------

@asynccontextmanager
async def lifespan(app: FastAPI):
    """Build the shared PipelineContext before the first request."""
    settings: Settings = app.state.settings
    logger.info("Document Q&A backend starting up…")

    if getattr(app.state, "pipeline", None) is None:
        app.state.pipeline = PipelineContext.from_settings(settings)

    logger.info(
        "Ready: collection '%s' at %s:%d, embeddings=%s, chat=%s.",
        settings.collection_name,
        settings.chroma_host,
        settings.chroma_port,
        settings.embedding_backend,
        settings.chat_model,
    )
    yield

    logger.info("Document Q&A backend shutting down.")


async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Last-resort guard: one failed request must not affect any other."""
    logger.error("Unhandled error on %s %s: %s", request.method, request.url.path, exc, exc_info=exc)
    return JSONResponse(
        status_code=500,
        content=ErrorResponse(
            error  = "InternalError",
            detail = "Something went wrong while handling the request. Please try again.",
        ).model_dump(),
    )


# ---------------------------------------------------------------------------
# App factory
# ---------------------------------------------------------------------------

def create_app(
    settings: Optional[Settings] = None,
    pipeline: Optional[PipelineContext] = None,
) -> FastAPI:
    settings = settings or (pipeline.settings if pipeline else Settings.from_env())
    configure_logging(settings.log_level)

    app = FastAPI(
        title       = "Document Q&A API",
        description = (
            "Upload a PDF, then ask questions answered by a language model "
            "grounded in the most relevant stored passage."
        ),
        version     = "1.0.0",
        docs_url    = "/docs",
        redoc_url   = "/redoc",
        lifespan    = lifespan,
    )
    app.state.settings = settings
    app.state.pipeline = pipeline

    # ── CORS ──────────────────────────────────────────────────────────────
    origins = list(settings.cors_origins)
    app.add_middleware(
        CORSMiddleware,
        allow_origins     = origins,
        allow_credentials = "*" not in origins,
        allow_methods     = ["*"],
        allow_headers     = ["*"],
    )

    app.add_exception_handler(Exception, unhandled_exception_handler)

    # ── Routers ───────────────────────────────────────────────────────────
    app.include_router(health_router)
    app.include_router(ingest_router)
    app.include_router(chat_router)

    return app


app = create_app()
