"""
schemas/response.py
===================
Pydantic v2 request/response models for the document Q&A gateway.
"""

from __future__ import annotations

from datetime import UTC, datetime
from typing import List, Optional

from pydantic import BaseModel, Field


def _utc_now() -> str:
    return datetime.now(UTC).isoformat(timespec="seconds").replace("+00:00", "Z")


# ---------------------------------------------------------------------------
# Chat
# ---------------------------------------------------------------------------

class ChatRequest(BaseModel):
    question: str = ""


class SourceChunk(BaseModel):
    id: str
    source: Optional[str] = None
    score: float


class ChatResponse(BaseModel):
    answer: str
    context: str = ""
    status: str               # "answered" | "no_knowledge" | "degraded" | "rejected"
    error: Optional[str] = None
    sources: List[SourceChunk] = Field(default_factory=list)
    timestamp: str = Field(default_factory=_utc_now)


# ---------------------------------------------------------------------------
# Ingest
# ---------------------------------------------------------------------------

class IngestResponse(BaseModel):
    status: str = "success"
    message: str
    characters: int
    chunks: int
    chunk_ids: List[str] = Field(default_factory=list)
    timestamp: str = Field(default_factory=_utc_now)


# ---------------------------------------------------------------------------
# Error response
# ---------------------------------------------------------------------------

class ErrorResponse(BaseModel):
    status: str = "error"
    error: str
    detail: Optional[str] = None
    timestamp: str = Field(default_factory=_utc_now)
