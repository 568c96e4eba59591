# backend/schemas/__init__.py
from backend.schemas.response import (
    ChatRequest,
    ChatResponse,
    ErrorResponse,
    IngestResponse,
    SourceChunk,
)

__all__ = [
    "ChatRequest", "ChatResponse", "ErrorResponse", "IngestResponse", "SourceChunk",
]
