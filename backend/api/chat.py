"""
api/chat.py
===========
POST /chat
----------
Accepts JSON `{"question": "..."}` and always answers with a structured
ChatResponse (HTTP 200), even when the question is malformed or a downstream
service fails: the consuming surface is a chat window.
"""

from __future__ import annotations

import asyncio
import logging

from fastapi import APIRouter, Depends, Request
from pydantic import ValidationError

from backend.api.deps import get_pipeline
from backend.schemas.response import ChatRequest, ChatResponse, SourceChunk
from rag_pipeline.context import PipelineContext
from rag_pipeline.exceptions import InvalidQuery, UpstreamUnavailable
from rag_pipeline.retriever import Answer, AnswerStatus, degraded_answer

logger = logging.getLogger(__name__)

router = APIRouter()

_INTERNAL_ERROR_ANSWER = "Sorry, something went wrong while answering. Please try again."


@router.post("/chat", response_model=ChatResponse)
async def chat(request: Request, pipeline: PipelineContext = Depends(get_pipeline)):
    """Answer a question about the uploaded documents."""
    try:
        body = ChatRequest.model_validate(await request.json())
    except (ValueError, ValidationError):
        return ChatResponse(
            answer = "Error: invalid JSON format.",
            status = AnswerStatus.REJECTED.value,
            error  = InvalidQuery.kind,
        )

    try:
        answer = await asyncio.wait_for(
            asyncio.to_thread(pipeline.answerer.answer, body.question),
            timeout=pipeline.settings.request_timeout_seconds,
        )
    except asyncio.TimeoutError:
        logger.warning("Chat request exceeded %.0fs deadline.", pipeline.settings.request_timeout_seconds)
        answer = degraded_answer(UpstreamUnavailable("request deadline exceeded"))
    except Exception as exc:
        logger.error("Chat request failed: %s", exc, exc_info=True)
        answer = Answer(AnswerStatus.DEGRADED, _INTERNAL_ERROR_ANSWER, error_kind=type(exc).__name__)

    return ChatResponse(
        answer  = answer.answer,
        context = answer.context,
        status  = answer.status.value,
        error   = answer.error_kind,
        sources = [
            SourceChunk(id=hit.id, source=hit.payload.get("source"), score=round(hit.score, 4))
            for hit in answer.sources
        ],
    )
