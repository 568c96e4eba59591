"""
retriever.py
============
Retrieval-Augmented Answerer: question → embedding → nearest stored passages
→ grounded prompt → generated answer.

Every downstream fault ends in a structured `Answer`; nothing raised by the
language model or the vector store escapes `answer()`.

Context policy when k > 1:
  top    — only the highest-ranked passage forms the context (default)
  concat — all retrieved passages, best first, separated by `---`
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import List, Optional, Sequence, Tuple

from rag_pipeline.chroma_client import SearchHit, VectorStoreClient
from rag_pipeline.exceptions import (
    CollectionMissing,
    InvalidQuery,
    RAGError,
    StoreError,
    UpstreamError,
    UpstreamRejected,
)
from rag_pipeline.llm_engine import GenerationClient, GroundedPrompt

logger = logging.getLogger(__name__)

NO_KNOWLEDGE_ANSWER = (
    "I don't have any documents to answer from yet. Please upload a PDF first."
)
TEMPORARILY_UNAVAILABLE_ANSWER = (
    "Sorry, I'm temporarily unable to answer. Please try again in a moment."
)
_CONTEXT_SEPARATOR = "\n\n---\n\n"


class AnswerStatus(str, Enum):
    ANSWERED = "answered"
    NO_KNOWLEDGE = "no_knowledge"
    DEGRADED = "degraded"
    REJECTED = "rejected"


@dataclass(frozen=True)
class Answer:
    status: AnswerStatus
    answer: str
    context: str = ""
    error_kind: Optional[str] = None
    sources: Tuple[SearchHit, ...] = ()


def degraded_answer(exc: RAGError, context: str = "") -> Answer:
    """User-facing apology for a failed request; keeps the error kind for diagnosis."""
    if isinstance(exc, UpstreamError) and not isinstance(exc, UpstreamRejected):
        text = TEMPORARILY_UNAVAILABLE_ANSWER
    else:
        text = f"Sorry, I couldn't answer that. {exc.user_message}"
    return Answer(AnswerStatus.DEGRADED, text, context=context, error_kind=exc.kind)


class RAGAnswerer:
    def __init__(
        self,
        embedder,
        store: VectorStoreClient,
        generator: GenerationClient,
        collection_name: str,
        top_k: int = 3,
        context_policy: str = "top",
    ):
        if top_k < 1:
            raise ValueError("top_k must be >= 1")
        self._embedder = embedder
        self._store = store
        self._generator = generator
        self.collection_name = collection_name
        self.top_k = top_k
        self.context_policy = context_policy

    def build_context(self, hits: Sequence[SearchHit]) -> str:
        if self.context_policy == "concat":
            return _CONTEXT_SEPARATOR.join(hit.text for hit in hits)
        return hits[0].text

    def answer(self, question: Optional[str]) -> Answer:
        if question is None or not question.strip():
            exc = InvalidQuery("empty question")
            return Answer(AnswerStatus.REJECTED, exc.user_message, error_kind=exc.kind)
        question = question.strip()

        # ── 1. Embed the question ─────────────────────────────────────────
        try:
            query_vec = self._embedder.embed(question)
        except UpstreamError as exc:
            logger.warning("Question embedding failed [%s]: %s", exc.kind, exc)
            return degraded_answer(exc)

        # ── 2. Nearest passages ───────────────────────────────────────────
        try:
            hits: List[SearchHit] = self._store.search(self.collection_name, query_vec, self.top_k)
        except CollectionMissing:
            logger.warning("Collection '%s' does not exist yet.", self.collection_name)
            return Answer(AnswerStatus.NO_KNOWLEDGE, NO_KNOWLEDGE_ANSWER)
        except StoreError as exc:
            logger.warning("Vector search failed [%s]: %s", exc.kind, exc)
            return degraded_answer(exc)

        if not hits:
            logger.warning("Collection '%s' is empty.", self.collection_name)
            return Answer(AnswerStatus.NO_KNOWLEDGE, NO_KNOWLEDGE_ANSWER)

        # ── 3. Grounded generation ────────────────────────────────────────
        context = self.build_context(hits)
        prompt = GroundedPrompt(context=context, question=question)
        try:
            text = self._generator.generate(prompt)
        except UpstreamError as exc:
            logger.warning("Answer generation failed [%s]: %s", exc.kind, exc)
            return degraded_answer(exc, context=context)

        logger.info(
            "Answered from %d hit(s) (top score %.3f, policy=%s).",
            len(hits), hits[0].score, self.context_policy,
        )
        return Answer(AnswerStatus.ANSWERED, text, context=context, sources=tuple(hits))
