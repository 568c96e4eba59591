"""
llm_engine.py
=============
Generation Client: a thin wrapper over an OpenAI-compatible chat completions
endpoint, plus the grounded prompt the answerer sends through it.

The model is confined to the supplied document context and must say so when
the context does not contain the answer.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

import openai
from openai import OpenAI

from rag_pipeline.embedder import build_openai_client, translate_openai_error
from rag_pipeline.exceptions import UpstreamRejected
from rag_pipeline.settings import Settings

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Grounded prompt template
# ---------------------------------------------------------------------------

SYSTEM_PROMPT = (
    "You are a document assistant. Answer the user's question using ONLY the "
    "document context provided in the user message. Do not use outside knowledge. "
    "If the context does not contain enough information to answer, say explicitly "
    "that the uploaded document does not cover it."
)

_USER_PROMPT_TEMPLATE = """[CONTEXT]
{context}
[END CONTEXT]

Question: {question}"""


@dataclass(frozen=True)
class GroundedPrompt:
    context: str
    question: str
    instruction: str = SYSTEM_PROMPT

    def to_messages(self) -> List[Dict[str, str]]:
        return [
            {"role": "system", "content": self.instruction},
            {"role": "user", "content": _USER_PROMPT_TEMPLATE.format(
                context=self.context, question=self.question,
            )},
        ]


# ---------------------------------------------------------------------------
# Client
# ---------------------------------------------------------------------------

class GenerationClient:
    def __init__(self, client: Any, model: str, temperature: float = 0.2):
        self._client = client
        self.model = model
        self.temperature = temperature

    @classmethod
    def from_settings(cls, settings: Settings, client: Optional[OpenAI] = None) -> "GenerationClient":
        return cls(
            client      = client or build_openai_client(settings),
            model       = settings.chat_model,
            temperature = settings.chat_temperature,
        )

    def complete(self, messages: List[Dict[str, str]]) -> str:
        """Send role-tagged messages in order and return the generated text."""
        try:
            completion = self._client.chat.completions.create(
                model       = self.model,
                messages    = messages,
                temperature = self.temperature,
            )
        except openai.OpenAIError as exc:
            raise translate_openai_error(exc, "chat completion") from exc

        if not completion.choices:
            raise UpstreamRejected(f"chat completion: {self.model} returned no choices")
        content = completion.choices[0].message.content
        if content is None or not content.strip():
            raise UpstreamRejected(f"chat completion: {self.model} returned an empty message")

        logger.debug("Chat completion from %s (%d chars).", self.model, len(content))
        return content.strip()

    def generate(self, prompt: GroundedPrompt) -> str:
        return self.complete(prompt.to_messages())
