"""
exceptions.py
=============
Error taxonomy shared by the client wrappers and both pipelines.

Every error carries a `kind` (stable, machine-readable) and a `user_message`
that is safe to show in the chat surface. Library exceptions are chained as
`__cause__` so the technical detail stays in the logs.
"""

from __future__ import annotations

from typing import Optional


class ConfigurationError(RuntimeError):
    """Raised at startup when the environment holds an invalid setting."""


class RAGError(Exception):
    kind = "RAGError"
    user_message = "Something went wrong while handling the request."

    def __init__(self, detail: str = "", user_message: Optional[str] = None):
        super().__init__(detail or self.user_message)
        self.detail = detail
        if user_message is not None:
            self.user_message = user_message


# ---------------------------------------------------------------------------
# Request validation
# ---------------------------------------------------------------------------

class ExtractionFailed(RAGError):
    kind = "ExtractionFailed"
    user_message = "The uploaded file could not be read as a PDF document."


class EmptyDocument(RAGError):
    kind = "EmptyDocument"
    user_message = "No text could be found in the uploaded document."


class InvalidQuery(RAGError):
    kind = "InvalidQuery"
    user_message = "Please type a question first."


# ---------------------------------------------------------------------------
# Language-model service
# ---------------------------------------------------------------------------

class UpstreamError(RAGError):
    kind = "UpstreamError"
    user_message = "The language model service failed to handle the request."


class UpstreamUnavailable(UpstreamError):
    kind = "UpstreamUnavailable"
    user_message = "The language model service cannot be reached right now."


class UpstreamRejected(UpstreamError):
    kind = "UpstreamRejected"
    user_message = "The language model service rejected the request."


class UpstreamTransient(UpstreamError):
    kind = "UpstreamTransient"
    user_message = "The language model service is temporarily overloaded."


# ---------------------------------------------------------------------------
# Vector store
# ---------------------------------------------------------------------------

class StoreError(RAGError):
    kind = "StoreError"
    user_message = "The document store failed to handle the request."


class StoreUnavailable(StoreError):
    kind = "StoreUnavailable"
    user_message = "The document store cannot be reached right now."


class StoreRejected(StoreError):
    kind = "StoreRejected"
    user_message = "The document store rejected the data it was sent."


class CollectionMissing(StoreError):
    kind = "CollectionMissing"
    user_message = "No documents have been uploaded yet."
