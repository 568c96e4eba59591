"""
api/deps.py
===========
FastAPI dependencies shared by the routers.
"""

from fastapi import Request

from rag_pipeline.context import PipelineContext


def get_pipeline(request: Request) -> PipelineContext:
    """Return the PipelineContext built once in the app lifespan."""
    return request.app.state.pipeline
