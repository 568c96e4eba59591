"""
pdf_extractor.py
================
Best-effort plain-text extraction from a PDF file on disk.

Pages that fail to decode are skipped and logged; only a file that cannot be
opened or parsed at all is an error.
"""

from __future__ import annotations

import logging
from pathlib import Path

from PyPDF2 import PdfReader

from rag_pipeline.exceptions import ExtractionFailed

logger = logging.getLogger(__name__)


def extract_text(file_path: str) -> str:
    """Return the concatenated text of every readable page."""
    try:
        reader = PdfReader(file_path)
        pages = list(reader.pages)
    except Exception as exc:  # PdfReadError, or KeyError/TypeError from a corrupt trailer
        raise ExtractionFailed(f"{Path(file_path).name}: {exc}") from exc

    text_parts = []
    skipped = 0
    for page_num, page in enumerate(pages, start=1):
        try:
            page_text = page.extract_text()
        except Exception as exc:  # malformed page
            skipped += 1
            logger.warning("Skipping unreadable page %d of %s: %s", page_num, Path(file_path).name, exc)
            continue
        if page_text:
            text_parts.append(page_text)

    if skipped:
        logger.warning("Extracted %d/%d pages of %s.", len(pages) - skipped, len(pages), Path(file_path).name)
    return "\n".join(text_parts)
