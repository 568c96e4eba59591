"""
chunker.py
==========
Optional fixed-size splitting of a document into overlapping passages.

Disabled by default (INGEST_CHUNK_CHARS=0): the whole document becomes a
single passage.
"""

from __future__ import annotations

from typing import List


def _last_whitespace(text: str, lo: int, hi: int) -> int:
    for idx in range(hi - 1, lo - 1, -1):
        if text[idx].isspace():
            return idx
    return -1


def _first_whitespace(text: str, lo: int, hi: int) -> int:
    for idx in range(lo, hi):
        if text[idx].isspace():
            return idx
    return -1


def split_text(text: str, chunk_chars: int = 0, overlap: int = 0) -> List[str]:
    """
    Split `text` into windows of at most `chunk_chars` characters.

    Window ends are pulled back to the last whitespace in the second half of
    the window so words are not cut; consecutive windows share
    up to `overlap` characters, starting on a word boundary.
    """
    if chunk_chars <= 0 or len(text) <= chunk_chars:
        return [text]
    if not 0 <= overlap < chunk_chars:
        raise ValueError("overlap must be in [0, chunk_chars)")

    chunks: List[str] = []
    start = 0
    length = len(text)
    while start < length:
        end = min(start + chunk_chars, length)
        if end < length:
            cut = _last_whitespace(text, start + chunk_chars // 2, end)
            if cut != -1:
                end = cut
        piece = text[start:end].strip()
        if piece:
            chunks.append(piece)
        if end >= length:
            break
        next_start = max(end - overlap, start + 1)
        if overlap and not text[next_start - 1].isspace():
            space = _first_whitespace(text, next_start, end)
            if space != -1:
                next_start = space + 1
        start = next_start
    return chunks
