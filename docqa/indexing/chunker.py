"""
Text chunking utilities.
"""

from __future__ import annotations

from typing import List

from docqa.config import settings
from docqa.errors import InvalidInputError
from docqa.vector_store.base import Chunk

CHUNK_SIZE_CHARS = settings.chunk_size_chars
CHUNK_OVERLAP_CHARS = settings.chunk_overlap_chars
DEFAULT_SOURCE_ID = "document"


def chunk_text(
    text: str,
    size: int = CHUNK_SIZE_CHARS,
    overlap: int = CHUNK_OVERLAP_CHARS,
    source_id: str = DEFAULT_SOURCE_ID,
) -> List[Chunk]:
    """
    Разбить текст на окна длиной ``size`` символов с перекрытием ``overlap``.

    Каждый следующий чанк начинается за ``overlap`` символов до конца предыдущего;
    последний чанк заканчивается ровно на конце текста и может быть короче.
    """
    if size <= 0 or overlap < 0 or overlap >= size:
        raise InvalidInputError(
            f"Chunk size must exceed overlap and overlap must be non-negative (size={size}, overlap={overlap})"
        )

    chunks: List[Chunk] = []
    length = len(text)
    min_advance = size - overlap
    start = 0

    while start < length:
        end = min(start + size, length)
        chunks.append(Chunk(text=text[start:end], position=len(chunks), source_id=source_id))
        if end >= length:
            break
        # start must move forward by at least size - overlap
        start = max(end - overlap, start + min_advance)

    return chunks


__all__ = ["chunk_text", "CHUNK_SIZE_CHARS", "CHUNK_OVERLAP_CHARS", "DEFAULT_SOURCE_ID"]
