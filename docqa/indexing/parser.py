"""
Document loading utilities: read a text file and normalise it before chunking.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from pathlib import Path

from docqa.errors import InvalidInputError

SUPPORTED_SUFFIXES = (".txt", ".md", ".text")


@dataclass(frozen=True)
class ParsedDocument:
    source_id: str
    text: str


def clean_text(text: str) -> str:
    text = re.sub(r"\r\n?", "\n", text)
    # page breaks from text extraction come through as runs of blank lines
    text = re.sub(r"\n{3,}", "\n\n", text)
    text = re.sub(r"[ \t]{2,}", " ", text)
    return text.strip()


def load_document(path: str | Path, encoding: str = "utf-8") -> ParsedDocument:
    file_path = Path(path)
    if not file_path.is_file():
        raise InvalidInputError(f"Document not found: {file_path}")
    if file_path.suffix.lower() not in SUPPORTED_SUFFIXES:
        raise InvalidInputError(
            f"Unsupported document type '{file_path.suffix}', expected one of {', '.join(SUPPORTED_SUFFIXES)}"
        )

    text = clean_text(file_path.read_text(encoding=encoding))
    if not text:
        raise InvalidInputError(f"Document is empty: {file_path}")
    return ParsedDocument(source_id=file_path.name, text=text)


__all__ = ["ParsedDocument", "clean_text", "load_document", "SUPPORTED_SUFFIXES"]
