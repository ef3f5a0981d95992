"""
Utility script to inspect chunk boundaries of a document without calling the API.

Usage:
    python -m scripts.inspect_chunks --file data/doc.txt --limit 5 --offset 0
"""

from __future__ import annotations

import argparse
import json

from docqa.config import settings
from docqa.indexing.chunker import chunk_text
from docqa.indexing.parser import load_document


def main() -> None:
    parser = argparse.ArgumentParser(description="Inspect how a document is split into chunks.")
    parser.add_argument("--file", "-f", required=True, help="Path to a .txt/.md document")
    parser.add_argument("--size", type=int, default=settings.chunk_size_chars, help="Chunk size in characters")
    parser.add_argument("--overlap", type=int, default=settings.chunk_overlap_chars, help="Overlap in characters")
    parser.add_argument("--limit", type=int, default=5, help="Number of chunks to show")
    parser.add_argument("--offset", type=int, default=0, help="Offset for pagination")
    args = parser.parse_args()

    document = load_document(args.file)
    chunks = chunk_text(document.text, size=args.size, overlap=args.overlap, source_id=document.source_id)

    print(f"Document: {document.source_id} ({len(document.text)} chars)")
    print(f"Total chunks: {len(chunks)} (size={args.size}, overlap={args.overlap})")
    shown = chunks[args.offset : args.offset + args.limit]
    for chunk in shown:
        print(f"\n#{chunk.position}")
        print("Metadata:", json.dumps({"source": chunk.source_id, "length": len(chunk.text)}, ensure_ascii=False))
        snippet = chunk.text[:400].replace("\n", " ")
        print("Text:", snippet + ("..." if len(chunk.text) > 400 else ""))


if __name__ == "__main__":
    main()
