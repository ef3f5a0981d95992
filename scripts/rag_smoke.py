"""
Простой smoke-тест RAG-пайплайна: индексировать файл и задать вопрос.

Пример:
    python -m scripts.rag_smoke --file data/doc.txt --question "What color is the fox?"
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys

from docqa.config import settings, setup_logging
from docqa.errors import DocQAError
from docqa.indexing.parser import load_document
from docqa.indexing.pipeline import index_with_progress_bar
from docqa.service import DocumentQAService


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Smoke-тест RAG-пайплайна.")
    parser.add_argument("--file", "-f", required=True, help="Документ .txt/.md для индексации")
    parser.add_argument("--question", "-q", required=True, help="Вопрос к документу")
    parser.add_argument("--k", type=int, default=None, help="Переопределить число чанков контекста")
    return parser.parse_args()


async def run(args: argparse.Namespace) -> None:
    api_key = settings.openai_api_key.get_secret_value() if settings.openai_api_key else ""
    service = DocumentQAService()
    document = load_document(args.file)

    try:
        summary = await index_with_progress_bar(service.start_indexing, document.text, api_key, source_id=document.source_id)
        print(f"Indexed chunks: {summary.indexed_chunks} (elapsed {summary.elapsed_sec:.2f}s, model {summary.embedding_model})")
        result = await service.ask(args.question, k=args.k)
    finally:
        await service.aclose()

    print("\n=== RAG Smoke Result ===")
    print(f"answer:\n{result.answer}")
    print("\nSnippets:")
    for idx, (snippet, score) in enumerate(zip(result.snippets, result.scores), start=1):
        print(f"#{idx} score={score:.3f}")
        print("   " + snippet[:300].replace("\n", " "))


def main() -> None:
    setup_logging()
    logger = logging.getLogger(__name__)
    args = parse_args()

    try:
        asyncio.run(run(args))
    except DocQAError as exc:
        logger.error("RAG smoke failed: %s", exc.message, extra={"kind": exc.kind})
        sys.exit(1)
    except Exception:
        logger.exception("RAG smoke failed")
        sys.exit(1)


if __name__ == "__main__":
    main()
