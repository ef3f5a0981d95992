"""
CLI для поиска по векторному индексу документа по текстовому запросу.

Пример:
    python -m scripts.search_query --file data/doc.txt --query "brown fox" --top-k 5
"""

from __future__ import annotations

import argparse
import asyncio

from docqa.config import settings, setup_logging
from docqa.indexing.parser import load_document
from docqa.indexing.pipeline import index_with_progress_bar
from docqa.service import DocumentQAService


async def run(args: argparse.Namespace) -> None:
    api_key = settings.openai_api_key.get_secret_value() if settings.openai_api_key else ""
    service = DocumentQAService()
    document = load_document(args.file)
    try:
        await index_with_progress_bar(service.start_indexing, document.text, api_key, source_id=document.source_id)
        store = service.orchestrator.store_for_query()
        emb = service.make_embeddings_client(api_key)
        q_vec = await emb.embed_text(args.query)
    finally:
        await service.aclose()
    results = store.search(q_vec, args.top_k)

    if not results:
        print("Нет результатов")
        return

    for idx, (item, score) in enumerate(results, start=1):
        snippet = item.text[: args.snippet].replace("\n", " ")
        print(f"\n#{idx} similarity={score:.4f} position={item.chunk.position}")
        print("metadata:", item.metadata)
        print("text:", snippet + ("..." if len(item.text) > args.snippet else ""))


def main() -> None:
    parser = argparse.ArgumentParser(description="Search indexed chunks by text query.")
    parser.add_argument("--file", "-f", required=True, help="Документ .txt/.md для индексации")
    parser.add_argument("--query", "-q", required=True, help="Текст запроса")
    parser.add_argument("--top-k", type=int, default=5, help="Сколько результатов вернуть")
    parser.add_argument("--snippet", type=int, default=300, help="Длина сниппета текста")
    args = parser.parse_args()

    setup_logging()
    asyncio.run(run(args))


if __name__ == "__main__":
    main()
