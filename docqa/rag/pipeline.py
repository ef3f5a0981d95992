"""
RAG pipeline: normalize question, retrieve context from the active index, LLM answer.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Callable, List

from docqa.config import settings
from docqa.embeddings.client import EmbeddingsClient
from docqa.errors import InvalidInputError, ModelMismatchError
from docqa.llm.client import LLMClient
from docqa.vector_store.base import EmbeddedChunk, VectorStore

logger = logging.getLogger(__name__)

SYSTEM_PROMPT = "You are a helpful assistant. Use the following context to answer the user's question."
CONTEXT_SEPARATOR = "\n\n"

StoreProvider = Callable[[], VectorStore]


@dataclass
class RetrievedChunk:
    chunk: EmbeddedChunk
    score: float


@dataclass
class AskResult:
    answer: str
    snippets: List[str]
    scores: List[float] = field(default_factory=list)


class QueryAnswerer:
    """Сервисный класс ответа на вопросы по проиндексированному документу."""

    def __init__(
        self,
        store_provider: StoreProvider,
        embeddings_client: EmbeddingsClient,
        llm_client: LLMClient,
        top_k: int = settings.top_k,
        logger_: logging.Logger | None = None,
    ) -> None:
        self.store_provider = store_provider
        self.embeddings_client = embeddings_client
        self.llm_client = llm_client
        self.top_k = top_k
        self.logger = logger_ or logger

    # --- Public API ---
    async def answer(self, question: str, k: int | None = None) -> AskResult:
        """Главная точка входа для ответа на вопрос."""
        normalized_question = self.normalize_question(question or "")
        if not normalized_question:
            raise InvalidInputError("Question must not be empty")
        top_k = self.top_k if k is None else k
        if top_k < 1:
            raise InvalidInputError(f"k must be at least 1, got {top_k}")

        retrievals = await self.retrieve_relevant_chunks(normalized_question, top_k)
        context = CONTEXT_SEPARATOR.join(item.chunk.text for item in retrievals)
        messages = self._build_messages(question=normalized_question, context=context)
        answer = await self.llm_client.chat(messages)

        return AskResult(
            answer=answer,
            snippets=[item.chunk.text for item in retrievals],
            scores=[item.score for item in retrievals],
        )

    # --- Steps ---
    @staticmethod
    def normalize_question(text: str) -> str:
        """Трим и схлопывание пробелов/переносов."""
        return " ".join(text.strip().split())

    async def retrieve_relevant_chunks(self, question: str, top_k: int) -> List[RetrievedChunk]:
        # hold on to one store for the whole query; published stores are never mutated
        store = self.store_provider()
        self._check_model(store)

        embedding = await self.embeddings_client.embed_text(question)
        raw_results = store.search(embedding, top_k)
        processed = [RetrievedChunk(chunk=chunk, score=score) for chunk, score in raw_results]

        self.logger.info(
            "Retrieved chunks",
            extra={
                "requested": top_k,
                "returned": len(processed),
                "top_score": round(processed[0].score, 3) if processed else None,
                "results": [
                    {"position": r.chunk.chunk.position, "score": round(r.score, 3)}
                    for r in processed[: min(5, len(processed))]
                ],
            },
        )
        return processed

    def _check_model(self, store: VectorStore) -> None:
        if store.embedding_model != self.embeddings_client.model:
            raise ModelMismatchError(
                f"Index was built with '{store.embedding_model}' but queries use '{self.embeddings_client.model}'",
                index_model=store.embedding_model,
                query_model=self.embeddings_client.model,
            )

    @staticmethod
    def _build_messages(question: str, context: str) -> List[dict]:
        return [
            {"role": "system", "content": SYSTEM_PROMPT},
            {"role": "user", "content": f"Context: {context}\n\nQuestion: {question}"},
        ]


__all__ = ["QueryAnswerer", "AskResult", "RetrievedChunk", "SYSTEM_PROMPT"]
