"""
Caller-facing API: credential check, background indexing, reset and questions.

One ``DocumentQAService`` owns one ``IndexingOrchestrator`` and therefore one active index.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Callable, Dict, List, Optional, Set

from openai import AsyncOpenAI

from docqa.config import settings
from docqa.embeddings.client import EmbeddingsClient, ProgressCallback
from docqa.errors import NotIndexedError
from docqa.indexing.chunker import DEFAULT_SOURCE_ID
from docqa.indexing.pipeline import IndexingOrchestrator, JobHandle
from docqa.llm.client import LLMClient
from docqa.rag.pipeline import AskResult, QueryAnswerer

logger = logging.getLogger(__name__)

ClientFactory = Callable[[str], AsyncOpenAI]


def default_client_factory(api_key: str) -> AsyncOpenAI:
    return AsyncOpenAI(
        api_key=api_key,
        base_url=settings.openai_base_url,
        timeout=settings.request_timeout_sec,
        max_retries=0,
    )


class DocumentQAService:
    def __init__(
        self,
        client_factory: ClientFactory | None = None,
        embedding_model: str = settings.embedding_model_name,
        llm_model: str = settings.llm_model_name,
        chunk_size: int = settings.chunk_size_chars,
        chunk_overlap: int = settings.chunk_overlap_chars,
        embed_batch: int = settings.embed_batch_size,
        max_concurrency: int = settings.embed_max_concurrency,
        top_k: int = settings.top_k,
        timeout: float = settings.request_timeout_sec,
        logger_: logging.Logger | None = None,
    ) -> None:
        self.client_factory = client_factory or default_client_factory
        self.embedding_model = embedding_model
        self.llm_model = llm_model
        self.embed_batch = embed_batch
        self.max_concurrency = max_concurrency
        self.top_k = top_k
        self.timeout = timeout
        self.logger = logger_ or logger
        self.orchestrator = IndexingOrchestrator(
            self.make_embeddings_client,
            chunk_size=chunk_size,
            chunk_overlap=chunk_overlap,
            embed_batch=embed_batch,
        )
        self._api_key: str | None = None
        self._client: tuple[str, AsyncOpenAI] | None = None
        self._retired: List[AsyncOpenAI] = []
        self._closing: Set[asyncio.Task] = set()

    # --- Clients ---
    def _client_for(self, api_key: str) -> AsyncOpenAI:
        if self._client is not None and self._client[0] == api_key:
            return self._client[1]
        previous = self._client
        self._client = (api_key, self.client_factory(api_key))
        if previous is not None:
            self._retire(previous[1])
        return self._client[1]

    def _retire(self, client: AsyncOpenAI) -> None:
        """Закрыть клиент, вытесненный новым ключом; вне цикла событий он закрывается в aclose()."""
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            self._retired.append(client)
            return
        task = loop.create_task(client.close())
        self._closing.add(task)
        task.add_done_callback(self._closing.discard)

    async def aclose(self) -> None:
        """Close every client this service opened."""
        self.orchestrator.cancel()
        clients = self._retired + ([self._client[1]] if self._client else [])
        self._retired = []
        self._client = None
        for client in clients:
            await client.close()
        if self._closing:
            await asyncio.gather(*self._closing, return_exceptions=True)
        self.logger.info("Model API clients closed", extra={"count": len(clients)})

    def make_embeddings_client(self, api_key: str) -> EmbeddingsClient:
        return EmbeddingsClient(
            model=self.embedding_model,
            batch_size=self.embed_batch,
            max_concurrency=self.max_concurrency,
            timeout=self.timeout,
            client=self._client_for(api_key),
        )

    def make_llm_client(self, api_key: str) -> LLMClient:
        return LLMClient(model=self.llm_model, timeout=self.timeout, client=self._client_for(api_key))

    # --- Public API ---
    async def validate_credential(self, api_key: str) -> bool:
        if not api_key or not api_key.strip():
            return False
        if self._client is not None and self._client[0] == api_key:
            return await self.make_llm_client(api_key).validate_credential()
        # a key that is only being checked gets a short-lived client
        client = self.client_factory(api_key)
        try:
            return await LLMClient(model=self.llm_model, timeout=self.timeout, client=client).validate_credential()
        finally:
            await client.close()

    def start_indexing(
        self,
        text: str,
        api_key: str,
        on_progress: Optional[ProgressCallback] = None,
        source_id: str = DEFAULT_SOURCE_ID,
    ) -> JobHandle:
        handle = self.orchestrator.start(text, api_key, on_progress=on_progress, source_id=source_id)
        self._api_key = api_key
        return handle

    def cancel_indexing(self) -> bool:
        return self.orchestrator.cancel()

    def reset_index(self) -> None:
        self.orchestrator.reset()

    def status(self) -> Dict[str, Any]:
        return self.orchestrator.observe()

    async def ask(self, question: str, k: int | None = None) -> AskResult:
        if self._api_key is None:
            raise NotIndexedError("Please index a document first")
        answerer = QueryAnswerer(
            store_provider=self.orchestrator.store_for_query,
            embeddings_client=self.make_embeddings_client(self._api_key),
            llm_client=self.make_llm_client(self._api_key),
            top_k=self.top_k,
        )
        result = await answerer.answer(question, k=k)
        self.logger.info("Question answered", extra={"snippets": len(result.snippets)})
        return result


__all__ = ["DocumentQAService", "ClientFactory", "default_client_factory"]
