"""
OpenAI embeddings client.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Callable, List, Optional, Sequence

from openai import AsyncOpenAI

from docqa.config import settings
from docqa.errors import EmbeddingError, InvalidInputError, translate_openai_error

DEFAULT_EMBEDDING_MODEL = settings.embedding_model_name
DEFAULT_EMBED_BATCH_SIZE = settings.embed_batch_size
DEFAULT_MAX_CONCURRENCY = settings.embed_max_concurrency
DEFAULT_TIMEOUT_SEC = settings.request_timeout_sec

ProgressCallback = Callable[[float], None]

logger = logging.getLogger(__name__)


class EmbeddingsClient:
    def __init__(
        self,
        model: str = DEFAULT_EMBEDDING_MODEL,
        batch_size: int = DEFAULT_EMBED_BATCH_SIZE,
        max_concurrency: int = DEFAULT_MAX_CONCURRENCY,
        timeout: float = DEFAULT_TIMEOUT_SEC,
        api_key: str | None = None,
        client: AsyncOpenAI | None = None,
        logger_: logging.Logger | None = None,
    ) -> None:
        if batch_size < 1 or max_concurrency < 1:
            raise InvalidInputError("Batch size and concurrency must be at least 1")
        self.model = model
        self.batch_size = batch_size
        self.max_concurrency = max_concurrency
        self.timeout = timeout
        self.logger = logger_ or logger
        if client is None:
            if api_key is None and settings.openai_api_key:
                api_key = settings.openai_api_key.get_secret_value()
            # retries are left to the caller
            client = AsyncOpenAI(
                api_key=api_key,
                base_url=settings.openai_base_url,
                timeout=timeout,
                max_retries=0,
            )
        self.client = client

    async def embed_texts(
        self,
        texts: Sequence[str],
        batch_size: int | None = None,
        on_progress: Optional[ProgressCallback] = None,
    ) -> List[List[float]]:
        """Embed ``texts`` batch by batch; the i-th vector belongs to the i-th text.

        ``on_progress`` receives a non-decreasing percentage after each finished
        batch. Any failing batch aborts the call with ``EmbeddingError``.
        """
        if not texts:
            return []
        size = self.batch_size if batch_size is None else batch_size
        if size < 1:
            raise InvalidInputError(f"Batch size must be at least 1, got {size}")

        total = len(texts)
        batches = [list(texts[i : i + size]) for i in range(0, total, size)]
        results: List[List[List[float]]] = [[] for _ in batches]
        completed = 0
        semaphore = asyncio.Semaphore(self.max_concurrency)

        async def run_batch(idx: int, batch: List[str]) -> None:
            nonlocal completed
            async with semaphore:
                results[idx] = await self._embed_batch(batch)
            completed += len(batch)
            self.logger.debug(
                "Embedded batch",
                extra={"batch": idx, "size": len(batch), "completed": completed, "total": total},
            )
            if on_progress:
                self._notify(on_progress, min(100.0, completed / total * 100))

        try:
            if self.max_concurrency == 1:
                for idx, batch in enumerate(batches):
                    await run_batch(idx, batch)
            else:
                await self._gather_bounded([run_batch(idx, batch) for idx, batch in enumerate(batches)])
        except EmbeddingError as exc:
            exc.completed, exc.total = completed, total
            raise
        except Exception as exc:
            cause = translate_openai_error(exc)
            raise EmbeddingError(
                f"Embedding aborted after {completed}/{total} chunks: {cause.message}",
                completed=completed,
                total=total,
                cause=cause,
            ) from exc

        return [vector for batch_vectors in results for vector in batch_vectors]

    def _notify(self, on_progress: ProgressCallback, percent: float) -> None:
        try:
            on_progress(percent)
        except Exception:
            self.logger.exception("Progress callback failed", extra={"progress": round(percent, 2)})

    async def embed_text(self, text: str) -> List[float]:
        vectors = await self._embed_batch([text])
        return vectors[0]

    async def _embed_batch(self, batch: List[str]) -> List[List[float]]:
        try:
            response = await asyncio.wait_for(
                self.client.embeddings.create(model=self.model, input=batch),
                timeout=self.timeout,
            )
        except Exception as exc:
            raise translate_openai_error(exc) from exc

        # the API tags each item with its input index
        data = sorted(response.data, key=lambda item: getattr(item, "index", 0))
        if len(data) != len(batch):
            raise EmbeddingError(f"Embedding API returned {len(data)} vectors for {len(batch)} inputs")
        return [list(item.embedding) for item in data]

    @staticmethod
    async def _gather_bounded(coros: List) -> None:
        tasks = [asyncio.ensure_future(coro) for coro in coros]
        try:
            await asyncio.gather(*tasks)
        except BaseException:
            for task in tasks:
                task.cancel()
            await asyncio.gather(*tasks, return_exceptions=True)
            raise


__all__ = ["EmbeddingsClient", "DEFAULT_EMBEDDING_MODEL", "DEFAULT_EMBED_BATCH_SIZE", "ProgressCallback"]
