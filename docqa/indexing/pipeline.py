"""
Indexing pipeline: chunk a document, embed the chunks and publish them as the active vector store.

One job runs at a time as a background asyncio task. The new store is built off to the
side and swapped in only after every chunk is stored, so a failed or cancelled job never
touches the index currently in use.
"""

from __future__ import annotations

import asyncio
import logging
import time
import uuid
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Dict, Optional, Sequence

from tqdm import tqdm

from docqa.embeddings.client import EmbeddingsClient, ProgressCallback
from docqa.errors import (
    DocQAError,
    EmbeddingError,
    InvalidInputError,
    JobCancelledError,
    JobInProgressError,
    NotIndexedError,
)
from docqa.indexing.chunker import CHUNK_OVERLAP_CHARS, CHUNK_SIZE_CHARS, DEFAULT_SOURCE_ID, chunk_text
from docqa.vector_store import get_vector_store
from docqa.vector_store.base import Chunk, EmbeddedChunk, VectorStore

logger = logging.getLogger(__name__)

# embedding progress is rescaled into [0, EMBEDDING_PROGRESS_SHARE]; 100 is reserved for Ready
EMBEDDING_PROGRESS_SHARE = 95.0

EmbeddingsFactory = Callable[[str], EmbeddingsClient]
StoreFactory = Callable[..., VectorStore]


class IndexingState(str, Enum):
    IDLE = "idle"
    CHUNKING = "chunking"
    EMBEDDING = "embedding"
    STORING = "storing"
    READY = "ready"
    FAILED = "failed"


ACTIVE_STATES = frozenset({IndexingState.CHUNKING, IndexingState.EMBEDDING, IndexingState.STORING})


class JobStatus(str, Enum):
    PENDING = "pending"
    RUNNING = "running"
    COMPLETE = "complete"
    FAILED = "failed"


@dataclass
class IndexingJob:
    job_id: str
    source_id: str
    status: JobStatus = JobStatus.PENDING
    state: IndexingState = IndexingState.IDLE
    total_chunks: int = 0
    completed_chunks: int = 0
    progress: float = 0.0
    last_error: DocQAError | None = None
    started_at: float = field(default_factory=time.time)
    finished_at: float | None = None

    @property
    def is_finished(self) -> bool:
        return self.status in (JobStatus.COMPLETE, JobStatus.FAILED)

    def snapshot(self) -> Dict[str, Any]:
        return {
            "job_id": self.job_id,
            "source_id": self.source_id,
            "status": self.status.value,
            "state": self.state.value,
            "total_chunks": self.total_chunks,
            "completed_chunks": self.completed_chunks,
            "progress": round(self.progress, 2),
            "error": self.last_error.to_dict() if self.last_error else None,
        }


@dataclass
class IndexingSummary:
    source_id: str
    indexed_chunks: int
    elapsed_sec: float
    embedding_model: str


def build_store(
    embedding_model: str,
    chunks: Sequence[Chunk],
    vectors: Sequence[Sequence[float]],
    store_factory: StoreFactory = get_vector_store,
) -> VectorStore:
    """Собрать новое хранилище: очистить и вставить все чанки одним вызовом."""
    if len(chunks) != len(vectors):
        raise EmbeddingError(
            f"Got {len(vectors)} vectors for {len(chunks)} chunks",
            completed=len(vectors),
            total=len(chunks),
        )
    store = store_factory(embedding_model=embedding_model)
    store.clear()
    store.insert(
        [
            EmbeddedChunk(
                chunk=chunk,
                vector=list(vector),
                metadata={"source": chunk.source_id, "position": str(chunk.position)},
            )
            for chunk, vector in zip(chunks, vectors)
        ]
    )
    return store


class JobHandle:
    """Caller-side view of a running indexing job."""

    def __init__(self, job: IndexingJob, task: asyncio.Task, orchestrator: "IndexingOrchestrator") -> None:
        self.job = job
        self._task = task
        self._orchestrator = orchestrator

    @property
    def job_id(self) -> str:
        return self.job.job_id

    @property
    def progress(self) -> float:
        return self.job.progress

    @property
    def status(self) -> JobStatus:
        return self.job.status

    @property
    def state(self) -> IndexingState:
        return self.job.state

    def done(self) -> bool:
        return self._task.done()

    def cancel(self) -> bool:
        return self._orchestrator.cancel(self.job)

    async def wait(self) -> IndexingSummary:
        # shield: cancelling the waiter must not cancel the job itself
        try:
            summary = await asyncio.shield(self._task)
        except asyncio.CancelledError:
            if not self._task.cancelled():
                raise
            summary = None
        self._orchestrator.discard(self.job)
        if self.job.last_error is not None:
            raise self.job.last_error
        return summary


class IndexingOrchestrator:
    """Сервисный класс индексации: Idle → Chunking → Embedding → Storing → Ready."""

    def __init__(
        self,
        embeddings_factory: EmbeddingsFactory,
        chunk_size: int = CHUNK_SIZE_CHARS,
        chunk_overlap: int = CHUNK_OVERLAP_CHARS,
        embed_batch: int | None = None,
        store_factory: StoreFactory = get_vector_store,
        logger_: logging.Logger | None = None,
    ) -> None:
        if chunk_size <= 0 or chunk_overlap < 0 or chunk_overlap >= chunk_size:
            raise InvalidInputError(f"Invalid chunking parameters (size={chunk_size}, overlap={chunk_overlap})")
        self.embeddings_factory = embeddings_factory
        self.chunk_size = chunk_size
        self.chunk_overlap = chunk_overlap
        self.embed_batch = embed_batch
        self.store_factory = store_factory
        self.logger = logger_ or logger

        self._state = IndexingState.IDLE
        self._store: VectorStore | None = None
        self._job: IndexingJob | None = None
        self._task: asyncio.Task | None = None

    @property
    def state(self) -> IndexingState:
        return self._state

    @property
    def is_busy(self) -> bool:
        return self._state in ACTIVE_STATES

    @property
    def active_store(self) -> VectorStore | None:
        return self._store

    @property
    def current_job(self) -> IndexingJob | None:
        return self._job

    # --- Public API ---
    def start(
        self,
        text: str,
        api_key: str,
        on_progress: Optional[ProgressCallback] = None,
        source_id: str = DEFAULT_SOURCE_ID,
    ) -> JobHandle:
        """
        Validate input and schedule an indexing job on the running event loop.
        Returns immediately; progress is reported through ``on_progress`` and the handle.
        """
        if not text or not text.strip():
            raise InvalidInputError("Document text must not be empty")
        if not api_key or not api_key.strip():
            raise InvalidInputError("An API key is required to index a document")
        if self.is_busy:
            raise JobInProgressError("An indexing job is already running", job_id=self._job.job_id if self._job else None)

        loop = asyncio.get_running_loop()
        embeddings_client = self.embeddings_factory(api_key)
        job = IndexingJob(job_id=uuid.uuid4().hex, source_id=source_id)
        self._job = job
        self._transition(job, IndexingState.CHUNKING)
        self._task = loop.create_task(
            self._run(job, text, embeddings_client, on_progress),
            name=f"indexing-{job.job_id}",
        )
        self._task.add_done_callback(lambda task: self._on_task_done(job, task))
        self.logger.info(
            "Indexing job started",
            extra={"job_id": job.job_id, "source_id": source_id, "text_len": len(text), "model": embeddings_client.model},
        )
        return JobHandle(job, self._task, self)

    def cancel(self, job: IndexingJob | None = None) -> bool:
        if job is not None and job is not self._job:
            return False
        if self._task is None or self._task.done():
            return False
        self.logger.info("Cancelling indexing job", extra={"job_id": self._job.job_id if self._job else None})
        return self._task.cancel()

    def reset(self) -> None:
        """Drop the active index. Not allowed while a job is running."""
        if self.is_busy:
            raise JobInProgressError("Cannot reset the index while a job is running")
        self._store = None
        self._job = None
        self._task = None
        self._state = IndexingState.IDLE
        self.logger.info("Index reset")

    def store_for_query(self) -> VectorStore:
        if self._state is IndexingState.STORING:
            raise JobInProgressError("The index is being replaced, retry shortly")
        if self._state is not IndexingState.READY or self._store is None or len(self._store) == 0:
            raise NotIndexedError("Please index a document first")
        return self._store

    def observe(self) -> Dict[str, Any]:
        """Snapshot of the orchestrator; a finished job is discarded once observed."""
        job = self._job
        data: Dict[str, Any] = {
            "state": self._state.value,
            "indexed_chunks": len(self._store) if self._store is not None and self._state is IndexingState.READY else 0,
            "job": job.snapshot() if job else None,
        }
        if job is not None:
            self.discard(job)
        return data

    def discard(self, job: IndexingJob) -> None:
        if self._job is job and job.is_finished:
            self._job = None

    # --- Steps ---
    async def _run(
        self,
        job: IndexingJob,
        text: str,
        embeddings_client: EmbeddingsClient,
        on_progress: Optional[ProgressCallback],
    ) -> IndexingSummary | None:
        started = time.monotonic()
        job.status = JobStatus.RUNNING
        try:
            chunks = await asyncio.to_thread(chunk_text, text, self.chunk_size, self.chunk_overlap, job.source_id)
            job.total_chunks = len(chunks)
            self.logger.info("Document chunked", extra={"job_id": job.job_id, "chunks": len(chunks)})

            self._transition(job, IndexingState.EMBEDDING)

            def on_embed_progress(percent: float) -> None:
                job.completed_chunks = min(job.total_chunks, round(percent * job.total_chunks / 100))
                self._report(job, on_progress, percent * EMBEDDING_PROGRESS_SHARE / 100)

            vectors = await embeddings_client.embed_texts(
                [chunk.text for chunk in chunks],
                batch_size=self.embed_batch,
                on_progress=on_embed_progress,
            )

            self._transition(job, IndexingState.STORING)
            store = build_store(embeddings_client.model, chunks, vectors, store_factory=self.store_factory)
            self._store = store
        except asyncio.CancelledError:
            self._fail(job, JobCancelledError("Indexing job was cancelled", completed=job.completed_chunks))
            return None
        except DocQAError as exc:
            self._fail(job, exc)
            return None
        except Exception as exc:
            self.logger.exception("Unexpected indexing failure", extra={"job_id": job.job_id})
            error = DocQAError(f"Indexing failed: {exc}")
            error.__cause__ = exc
            self._fail(job, error)
            return None

        job.completed_chunks = job.total_chunks
        job.status = JobStatus.COMPLETE
        job.finished_at = time.time()
        self._transition(job, IndexingState.READY)
        self._report(job, on_progress, 100.0)

        elapsed = time.monotonic() - started
        self.logger.info(
            "Indexing job completed",
            extra={"job_id": job.job_id, "indexed_chunks": job.total_chunks, "elapsed_sec": round(elapsed, 2)},
        )
        return IndexingSummary(
            source_id=job.source_id,
            indexed_chunks=job.total_chunks,
            elapsed_sec=elapsed,
            embedding_model=embeddings_client.model,
        )

    def _on_task_done(self, job: IndexingJob, task: asyncio.Task) -> None:
        # a task cancelled before its first step never enters _run's handlers
        if task.cancelled() and not job.is_finished:
            self._fail(job, JobCancelledError("Indexing job was cancelled before it started"))

    def _transition(self, job: IndexingJob, state: IndexingState) -> None:
        self.logger.debug(
            "Indexing state change",
            extra={"job_id": job.job_id, "from": self._state.value, "to": state.value},
        )
        self._state = state
        job.state = state

    def _report(self, job: IndexingJob, on_progress: Optional[ProgressCallback], value: float) -> None:
        value = max(job.progress, min(100.0, value))
        job.progress = value
        if not on_progress:
            return
        # listener errors are logged; the job carries on
        try:
            on_progress(value)
        except Exception:
            self.logger.exception(
                "Progress callback failed", extra={"job_id": job.job_id, "progress": round(value, 2)}
            )

    def _fail(self, job: IndexingJob, error: DocQAError) -> None:
        job.last_error = error
        job.status = JobStatus.FAILED
        job.finished_at = time.time()
        self._transition(job, IndexingState.FAILED)
        self.logger.warning(
            "Indexing job failed",
            extra={
                "job_id": job.job_id,
                "kind": error.kind,
                "error": error.message,
                "progress": round(job.progress, 2),
            },
        )


async def index_with_progress_bar(
    start: Callable[..., JobHandle],
    text: str,
    api_key: str,
    source_id: str = DEFAULT_SOURCE_ID,
    desc: str = "Indexing",
) -> IndexingSummary:
    """Run one indexing job through ``start`` and mirror its progress in a tqdm bar."""
    with tqdm(total=100, desc=desc, unit="%", bar_format="{l_bar}{bar}| {n:.0f}/{total}") as bar:

        def on_progress(value: float) -> None:
            bar.update(value - bar.n)

        handle = start(text, api_key, on_progress=on_progress, source_id=source_id)
        return await handle.wait()


__all__ = [
    "IndexingOrchestrator",
    "index_with_progress_bar",
    "IndexingState",
    "IndexingJob",
    "IndexingSummary",
    "JobHandle",
    "JobStatus",
    "build_store",
    "EMBEDDING_PROGRESS_SHARE",
]
