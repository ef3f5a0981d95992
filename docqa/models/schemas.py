from __future__ import annotations

from typing import List, Literal

from pydantic import BaseModel, Field


# Credentials
class ValidateKeyRequest(BaseModel):
    """Запрос на проверку API-ключа."""

    api_key: str = Field(..., description="Ключ OpenAI-совместимого API")


class ValidateKeyResponse(BaseModel):
    valid: bool


# Indexing
class IndexRequest(BaseModel):
    """Запрос на индексацию документа."""

    text: str = Field(..., min_length=1, description="Полный текст документа")
    api_key: str = Field(..., min_length=1, description="Ключ для вызова эмбеддингов")
    source_id: str = Field(default="document", description="Идентификатор источника для метаданных")


class ErrorInfo(BaseModel):
    kind: str
    detail: str
    progress: float | None = None
    cause: str | None = None


class IndexJobStatus(BaseModel):
    job_id: str
    source_id: str
    status: Literal["pending", "running", "complete", "failed"]
    state: str
    total_chunks: int = Field(..., ge=0)
    completed_chunks: int = Field(..., ge=0)
    progress: float = Field(..., ge=0, le=100)
    error: ErrorInfo | None = None


class IndexStatusResponse(BaseModel):
    """Состояние индекса и, если есть, текущего задания."""

    state: Literal["idle", "chunking", "embedding", "storing", "ready", "failed"]
    indexed_chunks: int = Field(..., ge=0)
    job: IndexJobStatus | None = None


class IndexStartedResponse(BaseModel):
    job_id: str
    state: str


class CancelResponse(BaseModel):
    cancelled: bool


# RAG
class AskRequest(BaseModel):
    """Вопрос по проиндексированному документу."""

    question: str = Field(..., min_length=1, description="Вопрос пользователя")
    k: int | None = Field(default=None, gt=0, description="Сколько чанков контекста использовать")


class AskResponse(BaseModel):
    answer: str
    snippets: List[str]
    scores: List[float] | None = None


class ErrorResponse(BaseModel):
    kind: str
    detail: str


__all__ = [
    "ValidateKeyRequest",
    "ValidateKeyResponse",
    "IndexRequest",
    "IndexJobStatus",
    "IndexStatusResponse",
    "IndexStartedResponse",
    "CancelResponse",
    "AskRequest",
    "AskResponse",
    "ErrorInfo",
    "ErrorResponse",
]
