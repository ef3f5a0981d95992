"""
Error taxonomy shared by the indexing and question-answering core.

Every error carries a machine-checkable ``kind`` and a human-readable message.
SDK exceptions are translated at the client boundary by ``translate_openai_error``.
"""

from __future__ import annotations

import asyncio
from typing import Any, Dict

import openai


class DocQAError(Exception):
    kind = "internal_error"

    def __init__(self, message: str, **context: Any) -> None:
        super().__init__(message)
        self.message = message
        self.context = context

    def to_dict(self) -> Dict[str, Any]:
        return {"kind": self.kind, "detail": self.message}


class InvalidInputError(DocQAError):
    kind = "invalid_input"


class AuthError(DocQAError):
    kind = "auth_error"


class InvalidCredentialError(AuthError):
    kind = "invalid_credential"


class RateLimitError(DocQAError):
    kind = "rate_limited"


class NetworkError(DocQAError):
    kind = "network_error"


class RequestTimeoutError(NetworkError):
    kind = "timeout"


class EmbeddingError(DocQAError):
    """Embedding run aborted; keeps how far it got and what broke it."""

    kind = "embedding_error"

    def __init__(
        self,
        message: str,
        *,
        completed: int = 0,
        total: int = 0,
        cause: BaseException | None = None,
    ) -> None:
        super().__init__(message, completed=completed, total=total)
        self.completed = completed
        self.total = total
        self.cause = cause

    @property
    def percent(self) -> float:
        if not self.total:
            return 0.0
        return min(100.0, self.completed / self.total * 100)

    @property
    def cause_kind(self) -> str | None:
        return getattr(self.cause, "kind", None)

    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        data["progress"] = round(self.percent, 2)
        if self.cause_kind:
            data["cause"] = self.cause_kind
        return data


class DimensionMismatchError(DocQAError):
    kind = "dimension_mismatch"


class ModelMismatchError(DocQAError):
    kind = "model_mismatch"


class NotInitializedError(DocQAError):
    kind = "not_initialized"


class NotIndexedError(DocQAError):
    kind = "not_indexed"


class JobInProgressError(DocQAError):
    kind = "job_in_progress"


class JobCancelledError(DocQAError):
    kind = "cancelled"


def translate_openai_error(exc: BaseException) -> DocQAError:
    """Map an OpenAI SDK / asyncio failure onto the taxonomy above."""
    if isinstance(exc, DocQAError):
        return exc
    if isinstance(exc, (openai.APITimeoutError, asyncio.TimeoutError)):
        return RequestTimeoutError("Request to the model API timed out")
    if isinstance(exc, openai.AuthenticationError):
        return InvalidCredentialError("Model API rejected the credential", status_code=exc.status_code)
    if isinstance(exc, openai.PermissionDeniedError):
        return AuthError("Credential is not allowed to use this resource", status_code=exc.status_code)
    if isinstance(exc, openai.RateLimitError):
        return RateLimitError("Model API rate limit exceeded", status_code=exc.status_code)
    if isinstance(exc, openai.APIConnectionError):
        return NetworkError("Could not reach the model API")
    if isinstance(exc, openai.APIStatusError):
        return NetworkError(f"Model API returned HTTP {exc.status_code}", status_code=exc.status_code)
    if isinstance(exc, openai.APIError):
        return NetworkError(f"Model API error: {exc}")
    return DocQAError(f"Unexpected failure: {exc}")


__all__ = [
    "DocQAError",
    "InvalidInputError",
    "AuthError",
    "InvalidCredentialError",
    "RateLimitError",
    "NetworkError",
    "RequestTimeoutError",
    "EmbeddingError",
    "DimensionMismatchError",
    "ModelMismatchError",
    "NotInitializedError",
    "NotIndexedError",
    "JobInProgressError",
    "JobCancelledError",
    "translate_openai_error",
]
