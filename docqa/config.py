"""
Настройки docqa: переменные окружения и .env, плюс базовая настройка логирования.
"""

from __future__ import annotations

import logging
from typing import Any, Dict

from pydantic import Field, SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Model API, chunking, batching and HTTP server settings."""

    model_config = SettingsConfigDict(
        env_file=(".env",),
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
    )

    openai_api_key: SecretStr | None = Field(default=None, alias="OPENAI_API_KEY")
    openai_base_url: str | None = Field(default=None, alias="OPENAI_BASE_URL")
    llm_model_name: str = Field(default="gpt-4o-mini", alias="LLM_MODEL_NAME")
    llm_temperature: float = Field(default=0.0, alias="LLM_TEMPERATURE")
    embedding_model_name: str = Field(default="text-embedding-3-small", alias="EMBEDDING_MODEL_NAME")

    vector_store_backend: str = Field(default="memory", alias="VECTOR_STORE_BACKEND")

    chunk_size_chars: int = Field(default=1000, gt=0, alias="CHUNK_SIZE_CHARS")
    chunk_overlap_chars: int = Field(default=200, ge=0, alias="CHUNK_OVERLAP_CHARS")

    embed_batch_size: int = Field(default=10, gt=0, alias="EMBED_BATCH_SIZE")
    embed_max_concurrency: int = Field(default=1, gt=0, alias="EMBED_MAX_CONCURRENCY")
    request_timeout_sec: float = Field(default=10.0, gt=0, alias="REQUEST_TIMEOUT_SEC")

    top_k: int = Field(default=2, gt=0, alias="TOP_K")

    app_host: str = Field(default="0.0.0.0", alias="APP_HOST")
    app_port: int = Field(default=8000, alias="APP_PORT")
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")


settings = Settings()


def setup_logging() -> logging.Logger:
    """Configure root logging once and return the package logger."""
    logging.basicConfig(
        level=settings.log_level.upper(),
        format="[%(asctime)s] [%(levelname)s] %(name)s - %(message)s",
    )
    return logging.getLogger("docqa")


def public_settings() -> Dict[str, Any]:
    """Settings dump with the API key left out."""
    return settings.model_dump(
        exclude={"openai_api_key"},
        exclude_none=True,
    )


__all__ = ["Settings", "settings", "setup_logging", "public_settings"]
