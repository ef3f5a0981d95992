"""
OpenAI chat LLM client.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Dict, List, Optional

from openai import AsyncOpenAI

from docqa.config import settings
from docqa.errors import AuthError, translate_openai_error

DEFAULT_LLM_MODEL = settings.llm_model_name
DEFAULT_TEMPERATURE = settings.llm_temperature
DEFAULT_TIMEOUT_SEC = settings.request_timeout_sec

logger = logging.getLogger(__name__)


class LLMClient:
    def __init__(
        self,
        model: str = DEFAULT_LLM_MODEL,
        temperature: float = DEFAULT_TEMPERATURE,
        timeout: float = DEFAULT_TIMEOUT_SEC,
        api_key: str | None = None,
        client: AsyncOpenAI | None = None,
    ) -> None:
        self.model = model
        self.temperature = temperature
        self.timeout = timeout
        if client is None:
            if api_key is None and settings.openai_api_key:
                api_key = settings.openai_api_key.get_secret_value()
            client = AsyncOpenAI(
                api_key=api_key,
                base_url=settings.openai_base_url,
                timeout=timeout,
                max_retries=0,
            )
        self.client = client

    async def chat(self, messages: List[Dict[str, Any]], response_format: Optional[Dict[str, Any]] = None) -> str:
        kwargs: Dict[str, Any] = {
            "model": self.model,
            "temperature": self.temperature,
            "messages": messages,
        }
        if response_format:
            kwargs["response_format"] = response_format

        try:
            response = await asyncio.wait_for(self.client.chat.completions.create(**kwargs), timeout=self.timeout)
        except Exception as exc:
            raise translate_openai_error(exc) from exc
        choice = response.choices[0].message
        return choice.content or ""

    async def validate_credential(self) -> bool:
        """
        Check the credential by listing models.
        Rejected credentials give False; network failures and timeouts propagate.
        """
        try:
            await asyncio.wait_for(self.client.models.list(), timeout=self.timeout)
        except Exception as exc:
            error = translate_openai_error(exc)
            if isinstance(error, AuthError):
                logger.info("Credential rejected by model API", extra={"kind": error.kind})
                return False
            raise error from exc
        return True


__all__ = ["LLMClient", "DEFAULT_LLM_MODEL", "DEFAULT_TEMPERATURE"]
