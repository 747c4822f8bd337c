"""Gemini provider using google-genai SDK with native async."""

import asyncio
import logging
import os
import time
from typing import Any

from google import genai
from google.genai import types as genai_types

from config.config_loader import ProviderConfig
from haiku_arena.models import ModelResponse
from haiku_arena.providers.base import AIProvider, ProviderError

logger = logging.getLogger(__name__)


class GeminiProvider(AIProvider):
    """Google Gemini provider via google-genai SDK."""

    def __init__(self, config: ProviderConfig) -> None:
        self._config = config
        api_key = os.environ.get(config.api_key_env, "").strip()
        if not api_key:
            raise ProviderError(config.name, f"Missing API key: {config.api_key_env}")
        self._client = genai.Client(api_key=api_key)

    def name(self) -> str:
        return self._config.name

    def model_string(self) -> str:
        return self._config.model

    async def generate(
        self,
        prompt: str,
        *,
        temperature: float | None = None,
        response_schema: dict[str, Any] | None = None,
        purpose: str = "",
    ) -> ModelResponse:
        generation_config = genai_types.GenerateContentConfig(
            max_output_tokens=self._config.max_tokens,
            temperature=temperature,
        )
        if response_schema is not None:
            generation_config.response_mime_type = "application/json"
            generation_config.response_schema = response_schema

        start = time.monotonic()
        try:
            response = await asyncio.wait_for(
                self._client.aio.models.generate_content(
                    model=self._config.model,
                    contents=prompt,
                    config=generation_config,
                ),
                timeout=self._config.timeout_sec,
            )
        except TimeoutError as exc:
            raise ProviderError(self._config.name, f"Request timed out after {self._config.timeout_sec}s") from exc
        except Exception as exc:
            raise ProviderError(self._config.name, f"API call failed: {exc}") from exc

        latency = time.monotonic() - start

        if not response.text:
            raise ProviderError(self._config.name, "Empty response text")

        token_count: int | None = None
        if response.usage_metadata:
            token_count = response.usage_metadata.total_token_count

        logger.info(
            "Gemini %s: %.2fs, %s tokens",
            purpose or "call",
            latency,
            token_count,
        )

        return ModelResponse(
            provider=self._config.name,
            model=self._config.model,
            content=response.text,
            latency_sec=latency,
            token_count=token_count,
            purpose=purpose,
        )
