"""Gemini provider using google-genai SDK with native async."""

import asyncio
import logging
import time

from google import genai
from google.genai import errors as genai_errors
from google.genai import types as genai_types

from config.config_loader import ModelConfig
from relay.models import ModelResponse
from relay.providers.base import (
    AIProvider,
    MalformedResponseError,
    MissingCredentialError,
    ProviderAuthError,
    ProviderError,
    ProviderRateLimitError,
    ProviderTimeoutError,
    read_api_key,
)

logger = logging.getLogger(__name__)


class GeminiProvider(AIProvider):
    """Google Gemini provider via google-genai SDK."""

    def __init__(self, config: ModelConfig) -> None:
        self._config = config
        api_key = read_api_key(config)
        self._client: genai.Client | None = None
        if api_key:
            self._client = genai.Client(api_key=api_key)

    def name(self) -> str:
        return self._config.name

    def model_string(self) -> str:
        return self._config.model

    async def generate(
        self,
        user_prompt: str,
        system_prompt: str = "",
        *,
        temperature: float = 0.7,
        max_tokens: int | None = None,
        timeout_sec: float | None = None,
        model: str | None = None,
    ) -> ModelResponse:
        if self._client is None:
            raise MissingCredentialError(self._config.name, self._config.api_key_env)

        model_name = model or self._config.model
        timeout = timeout_sec or self._config.timeout_sec
        start = time.monotonic()
        try:
            response = await asyncio.wait_for(
                self._client.aio.models.generate_content(
                    model=model_name,
                    contents=user_prompt,
                    config=genai_types.GenerateContentConfig(
                        system_instruction=system_prompt or None,
                        temperature=temperature,
                        max_output_tokens=max_tokens or self._config.max_tokens,
                    ),
                ),
                timeout=timeout,
            )
        except TimeoutError as exc:
            raise ProviderTimeoutError(self._config.name, f"Request timed out after {timeout}s") from exc
        except genai_errors.ClientError as exc:
            if exc.code in (401, 403):
                raise ProviderAuthError(self._config.name, f"Authentication failed: {exc}") from exc
            if exc.code == 429:
                raise ProviderRateLimitError(self._config.name, f"Rate limited: {exc}") from exc
            raise ProviderError(self._config.name, f"API call failed: {exc}") from exc
        except Exception as exc:
            raise ProviderError(self._config.name, f"API call failed: {exc}") from exc

        latency_ms = int((time.monotonic() - start) * 1000)

        if not response.text:
            raise MalformedResponseError(self._config.name, "Empty response text")

        token_count: int | None = None
        if response.usage_metadata:
            token_count = response.usage_metadata.total_token_count

        logger.info("Gemini %s: %dms, %s tokens", model_name, latency_ms, token_count)

        return ModelResponse(
            provider=self._config.name,
            model=model_name,
            content=response.text,
            latency_ms=latency_ms,
            token_count=token_count,
        )
