"""OpenAI provider using openai SDK with native async."""

import asyncio
import logging
import time

import openai
from openai import AsyncOpenAI

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


def chat_messages(user_prompt: str, system_prompt: str) -> list[dict[str, str]]:
    """Build a chat-completions message list, omitting an empty system turn."""
    messages: list[dict[str, str]] = []
    if system_prompt:
        messages.append({"role": "system", "content": system_prompt})
    messages.append({"role": "user", "content": user_prompt})
    return messages


def map_openai_error(provider_name: str, exc: Exception) -> ProviderError:
    """Translate an openai SDK exception into the provider error taxonomy."""
    if isinstance(exc, (openai.AuthenticationError, openai.PermissionDeniedError)):
        return ProviderAuthError(provider_name, f"Authentication failed: {exc}")
    if isinstance(exc, openai.RateLimitError):
        return ProviderRateLimitError(provider_name, f"Rate limited: {exc}")
    if isinstance(exc, openai.APITimeoutError):
        return ProviderTimeoutError(provider_name, f"Request timed out: {exc}")
    return ProviderError(provider_name, f"API call failed: {exc}")


class OpenAIProvider(AIProvider):
    """OpenAI provider via openai SDK."""

    def __init__(self, config: ModelConfig) -> None:
        self._config = config
        api_key = read_api_key(config)
        self._client: AsyncOpenAI | None = None
        if api_key:
            self._client = AsyncOpenAI(api_key=api_key, base_url=config.base_url)

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
                self._client.chat.completions.create(
                    model=model_name,
                    messages=chat_messages(user_prompt, system_prompt),
                    temperature=temperature,
                    max_tokens=max_tokens or self._config.max_tokens,
                ),
                timeout=timeout,
            )
        except TimeoutError as exc:
            raise ProviderTimeoutError(self._config.name, f"Request timed out after {timeout}s") from exc
        except Exception as exc:
            raise map_openai_error(self._config.name, exc) from exc

        latency_ms = int((time.monotonic() - start) * 1000)

        choice = response.choices[0] if response.choices else None
        if not choice or not choice.message.content:
            raise MalformedResponseError(self._config.name, "Empty response content")

        token_count: int | None = None
        if response.usage:
            token_count = response.usage.total_tokens

        logger.info("OpenAI %s: %dms, %s tokens", model_name, latency_ms, token_count)

        return ModelResponse(
            provider=self._config.name,
            model=model_name,
            content=choice.message.content,
            latency_ms=latency_ms,
            token_count=token_count,
        )
