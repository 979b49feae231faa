"""Anthropic Claude provider using anthropic SDK with native async."""

import asyncio
import logging
import time

import anthropic as anthropic_sdk

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


class AnthropicProvider(AIProvider):
    """Anthropic Claude provider via anthropic SDK."""

    def __init__(self, config: ModelConfig) -> None:
        self._config = config
        api_key = read_api_key(config)
        self._client: anthropic_sdk.AsyncAnthropic | None = None
        if api_key:
            self._client = anthropic_sdk.AsyncAnthropic(api_key=api_key)

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
        kwargs = {
            "model": model_name,
            "max_tokens": max_tokens or self._config.max_tokens,
            # Anthropic caps temperature at 1.0
            "temperature": min(temperature, 1.0),
            "messages": [{"role": "user", "content": user_prompt}],
        }
        if system_prompt:
            kwargs["system"] = system_prompt

        start = time.monotonic()
        try:
            response = await asyncio.wait_for(
                self._client.messages.create(**kwargs),
                timeout=timeout,
            )
        except TimeoutError as exc:
            raise ProviderTimeoutError(self._config.name, f"Request timed out after {timeout}s") from exc
        except (anthropic_sdk.AuthenticationError, anthropic_sdk.PermissionDeniedError) as exc:
            raise ProviderAuthError(self._config.name, f"Authentication failed: {exc}") from exc
        except anthropic_sdk.RateLimitError as exc:
            raise ProviderRateLimitError(self._config.name, f"Rate limited: {exc}") from exc
        except anthropic_sdk.APITimeoutError as exc:
            raise ProviderTimeoutError(self._config.name, f"Request timed out: {exc}") from exc
        except Exception as exc:
            raise ProviderError(self._config.name, f"API call failed: {exc}") from exc

        latency_ms = int((time.monotonic() - start) * 1000)

        if not response.content:
            raise MalformedResponseError(self._config.name, "Empty response content")

        text_blocks = [b.text for b in response.content if b.type == "text"]
        if not text_blocks:
            raise MalformedResponseError(self._config.name, "No text blocks in response")

        content = "\n".join(text_blocks)

        token_count: int | None = None
        if response.usage:
            token_count = response.usage.input_tokens + response.usage.output_tokens

        logger.info("Anthropic %s: %dms, %s tokens", model_name, latency_ms, token_count)

        return ModelResponse(
            provider=self._config.name,
            model=model_name,
            content=content,
            latency_ms=latency_ms,
            token_count=token_count,
        )
