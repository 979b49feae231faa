"""Abstract base and error taxonomy for all text-generation providers."""

import os
from abc import ABC, abstractmethod

from config.config_loader import ModelConfig
from relay.models import ModelResponse


class ProviderError(Exception):
    """Raised when a provider call fails."""

    def __init__(self, provider_name: str, message: str) -> None:
        self.provider_name = provider_name
        super().__init__(f"[{provider_name}] {message}")


class ProviderAuthError(ProviderError):
    """Credential rejected by the remote service."""


class MissingCredentialError(ProviderAuthError):
    """No credential configured for the provider."""

    def __init__(self, provider_name: str, env_var: str) -> None:
        self.env_var = env_var
        super().__init__(provider_name, f"Missing API key: set {env_var} in .env")


class ProviderRateLimitError(ProviderError):
    """Remote service refused the call because of quota or rate limits."""


class ProviderTimeoutError(ProviderError):
    """Call did not finish within its time budget."""


class MalformedResponseError(ProviderError):
    """Remote service answered but the payload carried no usable text."""


class AIProvider(ABC):
    """Abstract base for all AI model providers."""

    @abstractmethod
    def name(self) -> str:
        """Return the short provider name (e.g. 'openai', 'anthropic')."""
        ...

    @abstractmethod
    def model_string(self) -> str:
        """Return the default model identifier string."""
        ...

    @abstractmethod
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
        """Generate a response for the given prompt.

        Args:
            user_prompt: The user message.
            system_prompt: Optional system instruction.
            temperature: Sampling temperature (0-2).
            max_tokens: Overrides the configured output token budget.
            timeout_sec: Overrides the configured request timeout.
            model: Overrides the configured model string.

        Returns:
            ModelResponse dataclass with content and metadata.

        Raises:
            ProviderError: On missing credential, API failure, timeout, or
                invalid response.
        """
        ...


def read_api_key(config: ModelConfig) -> str:
    """Credential for a provider from the environment, "" when unset."""
    return os.environ.get(config.api_key_env, "").strip()
