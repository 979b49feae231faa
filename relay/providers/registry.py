"""Map configured models onto provider adapter classes."""

import logging

from config.config_loader import AppConfig
from relay.providers.anthropic import AnthropicProvider
from relay.providers.base import AIProvider
from relay.providers.gemini import GeminiProvider
from relay.providers.openai_provider import OpenAIProvider

logger = logging.getLogger(__name__)

PROVIDER_CLASSES: dict[str, type[AIProvider]] = {
    "openai": OpenAIProvider,
    "anthropic": AnthropicProvider,
    "gemini": GeminiProvider,
}


def build_providers(config: AppConfig) -> dict[str, AIProvider]:
    """Build one adapter per configured model, keyed by provider name.

    Providers without a credential are still built; their calls fail with
    MissingCredentialError so callers can fall back deterministically.
    """
    providers: dict[str, AIProvider] = {}
    for name, model_cfg in config.models.items():
        provider_cls = PROVIDER_CLASSES.get(model_cfg.sdk)
        if provider_cls is None:
            logger.warning("Provider '%s' uses unknown sdk '%s', skipping", name, model_cfg.sdk)
            continue
        providers[name] = provider_cls(model_cfg)
    return providers
