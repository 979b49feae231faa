"""Unit tests for provider adapters and the registry. No network calls."""

from dataclasses import replace

import pytest

from config.config_loader import ModelConfig
from relay.providers.anthropic import AnthropicProvider
from relay.providers.base import (
    MissingCredentialError,
    ProviderAuthError,
    ProviderError,
)
from relay.providers.gemini import GeminiProvider
from relay.providers.openai_provider import OpenAIProvider, chat_messages, map_openai_error
from relay.providers.registry import build_providers


@pytest.mark.parametrize("provider_cls", [OpenAIProvider, AnthropicProvider, GeminiProvider])
async def test_missing_credential_raises_without_network(provider_cls, sample_model_config, monkeypatch):
    monkeypatch.delenv(sample_model_config.api_key_env, raising=False)
    provider = provider_cls(sample_model_config)

    with pytest.raises(MissingCredentialError) as exc_info:
        await provider.generate("Hello")

    err = exc_info.value
    assert isinstance(err, ProviderAuthError)
    assert err.provider_name == "test_model"
    assert sample_model_config.api_key_env in str(err)


def test_provider_name_and_model(sample_model_config, monkeypatch):
    monkeypatch.delenv(sample_model_config.api_key_env, raising=False)
    provider = OpenAIProvider(sample_model_config)
    assert provider.name() == "test_model"
    assert provider.model_string() == "test-model-1"


def test_provider_error_message_format():
    err = ProviderError("gemini", "boom")
    assert str(err) == "[gemini] boom"
    assert err.provider_name == "gemini"


def test_chat_messages_omits_empty_system():
    assert chat_messages("Hi", "") == [{"role": "user", "content": "Hi"}]


def test_chat_messages_with_system():
    messages = chat_messages("Hi", "Be brief.")
    assert messages[0] == {"role": "system", "content": "Be brief."}
    assert messages[1] == {"role": "user", "content": "Hi"}


def test_map_openai_error_generic():
    err = map_openai_error("openai", RuntimeError("connection reset"))
    assert type(err) is ProviderError
    assert "connection reset" in str(err)


def test_build_providers_all_sdks(sample_app_config):
    providers = build_providers(sample_app_config)
    assert isinstance(providers["openai"], OpenAIProvider)
    assert isinstance(providers["anthropic"], AnthropicProvider)
    assert isinstance(providers["gemini"], GeminiProvider)


def test_build_providers_skips_unknown_sdk(sample_app_config, caplog):
    models = dict(sample_app_config.models)
    models["mystery"] = ModelConfig(
        name="mystery", sdk="nope", model="m", api_key_env="X", timeout_sec=1, max_tokens=1
    )
    config = replace(sample_app_config, models=models)

    with caplog.at_level("WARNING"):
        providers = build_providers(config)

    assert "mystery" not in providers
    assert "unknown sdk" in caplog.text
