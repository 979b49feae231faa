"""Shared pytest fixtures."""

from pathlib import Path
from unittest.mock import AsyncMock

import pytest

from config.config_loader import (
    AppConfig,
    ConsensusDefaults,
    DefaultsConfig,
    FallbackConfig,
    ModelConfig,
    PromptsConfig,
    ResearchConfig,
)
from relay.models import ModelResponse, ResearchResult
from relay.providers.base import AIProvider
from relay.research import ResearchProvider

SYNTHESIS_TEMPLATE = "Query: {query}\n\nResponses:\n{responses}\n\nSynthesize:"


def make_response(provider: str, content: str, model: str = "mock-model") -> ModelResponse:
    return ModelResponse(
        provider=provider,
        model=model,
        content=content,
        latency_ms=100,
        token_count=10,
    )


class MockProvider(AIProvider):
    """Test double AIProvider."""

    def __init__(self, provider_name: str = "mock", response_content: str = "Mock response") -> None:
        self._name = provider_name
        self._response_content = response_content
        # Shadow the class method with an AsyncMock at the instance level.
        # ABC check passes because generate is defined in the class body below.
        self.generate = AsyncMock(  # type: ignore[assignment]
            return_value=make_response(provider_name, response_content)
        )

    def name(self) -> str:
        return self._name

    def model_string(self) -> str:
        return "mock-model"

    async def generate(  # type: ignore[override]
        self,
        user_prompt: str,
        system_prompt: str = "",
        **kwargs,
    ) -> ModelResponse:
        """Default implementation; replaced by AsyncMock in __init__."""
        return make_response(self._name, self._response_content)


class MockResearchProvider(ResearchProvider):
    """Research double returning canned text; records every query it receives."""

    def __init__(self, text: str = "Research findings.", citations: list[str] | None = None) -> None:
        self.research = AsyncMock(  # type: ignore[assignment]
            return_value=ResearchResult(text=text, citations=list(citations or []))
        )

    async def research(self, query: str) -> ResearchResult:  # type: ignore[override]
        return ResearchResult(text="")


@pytest.fixture
def mock_provider() -> MockProvider:
    return MockProvider()


@pytest.fixture
def mock_research() -> MockResearchProvider:
    return MockResearchProvider()


@pytest.fixture
def three_providers() -> dict[str, MockProvider]:
    return {
        "anthropic": MockProvider("anthropic", "Response from Anthropic"),
        "openai": MockProvider("openai", "Response from OpenAI"),
        "gemini": MockProvider("gemini", "Response from Gemini"),
    }


@pytest.fixture
def sample_model_config() -> ModelConfig:
    return ModelConfig(
        name="test_model",
        sdk="openai",
        model="test-model-1",
        api_key_env="RELAY_TEST_MISSING_KEY",
        timeout_sec=30,
        max_tokens=1024,
        base_url=None,
    )


@pytest.fixture
def sample_research_config() -> ResearchConfig:
    return ResearchConfig(
        model="sonar-pro",
        api_key_env="RELAY_TEST_MISSING_RESEARCH_KEY",
        base_url="https://api.perplexity.ai",
        timeout_sec=60,
        max_tokens=1000,
    )


@pytest.fixture
def fast_fallback_config() -> FallbackConfig:
    return FallbackConfig(
        primary_timeout_sec=0.2,
        fallback_timeout_sec=0.2,
        simplified_prompt_chars=100,
        simplified_max_tokens=50,
    )


@pytest.fixture
def sample_app_config(tmp_path: Path, sample_research_config: ResearchConfig) -> AppConfig:
    models = {
        name: ModelConfig(
            name=name,
            sdk=name,
            model=model,
            api_key_env=f"RELAY_TEST_{name.upper()}_KEY",
            timeout_sec=20,
            max_tokens=4000,
        )
        for name, model in (
            ("openai", "gpt-4o"),
            ("anthropic", "claude-sonnet-4-20250514"),
            ("gemini", "gemini-1.5-pro"),
        )
    }
    return AppConfig(
        defaults=DefaultsConfig(
            output_dir=tmp_path / "output",
            default_provider="anthropic",
            fallback_order=["anthropic", "openai", "gemini"],
        ),
        models=models,
        research=sample_research_config,
        prompts=PromptsConfig(consensus_synthesis=SYNTHESIS_TEMPLATE),
        consensus=ConsensusDefaults(
            enabled_providers=["openai", "anthropic", "gemini"],
            synthesis_provider="anthropic",
        ),
    )
