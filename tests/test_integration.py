"""Integration tests: real API calls, no mocks. Requires .env with provider API keys."""

import os

import pytest
from dotenv import load_dotenv

load_dotenv()

_PROVIDER_KEYS = {
    "openai": "OPENAI_API_KEY",
    "anthropic": "ANTHROPIC_API_KEY",
    "gemini": "GEMINI_API_KEY",
}
_AVAILABLE = [name for name, env in _PROVIDER_KEYS.items() if os.environ.get(env, "").strip()]
pytestmark = pytest.mark.integration

if not _AVAILABLE:
    pytestmark = pytest.mark.skip(reason="Need at least one provider API key")


async def test_fallback_generation_real_provider():
    """Generate through the real fallback chain, verify a provider served it."""
    from config.config_loader import load_config
    from relay.models import GenerationRequest
    from relay.pipeline import build_services

    config = load_config()
    services = build_services(config)

    result = await services.generator.generate(
        GenerationRequest(query="Write one sentence describing wireless earbuds.", provider_hint=_AVAILABLE[0])
    )

    assert result.provider != "fallback", result.errors
    assert result.content.strip()


@pytest.mark.skipif(len(_AVAILABLE) < 2, reason="Need 2+ provider API keys")
async def test_consensus_real_providers():
    """Run ungrounded consensus over every provider with a key."""
    from config.config_loader import load_config
    from relay.models import ProviderConfig
    from relay.pipeline import build_services

    config = load_config()
    services = build_services(config)

    result = await services.consensus.analyze(
        "Summarize the main factors that drive pricing for wireless earbuds",
        "",
        config.prompts.default_system,
        ProviderConfig(
            enabled_providers=tuple(_AVAILABLE),
            synthesis_provider=_AVAILABLE[0],
            quality_threshold=0.0,
        ),
    )

    assert result.responses
    assert result.synthesized_text.strip()


@pytest.mark.skipif(not os.environ.get("PERPLEXITY_API_KEY", "").strip(), reason="Need PERPLEXITY_API_KEY")
async def test_reasoning_loop_real_research():
    from config.config_loader import load_config
    from relay.models import ReasoningConfig
    from relay.pipeline import build_services

    services = build_services(load_config())

    result = await services.reasoning.run("Nike running campaigns", "campaign analysis", ReasoningConfig(max_iterations=1))

    assert result.query_count == 2
    assert "# Comprehensive Analysis" in result.synthesized_text
