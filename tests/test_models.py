"""Tests for relay/models.py dataclasses."""

import dataclasses

import pytest

from relay.models import (
    ConsensusResult,
    GenerationRequest,
    GenerationResult,
    ModelResponse,
    ReasoningConfig,
    RoutingOverrides,
)


def test_generation_request_defaults():
    req = GenerationRequest(query="Write a tagline")
    assert req.system_instruction == ""
    assert req.temperature == 0.7
    assert req.provider_hint is None
    assert req.model is None


def test_generation_request_is_frozen():
    req = GenerationRequest(query="x")
    with pytest.raises(dataclasses.FrozenInstanceError):
        req.query = "y"  # type: ignore[misc]


def test_model_response_optional_token_count():
    r = ModelResponse(provider="gemini", model="gemini-1.5-pro", content="Some answer.", latency_ms=900)
    assert r.token_count is None
    assert r.quality_score == 0.0


def test_reasoning_config_defaults():
    cfg = ReasoningConfig()
    assert cfg.max_iterations == 3
    assert cfg.completeness_threshold == 0.85
    assert cfg.timeout_ms == 30000


def test_routing_overrides_default_enabled():
    overrides = RoutingOverrides()
    assert overrides.enabled is True
    assert overrides.force_reasoning is False


def test_generation_result_default_errors_not_shared():
    a = GenerationResult(content="a", provider="openai", model="gpt-4o", fallback=False)
    b = GenerationResult(content="b", provider="openai", model="gpt-4o", fallback=False)
    a.errors.append("boom")
    assert b.errors == []


def test_consensus_result_defaults():
    result = ConsensusResult(
        synthesized_text="text",
        responses=[],
        consensus_score=0.0,
        confidence_level="low",
        elapsed_ms=5,
    )
    assert result.synthesis_provider is None
    assert result.degraded is False
    assert result.message is None
