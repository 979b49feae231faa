"""Tests for relay/cli.py: option helpers and commands with mocked services."""

from pathlib import Path
from unittest.mock import AsyncMock

import pytest
from click.testing import CliRunner

from relay import cli
from relay.cli import _provider_config, _resolve_panel, _routing_overrides, main
from relay.pipeline import build_services
from relay.providers.base import ProviderError
from relay.research import ResearchError

from tests.conftest import make_response

LONG_ANSWER = (
    "Competitor pricing for wireless earbuds clusters into three tiers. Premium brands hold their "
    "price points while budget challengers undercut them aggressively, and bundles with charging "
    "cases or subscriptions blur direct comparisons for shoppers. Retail promotions around holidays "
    "matter more than list prices for most buyers, so analyze seasonal discounts before changing "
    "your own pricing."
)


@pytest.fixture
def runner() -> CliRunner:
    return CliRunner()


@pytest.fixture
def patched_services(monkeypatch, three_providers, mock_research):
    """Make the CLI build its services around mock providers and research."""

    def _build(config):
        return build_services(config, providers=three_providers, research=mock_research)

    monkeypatch.setattr(cli, "build_services", _build)
    return three_providers


# ---------------------------------------------------------------------------
# Option helpers
# ---------------------------------------------------------------------------

def test_resolve_panel_default(sample_app_config):
    assert _resolve_panel(sample_app_config, None) == ("openai", "anthropic", "gemini")


def test_resolve_panel_custom(sample_app_config):
    assert _resolve_panel(sample_app_config, "openai, gemini,") == ("openai", "gemini")


def test_provider_config_defaults(sample_app_config):
    config = _provider_config(sample_app_config, None, None, None, None)
    assert config.synthesis_provider == "anthropic"
    assert config.quality_threshold == 0.6
    assert config.use_reasoning is False


def test_provider_config_overrides(sample_app_config):
    config = _provider_config(sample_app_config, "openai,gemini", "openai", 0.0, True)
    assert config.enabled_providers == ("openai", "gemini")
    assert config.synthesis_provider == "openai"
    assert config.quality_threshold == 0.0
    assert config.use_reasoning is True


def test_routing_overrides_model_selects_family():
    overrides = _routing_overrides(None, "claude-3-5-haiku-latest")
    assert overrides.manual_provider == "anthropic"
    assert overrides.manual_model == "claude-3-5-haiku-latest"


def test_routing_overrides_explicit_provider_kept():
    overrides = _routing_overrides("gemini", "gpt-4o-mini", force_reasoning=True)
    assert overrides.manual_provider == "gemini"
    assert overrides.force_reasoning is True


def test_routing_overrides_unknown_model_not_forced():
    assert _routing_overrides(None, "mystery-7b").manual_provider is None


# ---------------------------------------------------------------------------
# Commands
# ---------------------------------------------------------------------------

def test_route_shows_decision(runner, patched_services):
    result = runner.invoke(main, ["--no-save", "route", "Create a slogan for a coffee brand"])

    assert result.exit_code == 0, result.output
    assert "openai" in result.output
    assert "Creative content generation" in result.output
    for provider in patched_services.values():
        provider.generate.assert_not_called()


def test_route_run_executes(runner, patched_services):
    result = runner.invoke(main, ["--no-save", "route", "Create a slogan for a coffee brand", "--run"])

    assert result.exit_code == 0, result.output
    assert "Response from OpenAI" in result.output
    patched_services["openai"].generate.assert_awaited_once()


def test_generate_saves_report(runner, patched_services, tmp_path: Path):
    out_dir = tmp_path / "reports"
    result = runner.invoke(main, ["--output", str(out_dir), "generate", "Write a tagline", "--model", "gpt-4o"])

    assert result.exit_code == 0, result.output
    files = list(out_dir.glob("*.md"))
    assert len(files) == 1
    text = files[0].read_text(encoding="utf-8")
    assert "Response from OpenAI" in text
    assert "**Fallback:** no" in text


def test_generate_falls_back(runner, patched_services):
    patched_services["anthropic"].generate = AsyncMock(side_effect=ProviderError("anthropic", "down"))

    result = runner.invoke(main, ["--no-save", "generate", "Write a tagline"])

    assert result.exit_code == 0, result.output
    assert "Response from OpenAI" in result.output
    assert "fallback" in result.output


def test_consensus_command(runner, patched_services):
    for name, provider in patched_services.items():
        provider.generate = AsyncMock(return_value=make_response(name, LONG_ANSWER))

    result = runner.invoke(
        main,
        ["--no-save", "consensus", "Analyze competitor pricing for wireless earbuds",
         "--providers", "openai,gemini", "--synthesizer", "anthropic"],
    )

    assert result.exit_code == 0, result.output
    assert "high" in result.output
    patched_services["anthropic"].generate.assert_awaited_once()


def test_consensus_unknown_provider_exits_1(runner, patched_services):
    result = runner.invoke(main, ["--no-save", "consensus", "q", "--providers", "mistral"])
    assert result.exit_code == 1
    assert "mistral" in result.output


def test_research_error_exits_1(runner, patched_services, mock_research):
    mock_research.research.side_effect = ResearchError("Research call failed: 503")

    result = runner.invoke(main, ["--no-save", "research", "Nike campaigns"])

    assert result.exit_code == 1
    assert "Research error" in result.output


def test_research_command(runner, patched_services, mock_research):
    result = runner.invoke(main, ["--no-save", "research", "Nike campaigns", "--max-iterations", "1"])

    assert result.exit_code == 0, result.output
    assert mock_research.research.await_count == 2
    assert "Comprehensive Analysis" in result.output


def test_health_all_ok(runner, patched_services):
    result = runner.invoke(main, ["health"])
    assert result.exit_code == 0, result.output
    assert "OK" in result.output


def test_health_all_fail_exits_1(runner, patched_services):
    for name, provider in patched_services.items():
        provider.generate = AsyncMock(side_effect=ProviderError(name, "down"))

    result = runner.invoke(main, ["health"])

    assert result.exit_code == 1
    assert "No providers passed" in result.output


def test_inbox_processes_and_archives(runner, patched_services, tmp_path: Path):
    inbox_dir = tmp_path / "inbox"
    inbox_dir.mkdir()
    (inbox_dir / "tagline.md").write_text("---\nmode: generate\n---\nWrite a tagline", encoding="utf-8")
    (inbox_dir / "broken.md").write_text("---\nmode: debate\n---\nQuestion", encoding="utf-8")
    out_dir = tmp_path / "reports"

    result = runner.invoke(main, ["--output", str(out_dir), "inbox", "--inbox-dir", str(inbox_dir)])

    assert result.exit_code == 0, result.output
    assert list(inbox_dir.glob("*.md")) == []
    archived = sorted(p.name for p in (inbox_dir / "archive").glob("*.md"))
    assert any(name.startswith("FAILED_") and name.endswith("_broken.md") for name in archived)
    assert any(not name.startswith("FAILED_") and name.endswith("_tagline.md") for name in archived)
    reports = list(out_dir.glob("*_tagline.md"))
    assert len(reports) == 1


def test_inbox_empty(runner, patched_services, tmp_path: Path):
    result = runner.invoke(main, ["inbox", "--inbox-dir", str(tmp_path / "empty")])
    assert result.exit_code == 0
    assert "No briefs in inbox." in result.output


def test_missing_settings_file_rejected(runner, tmp_path: Path):
    result = runner.invoke(main, ["--settings", str(tmp_path / "nope.yaml"), "health"])
    assert result.exit_code != 0


def test_route_model_without_provider(runner, patched_services):
    result = runner.invoke(main, ["--no-save", "route", "Write a tagline", "--model", "gemini-1.5-flash", "--run"])

    assert result.exit_code == 0, result.output
    patched_services["openai"].generate.assert_not_called()
    assert patched_services["gemini"].generate.await_args.kwargs["model"] == "gemini-1.5-flash"


def test_inbox_route_brief_uses_model(runner, patched_services, tmp_path: Path):
    inbox_dir = tmp_path / "inbox"
    inbox_dir.mkdir()
    (inbox_dir / "poem.md").write_text(
        "---\nmode: route\nmodel: claude-3-5-haiku-latest\n---\nWrite a short poem", encoding="utf-8"
    )

    result = runner.invoke(main, ["--no-save", "inbox", "--inbox-dir", str(inbox_dir)])

    assert result.exit_code == 0, result.output
    patched_services["openai"].generate.assert_not_called()
    assert patched_services["anthropic"].generate.await_args.kwargs["model"] == "claude-3-5-haiku-latest"


def test_inbox_no_save_writes_no_reports(runner, patched_services, tmp_path: Path):
    inbox_dir = tmp_path / "inbox"
    inbox_dir.mkdir()
    (inbox_dir / "tagline.md").write_text("---\nmode: generate\n---\nWrite a tagline", encoding="utf-8")
    out_dir = tmp_path / "reports"

    result = runner.invoke(main, ["--no-save", "--output", str(out_dir), "inbox", "--inbox-dir", str(inbox_dir)])

    assert result.exit_code == 0, result.output
    assert not out_dir.exists() or list(out_dir.glob("*.md")) == []
    assert "not saved" in result.output
    assert len(list((inbox_dir / "archive").glob("*_tagline.md"))) == 1
