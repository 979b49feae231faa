"""Rich console output and markdown report files."""

import logging
import re
from datetime import datetime
from pathlib import Path

from rich.console import Console
from rich.markdown import Markdown
from rich.panel import Panel
from rich.rule import Rule
from rich.table import Table
from rich.text import Text

from relay.models import (
    ConsensusResult,
    GenerationResult,
    ModelResponse,
    ReasoningResult,
    RoutingDecision,
)

logger = logging.getLogger(__name__)

console = Console(legacy_windows=False)

_CONFIDENCE_STYLES = {"high": "green", "medium": "yellow", "low": "red"}


def _slug(text: str, max_len: int = 40) -> str:
    """Convert text to a filename-safe slug."""
    slug = re.sub(r"[^\w\s-]", "", text.lower())
    slug = re.sub(r"[\s_-]+", "-", slug).strip("-")
    return slug[:max_len]


def _response_preview(response: ModelResponse, words: int = 50) -> str:
    """Return first N words of a response."""
    all_words = response.content.split()
    preview = " ".join(all_words[:words])
    if len(all_words) > words:
        preview += "..."
    return preview


def print_routing(decision: RoutingDecision) -> None:
    table = Table(show_header=False, box=None)
    table.add_row("Provider", f"[bold]{decision.provider}[/bold]")
    table.add_row("Model", decision.model)
    table.add_row("Reasoning", "yes" if decision.use_reasoning else "no")
    table.add_row("Rationale", decision.rationale)
    console.print(Panel(table, title="[bold cyan]Routing Decision[/bold cyan]", border_style="cyan"))


def print_generation(result: GenerationResult) -> None:
    console.print(Rule("[bold green]Generated Content[/bold green]"))
    meta = f"Provider: {result.provider}"
    if result.model:
        meta += f" ({result.model})"
    if result.fallback:
        meta += " | fallback"
    console.print(Text(meta, style="dim"))
    if result.message:
        console.print(f"[yellow]{result.message}[/yellow]")
    console.print(Markdown(result.content))


def print_reasoning(result: ReasoningResult) -> None:
    console.print(Rule("[bold green]Research Synthesis[/bold green]"))
    console.print(
        Text(
            f"Queries: {result.query_count} | "
            f"Completeness: {result.completeness_score:.2f} | "
            f"Duration: {result.elapsed_ms / 1000:.1f}s",
            style="dim",
        )
    )
    console.print(Markdown(result.synthesized_text))


def print_consensus(result: ConsensusResult) -> None:
    console.print(Rule("[bold cyan]Provider Responses[/bold cyan]"))
    for resp in result.responses:
        console.print(
            Panel(
                _response_preview(resp),
                title=f"[bold]{resp.provider}[/bold] ({resp.model})",
                subtitle=f"quality {resp.quality_score:.2f} | {resp.latency_ms / 1000:.1f}s",
                border_style="dim",
            )
        )

    console.print(Rule("[bold green]Consensus Synthesis[/bold green]"))
    style = _CONFIDENCE_STYLES.get(result.confidence_level, "white")
    console.print(
        Text.assemble(
            ("Confidence: ", "dim"),
            (result.confidence_level, f"bold {style}"),
            (
                f" | Agreement: {result.consensus_score:.2f} | "
                f"Synthesized by: {result.synthesis_provider or 'none'} | "
                f"Duration: {result.elapsed_ms / 1000:.1f}s",
                "dim",
            ),
        )
    )
    if result.message:
        console.print(f"[yellow]{result.message}[/yellow]")
    console.print(Markdown(result.synthesized_text))


def render_generation(query: str, result: GenerationResult, decision: RoutingDecision | None = None) -> str:
    lines = [
        f"# Generation: {query[:80]}",
        "",
        f"**Date:** {datetime.now().strftime('%Y-%m-%d %H:%M:%S')}",
        f"**Provider:** {result.provider}" + (f" ({result.model})" if result.model else ""),
        f"**Fallback:** {'yes' if result.fallback else 'no'}",
    ]
    if decision is not None:
        lines.append(f"**Routing:** {decision.rationale} (reasoning: {'yes' if decision.use_reasoning else 'no'})")
    if result.message:
        lines.append(f"**Note:** {result.message}")
    lines += ["", "---", "", result.content, ""]
    if result.errors:
        lines += ["## Provider Errors", ""] + [f"- {e}" for e in result.errors] + [""]
    return "\n".join(lines)


def render_reasoning(query: str, result: ReasoningResult) -> str:
    lines = [
        f"# Research: {query[:80]}",
        "",
        f"**Date:** {datetime.now().strftime('%Y-%m-%d %H:%M:%S')}",
        f"**Queries:** {result.query_count}",
        f"**Completeness:** {result.completeness_score:.2f}",
        f"**Duration:** {result.elapsed_ms / 1000:.1f}s",
        "",
        "## Research Paths",
        "",
    ]
    for path in result.paths:
        lines.append(f"{path.iteration}. {path.query} *(relevance {path.relevance_score:.1f})*")
    lines += ["", "---", "", result.synthesized_text]
    return "\n".join(lines)


def render_consensus(query: str, result: ConsensusResult) -> str:
    lines = [
        f"# Consensus: {query[:80]}",
        "",
        f"**Date:** {datetime.now().strftime('%Y-%m-%d %H:%M:%S')}",
        f"**Providers:** {', '.join(r.provider for r in result.responses) or 'none'}",
        f"**Synthesizer:** {result.synthesis_provider or 'none'}",
        f"**Agreement:** {result.consensus_score:.2f}",
        f"**Confidence:** {result.confidence_level}",
        f"**Duration:** {result.elapsed_ms / 1000:.1f}s",
        "",
        "---",
        "",
    ]
    for resp in result.responses:
        lines += [
            f"## {resp.provider.title()} ({resp.model})",
            "",
            resp.content,
            "",
            f"*Quality: {resp.quality_score:.2f} | Latency: {resp.latency_ms}ms"
            + (f" | Tokens: {resp.token_count}" if resp.token_count else "")
            + "*",
            "",
        ]
    lines += ["## Synthesis", ""]
    if result.message:
        lines += [f"> {result.message}", ""]
    lines += [result.synthesized_text, ""]
    return "\n".join(lines)


def save_report(markdown: str, query: str, output_dir: Path, slug_override: str | None = None) -> Path:
    """Write a markdown report named <timestamp>_<slug>.md and return its path."""
    output_dir.mkdir(parents=True, exist_ok=True)

    timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
    slug = slug_override if slug_override is not None else _slug(query)
    filepath = output_dir / f"{timestamp}_{slug}.md"

    filepath.write_text(markdown, encoding="utf-8")
    logger.info("Report saved to: %s", filepath)
    return filepath
