"""Click CLI: config loading, component wiring, and the consumer-facing commands."""

import asyncio
import logging
import sys
from collections.abc import Awaitable
from dataclasses import dataclass
from pathlib import Path
from typing import TypeVar

import click
from dotenv import load_dotenv
from rich.console import Console
from rich.logging import RichHandler

from config.config_loader import AppConfig, ConfigurationError, load_config
from relay.fallback import provider_for_model
from relay.healthcheck import run_health_checks
from relay.inbox import Brief, archive_file, ensure_dirs, load_brief, scan_inbox
from relay.models import GenerationRequest, ProviderConfig, ReasoningConfig, RoutingOverrides
from relay.output import (
    print_consensus,
    print_generation,
    print_reasoning,
    print_routing,
    render_consensus,
    render_generation,
    render_reasoning,
    save_report,
)
from relay.pipeline import Services, build_services
from relay.research import ResearchError

logger = logging.getLogger(__name__)

console = Console(legacy_windows=False)

T = TypeVar("T")


@dataclass
class CliState:
    config: AppConfig
    output_dir: Path
    save: bool
    _services: Services | None = None

    @property
    def services(self) -> Services:
        if self._services is None:
            self._services = build_services(self.config)
        return self._services


def _setup_logging(verbose: bool) -> None:
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(message)s",
        handlers=[RichHandler(rich_tracebacks=True, show_path=False)],
    )


def _run(coro: Awaitable[T]) -> T:
    """Run a coroutine, turning grounding and configuration errors into exit code 1."""
    try:
        return asyncio.run(coro)
    except ConfigurationError as exc:
        console.print(f"[bold red]Config error:[/bold red] {exc}")
        sys.exit(1)
    except ResearchError as exc:
        console.print(f"[bold red]Research error:[/bold red] {exc}")
        sys.exit(1)


def _resolve_panel(config: AppConfig, providers_arg: str | None) -> tuple[str, ...]:
    """--providers overrides the configured consensus panel."""
    if providers_arg:
        return tuple(p.strip() for p in providers_arg.split(",") if p.strip())
    return tuple(config.consensus.enabled_providers)


def _provider_config(
    config: AppConfig,
    providers_arg: str | None,
    synthesizer: str | None,
    threshold: float | None,
    use_reasoning: bool | None,
) -> ProviderConfig:
    return ProviderConfig(
        enabled_providers=_resolve_panel(config, providers_arg),
        synthesis_provider=synthesizer or config.consensus.synthesis_provider,
        quality_threshold=threshold if threshold is not None else config.consensus.quality_threshold,
        use_reasoning=config.consensus.use_reasoning if use_reasoning is None else use_reasoning,
    )


def _routing_overrides(
    manual_provider: str | None,
    manual_model: str | None,
    force_reasoning: bool = False,
) -> RoutingOverrides:
    """A model given without a provider selects its own provider family."""
    if manual_model and not manual_provider:
        manual_provider = provider_for_model(manual_model)
        if manual_provider is None:
            logger.warning("Unrecognised model %r; ignoring it for routing", manual_model)
    return RoutingOverrides(
        manual_provider=manual_provider,
        manual_model=manual_model,
        force_reasoning=force_reasoning,
    )


def _maybe_save(state: CliState, markdown: str, query: str, slug_override: str | None = None) -> Path | None:
    if not state.save:
        return None
    saved = save_report(markdown, query, state.output_dir, slug_override=slug_override)
    console.print(f"\n[dim]Saved to: {saved}[/dim]")
    return saved


@click.group()
@click.option("--verbose", is_flag=True, help="Enable DEBUG-level logging")
@click.option("--output", "output_path", default=None, help="Report directory (default: from config)")
@click.option("--no-save", is_flag=True, default=False, help="Print results without writing a report")
@click.option("--settings", "settings_path", type=click.Path(exists=True, dir_okay=False), default=None,
              help="Alternative settings.yaml")
@click.pass_context
def main(
    ctx: click.Context,
    verbose: bool,
    output_path: str | None,
    no_save: bool,
    settings_path: str | None,
) -> None:
    """relay -- resilient multi-provider text generation.

    \b
    Examples:
      relay generate "Write a launch post for our earbuds" --model gpt-4o
      relay research "Nike running campaigns" --context "campaign analysis"
      relay consensus "Analyze competitor pricing for wireless earbuds" --providers openai,anthropic
      relay route "Create a slogan for a coffee brand" --run
      relay health
      relay inbox --inbox-dir ./briefs
    """
    # Model responses may contain characters the Windows console codepage can't encode.
    if sys.platform == "win32":
        if hasattr(sys.stdout, "reconfigure"):
            sys.stdout.reconfigure(encoding="utf-8", errors="replace")
        if hasattr(sys.stderr, "reconfigure"):
            sys.stderr.reconfigure(encoding="utf-8", errors="replace")

    load_dotenv()
    _setup_logging(verbose)

    try:
        config = load_config(Path(settings_path)) if settings_path else load_config()
    except FileNotFoundError as exc:
        console.print(f"[bold red]Config error:[/bold red] {exc}")
        sys.exit(1)

    ctx.obj = CliState(
        config=config,
        output_dir=Path(output_path) if output_path else config.defaults.output_dir,
        save=not no_save,
    )


@main.command()
@click.argument("prompt")
@click.option("--model", default=None, help="Model string; its family picks the primary provider")
@click.option("--provider", default=None, help="Primary provider (overrides --model family)")
@click.option("--system", "system_prompt", default="", help="System instruction")
@click.option("--temperature", default=0.7, type=click.FloatRange(0.0, 2.0), show_default=True)
@click.pass_obj
def generate(
    state: CliState,
    prompt: str,
    model: str | None,
    provider: str | None,
    system_prompt: str,
    temperature: float,
) -> None:
    """Generate text through the provider fallback chain."""
    request = GenerationRequest(
        query=prompt,
        system_instruction=system_prompt,
        temperature=temperature,
        provider_hint=provider,
        model=model,
    )
    result = _run(state.services.generator.generate(request))
    print_generation(result)
    _maybe_save(state, render_generation(prompt, result), prompt)


@main.command()
@click.argument("query")
@click.option("--context", "research_context", default="", help="Research context type, e.g. 'market research'")
@click.option("--max-iterations", default=None, type=click.IntRange(0), help="Follow-up query limit")
@click.option("--threshold", default=None, type=float, help="Completeness target")
@click.option("--timeout-ms", default=None, type=click.IntRange(0), help="Loop-wide time budget")
@click.pass_obj
def research(
    state: CliState,
    query: str,
    research_context: str,
    max_iterations: int | None,
    threshold: float | None,
    timeout_ms: int | None,
) -> None:
    """Run the iterative research loop."""
    defaults = state.config.reasoning
    config = ReasoningConfig(
        max_iterations=max_iterations if max_iterations is not None else defaults.max_iterations,
        completeness_threshold=threshold if threshold is not None else defaults.completeness_threshold,
        timeout_ms=timeout_ms if timeout_ms is not None else defaults.timeout_ms,
    )
    result = _run(state.services.reasoning.run(query, research_context, config))
    print_reasoning(result)
    _maybe_save(state, render_reasoning(query, result), query)


@main.command()
@click.argument("query")
@click.option("--context", "research_context", default="", help="Research context; empty skips grounding")
@click.option("--system", "system_prompt", default="", help="System instruction")
@click.option("--providers", "providers_arg", default=None, help="Comma-separated panel (default: from config)")
@click.option("--synthesizer", default=None, help="Provider that synthesizes (default: from config)")
@click.option("--threshold", default=None, type=float, help="Minimum quality score")
@click.option("--reasoning/--no-reasoning", "use_reasoning", default=None,
              help="Ground via the reasoning loop instead of one research call")
@click.pass_obj
def consensus(
    state: CliState,
    query: str,
    research_context: str,
    system_prompt: str,
    providers_arg: str | None,
    synthesizer: str | None,
    threshold: float | None,
    use_reasoning: bool | None,
) -> None:
    """Query several providers concurrently and synthesize one answer."""
    config = _provider_config(state.config, providers_arg, synthesizer, threshold, use_reasoning)
    system = system_prompt or state.config.prompts.default_system
    result = _run(state.services.consensus.analyze(query, research_context, system, config))
    print_consensus(result)
    _maybe_save(state, render_consensus(query, result), query)


@main.command()
@click.argument("query")
@click.option("--context", "research_context", default="", help="Research context")
@click.option("--system", "system_prompt", default="", help="System instruction (used with --run)")
@click.option("--provider", "manual_provider", default=None, help="Manual provider override")
@click.option("--model", "manual_model", default=None, help="Manual model override")
@click.option("--force-reasoning", is_flag=True, default=False, help="Always ground via the reasoning loop")
@click.option("--run", "execute", is_flag=True, default=False, help="Execute the routed prompt")
@click.pass_obj
def route(
    state: CliState,
    query: str,
    research_context: str,
    system_prompt: str,
    manual_provider: str | None,
    manual_model: str | None,
    force_reasoning: bool,
    execute: bool,
) -> None:
    """Show the routing decision for a query, optionally executing it."""
    overrides = _routing_overrides(manual_provider, manual_model, force_reasoning)
    if not execute:
        print_routing(state.services.router.classify(query, research_context, overrides))
        return

    routed = _run(state.services.pipeline.respond(query, research_context, system_prompt, overrides))
    print_routing(routed.decision)
    print_generation(routed.generation)
    _maybe_save(state, render_generation(query, routed.generation, routed.decision), query)


@main.command()
@click.pass_obj
def health(state: CliState) -> None:
    """Ping every configured provider."""
    console.print("\n[bold]Checking providers...[/bold]")
    results = asyncio.run(run_health_checks(state.services.providers))

    failed = 0
    for name in sorted(results):
        ok, err = results[name]
        if ok:
            console.print(f"  [green]OK  [/green] {name}")
        else:
            failed += 1
            short_err = err.splitlines()[0][:120] if err else "unknown error"
            console.print(f"  [red]FAIL[/red] {name}: {short_err}")

    if results and failed == len(results):
        console.print("\n[bold red]Error:[/bold red] No providers passed the health check.")
        sys.exit(1)


async def _process_brief(brief: Brief, state: CliState) -> str:
    """Execute one brief and return its markdown report."""
    services = state.services
    if brief.mode == "generate":
        request = GenerationRequest(query=brief.query, system_instruction=brief.system, model=brief.model)
        return render_generation(brief.query, await services.generator.generate(request))
    if brief.mode == "consensus":
        config = _provider_config(
            state.config,
            ",".join(brief.providers) if brief.providers else None,
            None, None, None,
        )
        system = brief.system or state.config.prompts.default_system
        result = await services.consensus.analyze(brief.query, brief.context, system, config)
        return render_consensus(brief.query, result)
    overrides = _routing_overrides(None, brief.model) if brief.model else None
    routed = await services.pipeline.respond(brief.query, brief.context, brief.system, overrides)
    return render_generation(brief.query, routed.generation, routed.decision)


@main.command()
@click.option("--inbox-dir", "inbox_dir_override", default=None, help="Override inbox folder (default: from config)")
@click.pass_obj
def inbox(state: CliState, inbox_dir_override: str | None) -> None:
    """Process every markdown brief in the inbox folder, then archive it."""
    if state.config.inbox is None and not inbox_dir_override:
        console.print("[bold red]Config error:[/bold red] no inbox configured; pass --inbox-dir")
        sys.exit(1)

    if inbox_dir_override:
        inbox_dir = Path(inbox_dir_override)
        archive_dir = inbox_dir / "archive"
    else:
        inbox_dir, archive_dir = state.config.inbox.dir, state.config.inbox.archive_dir
    ensure_dirs(inbox_dir, archive_dir)

    files = scan_inbox(inbox_dir)
    if not files:
        click.echo("No briefs in inbox.")
        return

    for file_path in files:
        try:
            brief = load_brief(file_path)
            markdown = asyncio.run(_process_brief(brief, state))
            saved = None
            if state.save:
                saved = save_report(markdown, brief.query, state.output_dir, slug_override=file_path.stem)
            else:
                click.echo(markdown)
            archived = archive_file(file_path, archive_dir)
            click.echo(f"Processed: {file_path.name} -> {saved or 'not saved'} (archived: {archived.name})")
        except Exception as e:
            logger.error("Failed: %s -- %s", file_path.name, e)
            archive_file(file_path, archive_dir, failed=True)


if __name__ == "__main__":
    main()
