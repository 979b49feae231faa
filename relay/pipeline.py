"""Routed generation: classify, ground, then generate through the fallback chain."""

import logging
from dataclasses import dataclass

from config.config_loader import AppConfig
from relay.consensus import ConsensusEngine
from relay.fallback import FallbackGenerator
from relay.grounding import fetch_grounding
from relay.models import GenerationRequest, ReasoningConfig, RoutedResponse, RoutingOverrides
from relay.providers.base import AIProvider
from relay.providers.registry import build_providers
from relay.reasoning import ReasoningLoop
from relay.research import PerplexityResearchProvider, ResearchProvider, ground_system_prompt
from relay.router import Router

logger = logging.getLogger(__name__)


class Pipeline:
    """Router -> optional grounding -> fallback generator."""

    def __init__(
        self,
        router: Router,
        generator: FallbackGenerator,
        *,
        reasoning: ReasoningLoop,
        research: ResearchProvider,
    ) -> None:
        self._router = router
        self._generator = generator
        self._reasoning = reasoning
        self._research = research

    async def respond(
        self,
        query: str,
        context: str = "",
        system_instruction: str = "",
        overrides: RoutingOverrides | None = None,
        temperature: float = 0.7,
    ) -> RoutedResponse:
        """Route and answer a query.

        Raises:
            ResearchError: If grounding was requested and failed.
            ConfigurationError: If the research credential is missing.
        """
        decision = self._router.classify(query, context, overrides)

        grounding = await fetch_grounding(
            query,
            context,
            use_reasoning=decision.use_reasoning,
            reasoning=self._reasoning,
            research=self._research,
        )
        if grounding:
            logger.info("Using %s with %s research", decision.provider,
                        "reasoning" if decision.use_reasoning else "direct")

        request = GenerationRequest(
            query=query,
            system_instruction=ground_system_prompt(system_instruction, grounding),
            temperature=temperature,
            provider_hint=decision.provider,
            model=decision.model or None,
        )
        generation = await self._generator.generate(request)
        return RoutedResponse(decision=decision, generation=generation, grounded=bool(grounding))


@dataclass
class Services:
    """Explicitly constructed components sharing one set of provider adapters."""

    providers: dict[str, AIProvider]
    research: ResearchProvider
    router: Router
    generator: FallbackGenerator
    reasoning: ReasoningLoop
    consensus: ConsensusEngine
    pipeline: Pipeline


def build_services(
    config: AppConfig,
    providers: dict[str, AIProvider] | None = None,
    research: ResearchProvider | None = None,
) -> Services:
    """Wire every component from configuration; collaborators may be injected."""
    providers = providers if providers is not None else build_providers(config)
    research = research or PerplexityResearchProvider(config.research, config.prompts.research_system)

    reasoning = ReasoningLoop(
        research,
        ReasoningConfig(
            max_iterations=config.reasoning.max_iterations,
            completeness_threshold=config.reasoning.completeness_threshold,
            timeout_ms=config.reasoning.timeout_ms,
        ),
    )
    router = Router(
        default_models={name: cfg.model for name, cfg in config.models.items()},
        default_provider=config.defaults.default_provider,
    )
    generator = FallbackGenerator(
        providers,
        config.fallback,
        default_provider=config.defaults.default_provider,
        fallback_order=config.defaults.fallback_order,
        default_system=config.prompts.default_system,
        simplified_system=config.prompts.simplified_system,
    )
    consensus = ConsensusEngine(
        providers,
        config.prompts.consensus_synthesis,
        reasoning=reasoning,
        research=research,
    )
    pipeline = Pipeline(router, generator, reasoning=reasoning, research=research)

    return Services(
        providers=providers,
        research=research,
        router=router,
        generator=generator,
        reasoning=reasoning,
        consensus=consensus,
        pipeline=pipeline,
    )
