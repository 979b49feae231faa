"""Deterministic prompt router: pick a provider and whether to ground with research."""

import logging
from dataclasses import dataclass

from relay.models import RoutingDecision, RoutingOverrides

logger = logging.getLogger(__name__)

DEFAULT_PROVIDER = "anthropic"

DEFAULT_MODELS: dict[str, str] = {
    "openai": "gpt-4o",
    "anthropic": "claude-sonnet-4-20250514",
    "gemini": "gemini-1.5-pro",
}


@dataclass(frozen=True)
class RoutingRule:
    category: str
    keywords: tuple[str, ...]
    provider: str
    use_reasoning: bool
    rationale: str
    match_context: bool = False  # also look for keywords in the research context

    def matches(self, query: str, context: str) -> bool:
        if any(kw in query for kw in self.keywords):
            return True
        return self.match_context and any(kw in context for kw in self.keywords)


# First match wins.
ROUTING_RULES: tuple[RoutingRule, ...] = (
    RoutingRule(
        category="research",
        keywords=(
            "research", "analyze", "analyse", "study", "investigate", "examine",
            "competitive", "competitor", "market analysis", "trends", "insights",
            "comprehensive", "detailed", "thorough", "deep dive",
        ),
        provider="anthropic",
        use_reasoning=True,
        rationale="Research and analysis task",
        match_context=True,
    ),
    RoutingRule(
        category="creative",
        keywords=(
            "create", "write", "generate", "design", "brainstorm", "campaign",
            "content", "copy", "headline", "slogan", "creative brief", "story",
            "narrative", "image",
        ),
        provider="openai",
        use_reasoning=False,
        rationale="Creative content generation",
    ),
    RoutingRule(
        category="technical",
        keywords=(
            "data", "metrics", "analytics", "performance", "roi", "calculate",
            "measure", "optimize", "algorithm", "technical", "implementation",
            "integration",
        ),
        provider="gemini",
        use_reasoning=False,
        rationale="Technical analysis task",
    ),
)

_REASONING_INDICATORS: tuple[str, ...] = (
    "comprehensive", "detailed", "deep research", "complete analysis",
    "compare", "versus", "competitive analysis", "strategy",
    "why did", "what made", "driving", "insights into",
)


def should_use_reasoning(query: str, context: str) -> bool:
    text = f"{query} {context}".lower()
    return any(indicator in text for indicator in _REASONING_INDICATORS)


class Router:
    """Keyword rule engine. Holds no state between calls."""

    def __init__(
        self,
        default_models: dict[str, str] | None = None,
        rules: tuple[RoutingRule, ...] = ROUTING_RULES,
        default_provider: str = DEFAULT_PROVIDER,
    ) -> None:
        self._default_models = {**DEFAULT_MODELS, **(default_models or {})}
        self._rules = rules
        self._default_provider = default_provider

    def default_model(self, provider: str) -> str:
        return self._default_models.get(provider, "")

    def classify(
        self,
        query: str,
        context: str = "",
        overrides: RoutingOverrides | None = None,
    ) -> RoutingDecision:
        overrides = overrides or RoutingOverrides()

        if not overrides.enabled or overrides.manual_provider:
            provider = overrides.manual_provider or self._default_provider
            decision = RoutingDecision(
                provider=provider,
                model=overrides.manual_model or self.default_model(provider),
                use_reasoning=overrides.force_reasoning or should_use_reasoning(query, context),
                rationale="Manual selection",
            )
            logger.debug("Routing override: %s", decision)
            return decision

        lowered_query = query.lower()
        lowered_context = context.lower()
        decision = None
        for rule in self._rules:
            if rule.matches(lowered_query, lowered_context):
                decision = RoutingDecision(
                    provider=rule.provider,
                    model=self.default_model(rule.provider),
                    use_reasoning=rule.use_reasoning,
                    rationale=rule.rationale,
                )
                break

        if decision is None:
            decision = RoutingDecision(
                provider=self._default_provider,
                model=self.default_model(self._default_provider),
                use_reasoning=True,
                rationale="Default routing with research grounding",
            )

        if overrides.force_reasoning and not decision.use_reasoning:
            decision.use_reasoning = True
            decision.rationale += " (reasoning forced)"

        logger.info(
            "Routed to %s (%s), reasoning=%s: %s",
            decision.provider, decision.model, decision.use_reasoning, decision.rationale,
        )
        return decision
