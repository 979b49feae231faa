"""Iterative research loop: follow-up queries until complete or out of budget."""

import logging
import re
import time
from dataclasses import dataclass

from config.config_loader import ConfigurationError
from relay.models import ReasoningConfig, ReasoningResult, ResearchPath, ResearchResult
from relay.research import ResearchError, ResearchProvider, build_research_query

logger = logging.getLogger(__name__)

INITIAL_RELEVANCE = 1.0
INITIAL_CONTRIBUTION = 0.4
FOLLOW_UP_RELEVANCE = 0.9
FOLLOW_UP_CONTRIBUTION = 0.3
MAX_COMPLETENESS = 1.0

FALLBACK_ENTITY = "the brand"

KNOWN_BRANDS = frozenset({
    "Nike", "Adidas", "Apple", "Google", "Microsoft", "Amazon", "Facebook",
    "Meta", "Tesla", "Coca-Cola", "Pepsi", "McDonald's", "Samsung", "Sony",
})

_NON_ENTITY_WORDS = frozenset({
    "The", "And", "For", "With", "This", "That", "Why", "What", "How", "When",
    "Where", "Which", "Who", "Analyze", "Research", "Compare", "Explain",
    "Describe", "Find", "Create", "Write", "Give", "List", "Show", "Tell",
})


@dataclass(frozen=True)
class ReasoningPattern:
    """A research domain: trigger keywords, ordered follow-up aspects, phrasing."""

    name: str
    keywords: tuple[str, ...]
    aspects: tuple[str, ...]
    template: str  # formatted with {entity} and {aspect}


# Order matters: first pattern with a keyword hit wins, the first entry is the default.
DEFAULT_PATTERNS: tuple[ReasoningPattern, ...] = (
    ReasoningPattern(
        name="campaign_analysis",
        keywords=("campaign", "campaigns", "advertising", "ad", "ads"),
        aspects=(
            "performance metrics and ROI data",
            "competitive campaign context",
            "target audience demographics and response",
            "creative strategy and execution details",
        ),
        template="{entity} {aspect} marketing campaigns",
    ),
    ReasoningPattern(
        name="brand_strategy",
        keywords=("brand", "branding", "strategy", "positioning"),
        aspects=(
            "market positioning and differentiation",
            "brand perception and sentiment analysis",
            "competitive landscape and market share",
            "audience insights and behavior patterns",
        ),
        template="{entity} {aspect} brand analysis market research",
    ),
    ReasoningPattern(
        name="trend_research",
        keywords=("trend", "trends", "emerging", "future"),
        aspects=(
            "adoption rates and market penetration",
            "demographic and psychographic breakdowns",
            "industry impact and business implications",
            "future projections and growth potential",
        ),
        template="{entity} {aspect} industry trends market analysis",
    ),
    ReasoningPattern(
        name="creative_analysis",
        keywords=("creative", "design", "visual"),
        aspects=(
            "engagement metrics and performance data",
            "cultural context and relevance factors",
            "viral mechanics and shareability factors",
            "brand impact and attribution metrics",
        ),
        template="{entity} {aspect} creative campaigns advertising effectiveness",
    ),
)


def _has_keyword(text: str, keyword: str) -> bool:
    return re.search(rf"\b{re.escape(keyword)}\b", text) is not None


def classify_pattern(
    query: str,
    context_type: str,
    patterns: tuple[ReasoningPattern, ...] = DEFAULT_PATTERNS,
) -> ReasoningPattern:
    """Pick the first pattern whose keywords appear in the query or context type."""
    text = f"{query} {context_type}".lower()
    for pattern in patterns:
        if any(_has_keyword(text, kw) for kw in pattern.keywords):
            return pattern
    return patterns[0]


def extract_entities(query: str) -> list[str]:
    """Known brands first, then capitalized words; a generic placeholder if neither."""
    words = [w.strip(",.;:!?\"()") for w in query.split()]
    brands = [w for w in words if w in KNOWN_BRANDS]
    capitalized = [
        w for w in words
        if len(w) > 2 and w[0].isupper() and w not in _NON_ENTITY_WORDS
    ]
    entities = list(dict.fromkeys(brands + capitalized))
    return entities or [FALLBACK_ENTITY]


def next_uncovered_aspect(pattern: ReasoningPattern, paths: list[ResearchPath]) -> str | None:
    """First aspect not already contained in any previous query."""
    covered = [p.query.lower() for p in paths]
    for aspect in pattern.aspects:
        if not any(aspect.lower() in query for query in covered):
            return aspect
    return None


def build_follow_up_query(initial_query: str, aspect: str, pattern: ReasoningPattern) -> str:
    entity = extract_entities(initial_query)[0]
    return pattern.template.format(entity=entity, aspect=aspect)


def synthesize_paths(initial_query: str, paths: list[ResearchPath], citations: list[str]) -> str:
    """Concatenate research results under structured headings."""
    parts = [
        f"# Comprehensive Analysis: {initial_query}",
        "## Executive Summary\n"
        f"Based on {len(paths)} research queries, here are the key insights:",
    ]
    for path in paths:
        heading = "Primary Research Findings" if path.iteration == 0 else path.rationale
        parts.append(f"## {heading}\n{path.results}")
    if citations:
        parts.append("## Sources\n" + "\n".join(f"- {c}" for c in citations))
    return "\n\n".join(parts) + "\n"


class ReasoningLoop:
    """Greedy research loop with fixed contribution weights.

    Iterations are strictly sequential: each follow-up depends on which
    aspects earlier queries already covered. The wall-clock budget is only
    checked between iterations.
    """

    def __init__(
        self,
        research: ResearchProvider,
        config: ReasoningConfig | None = None,
        patterns: tuple[ReasoningPattern, ...] = DEFAULT_PATTERNS,
    ) -> None:
        if not patterns:
            raise ValueError("At least one reasoning pattern is required")
        self._research = research
        self._config = config or ReasoningConfig()
        self._patterns = patterns

    async def _research_step(self, query: str, context_type: str) -> ResearchResult:
        try:
            return await self._research.research(build_research_query(query, context_type))
        except ConfigurationError:
            raise
        except Exception as exc:
            raise ResearchError(f"Reasoning loop failed: {exc}") from exc

    async def run(
        self,
        initial_query: str,
        context_type: str = "",
        config: ReasoningConfig | None = None,
    ) -> ReasoningResult:
        """Run one reasoning session.

        Raises:
            ResearchError: If any research call fails; partial results are discarded.
            ConfigurationError: If the research credential is missing.
        """
        cfg = config or self._config
        start = time.monotonic()
        pattern = classify_pattern(initial_query, context_type, self._patterns)
        logger.info("Starting reasoning loop (%s) for: %s", pattern.name, initial_query[:80])

        initial = await self._research_step(initial_query, context_type)
        paths = [
            ResearchPath(
                iteration=0,
                query=initial_query,
                rationale="Initial research query",
                results=initial.text,
                relevance_score=INITIAL_RELEVANCE,
                completeness_contribution=INITIAL_CONTRIBUTION,
            )
        ]
        citations = list(initial.citations)
        completeness = INITIAL_CONTRIBUTION
        logger.info("Initial research completed. Completeness: %.2f", completeness)

        for iteration in range(1, cfg.max_iterations + 1):
            if completeness >= cfg.completeness_threshold:
                logger.info("Completeness threshold reached, stopping reasoning loop")
                break
            elapsed_ms = int((time.monotonic() - start) * 1000)
            if elapsed_ms >= cfg.timeout_ms:
                logger.info("Reasoning budget of %dms spent, stopping loop", cfg.timeout_ms)
                break

            aspect = next_uncovered_aspect(pattern, paths)
            if aspect is None:
                logger.info("All %s aspects covered, stopping reasoning loop", pattern.name)
                break

            query = build_follow_up_query(initial_query, aspect, pattern)
            logger.info("Iteration %d: researching %r", iteration, query)
            result = await self._research_step(query, context_type)

            paths.append(
                ResearchPath(
                    iteration=iteration,
                    query=query,
                    rationale=f"Researching {aspect} to complete {pattern.name} analysis",
                    results=result.text,
                    relevance_score=FOLLOW_UP_RELEVANCE,
                    completeness_contribution=FOLLOW_UP_CONTRIBUTION,
                )
            )
            citations.extend(result.citations)

            raw = completeness + FOLLOW_UP_CONTRIBUTION
            if raw > MAX_COMPLETENESS:
                logger.warning("Completeness %.2f exceeds %.1f, clamping", raw, MAX_COMPLETENESS)
            completeness = min(raw, MAX_COMPLETENESS)
            logger.info("Iteration %d completed. Completeness: %.2f", iteration, completeness)

        unique_citations = list(dict.fromkeys(citations))
        return ReasoningResult(
            synthesized_text=synthesize_paths(initial_query, paths, unique_citations),
            paths=paths,
            completeness_score=completeness,
            query_count=len(paths),
            elapsed_ms=int((time.monotonic() - start) * 1000),
            citations=unique_citations,
        )
