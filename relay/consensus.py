"""Multi-provider consensus: ground, fan out, score, filter, synthesize."""

import asyncio
import logging
import time
from dataclasses import replace
from itertools import combinations

from config.config_loader import ConfigurationError
from relay.grounding import fetch_grounding
from relay.models import ConfidenceLevel, ConsensusResult, ModelResponse, ProviderConfig
from relay.providers.base import AIProvider, ProviderError
from relay.reasoning import ReasoningLoop
from relay.research import ResearchProvider, ground_system_prompt

logger = logging.getLogger(__name__)

NO_QUALITY_RESPONSES = "No quality responses were received from the AI models to synthesize."

_BASE_QUALITY = 0.5
_LENGTH_BONUS = 0.2
_RELEVANCE_WEIGHT = 0.3
_MIN_WORDS, _MAX_WORDS = 50, 1000

_HIGH_AGREEMENT = 0.7
_MEDIUM_AGREEMENT = 0.5


def query_keywords(query: str) -> list[str]:
    """Lower-cased query words longer than three characters."""
    return [w for w in query.lower().split() if len(w) > 3]


def score_response_quality(response: str, query: str) -> float:
    """Heuristic 0-1 usefulness: base, length window, keyword coverage."""
    score = _BASE_QUALITY
    word_count = len(response.split())
    if _MIN_WORDS <= word_count <= _MAX_WORDS:
        score += _LENGTH_BONUS

    keywords = query_keywords(query)
    if keywords:
        text = response.lower()
        matched = sum(1 for kw in keywords if kw in text)
        score += (matched / len(keywords)) * _RELEVANCE_WEIGHT

    return min(score, 1.0)


def text_similarity(text1: str, text2: str) -> float:
    """Jaccard overlap of lower-cased whitespace tokens."""
    words1 = set(text1.lower().split())
    words2 = set(text2.lower().split())
    union = words1 | words2
    if not union:
        return 0.0
    return len(words1 & words2) / len(union)


def consensus_score(responses: list[ModelResponse]) -> float:
    """Mean pairwise similarity; 1.0 for a single response, 0.0 for none."""
    if len(responses) <= 1:
        return 1.0 if responses else 0.0
    pairs = list(combinations(responses, 2))
    return sum(text_similarity(a.content, b.content) for a, b in pairs) / len(pairs)


def confidence_level(score: float, response_count: int) -> ConfidenceLevel:
    # a single survivor cannot be corroborated
    if response_count < 2:
        return "low"
    if score >= _HIGH_AGREEMENT:
        return "high"
    if score >= _MEDIUM_AGREEMENT:
        return "medium"
    return "low"


def format_responses_for_synthesis(responses: list[ModelResponse]) -> str:
    parts = [
        f"=== {r.provider.upper()} {r.model} Response (Quality: {r.quality_score * 100:.1f}%) ===\n{r.content}"
        for r in responses
    ]
    return "\n\n".join(parts)


async def _call_provider(
    provider: AIProvider,
    query: str,
    system_prompt: str,
    temperature: float,
) -> ModelResponse | ProviderError:
    """Call a single provider. Never raises; returns ProviderError on failure."""
    try:
        return await provider.generate(query, system_prompt, temperature=temperature)
    except ProviderError as exc:
        logger.warning("Failed to get response from %s: %s", provider.name(), exc)
        return exc
    except Exception as exc:
        logger.warning("Provider %s unexpected failure: %s", provider.name(), exc)
        return ProviderError(provider.name(), f"Unexpected error: {exc}")


class ConsensusEngine:
    """Query several providers concurrently and synthesize one answer."""

    def __init__(
        self,
        providers: dict[str, AIProvider],
        synthesis_template: str,
        *,
        reasoning: ReasoningLoop,
        research: ResearchProvider,
        temperature: float = 0.7,
    ) -> None:
        self._providers = providers
        self._synthesis_template = synthesis_template
        self._reasoning = reasoning
        self._research = research
        self._temperature = temperature

    def _validate(self, config: ProviderConfig) -> tuple[str, ...]:
        enabled = tuple(dict.fromkeys(config.enabled_providers))
        unknown = [p for p in (*enabled, config.synthesis_provider) if p not in self._providers]
        if unknown:
            raise ConfigurationError(
                f"Unknown provider(s): {', '.join(sorted(set(unknown)))}",
                hint="configure them under 'models' in settings.yaml",
            )
        return enabled

    async def analyze(
        self,
        query: str,
        research_context: str,
        system_instruction: str,
        config: ProviderConfig,
    ) -> ConsensusResult:
        """Run one consensus analysis.

        Raises:
            ConfigurationError: On unknown provider names or a missing research credential.
            ResearchError: If grounding fails.
        """
        start = time.monotonic()
        enabled = self._validate(config)
        logger.info("Starting multi-model consensus analysis with %s", ", ".join(enabled))

        grounding = await fetch_grounding(
            query,
            research_context,
            use_reasoning=config.use_reasoning,
            reasoning=self._reasoning,
            research=self._research,
        )
        grounded_system = ground_system_prompt(system_instruction, grounding)

        results = await asyncio.gather(
            *(
                _call_provider(self._providers[name], query, grounded_system, self._temperature)
                for name in enabled
            )
        )

        survivors: list[ModelResponse] = []
        for result in results:
            if not isinstance(result, ModelResponse):
                continue  # already logged in _call_provider
            quality = score_response_quality(result.content, query)
            if quality < config.quality_threshold:
                logger.info(
                    "Dropping %s response: quality %.2f below %.2f",
                    result.provider, quality, config.quality_threshold,
                )
                continue
            survivors.append(replace(result, quality_score=quality))

        logger.info("Received %d/%d quality responses", len(survivors), len(enabled))

        synthesis_provider: str | None = None
        degraded = False
        message: str | None = None

        if not survivors:
            synthesized = NO_QUALITY_RESPONSES
            degraded = True
            message = "No provider returned a response above the quality threshold"
        elif len(survivors) == 1:
            synthesized = survivors[0].content
        else:
            synthesis_provider = config.synthesis_provider
            prompt = self._synthesis_template.format(
                query=query,
                responses=format_responses_for_synthesis(survivors),
            )
            logger.info("Running synthesis via %s", synthesis_provider)
            try:
                synthesis = await self._providers[synthesis_provider].generate(
                    prompt, system_instruction, temperature=self._temperature
                )
                synthesized = synthesis.content
            except Exception as exc:
                logger.warning("Synthesis via %s failed: %s", synthesis_provider, exc)
                best = max(survivors, key=lambda r: r.quality_score)
                synthesized = best.content
                degraded = True
                message = f"Synthesis failed; returning the highest-quality response ({best.provider})"

        score = consensus_score(survivors)
        return ConsensusResult(
            synthesized_text=synthesized,
            responses=survivors,
            consensus_score=score,
            confidence_level=confidence_level(score, len(survivors)),
            elapsed_ms=int((time.monotonic() - start) * 1000),
            synthesis_provider=synthesis_provider,
            degraded=degraded,
            message=message,
        )
