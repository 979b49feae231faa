"""Web-grounded research provider (Perplexity, OpenAI-compatible API)."""

import asyncio
import logging
import os
import time
from abc import ABC, abstractmethod

from openai import AsyncOpenAI

from config.config_loader import ConfigurationError, ResearchConfig
from relay.models import ResearchResult

logger = logging.getLogger(__name__)

RESEARCH_DATA_START = "=== RESEARCH DATA ==="
RESEARCH_DATA_END = "=== END RESEARCH DATA ==="

# (context marker, template); first marker found in the research context wins
_RESEARCH_TEMPLATES: list[tuple[str, str]] = [
    (
        "competitor analysis",
        "Conduct comprehensive competitor analysis for: {query}. Include current market players, "
        "their strategies, pricing, positioning, recent campaigns, and competitive advantages. "
        "Focus on actionable competitive intelligence with specific company names and data.",
    ),
    (
        "market research",
        "Perform detailed market research for: {query}. Include market size, growth trends, "
        "customer segments, emerging opportunities, industry challenges, and key market dynamics. "
        "Provide current data and statistics with specific numbers.",
    ),
    (
        "brand analysis",
        "Analyze brand voice and messaging patterns for companies in: {query}. Include tone of "
        "voice examples, messaging frameworks, brand personality traits, and successful "
        "communication strategies from leading brands with specific examples.",
    ),
    (
        "design trends",
        "Research current design and visual trends for: {query}. Include color palettes, "
        "typography trends, layout patterns, visual aesthetics, and emerging design approaches "
        "currently being used in this space with specific examples.",
    ),
    (
        "campaign analysis",
        "Provide a comprehensive list of major advertising campaigns by {query}. Include campaign "
        "names, launch dates, featured talent, creative agencies, key messaging, target "
        "demographics, channels used, creative strategies, and measurable outcomes.",
    ),
    (
        "product research",
        "Research product positioning and features for: {query}. Include feature analysis, value "
        "propositions, user experience patterns, pricing strategies, and successful product "
        "launch approaches with specific product examples.",
    ),
]


class ResearchError(Exception):
    """Raised when research grounding fails; callers must not continue ungrounded."""


def build_research_query(query: str, research_context: str) -> str:
    """Frame a raw query with the template matching its research context."""
    lowered = research_context.lower()
    for marker, template in _RESEARCH_TEMPLATES:
        if marker in lowered:
            return template.format(query=query)
    if research_context.strip():
        return f"Research comprehensive insights about: {query}. {research_context.strip()}"
    return f"Research comprehensive insights about: {query}"


def ground_system_prompt(system_prompt: str, research_text: str) -> str:
    """Append research text to a system prompt inside delimiter markers."""
    if not research_text:
        return system_prompt
    return f"{system_prompt}\n\n{RESEARCH_DATA_START}\n{research_text}\n{RESEARCH_DATA_END}"


class ResearchProvider(ABC):
    """Abstract base for research services."""

    @abstractmethod
    async def research(self, query: str) -> ResearchResult:
        """Research a query.

        Raises:
            ConfigurationError: When the service credential is absent.
            ResearchError: On remote failure or an empty answer.
        """
        ...


class PerplexityResearchProvider(ResearchProvider):
    """Perplexity sonar models via the OpenAI-compatible chat API."""

    def __init__(self, config: ResearchConfig, system_prompt: str = "") -> None:
        self._config = config
        self._system_prompt = system_prompt
        api_key = os.environ.get(config.api_key_env, "").strip()
        self._client: AsyncOpenAI | None = None
        if api_key:
            self._client = AsyncOpenAI(api_key=api_key, base_url=config.base_url)

    async def research(self, query: str) -> ResearchResult:
        if self._client is None:
            raise ConfigurationError(
                "Research requires a Perplexity API key",
                hint=f"set {self._config.api_key_env} in .env",
            )

        messages: list[dict[str, str]] = []
        if self._system_prompt:
            messages.append({"role": "system", "content": self._system_prompt})
        messages.append({"role": "user", "content": query})

        start = time.monotonic()
        try:
            response = await asyncio.wait_for(
                self._client.chat.completions.create(
                    model=self._config.model,
                    messages=messages,
                    max_tokens=self._config.max_tokens,
                    temperature=0.1,
                ),
                timeout=self._config.timeout_sec,
            )
        except TimeoutError as exc:
            raise ResearchError(f"Research timed out after {self._config.timeout_sec}s") from exc
        except Exception as exc:
            raise ResearchError(f"Research call failed: {exc}") from exc

        choice = response.choices[0] if response.choices else None
        if not choice or not choice.message.content:
            raise ResearchError("No research content received")

        citations = [str(c) for c in (getattr(response, "citations", None) or [])]
        logger.info(
            "Research completed in %.2fs: %d chars, %d citations",
            time.monotonic() - start,
            len(choice.message.content),
            len(citations),
        )
        return ResearchResult(text=choice.message.content, citations=citations)
