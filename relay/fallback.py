"""Provider fallback chain: try providers in priority order, never fail outright."""

import asyncio
import logging
from dataclasses import dataclass

from config.config_loader import FallbackConfig
from relay.models import GenerationRequest, GenerationResult, ModelResponse
from relay.providers.base import AIProvider, MalformedResponseError

logger = logging.getLogger(__name__)

PLACEHOLDER_PROVIDER = "fallback"

DEFAULT_SYSTEM_PROMPT = "You are a helpful assistant."
SIMPLIFIED_SYSTEM_PROMPT = (
    "You are a professional content creator. Generate well-structured, comprehensive content."
)

# Model-name prefixes that identify a provider family
_MODEL_PREFIXES: tuple[tuple[str, str], ...] = (
    ("gpt-", "openai"),
    ("chatgpt", "openai"),
    ("o1", "openai"),
    ("o3", "openai"),
    ("o4", "openai"),
    ("claude", "anthropic"),
    ("gemini", "gemini"),
)


@dataclass(frozen=True)
class Candidate:
    """One step of the fallback chain."""

    provider: str
    timeout_sec: float
    simplified: bool = False
    model: str | None = None

    @property
    def label(self) -> str:
        return f"{self.provider}-simplified" if self.simplified else self.provider


def provider_for_model(model: str | None) -> str | None:
    """Provider family for a model string, or None when it is not recognised."""
    if not model:
        return None
    lowered = model.lower()
    for prefix, provider in _MODEL_PREFIXES:
        if lowered.startswith(prefix):
            return provider
    return None


def truncate_prompt(text: str, limit: int) -> str:
    """Cut text to at most limit characters, preferring the last word boundary."""
    if len(text) <= limit:
        return text
    cut = text[:limit]
    boundary = cut.rfind(" ")
    if boundary > limit // 2:
        cut = cut[:boundary]
    return cut.rstrip()


def placeholder_content(prompt: str) -> str:
    """Deterministic local content returned when every provider failed."""
    topic = " ".join(prompt.split())[:200]
    return (
        "# Content Generation Unavailable\n\n"
        "All AI services are temporarily unavailable, so no content could be generated "
        "for this request. Please try again in a moment.\n\n"
        f"**Request:** {topic}\n"
    )


class FallbackGenerator:
    """Sequentially tries provider adapters until one returns usable text.

    Candidates are tried one at a time; trying them in parallel would waste
    quota. Every failure is logged and recorded, and total exhaustion
    degrades to placeholder content rather than an exception.
    """

    def __init__(
        self,
        providers: dict[str, AIProvider],
        config: FallbackConfig | None = None,
        *,
        default_provider: str = "anthropic",
        fallback_order: list[str] | None = None,
        default_system: str = DEFAULT_SYSTEM_PROMPT,
        simplified_system: str = SIMPLIFIED_SYSTEM_PROMPT,
    ) -> None:
        self._providers = providers
        self._config = config or FallbackConfig()
        self._default_provider = default_provider
        self._fallback_order = list(fallback_order) if fallback_order else list(providers)
        self._default_system = default_system
        self._simplified_system = simplified_system

    def primary_provider(self, request: GenerationRequest) -> str:
        return request.provider_hint or provider_for_model(request.model) or self._default_provider

    def build_chain(
        self,
        request: GenerationRequest,
        provider_order: list[str] | None = None,
    ) -> list[Candidate]:
        """Expand a provider order into timed candidates plus the simplified retry."""
        if provider_order is None:
            primary = self.primary_provider(request)
            order = [primary] + [p for p in self._fallback_order if p != primary]
        else:
            order = list(provider_order)
        if not order:
            return []

        primary = order[0]
        requested_family = provider_for_model(request.model)
        primary_model = request.model if requested_family in (None, primary) else None

        chain = [Candidate(primary, self._config.primary_timeout_sec, model=primary_model)]
        chain += [Candidate(p, self._config.fallback_timeout_sec) for p in order[1:]]
        chain.append(Candidate(primary, self._config.fallback_timeout_sec, simplified=True))
        return chain

    async def _attempt(self, candidate: Candidate, request: GenerationRequest) -> ModelResponse:
        provider = self._providers[candidate.provider]
        if candidate.simplified:
            user_prompt = truncate_prompt(request.query, self._config.simplified_prompt_chars)
            system_prompt = self._simplified_system
            max_tokens: int | None = self._config.simplified_max_tokens
        else:
            user_prompt = request.query
            system_prompt = request.system_instruction or self._default_system
            max_tokens = None

        logger.debug(
            "Attempting %s (budget %.1fs, prompt %d chars)",
            candidate.label, candidate.timeout_sec, len(user_prompt),
        )
        response = await asyncio.wait_for(
            provider.generate(
                user_prompt,
                system_prompt,
                temperature=request.temperature,
                max_tokens=max_tokens,
                timeout_sec=candidate.timeout_sec,
                model=candidate.model,
            ),
            timeout=candidate.timeout_sec,
        )
        if not response.content or not response.content.strip():
            raise MalformedResponseError(candidate.provider, "Empty response content")
        return response

    async def generate(
        self,
        request: GenerationRequest,
        provider_order: list[str] | None = None,
    ) -> GenerationResult:
        """Return the first successful generation, or a placeholder. Never raises."""
        chain = self.build_chain(request, provider_order)
        primary_label = chain[0].provider if chain else self._default_provider
        errors: list[str] = []

        for index, candidate in enumerate(chain):
            if candidate.provider not in self._providers:
                errors.append(f"[{candidate.provider}] Provider not configured")
                logger.warning("Skipping %s: provider not configured", candidate.label)
                continue

            try:
                response = await self._attempt(candidate, request)
            except TimeoutError:
                errors.append(f"[{candidate.label}] Timed out after {candidate.timeout_sec}s")
                logger.warning("Provider %s timed out after %.1fs", candidate.label, candidate.timeout_sec)
                continue
            except Exception as exc:
                errors.append(f"[{candidate.label}] {exc}")
                logger.warning("Provider %s failed: %s", candidate.label, exc)
                continue

            used_fallback = index != 0
            message: str | None = None
            if candidate.simplified:
                message = "Generated using a simplified prompt due to provider issues"
            elif used_fallback:
                message = f"Generated using {candidate.provider} due to {primary_label} issues"

            logger.info("Generation served by %s (fallback=%s)", candidate.label, used_fallback)
            return GenerationResult(
                content=response.content,
                provider=candidate.label,
                model=response.model,
                fallback=used_fallback,
                message=message,
                errors=errors,
            )

        logger.error("All AI providers failed, returning placeholder content")
        return GenerationResult(
            content=placeholder_content(request.query),
            provider=PLACEHOLDER_PROVIDER,
            model="",
            fallback=True,
            message="Generated placeholder content because every AI provider is unavailable",
            errors=errors,
        )
