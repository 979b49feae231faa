"""Pure dataclasses for the generation-orchestration layer. No logic, no deps."""

from dataclasses import dataclass, field
from typing import Literal

ConfidenceLevel = Literal["high", "medium", "low"]


@dataclass(frozen=True)
class GenerationRequest:
    query: str
    system_instruction: str = ""
    temperature: float = 0.7           # 0-2
    provider_hint: str | None = None   # "openai", "anthropic", "gemini"
    model: str | None = None           # e.g. "gpt-4o"; selects the primary provider


@dataclass
class ModelResponse:
    provider: str          # "openai", "anthropic", "gemini"
    model: str             # actual model string used
    content: str
    latency_ms: int
    token_count: int | None = None
    quality_score: float = 0.0


@dataclass
class ResearchResult:
    text: str
    citations: list[str] = field(default_factory=list)


@dataclass(frozen=True)
class ResearchPath:
    iteration: int
    query: str
    rationale: str
    results: str
    relevance_score: float
    completeness_contribution: float


@dataclass
class ReasoningResult:
    synthesized_text: str
    paths: list[ResearchPath]
    completeness_score: float
    query_count: int
    elapsed_ms: int
    citations: list[str] = field(default_factory=list)


@dataclass(frozen=True)
class ReasoningConfig:
    max_iterations: int = 3
    completeness_threshold: float = 0.85
    timeout_ms: int = 30000


@dataclass(frozen=True)
class ProviderConfig:
    enabled_providers: tuple[str, ...]
    synthesis_provider: str
    quality_threshold: float = 0.6
    use_reasoning: bool = False


@dataclass
class ConsensusResult:
    synthesized_text: str
    responses: list[ModelResponse]
    consensus_score: float
    confidence_level: ConfidenceLevel
    elapsed_ms: int
    synthesis_provider: str | None = None   # None when no synthesis call was made
    degraded: bool = False
    message: str | None = None


@dataclass
class GenerationResult:
    content: str
    provider: str          # serving provider, "<name>-simplified", or "fallback"
    model: str
    fallback: bool
    message: str | None = None
    errors: list[str] = field(default_factory=list)


@dataclass(frozen=True)
class RoutingOverrides:
    manual_provider: str | None = None
    manual_model: str | None = None
    force_reasoning: bool = False
    enabled: bool = True


@dataclass
class RoutingDecision:
    provider: str
    model: str
    use_reasoning: bool
    rationale: str


@dataclass
class RoutedResponse:
    decision: RoutingDecision
    generation: GenerationResult
    grounded: bool = False
