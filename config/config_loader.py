"""Load settings.yaml into typed dataclasses. Logs which providers have API keys."""

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path

import yaml

logger = logging.getLogger(__name__)

_SETTINGS_PATH = Path(__file__).parent / "settings.yaml"


class ConfigurationError(Exception):
    """Raised for missing credentials or invalid settings that callers must fix."""

    def __init__(self, message: str, hint: str = "") -> None:
        self.hint = hint
        super().__init__(f"{message} ({hint})" if hint else message)


@dataclass
class ModelConfig:
    name: str
    sdk: str
    model: str
    api_key_env: str
    timeout_sec: int
    max_tokens: int
    base_url: str | None = None


@dataclass
class ResearchConfig:
    model: str
    api_key_env: str
    base_url: str
    timeout_sec: int
    max_tokens: int


@dataclass
class FallbackConfig:
    primary_timeout_sec: float = 8.0
    fallback_timeout_sec: float = 20.0
    simplified_prompt_chars: int = 2000
    simplified_max_tokens: int = 1000


@dataclass
class ReasoningDefaults:
    max_iterations: int = 3
    completeness_threshold: float = 0.85
    timeout_ms: int = 30000


@dataclass
class ConsensusDefaults:
    enabled_providers: list[str] = field(default_factory=list)
    synthesis_provider: str = "anthropic"
    quality_threshold: float = 0.6
    use_reasoning: bool = False


@dataclass
class PromptsConfig:
    consensus_synthesis: str
    default_system: str = "You are a helpful assistant."
    simplified_system: str = "You are a professional content creator."
    research_system: str = ""


@dataclass
class InboxConfig:
    dir: Path
    archive_dir: Path


@dataclass
class DefaultsConfig:
    output_dir: Path
    default_provider: str
    fallback_order: list[str] = field(default_factory=list)


@dataclass
class AppConfig:
    defaults: DefaultsConfig
    models: dict[str, ModelConfig]
    research: ResearchConfig
    prompts: PromptsConfig
    fallback: FallbackConfig = field(default_factory=FallbackConfig)
    reasoning: ReasoningDefaults = field(default_factory=ReasoningDefaults)
    consensus: ConsensusDefaults = field(default_factory=ConsensusDefaults)
    inbox: InboxConfig | None = None
    available_providers: set[str] = field(default_factory=set)

    def default_model(self, provider: str) -> str:
        """Model string configured for a provider, or "" when unknown."""
        cfg = self.models.get(provider)
        return cfg.model if cfg else ""


def load_config(settings_path: Path = _SETTINGS_PATH) -> AppConfig:
    """Load and validate configuration from settings.yaml.

    Raises FileNotFoundError if settings file missing.
    Logs which providers have credentials but does not raise for a missing
    key; adapters report that per call.
    """
    if not settings_path.exists():
        raise FileNotFoundError(f"Settings file not found: {settings_path}")

    with settings_path.open("r", encoding="utf-8") as f:
        raw = yaml.safe_load(f)

    defaults_raw = raw["defaults"]
    defaults = DefaultsConfig(
        output_dir=Path(defaults_raw["output_dir"]),
        default_provider=str(defaults_raw["default_provider"]),
        fallback_order=list(defaults_raw.get("fallback_order", [])),
    )

    prompts_raw = raw["prompts"]
    prompts = PromptsConfig(
        consensus_synthesis=prompts_raw["consensus_synthesis"],
        default_system=prompts_raw.get("default_system", "You are a helpful assistant."),
        simplified_system=prompts_raw.get("simplified_system", "You are a professional content creator."),
        research_system=prompts_raw.get("research_system", ""),
    )

    research_raw = raw["research"]
    research = ResearchConfig(
        model=research_raw["model"],
        api_key_env=research_raw["api_key_env"],
        base_url=research_raw["base_url"],
        timeout_sec=int(research_raw["timeout_sec"]),
        max_tokens=int(research_raw["max_tokens"]),
    )

    fallback_raw = raw.get("fallback", {})
    fallback = FallbackConfig(
        primary_timeout_sec=float(fallback_raw.get("primary_timeout_sec", 8)),
        fallback_timeout_sec=float(fallback_raw.get("fallback_timeout_sec", 20)),
        simplified_prompt_chars=int(fallback_raw.get("simplified_prompt_chars", 2000)),
        simplified_max_tokens=int(fallback_raw.get("simplified_max_tokens", 1000)),
    )

    reasoning_raw = raw.get("reasoning", {})
    reasoning = ReasoningDefaults(
        max_iterations=int(reasoning_raw.get("max_iterations", 3)),
        completeness_threshold=float(reasoning_raw.get("completeness_threshold", 0.85)),
        timeout_ms=int(reasoning_raw.get("timeout_ms", 30000)),
    )

    models: dict[str, ModelConfig] = {}
    available_providers: set[str] = set()

    for provider_name, model_raw in raw["models"].items():
        model_cfg = ModelConfig(
            name=provider_name,
            sdk=model_raw["sdk"],
            model=model_raw["model"],
            api_key_env=model_raw["api_key_env"],
            timeout_sec=int(model_raw["timeout_sec"]),
            max_tokens=int(model_raw["max_tokens"]),
            base_url=model_raw.get("base_url"),
        )
        models[provider_name] = model_cfg

        api_key = os.environ.get(model_raw["api_key_env"], "").strip()
        if api_key:
            available_providers.add(provider_name)
            logger.info("Provider available: %s", provider_name)
        else:
            logger.info(
                "Provider without API key: %s (set %s in .env)",
                provider_name,
                model_raw["api_key_env"],
            )

    consensus_raw = raw.get("consensus", {})
    consensus = ConsensusDefaults(
        enabled_providers=list(consensus_raw.get("enabled_providers", list(models))),
        synthesis_provider=str(consensus_raw.get("synthesis_provider", defaults.default_provider)),
        quality_threshold=float(consensus_raw.get("quality_threshold", 0.6)),
        use_reasoning=bool(consensus_raw.get("use_reasoning", False)),
    )

    inbox: InboxConfig | None = None
    if "inbox" in raw:
        inbox = InboxConfig(
            dir=Path(raw["inbox"]["dir"]),
            archive_dir=Path(raw["inbox"]["archive_dir"]),
        )

    return AppConfig(
        defaults=defaults,
        models=models,
        research=research,
        prompts=prompts,
        fallback=fallback,
        reasoning=reasoning,
        consensus=consensus,
        inbox=inbox,
        available_providers=available_providers,
    )
