"""Obtain research grounding for a prompt, via the reasoning loop or one direct call."""

import logging

from config.config_loader import ConfigurationError
from relay.reasoning import ReasoningLoop
from relay.research import ResearchError, ResearchProvider, build_research_query

logger = logging.getLogger(__name__)


async def fetch_grounding(
    query: str,
    research_context: str,
    *,
    use_reasoning: bool,
    reasoning: ReasoningLoop,
    research: ResearchProvider,
) -> str:
    """Return grounding text, or "" when there is no research context.

    Raises:
        ResearchError: If research fails. Never swallowed: an ungrounded
            answer presented as grounded could be materially wrong.
        ConfigurationError: If the research credential is missing.
    """
    if not research_context.strip():
        return ""

    if use_reasoning:
        logger.info("Performing reasoning-enhanced research...")
        result = await reasoning.run(query, research_context)
        return result.synthesized_text

    logger.info("Performing direct research...")
    try:
        result = await research.research(build_research_query(query, research_context))
    except (ConfigurationError, ResearchError):
        raise
    except Exception as exc:
        raise ResearchError(f"Direct research failed: {exc}") from exc
    return result.text
