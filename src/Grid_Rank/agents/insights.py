"""Insight generation: narrative analysis of a completed scan.

A PydanticAI agent writes the insight from the flat scan context. If the
Ollama model is unavailable or the agent fails (timeout, validation error,
HTTP or connection error), a data-driven fallback insight is returned instead.
"""

from __future__ import annotations

import asyncio
import datetime
import json
import logging
from dataclasses import dataclass

import httpx
import pydantic
from pydantic import BaseModel, ConfigDict, Field
from pydantic_ai import Agent, ModelRetry, RunContext
from pydantic_ai.exceptions import AgentRunError
from pydantic_ai.models.openai import OpenAIChatModel
from pydantic_ai.usage import RunUsage

from Grid_Rank.agents._parsing import has_think_tags
from Grid_Rank.agents.context_builder import build_context_text
from Grid_Rank.agents.fallback import build_fallback_insight
from Grid_Rank.agents.llm_client import DEFAULT_HOST, DEFAULT_MODEL
from Grid_Rank.agents.model_config import (
    DEFAULT_MODEL_SETTINGS,
    build_ollama_model,
    validate_model_available,
)
from Grid_Rank.agents.prompts.insight_prompt import build_insight_user_prompt, system_prompt_for
from Grid_Rank.models import Insight, InsightType, ScanResult, ScanSettings

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

DEFAULT_AGENT_TIMEOUT: float = 120.0

# Exceptions that trigger the data-driven fallback. AgentRunError covers
# ModelHTTPError (non-2xx from the model endpoint) and UnexpectedModelBehavior.
_FALLBACK_EXCEPTIONS: tuple[type[BaseException], ...] = (
    TimeoutError,
    json.JSONDecodeError,
    pydantic.ValidationError,
    AgentRunError,
    httpx.HTTPError,
    ConnectionError,
)

# ---------------------------------------------------------------------------
# Agent output and dependencies
# ---------------------------------------------------------------------------


class InsightParsed(BaseModel):
    """Structured agent output before it is rendered into an Insight."""

    model_config = ConfigDict(frozen=True)

    summary: str = Field(min_length=1)
    recommendations: list[str] = Field(default_factory=list)


@dataclass
class InsightDeps:
    """Dependencies injected into the insight agent at runtime."""

    insight_type: InsightType
    context_text: str


# ---------------------------------------------------------------------------
# Agent
# ---------------------------------------------------------------------------

insight_agent: Agent[InsightDeps, InsightParsed] = Agent(
    deps_type=InsightDeps,
    output_type=InsightParsed,
    retries=2,
    model_settings=DEFAULT_MODEL_SETTINGS,
)


@insight_agent.system_prompt
async def _insight_system_prompt(ctx: RunContext[InsightDeps]) -> str:
    """Return the system prompt for the requested insight type."""
    return system_prompt_for(ctx.deps.insight_type)


@insight_agent.output_validator
def _reject_think_tags(data: InsightParsed) -> InsightParsed:
    """Reject output that still contains ``<think>`` tag remnants."""
    if has_think_tags(data.summary):
        raise ModelRetry("Strip <think> tags and return only the requested JSON.")
    return data


async def run_insight_agent(
    deps: InsightDeps,
    model: OpenAIChatModel,
) -> tuple[InsightParsed, RunUsage]:
    """Run the insight agent and return ``(parsed_output, usage)``."""
    user_prompt = build_insight_user_prompt(deps.context_text, deps.insight_type)
    result = await insight_agent.run(user_prompt, deps=deps, model=model)
    usage = result.usage()
    logger.info(
        "Insight agent completed (input_tokens=%d, output_tokens=%d)",
        usage.input_tokens,
        usage.output_tokens,
    )
    return result.output, usage


def render_insight_content(parsed: InsightParsed) -> str:
    """Join the summary and recommendations into display text."""
    if not parsed.recommendations:
        return parsed.summary
    bullets = "\n".join(f"- {item}" for item in parsed.recommendations)
    return f"{parsed.summary}\n\nRecommendations:\n{bullets}"


# ---------------------------------------------------------------------------
# Generator
# ---------------------------------------------------------------------------


class InsightGenerator:
    """Generates ranking, competitor and review insights for a scan.

    Parameters
    ----------
    host:
        Base URL of the Ollama server.
    model_name:
        Ollama model used by the agent.
    timeout:
        Wall-clock limit for one agent run, in seconds.
    """

    def __init__(
        self,
        host: str = DEFAULT_HOST,
        model_name: str = DEFAULT_MODEL,
        *,
        timeout: float = DEFAULT_AGENT_TIMEOUT,
    ) -> None:
        self._host = host
        self._model_name = model_name
        self._timeout = timeout

    async def generate(
        self,
        insight_type: InsightType,
        settings: ScanSettings,
        result: ScanResult,
    ) -> Insight:
        """Generate an insight, falling back to a data-driven one on failure."""
        logger.info("Generating %s insight (model=%s)", insight_type.value, self._model_name)

        try:
            available = await validate_model_available(self._host, self._model_name)
        except _FALLBACK_EXCEPTIONS as exc:
            logger.warning("Model check failed, using fallback: %s", exc)
            available = False

        if not available:
            logger.warning("LLM unavailable, using fallback %s insight", insight_type.value)
            return build_fallback_insight(insight_type, settings, result)

        deps = InsightDeps(
            insight_type=insight_type,
            context_text=build_context_text(settings, result),
        )
        try:
            parsed, _usage = await asyncio.wait_for(
                run_insight_agent(deps, build_ollama_model(self._host, self._model_name)),
                timeout=self._timeout,
            )
        except _FALLBACK_EXCEPTIONS as exc:
            logger.warning("Insight agent failed, using fallback: %s", exc)
            return build_fallback_insight(insight_type, settings, result)

        sources = result.attribution_sources if insight_type == InsightType.COMPETITOR else []
        return Insight(
            insight_type=insight_type,
            content=render_insight_content(parsed),
            sources=list(sources),
            model_used=self._model_name,
            is_fallback=False,
            created_at=datetime.datetime.now(datetime.UTC),
        )
