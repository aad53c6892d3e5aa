"""Versioned prompt templates for discovery and insight agents.

Messages use the Ollama convention where system messages are included
inside the messages list with ``{"role": "system", "content": "..."}``.
"""

from Grid_Rank.agents.prompts.discovery_prompt import (
    COMPETITOR_SCHEMA_HINT,
    PromptMessage,
    build_discovery_messages,
)
from Grid_Rank.agents.prompts.insight_prompt import build_insight_user_prompt, system_prompt_for

__all__ = [
    "COMPETITOR_SCHEMA_HINT",
    "PromptMessage",
    "build_discovery_messages",
    "build_insight_user_prompt",
    "system_prompt_for",
]
