"""LLM-backed competitor discovery and scan insights using Ollama and PydanticAI."""

from Grid_Rank.agents.context_builder import build_context_text
from Grid_Rank.agents.discovery import (
    CompetitorDiscovery,
    LLMCompetitorDiscovery,
    StaticCompetitorDiscovery,
    load_competitors_file,
    parse_business_list,
)
from Grid_Rank.agents.fallback import FALLBACK_MODEL_NAME, build_fallback_insight
from Grid_Rank.agents.insights import InsightGenerator
from Grid_Rank.agents.llm_client import DEFAULT_HOST, DEFAULT_MODEL, LLMClient
from Grid_Rank.agents.model_config import build_ollama_model, validate_model_available

__all__ = [
    "CompetitorDiscovery",
    "DEFAULT_HOST",
    "DEFAULT_MODEL",
    "FALLBACK_MODEL_NAME",
    "InsightGenerator",
    "LLMClient",
    "LLMCompetitorDiscovery",
    "StaticCompetitorDiscovery",
    "build_context_text",
    "build_fallback_insight",
    "build_ollama_model",
    "load_competitors_file",
    "parse_business_list",
    "validate_model_available",
]
