"""PydanticAI model configuration against Ollama's OpenAI-compatible endpoint.

Builds the chat model used by the insight agent and checks that the model
is actually pulled on the server before an agent run is attempted.
"""

from __future__ import annotations

import asyncio
import logging
import os
from typing import Any

import httpx
from pydantic_ai.models.openai import OpenAIChatModel
from pydantic_ai.providers.ollama import OllamaProvider
from pydantic_ai.settings import ModelSettings

from Grid_Rank.agents.llm_client import DEFAULT_HOST, DEFAULT_MODEL, NUM_CTX

logger = logging.getLogger(__name__)

DEFAULT_MODEL_SETTINGS: ModelSettings = ModelSettings(extra_body={"num_ctx": NUM_CTX})
"""Sent with every agent run so Ollama uses the larger context window."""

_VALIDATE_TIMEOUT_SECONDS: float = 5.0


def resolve_host(host: str | None = None) -> str:
    """Return the Ollama host, preferring *host* > ``OLLAMA_HOST`` > default."""
    return host or os.environ.get("OLLAMA_HOST", DEFAULT_HOST)


def build_ollama_model(
    host: str | None = None,
    model_name: str = DEFAULT_MODEL,
) -> OpenAIChatModel:
    """Create a PydanticAI chat model served by Ollama at ``{host}/v1``."""
    base_url = f"{resolve_host(host).rstrip('/')}/v1"
    model = OpenAIChatModel(model_name, provider=OllamaProvider(base_url=base_url))
    logger.info("Built chat model for Ollama: model=%s, base_url=%s", model_name, base_url)
    return model


async def fetch_available_models(host: str | None = None) -> list[str]:
    """Return the model tags listed by ``{host}/api/tags``.

    Raises:
        TimeoutError: If the server does not answer in time.
        httpx.HTTPError: On connection or HTTP status errors.
    """
    url = f"{resolve_host(host).rstrip('/')}/api/tags"
    async with httpx.AsyncClient() as client:
        response = await asyncio.wait_for(client.get(url), timeout=_VALIDATE_TIMEOUT_SECONDS)
    response.raise_for_status()
    data: dict[str, Any] = response.json()
    return [m.get("name", "") for m in data.get("models", [])]


async def validate_model_available(
    host: str | None = None,
    model_name: str = DEFAULT_MODEL,
) -> bool:
    """Return True if *model_name* is pulled on the Ollama server.

    Never raises: timeouts and HTTP errors are logged and reported as False.
    """
    resolved = resolve_host(host)
    try:
        available = await fetch_available_models(resolved)
    except TimeoutError:
        logger.warning("Timeout reaching Ollama at %s", resolved)
        return False
    except httpx.HTTPError as exc:
        logger.warning("HTTP error contacting Ollama at %s: %s", resolved, exc)
        return False

    if model_name in available:
        logger.info("Model '%s' is available on %s", model_name, resolved)
        return True
    logger.warning("Model '%s' not found on %s. Available: %s", model_name, resolved, available)
    return False
