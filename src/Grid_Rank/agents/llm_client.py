"""Ollama chat client with an async interface and connection retry.

The synchronous ``ollama.Client`` runs in ``asyncio.to_thread()`` so calls
never block the event loop. Competitor discovery needs machine-readable
output, so JSON mode (``format="json"``) is on by default. ``<think>`` blocks
emitted by reasoning models are removed from every response.

Retry policy:
- ``ConnectionError`` (what ollama raises for a down server) or any
  ``httpx.TransportError``: back off 1 s, 2 s, 4 s, then make one final attempt.
- ``ollama.ResponseError`` with status 404 (model not pulled): raise at once.
"""

from __future__ import annotations

import asyncio
import logging
import os
import re
from typing import Any

import httpx
import ollama
from pydantic import BaseModel, ConfigDict

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

DEFAULT_HOST: str = "http://localhost:11434"
DEFAULT_MODEL: str = "llama3.1:8b"
DEFAULT_TIMEOUT: float = 120.0
NUM_CTX: int = 8192

_THINK_TAG_RE: re.Pattern[str] = re.compile(r"<think>.*?</think>", re.DOTALL)
_MODEL_NOT_FOUND: int = 404

_BACKOFF_SECONDS: tuple[float, ...] = (1.0, 2.0, 4.0)
# ollama.Client re-raises httpx.ConnectError as the builtin ConnectionError.
CONNECTION_ERRORS: tuple[type[BaseException], ...] = (
    ConnectionError,
    httpx.TransportError,
)

# ---------------------------------------------------------------------------
# Pydantic models
# ---------------------------------------------------------------------------


class ChatMessage(BaseModel):
    """One message of an Ollama chat conversation."""

    role: str
    content: str


class LLMResponse(BaseModel):
    """Text and usage metadata of one chat completion."""

    model_config = ConfigDict(frozen=True)

    content: str
    model: str
    input_tokens: int
    output_tokens: int
    duration_ms: int


# ---------------------------------------------------------------------------
# Client
# ---------------------------------------------------------------------------


class LLMClient:
    """Async wrapper around ``ollama.Client``.

    Parameters
    ----------
    host:
        Ollama server URL. Defaults to ``OLLAMA_HOST`` or
        ``http://localhost:11434``.
    model:
        Model tag used for every chat call.
    """

    def __init__(self, host: str | None = None, model: str = DEFAULT_MODEL) -> None:
        self._host: str = host or os.environ.get("OLLAMA_HOST", DEFAULT_HOST)
        self._model: str = model
        self._client: ollama.Client = ollama.Client(host=self._host)

    @property
    def model(self) -> str:
        """Model tag used for chat calls."""
        return self._model

    @property
    def host(self) -> str:
        """Ollama server URL."""
        return self._host

    async def chat(
        self,
        messages: list[ChatMessage],
        *,
        timeout: float = DEFAULT_TIMEOUT,
        json_mode: bool = True,
    ) -> LLMResponse:
        """Run one chat completion.

        Raises
        ------
        TimeoutError
            If the call exceeds *timeout* seconds.
        ollama.ResponseError
            On a server error, including a missing model (404).
        httpx.ConnectError
            If the server stays unreachable through every retry.
        """
        payload = [{"role": m.role, "content": m.content} for m in messages]
        response = await self._chat_with_retry(payload, timeout=timeout, json_mode=json_mode)

        content = _THINK_TAG_RE.sub("", response.message.content or "").strip()
        input_tokens = response.prompt_eval_count or 0
        output_tokens = response.eval_count or 0
        duration_ms = (response.total_duration or 0) // 1_000_000

        logger.info(
            "LLM response: model=%s input_tokens=%d output_tokens=%d duration_ms=%d",
            self._model,
            input_tokens,
            output_tokens,
            duration_ms,
        )
        return LLMResponse(
            content=content,
            model=response.model or self._model,
            input_tokens=input_tokens,
            output_tokens=output_tokens,
            duration_ms=duration_ms,
        )

    async def list_models(self, *, timeout: float = 10.0) -> list[str]:
        """Return the model tags pulled on the server."""

        def _sync_list() -> Any:
            return self._client.list()

        listing = await asyncio.wait_for(asyncio.to_thread(_sync_list), timeout=timeout)
        return [m.model for m in listing.models if m.model]

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    async def _chat_with_retry(
        self,
        payload: list[dict[str, str]],
        *,
        timeout: float,
        json_mode: bool,
    ) -> ollama.ChatResponse:
        attempts = len(_BACKOFF_SECONDS) + 1
        for attempt in range(1, attempts + 1):
            try:
                return await self._chat_once(payload, timeout=timeout, json_mode=json_mode)
            except ollama.ResponseError as exc:
                if exc.status_code == _MODEL_NOT_FOUND:
                    logger.error("Model not found on Ollama server: %s", self._model)
                    raise
                if attempt == attempts:
                    raise
                logger.warning("Ollama ResponseError (attempt %d/%d): %s", attempt, attempts, exc)
            except CONNECTION_ERRORS as exc:
                if attempt == attempts:
                    logger.error(
                        "Ollama unreachable at %s after %d attempts", self._host, attempts
                    )
                    raise
                logger.warning(
                    "Connection error (attempt %d/%d, retry in %.0fs): %s",
                    attempt,
                    attempts,
                    _BACKOFF_SECONDS[attempt - 1],
                    exc,
                )
            await asyncio.sleep(_BACKOFF_SECONDS[attempt - 1])

        msg = "unreachable: retry loop exited without returning"
        raise RuntimeError(msg)

    async def _chat_once(
        self,
        payload: list[dict[str, str]],
        *,
        timeout: float,
        json_mode: bool,
    ) -> ollama.ChatResponse:
        model = self._model

        def _sync_call() -> ollama.ChatResponse:
            return self._client.chat(
                model=model,
                messages=payload,
                format="json" if json_mode else None,
                stream=False,
                options={"num_ctx": NUM_CTX},
            )

        return await asyncio.wait_for(asyncio.to_thread(_sync_call), timeout=timeout)
