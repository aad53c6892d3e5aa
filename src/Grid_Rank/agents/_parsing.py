"""JSON extraction and parse-with-retry helpers for LLM output.

LLM text is untrusted. Callers supply a parse function that turns the
extracted JSON text into a typed value; when it raises a decode or
validation error the conversation is extended with a corrective hint and the
model is asked again, up to ``MAX_RETRIES`` times.

This is a private module, not exported from ``agents/__init__.py``.
"""

from __future__ import annotations

import json
import logging
import re
from collections.abc import Callable
from typing import TypeVar

import pydantic

from Grid_Rank.agents.llm_client import DEFAULT_TIMEOUT, ChatMessage, LLMClient, LLMResponse
from Grid_Rank.agents.prompts.discovery_prompt import PromptMessage

logger = logging.getLogger(__name__)

T = TypeVar("T")

MAX_RETRIES: int = 2

_JSON_FENCE_RE: re.Pattern[str] = re.compile(r"```(?:json)?\s*([\s\S]*?)```", re.DOTALL)
_LEADING_FENCE_RE: re.Pattern[str] = re.compile(r"^```(?:json)?\s*")
_THINK_TAG_RE: re.Pattern[str] = re.compile(r"</?think>")

_PARSE_ERRORS: tuple[type[Exception], ...] = (
    json.JSONDecodeError,
    pydantic.ValidationError,
    ValueError,
)


def prompt_to_chat(messages: list[PromptMessage]) -> list[ChatMessage]:
    """Convert prompt builder output to LLM client input."""
    return [ChatMessage(role=pm.role, content=pm.content) for pm in messages]


def extract_json(raw: str) -> str:
    """Strip markdown fences around the JSON payload in *raw*.

    A complete fenced block yields its inner text. A lone leading fence
    (the closing one cut off) is removed on its own.
    """
    match = _JSON_FENCE_RE.search(raw)
    if match:
        return match.group(1).strip()
    return _LEADING_FENCE_RE.sub("", raw.strip()).strip()


def has_think_tags(text: str) -> bool:
    """Return True if *text* still contains ``<think>`` tag remnants."""
    return _THINK_TAG_RE.search(text) is not None


async def parse_with_retry(
    llm_client: LLMClient,
    messages: list[ChatMessage],
    parse: Callable[[str], T],
    *,
    schema_hint: str,
    max_retries: int = MAX_RETRIES,
    timeout: float = DEFAULT_TIMEOUT,
) -> tuple[T, LLMResponse]:
    """Call the LLM and parse its reply, retrying with a schema hint.

    Parameters
    ----------
    llm_client:
        The Ollama client to call.
    messages:
        Initial chat messages (system + user).
    parse:
        Turns extracted JSON text into the result. Raising
        ``json.JSONDecodeError``, ``pydantic.ValidationError`` or
        ``ValueError`` triggers a retry.
    schema_hint:
        Expected JSON shape, repeated to the model on retry.
    max_retries:
        Retries after the initial call.
    timeout:
        Per-call timeout passed to ``llm_client.chat()``.

    Returns
    -------
    tuple[T, LLMResponse]
        The parsed value and the last response, for usage metadata.

    Raises
    ------
    json.JSONDecodeError, pydantic.ValidationError, ValueError
        The last parse error, once every attempt failed.
    """
    conversation = list(messages)
    last_error: Exception | None = None
    total_attempts = 1 + max_retries

    for attempt in range(1, total_attempts + 1):
        llm_response = await llm_client.chat(conversation, timeout=timeout)
        try:
            result = parse(extract_json(llm_response.content))
        except _PARSE_ERRORS as exc:
            last_error = exc
            logger.warning(
                "Unparseable LLM output (attempt %d/%d): %s", attempt, total_attempts, exc
            )
            if attempt < total_attempts:
                conversation.append(ChatMessage(role="assistant", content=llm_response.content))
                conversation.append(
                    ChatMessage(
                        role="user",
                        content=(
                            "Your response was not valid JSON matching the schema. "
                            f"Please try again with exactly this format: {schema_hint}"
                        ),
                    )
                )
            continue

        logger.info("Parsed LLM output on attempt %d/%d", attempt, total_attempts)
        return result, llm_response

    if last_error is None:
        msg = "max_retries must be non-negative"
        raise ValueError(msg)
    raise last_error
