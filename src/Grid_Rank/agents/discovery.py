"""Competitor discovery: who the target competes with for a keyword.

``LLMCompetitorDiscovery`` asks the local Ollama model for competitors and
validates every entry it returns. ``StaticCompetitorDiscovery`` serves a
fixed list, loaded from a JSON file by the CLI or built directly in tests.
"""

from __future__ import annotations

import asyncio
import json
import logging
from pathlib import Path
from typing import Any, Protocol

import ollama
import pydantic
from pydantic import BaseModel, ConfigDict, Field

from Grid_Rank.agents._parsing import parse_with_retry, prompt_to_chat
from Grid_Rank.agents.llm_client import CONNECTION_ERRORS, DEFAULT_TIMEOUT, LLMClient
from Grid_Rank.agents.prompts.discovery_prompt import (
    COMPETITOR_SCHEMA_HINT,
    DEFAULT_COMPETITOR_COUNT,
    build_discovery_messages,
)
from Grid_Rank.models.business import (
    LATITUDE_MAX,
    LATITUDE_MIN,
    LONGITUDE_MAX,
    LONGITUDE_MIN,
    AttributionSource,
    BusinessEntity,
    Coordinate,
    DiscoveryResult,
)
from Grid_Rank.utils.exceptions import DiscoveryError, InvalidInputError

logger = logging.getLogger(__name__)

_OLLAMA_SOURCE: str = "ollama"


class CompetitorDiscovery(Protocol):
    """Finds the competitors of a target business for a search keyword."""

    async def find_competitors(
        self,
        target: BusinessEntity,
        search_query: str,
    ) -> DiscoveryResult: ...


# ---------------------------------------------------------------------------
# Parsing untrusted business lists
# ---------------------------------------------------------------------------


class RawBusiness(BaseModel):
    """Flat business record as returned by the LLM or a competitors file."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(min_length=1)
    name: str = Field(min_length=1)
    address: str = Field(min_length=1)
    latitude: float = Field(ge=LATITUDE_MIN, le=LATITUDE_MAX)
    longitude: float = Field(ge=LONGITUDE_MIN, le=LONGITUDE_MAX)

    def to_entity(self) -> BusinessEntity:
        """Convert to the nested BusinessEntity model."""
        return BusinessEntity(
            id=self.id,
            name=self.name,
            address=self.address,
            location=Coordinate(latitude=self.latitude, longitude=self.longitude),
        )


def _unwrap_entries(payload: Any) -> list[Any]:
    """Accept a bare array, or an object whose first value is the array."""
    if isinstance(payload, list):
        return payload
    if isinstance(payload, dict) and payload:
        first = next(iter(payload.values()))
        if isinstance(first, list):
            return first
    msg = f"Expected a JSON array of businesses, got {type(payload).__name__}"
    raise ValueError(msg)


def parse_business_list(text: str) -> list[BusinessEntity]:
    """Parse a JSON business list, dropping entries that fail validation.

    Raises:
        json.JSONDecodeError: If *text* is not JSON.
        ValueError: If the JSON holds no business array.
    """
    if not text.strip():
        return []
    entries = _unwrap_entries(json.loads(text))

    businesses: list[BusinessEntity] = []
    for position, entry in enumerate(entries):
        try:
            businesses.append(RawBusiness.model_validate(entry).to_entity())
        except pydantic.ValidationError as exc:
            logger.warning(
                "Dropping invalid business entry %d: %d validation errors",
                position,
                exc.error_count(),
            )
    return businesses


# ---------------------------------------------------------------------------
# LLM-backed discovery
# ---------------------------------------------------------------------------


class LLMCompetitorDiscovery:
    """Discovers competitors by prompting the local Ollama model.

    Parameters
    ----------
    llm_client:
        Client for the Ollama server.
    max_competitors:
        Number of competitors requested, and the cap on those returned.
    timeout:
        Per-call timeout in seconds.
    """

    def __init__(
        self,
        llm_client: LLMClient,
        *,
        max_competitors: int = DEFAULT_COMPETITOR_COUNT,
        timeout: float = DEFAULT_TIMEOUT,
    ) -> None:
        self._llm_client = llm_client
        self._max_competitors = max_competitors
        self._timeout = timeout

    async def find_competitors(
        self,
        target: BusinessEntity,
        search_query: str,
    ) -> DiscoveryResult:
        """Ask the model for competitors of *target* for *search_query*.

        Raises:
            InvalidInputError: If *search_query* is blank.
            DiscoveryError: If the model is unreachable, times out, or never
                returns parseable JSON.
        """
        if not search_query.strip():
            raise InvalidInputError("Search query must not be blank", target_id=target.id)

        messages = prompt_to_chat(
            build_discovery_messages(target, search_query, count=self._max_competitors)
        )
        try:
            competitors, response = await parse_with_retry(
                self._llm_client,
                messages,
                parse_business_list,
                schema_hint=COMPETITOR_SCHEMA_HINT,
                timeout=self._timeout,
            )
        except TimeoutError as exc:
            raise DiscoveryError(
                f"Competitor discovery timed out after {self._timeout:.0f}s",
                target_id=target.id,
                source=_OLLAMA_SOURCE,
            ) from exc
        except (*CONNECTION_ERRORS, ollama.ResponseError) as exc:
            raise DiscoveryError(
                f"Competitor discovery failed: {exc}",
                target_id=target.id,
                source=_OLLAMA_SOURCE,
            ) from exc
        except (json.JSONDecodeError, pydantic.ValidationError, ValueError) as exc:
            raise DiscoveryError(
                f"Competitor discovery returned unparseable output: {exc}",
                target_id=target.id,
                source=_OLLAMA_SOURCE,
            ) from exc

        excluded = [c for c in competitors if c.id != target.id]
        if len(excluded) < len(competitors):
            logger.info("Removed the target from its own competitor list")
        limited = excluded[: self._max_competitors]
        logger.info(
            "Discovered %d competitors for '%s' (%s) via %s",
            len(limited),
            target.name,
            search_query,
            response.model,
        )
        source = AttributionSource(
            uri=self._llm_client.host,
            title=f"Ollama ({response.model})",
        )
        return DiscoveryResult(competitors=limited, sources=[source])


# ---------------------------------------------------------------------------
# Fixed-list discovery
# ---------------------------------------------------------------------------


class StaticCompetitorDiscovery:
    """Returns the same competitors and sources for every target."""

    def __init__(
        self,
        competitors: list[BusinessEntity],
        sources: list[AttributionSource] | None = None,
    ) -> None:
        self._result = DiscoveryResult(competitors=competitors, sources=sources or [])

    async def find_competitors(
        self,
        target: BusinessEntity,
        search_query: str,
    ) -> DiscoveryResult:
        """Return the fixed competitor list."""
        await asyncio.sleep(0)
        logger.debug(
            "Static discovery: %d competitors for '%s' (%s)",
            len(self._result.competitors),
            target.id,
            search_query,
        )
        return self._result


def load_competitors_file(path: Path) -> DiscoveryResult:
    """Load a JSON competitors file into a DiscoveryResult.

    The file holds either an array of flat business records or an object
    with ``competitors`` and optional ``sources`` arrays. Invalid entries are
    dropped with a warning.

    Raises:
        InvalidInputError: If the file is missing or is not a business list.
    """
    try:
        text = path.read_text(encoding="utf-8")
    except OSError as exc:
        raise InvalidInputError(f"Cannot read competitors file {path}: {exc}") from exc

    try:
        payload = json.loads(text)
        sources: list[AttributionSource] = []
        if isinstance(payload, dict) and "competitors" in payload:
            sources = [AttributionSource.model_validate(s) for s in payload.get("sources", [])]
            competitors = parse_business_list(json.dumps(payload["competitors"]))
        else:
            competitors = parse_business_list(text)
    except (json.JSONDecodeError, pydantic.ValidationError, ValueError) as exc:
        raise InvalidInputError(f"Invalid competitors file {path}: {exc}") from exc

    logger.info("Loaded %d competitors from %s", len(competitors), path)
    return DiscoveryResult(competitors=competitors, sources=sources)
