"""Application settings with JSON file persistence and env overrides.

Settings load in three layers: model defaults, then a flat JSON file
(``GRID_RANK_SETTINGS`` or ``data/settings.json``), then environment
variables for the values that differ between machines.
"""

from __future__ import annotations

import json
import logging
import os
from pathlib import Path
from typing import Final

import pydantic
from pydantic import BaseModel, ConfigDict, Field

from Grid_Rank.agents.llm_client import DEFAULT_HOST, DEFAULT_MODEL
from Grid_Rank.data.database import DEFAULT_DB_PATH
from Grid_Rank.engine.scorer import DEFAULT_JITTER
from Grid_Rank.models.enums import DiscoveryPolicy

logger = logging.getLogger(__name__)

DEFAULT_SETTINGS_PATH: Final[Path] = Path("data/settings.json")
SETTINGS_PATH_ENV: Final[str] = "GRID_RANK_SETTINGS"

# env var -> settings field
_ENV_OVERRIDES: Final[dict[str, str]] = {
    "OLLAMA_HOST": "ollama_host",
    "GRID_RANK_MODEL": "ollama_model",
    "GRID_RANK_DB": "db_path",
}


class AppSettings(BaseModel):
    """Runtime configuration shared by the CLI and the web app."""

    model_config = ConfigDict(frozen=True)

    ollama_host: str = DEFAULT_HOST
    ollama_model: str = DEFAULT_MODEL
    db_path: str = DEFAULT_DB_PATH
    history_limit: int = Field(default=10, ge=1)
    default_grid_spec: str = "7 x 7 (1 km)"
    default_search_query: str = "barber"
    jitter: float = Field(default=DEFAULT_JITTER, ge=0.0, lt=1.0)
    seed: int | None = None
    discovery_policy: DiscoveryPolicy = DiscoveryPolicy.PROCEED_EMPTY
    max_competitors: int = Field(default=20, ge=1)


def settings_path(path: Path | None = None) -> Path:
    """Return *path*, else ``GRID_RANK_SETTINGS``, else the default path."""
    if path is not None:
        return path
    env_path = os.environ.get(SETTINGS_PATH_ENV)
    return Path(env_path) if env_path else DEFAULT_SETTINGS_PATH


def load_settings(path: Path | None = None) -> AppSettings:
    """Load settings from the JSON file, then apply environment overrides.

    A missing file means defaults. An unreadable or invalid file is logged
    and also falls back to defaults.
    """
    resolved = settings_path(path)
    values: dict[str, object] = {}
    if resolved.exists():
        try:
            loaded = json.loads(resolved.read_text(encoding="utf-8"))
            if isinstance(loaded, dict):
                values = loaded
            else:
                logger.warning("Settings file %s is not a JSON object, using defaults", resolved)
        except (json.JSONDecodeError, OSError):
            logger.warning("Failed to read settings file %s, using defaults", resolved)

    for env_key, field_name in _ENV_OVERRIDES.items():
        env_value = os.environ.get(env_key)
        if env_value:
            values[field_name] = env_value

    try:
        return AppSettings.model_validate(values)
    except pydantic.ValidationError as exc:
        logger.warning("Invalid settings in %s, using defaults: %s", resolved, exc)
        return AppSettings()


def save_settings(settings: AppSettings, path: Path | None = None) -> Path:
    """Write *settings* as JSON, creating parent directories if needed."""
    resolved = settings_path(path)
    resolved.parent.mkdir(parents=True, exist_ok=True)
    resolved.write_text(settings.model_dump_json(indent=2), encoding="utf-8")
    logger.info("Settings saved to %s", resolved)
    return resolved
