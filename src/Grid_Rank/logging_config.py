"""Centralized logging configuration for CLI and web entry points."""

from __future__ import annotations

import logging
import os

LOG_FORMAT: str = "%(asctime)s %(levelname)-8s %(name)s: %(message)s"

_PACKAGE_LOGGERS: dict[str, str] = {
    "AGENTS": "Grid_Rank.agents",
    "ENGINE": "Grid_Rank.engine",
    "DATA": "Grid_Rank.data",
    "WEB": "Grid_Rank.web",
    "REPORTING": "Grid_Rank.reporting",
}


def _resolve_level(name: str, default: int) -> int:
    resolved = logging.getLevelNamesMapping().get(name.upper())
    return resolved if resolved is not None else default


def configure_logging(
    *,
    level: str = "",
    verbose: bool = False,
    quiet: bool = False,
) -> None:
    """Configure the root logger for CLI and web alike.

    Priority: verbose > quiet > level param > LOG_LEVEL env > INFO default.
    Uses force=True to replace any handler uvicorn installed first.
    LOG_LEVEL_{AGENTS,ENGINE,DATA,WEB,REPORTING} override single packages.
    """
    if verbose:
        effective = logging.DEBUG
    elif quiet:
        effective = logging.WARNING
    elif level:
        effective = _resolve_level(level, logging.INFO)
    else:
        effective = _resolve_level(os.environ.get("LOG_LEVEL", "INFO"), logging.INFO)

    logging.basicConfig(level=effective, format=LOG_FORMAT, force=True)

    # Request logging middleware replaces the uvicorn access log
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)

    for key, logger_name in _PACKAGE_LOGGERS.items():
        package_level = os.environ.get(f"LOG_LEVEL_{key}")
        if package_level:
            logging.getLogger(logger_name).setLevel(_resolve_level(package_level, logging.NOTSET))
