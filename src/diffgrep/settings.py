"""Application-wide settings and environment loading."""

import logging
import os
from typing import Tuple

from dotenv import load_dotenv

logger = logging.getLogger(__name__)

load_dotenv()
logger.debug("Environment variables loaded from .env if present")

DEFAULT_ROOT_BRANCHES: Tuple[str, ...] = ("main", "master")
DEFAULT_COLOR_MODE = "auto"
COLOR_MODES: Tuple[str, ...] = ("always", "auto", "never")


def get_root_branches() -> Tuple[str, ...]:
    """Return the branch names tried, in order, when looking for the root branch."""
    raw = os.getenv("DIFFGREP_ROOT_BRANCHES")
    if not raw:
        return DEFAULT_ROOT_BRANCHES

    branches = tuple(name.strip() for name in raw.split(",") if name.strip())
    if not branches:
        logger.warning("DIFFGREP_ROOT_BRANCHES is empty, using defaults")
        return DEFAULT_ROOT_BRANCHES

    logger.debug("Root branches from environment", extra={"branches": branches})
    return branches


def get_default_color_mode() -> str:
    """Return the color mode used when --color is not given."""
    mode = os.getenv("DIFFGREP_COLOR", DEFAULT_COLOR_MODE).strip().lower()
    if mode not in COLOR_MODES:
        logger.warning("Ignoring invalid DIFFGREP_COLOR %r, using %s", mode, DEFAULT_COLOR_MODE)
        return DEFAULT_COLOR_MODE
    return mode
