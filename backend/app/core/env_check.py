"""Startup check for configuration the service needs at runtime."""
from __future__ import annotations

import logging
from typing import List

from app.core.config import Settings

logger = logging.getLogger(__name__)

REQUIRED_SETTINGS = ("database_url", "openai_api_key")


def missing_settings(config: Settings) -> List[str]:
    """Return the names of required settings that are unset or blank."""
    missing: List[str] = []
    for name in REQUIRED_SETTINGS:
        value = getattr(config, name, None)
        if value is None or not str(value).strip():
            missing.append(name.upper())
    return missing


def log_env_warnings(config: Settings) -> List[str]:
    """Warn once at startup about missing settings. Never raises; values are not logged."""
    missing = missing_settings(config)
    if missing:
        logger.warning("Missing or empty settings (features may degrade at runtime): %s", ", ".join(missing))
    return missing
