"""Opik SDK client helpers."""
from __future__ import annotations

import logging
from threading import Lock
from typing import Optional

from opik import Opik

from app.core.config import Settings

logger = logging.getLogger(__name__)

_client: Optional[Opik] = None
_client_lock = Lock()


def init_opik(config: Settings) -> Optional[Opik]:
    """Initialize the Opik client. Called once from the application startup hook."""
    global _client

    if not config.opik_enabled:
        return None

    if not config.opik_api_key:
        logger.warning("OPIK_ENABLED is true but OPIK_API_KEY is missing; skipping Opik init.")
        return None

    with _client_lock:
        if _client is not None:
            return _client
        try:
            _client = Opik(project_name=config.opik_project, api_key=config.opik_api_key)
        except Exception as exc:  # pragma: no cover - SDK raises a variety of errors
            logger.warning("Failed to initialize Opik, tracing will be disabled: %s", exc)
            return None

    logger.info("Opik enabled (project=%s).", config.opik_project)
    return _client


def get_opik_client() -> Optional[Opik]:
    """Return the Opik client if startup enabled it."""
    return _client


def reset_opik() -> None:
    """Drop the cached client (used on shutdown and in tests)."""
    global _client
    with _client_lock:
        _client = None
