"""Counters and gauges recorded as short Opik traces."""
from __future__ import annotations

import logging
from typing import Any, Dict, Optional

from app.observability import client as opik_client
from app.observability.tracing import context_metadata

logger = logging.getLogger(__name__)

METRIC_PREFIX = "metric:"


def log_metric(name: str, value: float | int, metadata: Optional[Dict[str, Any]] = None) -> None:
    """Record ``value`` under ``metric:<name>``; silently skipped when Opik is off."""
    client = opik_client.get_opik_client()
    if not client:
        return

    payload = context_metadata({"value": value, **(metadata or {})})
    try:
        client.trace(name=f"{METRIC_PREFIX}{name}", metadata=payload).end()
    except Exception as exc:  # pragma: no cover - metrics must not break requests
        logger.debug("Metric %s not recorded: %s", name, exc)
