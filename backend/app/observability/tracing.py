"""Opik traces around engine calls, tagged with the caller and request."""
from __future__ import annotations

import logging
from contextlib import contextmanager
from typing import TYPE_CHECKING, Any, Dict, Iterator, Optional

from app.core.context import get_request_id, get_user_id
from app.observability import client as opik_client

if TYPE_CHECKING:  # pragma: no cover - typing helper
    from opik.api_objects.trace.trace_client import Trace
else:  # pragma: no cover - typing helper
    Trace = object  # type: ignore[assignment]

logger = logging.getLogger(__name__)


def context_metadata(
    metadata: Optional[Dict[str, Any]] = None,
    user_id: Optional[str] = None,
    request_id: Optional[str] = None,
) -> Dict[str, Any]:
    """Merge caller metadata with the ids bound to the current request."""
    merged = dict(metadata or {})
    resolved_user = user_id or get_user_id()
    resolved_request = request_id or get_request_id()
    if resolved_user:
        merged.setdefault("user_id", str(resolved_user))
    if resolved_request:
        merged.setdefault("request_id", resolved_request)
    return merged


@contextmanager
def trace(
    name: str,
    metadata: Optional[Dict[str, Any]] = None,
    user_id: Optional[str] = None,
    request_id: Optional[str] = None,
) -> Iterator[Optional["Trace"]]:
    """
    Open an Opik trace for the duration of the block.

    Yields None when Opik is off. Errors raised inside the block are attached
    to the trace and re-raised.
    """
    client = opik_client.get_opik_client()
    span: Optional["Trace"] = None

    if client:
        try:
            span = client.trace(name=name, metadata=context_metadata(metadata, user_id, request_id) or None)
        except Exception as exc:  # pragma: no cover - tracing must not break requests
            logger.debug("Opik trace %s not started: %s", name, exc)

    try:
        yield span
    except Exception as exc:
        _safe_update(span, name, error_info={"message": str(exc), "type": type(exc).__name__})
        raise
    finally:
        if span:
            try:
                span.end()
            except Exception:  # pragma: no cover
                logger.debug("Opik trace %s not closed cleanly", name, exc_info=True)


def annotate(span: Optional["Trace"], metadata: Dict[str, Any]) -> None:
    """Replace the metadata of an open trace; no-op without one."""
    _safe_update(span, "annotate", metadata=metadata)


def _safe_update(span: Optional["Trace"], name: str, **fields: Any) -> None:
    if not span:
        return
    try:
        span.update(**fields)
    except Exception:  # pragma: no cover - best-effort
        logger.debug("Opik trace %s update failed", name, exc_info=True)
