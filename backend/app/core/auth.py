"""Authenticated principal handed to every engine call.

Session management lives outside this service; the upstream auth gateway
forwards the verified user id in the ``X-User-Id`` header.
"""
from __future__ import annotations

from dataclasses import dataclass
from uuid import UUID

from fastapi import Header, HTTPException, status

from app.core.context import user_id_ctx_var


@dataclass(frozen=True)
class Principal:
    user_id: UUID


async def get_current_principal(x_user_id: str | None = Header(default=None)) -> Principal:
    """Resolve the caller or reject the request with 401."""
    if not x_user_id:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Unauthorized")
    try:
        user_id = UUID(x_user_id.strip())
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Unauthorized") from exc

    user_id_ctx_var.set(str(user_id))
    return Principal(user_id=user_id)
