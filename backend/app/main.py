"""Main FastAPI application for the NextAction backend."""
from fastapi import FastAPI, Request

from app.api.routes.goals import router as goals_router
from app.api.routes.interests import router as interests_router
from app.api.routes.recommendations import router as recommendations_router
from app.api.routes.task import router as task_router
from app.core.config import settings
from app.core.env_check import log_env_warnings
from app.core.logging import configure_logging
from app.core.middleware import RequestIDMiddleware
from app.observability.client import init_opik, reset_opik
from app.observability.tracing import trace

configure_logging(log_level=settings.log_level)

app = FastAPI(title=settings.app_name, version="0.1.0")
app.add_middleware(RequestIDMiddleware)
app.include_router(recommendations_router)
app.include_router(task_router)
app.include_router(goals_router)
app.include_router(interests_router)


@app.on_event("startup")
async def startup_checks() -> None:
    """Warn about missing configuration and initialize observability backends."""
    log_env_warnings(settings)
    init_opik(settings)


@app.on_event("shutdown")
async def shutdown_observability() -> None:
    reset_opik()


@app.get("/health", tags=["health"], summary="Readiness probe")
async def health_check(request: Request) -> dict[str, str]:
    """Return a simple status payload so automation can probe the API."""
    with trace("http.health_check", metadata={"route": "/health"}, request_id=request.state.request_id):
        return {"status": "ok"}
