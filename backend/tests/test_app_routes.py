"""Regression tests for application route registration."""
import pytest
from fastapi.routing import APIRoute

from app.main import app


@pytest.mark.parametrize(
    "path,method",
    [
        ("/recommendations", "POST"),
        ("/recommendations", "GET"),
        ("/recommendations/quota", "GET"),
        ("/recommendations/next", "POST"),
        ("/recommendations/events/{event_id}/decision", "POST"),
        ("/recommendations/generated/{suggestion_id}/confirm", "POST"),
        ("/recommendations/generated/{suggestion_id}/skip", "POST"),
        ("/tasks", "GET"),
        ("/tasks", "POST"),
        ("/tasks/{task_id}", "PUT"),
        ("/tasks/{task_id}", "DELETE"),
        ("/goals", "GET"),
        ("/goals", "POST"),
        ("/goals/{goal_id}", "PUT"),
        ("/goals/{goal_id}", "DELETE"),
        ("/user/interests", "GET"),
        ("/user/interests", "PUT"),
    ],
)
def test_route_registered_once(path: str, method: str) -> None:
    """Ensure each endpoint is mounted exactly once."""
    routes = [
        route
        for route in app.routes
        if isinstance(route, APIRoute) and route.path == path and method in route.methods
    ]
    assert len(routes) == 1
