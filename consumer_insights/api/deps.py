from __future__ import annotations

from fastapi import Request

from consumer_insights.container import ServiceContainer


def get_container(request: Request) -> ServiceContainer:
    """The container built by the application lifespan."""
    return request.app.state.container
