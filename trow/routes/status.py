"""Health, readiness and metrics endpoints."""

from __future__ import annotations

from typing import Protocol

from trow.errors import InternalError
from trow.types import HealthResponse, MetricsResponse, ReadinessResponse


class _StatusBackend(Protocol):
    def is_healthy(self) -> bool: ...

    def is_ready(self) -> bool: ...

    def get_metrics(self) -> MetricsResponse: ...


def healthz(client: _StatusBackend) -> HealthResponse:
    """GET /healthz."""
    return HealthResponse(message="", is_healthy=bool(client.is_healthy()))


def readiness(client: _StatusBackend) -> ReadinessResponse:
    """GET /readiness."""
    return ReadinessResponse(message="", is_ready=bool(client.is_ready()))


def metrics(client: _StatusBackend) -> MetricsResponse:
    """GET /metrics; any back-end failure becomes an internal error."""
    try:
        return client.get_metrics()
    except Exception as exc:
        raise InternalError() from exc