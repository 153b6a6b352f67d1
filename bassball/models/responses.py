"""API response envelope and RPC view models.

All API responses are wrapped in the envelope:
{ success: bool, data: T | None, error: str | None, meta: dict | None }
"""

from __future__ import annotations

from typing import Generic, TypeVar

from pydantic import BaseModel

from bassball.rpc.types import EndpointConfig, EndpointHealth

T = TypeVar("T")


class ApiResponse(BaseModel, Generic[T]):
    """JSON envelope for all API responses."""

    success: bool
    data: T | None = None
    error: str | None = None
    meta: dict | None = None


class EndpointView(BaseModel):
    """Public shape of a configured endpoint."""

    name: str
    url: str
    priority: int
    timeout_ms: int
    max_retries: int

    @classmethod
    def from_config(cls, endpoint: EndpointConfig) -> EndpointView:
        return cls(
            name=endpoint.name,
            url=endpoint.url,
            priority=endpoint.priority,
            timeout_ms=endpoint.timeout_ms,
            max_retries=endpoint.max_retries,
        )


class EndpointHealthView(BaseModel):
    name: str
    is_healthy: bool
    last_check: float
    latency_ms: float
    failure_count: int

    @classmethod
    def from_health(cls, health: EndpointHealth) -> EndpointHealthView:
        return cls(**health.to_dict())


class FailoverStatusView(BaseModel):
    """Active endpoint plus the health snapshot it was chosen from."""

    active: EndpointView | None
    endpoints: list[EndpointHealthView]
