"""Health and readiness endpoints.

These endpoints do NOT require X-Service-Key authentication.
- GET /health: service status + failover stats
- GET /readiness: 200 only when an active RPC endpoint exists and is healthy
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from fastapi import APIRouter, Response

from bassball.models.responses import ApiResponse

if TYPE_CHECKING:
    from bassball.rpc.manager import ProviderFailoverManager


def create_health_router(
    *,
    failover_manager: ProviderFailoverManager | None = None,
) -> APIRouter:
    """Factory that creates the health router with injected dependencies."""

    health_router = APIRouter(tags=["health"])

    @health_router.get("/health")
    async def health() -> dict:
        """Service health check with failover statistics."""
        rpc_stats = failover_manager.get_stats() if failover_manager else {}

        return ApiResponse(
            success=True,
            data={
                "status": "healthy",
                "rpc": rpc_stats,
            },
        ).model_dump()

    @health_router.get("/readiness")
    async def readiness(response: Response) -> dict:
        """Readiness probe: 200 iff the active endpoint exists and is healthy."""
        rpc_stats = failover_manager.get_stats() if failover_manager else {}

        active = rpc_stats.get("active")
        active_healthy = bool(rpc_stats.get("active_healthy", False))
        is_ready = active is not None and active_healthy

        if not is_ready:
            response.status_code = 503

        return ApiResponse(
            success=is_ready,
            data={
                "ready": is_ready,
                "active_endpoint": active,
                "healthy_endpoints": rpc_stats.get("healthy", 0),
            },
            error=None if is_ready else "Service not ready",
        ).model_dump()

    return health_router
