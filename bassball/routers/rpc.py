"""RPC failover operator endpoints (X-Service-Key required).

- GET  /rpc/active: active endpoint config
- GET  /rpc/endpoints: health snapshot
- POST /rpc/health-checks: run one sweep now
- POST /rpc/endpoints/{name}/failures: report a failed call
- POST /rpc/endpoints/{name}/reset: clear an endpoint's failure state
"""

from __future__ import annotations

import logging

from fastapi import APIRouter

from bassball.middleware.error_handler import EndpointNotFoundError, NoActiveEndpointError
from bassball.models.responses import (
    ApiResponse,
    EndpointHealthView,
    EndpointView,
    FailoverStatusView,
)
from bassball.rpc.manager import ProviderFailoverManager

logger = logging.getLogger(__name__)


def create_rpc_router(*, failover_manager: ProviderFailoverManager) -> APIRouter:
    """Factory that creates the RPC router with injected dependencies."""

    rpc_router = APIRouter(prefix="/rpc", tags=["rpc"])

    def _require_endpoint(name: str) -> None:
        if not failover_manager.has_endpoint(name):
            raise EndpointNotFoundError(f"RPC endpoint '{name}' is not configured", endpoint=name)

    def _status() -> FailoverStatusView:
        active = failover_manager.get_active_endpoint()
        return FailoverStatusView(
            active=EndpointView.from_config(active) if active else None,
            endpoints=[
                EndpointHealthView.from_health(h) for h in failover_manager.get_health_status()
            ],
        )

    @rpc_router.get("/active")
    async def get_active() -> dict:
        active = failover_manager.get_active_endpoint()
        if active is None:
            raise NoActiveEndpointError()

        return ApiResponse(
            success=True,
            data=EndpointView.from_config(active).model_dump(),
        ).model_dump()

    @rpc_router.get("/endpoints")
    async def list_endpoints() -> dict:
        """Current health record of every endpoint, in priority order."""
        snapshot = failover_manager.get_health_status()

        return ApiResponse(
            success=True,
            data=[EndpointHealthView.from_health(h).model_dump() for h in snapshot],
            meta={"total": len(snapshot)},
        ).model_dump()

    @rpc_router.post("/health-checks")
    async def run_health_checks() -> dict:
        """Run a full probe sweep and return the resulting state."""
        await failover_manager.run_health_checks()
        logger.info("Manual RPC health check sweep completed")

        return ApiResponse(success=True, data=_status().model_dump()).model_dump()

    @rpc_router.post("/endpoints/{name}/failures")
    async def report_failure(name: str) -> dict:
        _require_endpoint(name)
        health = failover_manager.report_failure(name)

        return ApiResponse(
            success=True,
            data=_status().model_dump(),
            meta={"reported": EndpointHealthView.from_health(health).model_dump()},
        ).model_dump()

    @rpc_router.post("/endpoints/{name}/reset")
    async def reset_endpoint(name: str) -> dict:
        _require_endpoint(name)
        health = failover_manager.reset_endpoint(name)

        return ApiResponse(
            success=True,
            data=EndpointHealthView.from_health(health).model_dump(),
        ).model_dump()

    return rpc_router
