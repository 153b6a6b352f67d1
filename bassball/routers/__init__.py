"""HTTP routers."""

from bassball.routers.health import create_health_router
from bassball.routers.rpc import create_rpc_router

__all__ = ["create_health_router", "create_rpc_router"]
