"""Settings and RPC endpoint loading."""

from bassball.config.endpoints import RpcEndpointEntry, load_rpc_endpoints
from bassball.config.settings import BassballSettings

__all__ = [
    "BassballSettings",
    "RpcEndpointEntry",
    "load_rpc_endpoints",
]
