"""RPC provider failover: probing, health tracking, rotation and a client."""

from bassball.rpc.client import FailoverRpcClient
from bassball.rpc.manager import ProviderFailoverManager
from bassball.rpc.prober import HealthProber
from bassball.rpc.registry import HealthRegistry
from bassball.rpc.rotation import RotationPolicy
from bassball.rpc.types import EndpointConfig, EndpointHealth, FailoverState

__all__ = [
    "EndpointConfig",
    "EndpointHealth",
    "FailoverRpcClient",
    "FailoverState",
    "HealthProber",
    "HealthRegistry",
    "ProviderFailoverManager",
    "RotationPolicy",
]
