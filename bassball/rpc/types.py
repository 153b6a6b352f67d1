"""RPC failover data models: endpoint configs, health records, failover state."""

from __future__ import annotations

import time
from dataclasses import dataclass, field

DEFAULT_TIMEOUT_MS = 5000
DEFAULT_MAX_RETRIES = 3
DEFAULT_HEALTH_CHECK_INTERVAL_SECONDS = 30.0
FAILURE_THRESHOLD = 3

# Latency value a probe returns when the endpoint did not answer correctly
PROBE_FAILED = -1.0


@dataclass(frozen=True)
class EndpointConfig:
    """A configured RPC target. Higher ``priority`` is preferred."""

    url: str
    name: str
    priority: int = 0
    timeout_ms: int = DEFAULT_TIMEOUT_MS
    max_retries: int = DEFAULT_MAX_RETRIES

    @property
    def timeout_seconds(self) -> float:
        return self.timeout_ms / 1000


@dataclass
class EndpointHealth:
    """Mutable health record for one endpoint."""

    name: str
    is_healthy: bool = True
    last_check: float = field(default_factory=time.time)
    latency_ms: float = 0.0
    failure_count: int = 0

    def to_dict(self) -> dict:
        return {
            "name": self.name,
            "is_healthy": self.is_healthy,
            "last_check": self.last_check,
            "latency_ms": self.latency_ms,
            "failure_count": self.failure_count,
        }


@dataclass
class FailoverState:
    """Current selection: the active endpoint name and when it last changed."""

    active: str | None
    last_rotation: float = field(default_factory=time.time)
