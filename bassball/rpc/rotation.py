"""Active-endpoint rotation policy.

Rotation happens only when the active endpoint is unhealthy. The replacement
is the healthy endpoint with the lowest latest latency sample; equal latencies
go to the endpoint that comes first in priority order. There is no smoothing
and no minimum dwell time, so a single slow sample can move traffic.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable, Sequence

from bassball.rpc.registry import HealthRegistry
from bassball.rpc.types import EndpointConfig, FailoverState

logger = logging.getLogger(__name__)


class RotationPolicy:
    """Chooses the active endpoint after health changes."""

    def __init__(self, clock: Callable[[], float] = time.time) -> None:
        self._clock = clock

    def select(
        self,
        registry: HealthRegistry,
        endpoints: Sequence[EndpointConfig],
    ) -> EndpointConfig | None:
        """Return the best healthy endpoint, or ``None`` if none is healthy.

        *endpoints* must already be in priority order; the position is the
        tie-breaker.
        """
        candidates = [
            (registry.get(endpoint.name).latency_ms, position, endpoint)
            for position, endpoint in enumerate(endpoints)
            if registry.is_healthy(endpoint.name)
        ]
        if not candidates:
            return None
        return min(candidates, key=lambda c: (c[0], c[1]))[2]

    def rotate_if_needed(
        self,
        state: FailoverState,
        registry: HealthRegistry,
        endpoints: Sequence[EndpointConfig],
    ) -> bool:
        """Move ``state.active`` off an unhealthy endpoint.

        Returns ``True`` if the active endpoint changed. When nothing is
        healthy the current selection is kept (degraded mode).
        """
        if state.active is not None and registry.is_healthy(state.active):
            return False

        best = self.select(registry, endpoints)
        if best is None:
            if state.active is not None:
                logger.error(
                    "No healthy RPC endpoints; staying on %s",
                    state.active,
                    extra={"endpoint": state.active},
                )
            return False

        if best.name == state.active:
            return False

        previous = state.active
        state.active = best.name
        state.last_rotation = self._clock()
        logger.warning(
            "Switching RPC endpoint from %s to %s",
            previous,
            best.name,
            extra={"endpoint": best.name, "previous_endpoint": previous},
        )
        return True
