"""RPC provider failover manager.

Composes the prober, the health registry and the rotation policy. Endpoints
are kept in descending priority order and the highest-priority endpoint is
active at start-up. Health is updated by sweeps (``run_health_checks``,
either on demand or from the periodic task) and by failure reports from
callers whose RPC calls failed. Nothing here raises on endpoint trouble: a
total outage leaves the last active endpoint selected.

Sweeps probe endpoints one after another, so a sweep can take up to the sum
of the endpoint timeouts. Callers interleave only at await points; every
registry mutation is a single synchronous step.
"""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Callable, Iterable
from dataclasses import replace

from bassball.rpc.prober import HealthProber
from bassball.rpc.registry import HealthRegistry
from bassball.rpc.rotation import RotationPolicy
from bassball.rpc.types import (
    DEFAULT_HEALTH_CHECK_INTERVAL_SECONDS,
    FAILURE_THRESHOLD,
    EndpointConfig,
    EndpointHealth,
    FailoverState,
)

logger = logging.getLogger(__name__)


class ProviderFailoverManager:
    """Tracks RPC endpoint health and keeps one endpoint active.

    Args:
        endpoints: Endpoint descriptors; order only matters between equal
            priorities.
        prober: Liveness probe; defaults to an HTTP ``eth_chainId`` probe.
        rotation_policy: Chooses replacements for an unhealthy active endpoint.
        failure_threshold: Failure count at which an endpoint turns unhealthy.
        health_check_interval_seconds: Default period for
            ``start_periodic_checks``.
        clock: Wall-clock source for timestamps.
    """

    def __init__(
        self,
        endpoints: Iterable[EndpointConfig],
        *,
        prober: HealthProber | None = None,
        rotation_policy: RotationPolicy | None = None,
        failure_threshold: int = FAILURE_THRESHOLD,
        health_check_interval_seconds: float = DEFAULT_HEALTH_CHECK_INTERVAL_SECONDS,
        clock: Callable[[], float] = time.time,
    ) -> None:
        unique: dict[str, EndpointConfig] = {}
        for endpoint in endpoints:
            if endpoint.name in unique:
                logger.warning(
                    "Duplicate RPC endpoint name %s; keeping the first entry",
                    endpoint.name,
                    extra={"endpoint": endpoint.name},
                )
                continue
            unique[endpoint.name] = endpoint

        # sorted() is stable, so equal priorities keep their configured order
        self._endpoints: list[EndpointConfig] = sorted(
            unique.values(), key=lambda e: e.priority, reverse=True
        )
        self._by_name = {endpoint.name: endpoint for endpoint in self._endpoints}

        self._prober = prober or HealthProber()
        self._rotation = rotation_policy or RotationPolicy(clock=clock)
        self._registry = HealthRegistry(
            (endpoint.name for endpoint in self._endpoints),
            failure_threshold=failure_threshold,
            clock=clock,
        )
        self._state = FailoverState(
            active=self._endpoints[0].name if self._endpoints else None,
            last_rotation=clock(),
        )
        self._interval = health_check_interval_seconds

        self._periodic_task: asyncio.Task[None] | None = None
        self._stop_event: asyncio.Event | None = None
        self._stopped_tasks: set[asyncio.Task[None]] = set()

        if not self._endpoints:
            logger.warning("Failover manager created without RPC endpoints")
        else:
            logger.info(
                "Failover manager initialized with %d endpoints (active: %s)",
                len(self._endpoints),
                self._state.active,
            )

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    @property
    def endpoints(self) -> list[EndpointConfig]:
        return list(self._endpoints)

    def get_active_endpoint(self) -> EndpointConfig | None:
        """The endpoint callers should use, or ``None`` if none is configured."""
        if self._state.active is None:
            return None
        return self._by_name.get(self._state.active)

    def get_health_status(self) -> list[EndpointHealth]:
        return self._registry.snapshot()

    def get_state(self) -> FailoverState:
        return replace(self._state)

    def get_stats(self) -> dict:
        """Return failover statistics for the health endpoints."""
        records = self._registry.snapshot()
        healthy = sum(1 for r in records if r.is_healthy)
        active = self.get_active_endpoint()
        return {
            "total": len(records),
            "healthy": healthy,
            "unhealthy": len(records) - healthy,
            "active": active.name if active else None,
            "active_healthy": self._registry.is_healthy(active.name) if active else False,
            "last_rotation": self._state.last_rotation,
            "periodic_checks": self.is_running,
            "endpoints": [r.to_dict() for r in records],
        }

    # ------------------------------------------------------------------
    # Health updates
    # ------------------------------------------------------------------

    async def run_health_checks(self) -> list[EndpointHealth]:
        """Probe every endpoint in order, then rotate if the active one failed."""
        for endpoint in self._endpoints:
            latency = await self._prober.probe(endpoint)
            record = self._registry.record_result(endpoint.name, latency)
            logger.debug(
                "Probed %s: latency=%.1fms failures=%d",
                endpoint.name,
                latency,
                record.failure_count,
                extra={
                    "endpoint": endpoint.name,
                    "latency_ms": latency,
                    "failure_count": record.failure_count,
                },
            )

        self._rotation.rotate_if_needed(self._state, self._registry, self._endpoints)
        return self._registry.snapshot()

    def has_endpoint(self, endpoint_name: str) -> bool:
        return endpoint_name in self._registry

    def report_failure(self, endpoint_name: str) -> EndpointHealth | None:
        """Count a failed downstream call against *endpoint_name*.

        Rotation runs immediately when the reported endpoint is the active one.
        Unknown names are logged and ignored; returns ``None`` for them.
        """
        if endpoint_name not in self._registry:
            logger.warning(
                "Failure reported for unknown RPC endpoint %s; ignoring",
                endpoint_name,
                extra={"endpoint": endpoint_name},
            )
            return None

        record = self._registry.record_failure(endpoint_name)
        if endpoint_name == self._state.active:
            self._rotation.rotate_if_needed(self._state, self._registry, self._endpoints)
        return replace(record)

    def reset_endpoint(self, endpoint_name: str) -> EndpointHealth | None:
        """Operator override: mark *endpoint_name* healthy with no failures.

        Returns ``None`` when *endpoint_name* is not configured.
        """
        if endpoint_name not in self._registry:
            logger.warning(
                "Reset requested for unknown RPC endpoint %s; ignoring",
                endpoint_name,
                extra={"endpoint": endpoint_name},
            )
            return None
        return replace(self._registry.reset(endpoint_name))

    # ------------------------------------------------------------------
    # Periodic checks
    # ------------------------------------------------------------------

    @property
    def is_running(self) -> bool:
        return self._periodic_task is not None and not self._periodic_task.done()

    def start_periodic_checks(self, interval_seconds: float | None = None) -> None:
        """Run a sweep now and then every *interval_seconds*.

        Calling this while checks are already running does nothing. Must be
        called from a running event loop.
        """
        if self.is_running:
            logger.warning("Periodic RPC health checks already running; skipping")
            return

        interval = interval_seconds if interval_seconds is not None else self._interval
        if interval <= 0:
            raise ValueError("Health check interval must be positive")

        stop_event = asyncio.Event()
        self._stop_event = stop_event
        self._periodic_task = asyncio.create_task(
            self._periodic_loop(interval, stop_event), name="rpc-health-checks"
        )
        logger.info("Started periodic RPC health checks every %.1fs", interval)

    def stop_periodic_checks(self) -> None:
        """Cancel future sweeps. A sweep already in progress runs to completion."""
        if self._stop_event is not None:
            self._stop_event.set()
        if self._periodic_task is not None and not self._periodic_task.done():
            self._stopped_tasks.add(self._periodic_task)
            self._periodic_task.add_done_callback(self._stopped_tasks.discard)
            logger.info("Stopped periodic RPC health checks")
        self._periodic_task = None
        self._stop_event = None

    async def shutdown(self, timeout: float = 10.0) -> None:
        """Stop periodic checks and wait up to *timeout* for the last sweep."""
        self.stop_periodic_checks()
        pending = [task for task in self._stopped_tasks if not task.done()]
        if not pending:
            return

        _, still_running = await asyncio.wait(pending, timeout=timeout)
        for task in still_running:
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                pass

    async def _periodic_loop(self, interval: float, stop_event: asyncio.Event) -> None:
        while not stop_event.is_set():
            try:
                await self.run_health_checks()
            except Exception:
                logger.exception("RPC health check sweep failed")

            try:
                await asyncio.wait_for(stop_event.wait(), timeout=interval)
            except asyncio.TimeoutError:
                continue
