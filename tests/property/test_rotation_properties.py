"""Property tests for active-endpoint rotation.

Validates that the replacement endpoint is the healthy one with the lowest
latency, that ties go to priority order, and that readiness follows the
health of the active endpoint.
"""

from __future__ import annotations

import asyncio

from hypothesis import given, settings
from hypothesis import strategies as st

from bassball.rpc.manager import ProviderFailoverManager
from bassball.rpc.registry import HealthRegistry
from bassball.rpc.rotation import RotationPolicy
from bassball.rpc.types import PROBE_FAILED, EndpointConfig, FailoverState


# ---------------------------------------------------------------------------
# Strategies
# ---------------------------------------------------------------------------

# A latency sample per endpoint, or None for an unhealthy endpoint
endpoint_samples = st.lists(
    st.one_of(st.none(), st.sampled_from([5.0, 10.0, 25.0, 80.0])),
    min_size=2,
    max_size=6,
)


def _endpoints(count: int) -> list[EndpointConfig]:
    return [
        EndpointConfig(url=f"https://node{i}.example/rpc", name=f"node{i}", priority=count - i)
        for i in range(count)
    ]


def _run_async(coro):
    """Run an async coroutine synchronously."""
    loop = asyncio.new_event_loop()
    try:
        return loop.run_until_complete(coro)
    finally:
        loop.close()


class _StaticProber:
    """Returns one fixed latency per endpoint name."""

    def __init__(self, latencies: dict[str, float]) -> None:
        self.latencies = latencies

    async def probe(self, endpoint: EndpointConfig) -> float:
        return self.latencies[endpoint.name]


# ---------------------------------------------------------------------------
# Replacement choice
# ---------------------------------------------------------------------------


@settings(max_examples=100)
@given(samples=endpoint_samples)
def test_rotation_picks_fastest_healthy_with_priority_tiebreak(
    samples: list[float | None],
) -> None:
    endpoints = _endpoints(len(samples))
    registry = HealthRegistry([e.name for e in endpoints], failure_threshold=1, clock=lambda: 0.0)
    for endpoint, sample in zip(endpoints, samples):
        registry.record_result(endpoint.name, PROBE_FAILED if sample is None else sample)

    chosen = RotationPolicy(clock=lambda: 0.0).select(registry, endpoints)

    healthy = [(s, i) for i, s in enumerate(samples) if s is not None]
    if not healthy:
        assert chosen is None
        return
    best_latency = min(s for s, _ in healthy)
    first_best = min(i for s, i in healthy if s == best_latency)
    assert chosen is endpoints[first_best]


@settings(max_examples=100)
@given(samples=endpoint_samples)
def test_healthy_active_endpoint_is_never_rotated(samples: list[float | None]) -> None:
    endpoints = _endpoints(len(samples))
    registry = HealthRegistry([e.name for e in endpoints], failure_threshold=1, clock=lambda: 0.0)
    for endpoint, sample in zip(endpoints, samples):
        registry.record_result(endpoint.name, PROBE_FAILED if sample is None else sample)

    for endpoint in endpoints:
        if registry.is_healthy(endpoint.name):
            state = FailoverState(active=endpoint.name, last_rotation=0.0)
            assert not RotationPolicy(clock=lambda: 0.0).rotate_if_needed(
                state, registry, endpoints
            )
            assert state.active == endpoint.name


# ---------------------------------------------------------------------------
# Readiness
# ---------------------------------------------------------------------------


@settings(max_examples=100)
@given(samples=endpoint_samples)
def test_readiness_reflects_active_endpoint_health(samples: list[float | None]) -> None:
    endpoints = _endpoints(len(samples))
    prober = _StaticProber(
        {e.name: PROBE_FAILED if s is None else s for e, s in zip(endpoints, samples)}
    )
    manager = ProviderFailoverManager(
        endpoints, prober=prober, failure_threshold=1, clock=lambda: 0.0
    )

    _run_async(manager.run_health_checks())

    stats = manager.get_stats()
    active = manager.get_active_endpoint()
    assert stats["active_healthy"] == any(s is not None for s in samples)
    if stats["active_healthy"]:
        healthy_names = {r.name for r in manager.get_health_status() if r.is_healthy}
        assert active.name in healthy_names
    else:
        # degraded mode keeps the previous selection
        assert active is endpoints[0]
