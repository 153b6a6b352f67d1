"""Shared test fixtures and hypothesis strategies for the bassball test suite."""

from __future__ import annotations

import os
from collections.abc import Iterable
from datetime import datetime, timedelta, timezone

import pytest
from hypothesis import strategies as st

from bassball.config.settings import BassballSettings
from bassball.rpc.manager import ProviderFailoverManager
from bassball.rpc.types import PROBE_FAILED, EndpointConfig
from bassball.storage import InMemoryStorage


# ---------------------------------------------------------------------------
# Ensure required env vars are set for BassballSettings in tests
# ---------------------------------------------------------------------------

@pytest.fixture(autouse=True)
def _set_test_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Set minimal env vars so BassballSettings can be instantiated in tests."""
    if "BASSBALL_SERVICE_KEY" not in os.environ:
        monkeypatch.setenv("BASSBALL_SERVICE_KEY", "test-key")


@pytest.fixture
def settings() -> BassballSettings:
    """Test settings: no periodic checks, in-memory storage, no endpoint file."""
    return BassballSettings(
        service_key="test-key",
        rpc_endpoints_path="does/not/exist.yaml",
        rpc_periodic_checks_enabled=False,
        storage_backend="memory",
    )


# ---------------------------------------------------------------------------
# Fakes
# ---------------------------------------------------------------------------

class ScriptedProber:
    """Prober returning queued latencies per endpoint name.

    When an endpoint's queue is empty the ``default`` latency is returned.
    """

    def __init__(self, default: float = 10.0) -> None:
        self.default = default
        self.scripts: dict[str, list[float]] = {}
        self.calls: list[str] = []

    def script(self, name: str, latencies: Iterable[float]) -> None:
        self.scripts.setdefault(name, []).extend(latencies)

    def fail(self, name: str, times: int = 1) -> None:
        self.script(name, [PROBE_FAILED] * times)

    async def probe(self, endpoint: EndpointConfig) -> float:
        self.calls.append(endpoint.name)
        queue = self.scripts.get(endpoint.name)
        if queue:
            return queue.pop(0)
        return self.default


class FakeClock:
    """Manually advanced wall clock (seconds)."""

    def __init__(self, start: float = 1_700_000_000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FakeUtcClock:
    """Manually advanced aware-UTC clock for the game-economy managers."""

    def __init__(self, start: datetime | None = None) -> None:
        self.now = start or datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs: float) -> None:
        self.now += timedelta(**kwargs)


# ---------------------------------------------------------------------------
# Component fixtures
# ---------------------------------------------------------------------------

@pytest.fixture
def endpoint_a() -> EndpointConfig:
    return EndpointConfig(url="https://a.example/rpc", name="A", priority=2)


@pytest.fixture
def endpoint_b() -> EndpointConfig:
    return EndpointConfig(url="https://b.example/rpc", name="B", priority=1)


@pytest.fixture
def prober() -> ScriptedProber:
    return ScriptedProber()


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def manager(
    endpoint_a: EndpointConfig, endpoint_b: EndpointConfig, prober: ScriptedProber
) -> ProviderFailoverManager:
    return ProviderFailoverManager([endpoint_b, endpoint_a], prober=prober)


@pytest.fixture
def storage() -> InMemoryStorage:
    return InMemoryStorage()


@pytest.fixture
def utc_clock() -> FakeUtcClock:
    return FakeUtcClock()


# ---------------------------------------------------------------------------
# Hypothesis strategies (reusable across property tests)
# ---------------------------------------------------------------------------

# Probe outcomes: True = success, False = failure
probe_outcomes = st.lists(st.booleans(), min_size=1, max_size=30)

# Successful probe latencies in milliseconds
latencies = st.floats(min_value=0.0, max_value=5000.0, allow_nan=False, allow_infinity=False)

failure_thresholds = st.integers(min_value=1, max_value=6)

endpoint_names = st.from_regex(r"[a-z][a-z0-9\-]{0,11}", fullmatch=True)
