"""Per-endpoint health registry with rolling failure counts.

Classification rule: an endpoint is healthy iff its failure count is below
``failure_threshold``. A success moves the count one step toward zero, a
failure moves it one step up. The flag is always recomputed from the count.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable, Iterable
from dataclasses import replace

from bassball.middleware.error_handler import EndpointNotFoundError
from bassball.rpc.types import FAILURE_THRESHOLD, EndpointHealth

logger = logging.getLogger(__name__)


class HealthRegistry:
    """Holds one ``EndpointHealth`` record per configured endpoint.

    Args:
        endpoint_names: Names in configured (priority) order.
        failure_threshold: Failure count at which an endpoint turns unhealthy.
        clock: Returns the current wall-clock time in seconds.
    """

    def __init__(
        self,
        endpoint_names: Iterable[str],
        failure_threshold: int = FAILURE_THRESHOLD,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._failure_threshold = failure_threshold
        self._clock = clock
        now = clock()
        self._records: dict[str, EndpointHealth] = {
            name: EndpointHealth(name=name, last_check=now) for name in endpoint_names
        }

    @property
    def failure_threshold(self) -> int:
        return self._failure_threshold

    def __contains__(self, name: object) -> bool:
        return name in self._records

    def get(self, name: str) -> EndpointHealth:
        """Return the live record for *name*.

        Raises
        ------
        EndpointNotFoundError
            If *name* is not a configured endpoint.
        """
        try:
            return self._records[name]
        except KeyError:
            raise EndpointNotFoundError(
                f"RPC endpoint '{name}' is not configured", endpoint=name
            ) from None

    def is_healthy(self, name: str) -> bool:
        record = self._records.get(name)
        return record is not None and record.is_healthy

    def record_result(self, name: str, latency_ms: float) -> EndpointHealth:
        """Apply one probe result; a negative latency is a failure."""
        if latency_ms < 0:
            return self.record_failure(name)

        record = self.get(name)
        record.latency_ms = latency_ms
        record.failure_count = max(0, record.failure_count - 1)
        record.is_healthy = record.failure_count < self._failure_threshold
        record.last_check = self._clock()
        return record

    def record_failure(self, name: str) -> EndpointHealth:
        """Count one failure against *name*."""
        record = self.get(name)
        was_healthy = record.is_healthy
        record.failure_count += 1
        record.is_healthy = record.failure_count < self._failure_threshold
        record.last_check = self._clock()

        if was_healthy and not record.is_healthy:
            logger.warning(
                "RPC endpoint %s marked unhealthy (failures: %d)",
                name,
                record.failure_count,
                extra={"endpoint": name, "failure_count": record.failure_count},
            )
        return record

    def reset(self, name: str) -> EndpointHealth:
        """Clear the failure state of *name* regardless of probe results."""
        record = self.get(name)
        record.failure_count = 0
        record.is_healthy = True
        record.last_check = self._clock()
        logger.info("RPC endpoint %s reset to healthy", name, extra={"endpoint": name})
        return record

    def healthy_names(self) -> list[str]:
        return [name for name, record in self._records.items() if record.is_healthy]

    def snapshot(self) -> list[EndpointHealth]:
        """Copies of every record, in configured order."""
        return [replace(record) for record in self._records.values()]
