"""Endpoint liveness probe.

A probe is a single JSON-RPC ``eth_chainId`` POST. Any transport error,
timeout, non-2xx status, non-JSON body or body without a ``result`` member
counts as a failure and is reported as ``PROBE_FAILED`` rather than raised.
"""

from __future__ import annotations

import logging
import time

import httpx

from bassball.rpc.types import PROBE_FAILED, EndpointConfig

logger = logging.getLogger(__name__)

CHAIN_ID_REQUEST = {
    "jsonrpc": "2.0",
    "method": "eth_chainId",
    "params": [],
    "id": 1,
}


class HealthProber:
    """Measures round-trip latency of a chain-identifier query."""

    async def probe(self, endpoint: EndpointConfig) -> float:
        """Return the probe latency in milliseconds, or ``PROBE_FAILED``."""
        start = time.perf_counter()

        try:
            async with httpx.AsyncClient(
                timeout=httpx.Timeout(endpoint.timeout_seconds),
            ) as client:
                response = await client.post(
                    endpoint.url,
                    json=CHAIN_ID_REQUEST,
                    headers={"Content-Type": "application/json"},
                )

            if not response.is_success:
                logger.info(
                    "Probe of %s returned HTTP %d",
                    endpoint.name,
                    response.status_code,
                    extra={"endpoint": endpoint.name},
                )
                return PROBE_FAILED

            body = response.json()
            if not isinstance(body, dict) or "result" not in body:
                logger.info(
                    "Probe of %s returned a malformed JSON-RPC body",
                    endpoint.name,
                    extra={"endpoint": endpoint.name},
                )
                return PROBE_FAILED

        except Exception as exc:  # noqa: BLE001
            logger.debug(
                "Probe of %s failed: %s",
                endpoint.name,
                exc,
                extra={"endpoint": endpoint.name},
            )
            return PROBE_FAILED

        return (time.perf_counter() - start) * 1000
