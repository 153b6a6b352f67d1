"""JSON-RPC client that follows the failover manager's active endpoint.

Transport errors, non-2xx statuses and malformed bodies are reported to the
manager as endpoint failures and retried on whichever endpoint is active
afterwards. A JSON-RPC ``error`` object means the endpoint answered, so it is
raised to the caller without being counted against the endpoint.
"""

from __future__ import annotations

import asyncio
import itertools
import logging
from typing import Any

import httpx

from bassball.middleware.error_handler import NoActiveEndpointError, RpcRequestError
from bassball.rpc.manager import ProviderFailoverManager

logger = logging.getLogger(__name__)


class FailoverRpcClient:
    """Sends JSON-RPC 2.0 calls through a ``ProviderFailoverManager``.

    Parameters
    ----------
    manager:
        Source of the active endpoint and sink for failure reports.
    retry_backoff_seconds:
        Base delay between attempts, doubled after each one (0 disables).
    """

    def __init__(
        self,
        manager: ProviderFailoverManager,
        retry_backoff_seconds: float = 0.0,
    ) -> None:
        self._manager = manager
        self._retry_backoff_seconds = retry_backoff_seconds
        self._ids = itertools.count(1)

    async def request(self, method: str, params: list | dict | None = None) -> Any:
        """Call *method* and return the JSON-RPC ``result``.

        Raises
        ------
        NoActiveEndpointError
            If the manager has no endpoint configured.
        RpcRequestError
            If the endpoint returned a JSON-RPC error, or every attempt failed.
        """
        endpoint = self._manager.get_active_endpoint()
        if endpoint is None:
            raise NoActiveEndpointError(method=method)

        attempts = endpoint.max_retries + 1
        last_error: str | None = None

        for attempt in range(attempts):
            endpoint = self._manager.get_active_endpoint()
            if endpoint is None:
                raise NoActiveEndpointError(method=method)

            payload = {
                "jsonrpc": "2.0",
                "method": method,
                "params": params if params is not None else [],
                "id": next(self._ids),
            }

            try:
                async with httpx.AsyncClient(
                    timeout=httpx.Timeout(endpoint.timeout_seconds),
                ) as client:
                    response = await client.post(endpoint.url, json=payload)
                response.raise_for_status()
                body = response.json()
                # a null "error" without "result" carries no answer
                if not isinstance(body, dict) or (
                    "result" not in body and body.get("error") is None
                ):
                    raise ValueError("malformed JSON-RPC response")

            except (httpx.HTTPError, ValueError) as exc:
                last_error = str(exc) or exc.__class__.__name__
                logger.warning(
                    "RPC %s on %s failed (attempt %d/%d): %s",
                    method,
                    endpoint.name,
                    attempt + 1,
                    attempts,
                    last_error,
                    extra={"endpoint": endpoint.name},
                )
                self._manager.report_failure(endpoint.name)
                if attempt < attempts - 1 and self._retry_backoff_seconds > 0:
                    await asyncio.sleep(self._retry_backoff_seconds * 2**attempt)
                continue

            if body.get("error") is not None:
                error = body["error"]
                message = error.get("message") if isinstance(error, dict) else str(error)
                raise RpcRequestError(
                    f"RPC {method} returned an error: {message}",
                    endpoint=endpoint.name,
                    rpc_error=error,
                )

            return body.get("result")

        logger.error(
            "RPC %s failed after %d attempts",
            method,
            attempts,
            extra={"endpoint": endpoint.name},
        )
        raise RpcRequestError(
            f"RPC {method} failed after {attempts} attempts",
            method=method,
            last_error=last_error,
        )
