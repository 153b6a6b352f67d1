"""RPC endpoint models and YAML loader.

Parses the endpoint list the failover manager is constructed with. Entries
that omit ``timeout_ms`` or ``max_retries`` inherit the configured defaults.
"""

from __future__ import annotations

import logging
from pathlib import Path

import yaml
from pydantic import BaseModel, Field, ValidationError

from bassball.rpc.types import DEFAULT_MAX_RETRIES, DEFAULT_TIMEOUT_MS, EndpointConfig

logger = logging.getLogger(__name__)


class RpcEndpointEntry(BaseModel):
    """One ``endpoints`` entry in the YAML file."""

    name: str = Field(min_length=1)
    url: str = Field(min_length=1)
    priority: int = 0
    timeout_ms: int | None = Field(default=None, ge=1)
    max_retries: int | None = Field(default=None, ge=0)

    def to_config(self, default_timeout_ms: int, default_max_retries: int) -> EndpointConfig:
        return EndpointConfig(
            url=self.url,
            name=self.name,
            priority=self.priority,
            timeout_ms=self.timeout_ms if self.timeout_ms is not None else default_timeout_ms,
            max_retries=(
                self.max_retries if self.max_retries is not None else default_max_retries
            ),
        )


def load_rpc_endpoints(
    yaml_path: str,
    default_timeout_ms: int = DEFAULT_TIMEOUT_MS,
    default_max_retries: int = DEFAULT_MAX_RETRIES,
) -> list[EndpointConfig]:
    """Parse an RPC endpoints YAML file into ``EndpointConfig`` objects.

    Args:
        yaml_path: Path to the YAML configuration file.
        default_timeout_ms: Probe timeout for entries without ``timeout_ms``.
        default_max_retries: Retry budget for entries without ``max_retries``.

    Returns:
        Endpoints in file order. An absent or unreadable file yields an empty
        list, which the failover manager treats as "no endpoints configured".
    """
    path = Path(yaml_path)

    if not path.exists():
        logger.warning("RPC endpoints file not found at %s; no endpoints configured", yaml_path)
        return []

    try:
        raw = yaml.safe_load(path.read_text(encoding="utf-8"))
    except yaml.YAMLError as exc:
        logger.error("Failed to parse RPC endpoints YAML at %s: %s", yaml_path, exc)
        return []

    if not isinstance(raw, dict) or not isinstance(raw.get("endpoints"), list):
        logger.warning("RPC endpoints YAML missing 'endpoints' list; no endpoints configured")
        return []

    endpoints: list[EndpointConfig] = []
    for index, entry in enumerate(raw["endpoints"]):
        try:
            parsed = RpcEndpointEntry.model_validate(entry)
        except ValidationError as exc:
            logger.error("Invalid RPC endpoint entry #%d: %s; skipping", index, exc)
            continue
        endpoints.append(parsed.to_config(default_timeout_ms, default_max_retries))

    return endpoints
