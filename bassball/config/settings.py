"""Pydantic Settings for the bassball service.

All environment variables use the BASSBALL_ prefix.
Example: BASSBALL_PORT=8002, BASSBALL_SERVICE_KEY=my-secret-key
"""

from __future__ import annotations

from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings


class BassballSettings(BaseSettings):
    """Service configuration validated from environment variables."""

    # Service
    port: int = 8002
    service_key: str  # X-Service-Key for the operator API
    log_level: str = "INFO"

    # RPC failover
    rpc_endpoints_path: str = "bassball/config/rpc_endpoints.yaml"
    rpc_health_check_interval_seconds: float = Field(default=30.0, gt=0)
    rpc_default_timeout_ms: int = Field(default=5000, ge=100)
    rpc_default_max_retries: int = Field(default=3, ge=0)
    rpc_failure_threshold: int = Field(default=3, ge=1)
    rpc_periodic_checks_enabled: bool = True

    # Storage
    storage_backend: Literal["memory", "json"] = "memory"
    storage_dir: str = "data"

    # Sign-In with Ethereum
    siwe_domain: str = "bassball.game"
    siwe_uri: str = "http://localhost:3000"
    siwe_statement: str = "Sign in to Bass Ball"
    siwe_expiration_hours: int = Field(default=24, ge=1)

    # Shutdown
    graceful_shutdown_seconds: int = Field(default=10, ge=0)

    model_config = {"env_prefix": "BASSBALL_"}
