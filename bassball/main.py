"""FastAPI application entry point with lifespan management.

Startup: configure logging, load RPC endpoints, build the failover manager and
start its periodic health checks, open storage and construct the game-economy
managers.
Shutdown: stop the health-check loop (waiting for an in-flight sweep up to
``graceful_shutdown_seconds``) and flush storage.

Run with ``uvicorn bassball.main:create_app --factory``.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI

from bassball.auth.siwe import SiweSessionStore
from bassball.battlepass.manager import BattlePassManager
from bassball.clans.manager import ClanManager
from bassball.config.endpoints import load_rpc_endpoints
from bassball.config.settings import BassballSettings
from bassball.economy.burn_sink import BurnSinkManager
from bassball.logging_config import configure_logging
from bassball.merch.manager import FanMerchandiseManager
from bassball.middleware.auth import ServiceKeyAuthMiddleware
from bassball.middleware.error_handler import register_error_handlers
from bassball.middleware.request_id import RequestIdMiddleware
from bassball.routers.health import create_health_router
from bassball.routers.rpc import create_rpc_router
from bassball.rpc.manager import ProviderFailoverManager
from bassball.seasons.manager import SeasonManager
from bassball.seasons.ranking_nft import SeasonalRankingNFTManager
from bassball.storage import create_storage

logger = logging.getLogger(__name__)


def build_failover_manager(settings: BassballSettings) -> ProviderFailoverManager:
    endpoints = load_rpc_endpoints(
        settings.rpc_endpoints_path,
        default_timeout_ms=settings.rpc_default_timeout_ms,
        default_max_retries=settings.rpc_default_max_retries,
    )
    return ProviderFailoverManager(
        endpoints,
        failure_threshold=settings.rpc_failure_threshold,
        health_check_interval_seconds=settings.rpc_health_check_interval_seconds,
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan: startup and shutdown logic."""
    settings: BassballSettings = app.state.settings
    configure_logging(settings.log_level)
    logger.info("Starting bassball service on port %d", settings.port)

    failover_manager: ProviderFailoverManager | None = app.state.failover_manager
    if failover_manager is None:
        failover_manager = build_failover_manager(settings)
        app.state.failover_manager = failover_manager

    if settings.rpc_periodic_checks_enabled and failover_manager.endpoints:
        failover_manager.start_periodic_checks()

    # Game-economy managers share one storage backend
    storage = create_storage(settings.storage_backend, settings.storage_dir)
    battle_pass = BattlePassManager(storage)
    if not battle_pass.list_seasons():
        battle_pass.seed_default_seasons()

    app.state.storage = storage
    app.state.battle_pass = battle_pass
    app.state.burn_sink = BurnSinkManager(storage)
    app.state.clans = ClanManager(storage)
    app.state.merch = FanMerchandiseManager(storage)
    app.state.seasons = SeasonManager(storage)
    app.state.ranking_nfts = SeasonalRankingNFTManager(storage)
    app.state.siwe_sessions = SiweSessionStore(
        storage, default_expiration_hours=settings.siwe_expiration_hours
    )

    # Mount routers
    app.include_router(create_health_router(failover_manager=failover_manager))
    app.include_router(create_rpc_router(failover_manager=failover_manager))

    active = failover_manager.get_active_endpoint()
    logger.info(
        "Bassball service started with %d RPC endpoints (active: %s)",
        len(failover_manager.endpoints),
        active.name if active else None,
    )

    yield

    # --- Shutdown ---
    logger.info("Shutting down bassball service…")

    await failover_manager.shutdown(timeout=settings.graceful_shutdown_seconds)
    storage.flush()

    logger.info("Bassball service shut down")


def create_app(
    settings: BassballSettings | None = None,
    failover_manager: ProviderFailoverManager | None = None,
) -> FastAPI:
    """Create and configure the FastAPI application.

    Loads ``BassballSettings`` eagerly so that a missing
    ``BASSBALL_SERVICE_KEY`` environment variable fails at startup instead of
    on the first authenticated request.
    """
    settings = settings or BassballSettings()  # type: ignore[call-arg]

    app = FastAPI(
        title="Bassball Service",
        version="1.0.0",
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.state.failover_manager = failover_manager

    register_error_handlers(app)

    # Middleware (order: request_id → auth → error_handler)
    # Note: Starlette middleware is applied in reverse order of add_middleware calls
    app.add_middleware(ServiceKeyAuthMiddleware, service_key=settings.service_key)
    app.add_middleware(RequestIdMiddleware)

    return app
