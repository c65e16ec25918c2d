"""
FastAPI application factory for the Ladderwatch API service.

Creates the app with:
- REST routes (players, riot, reference)
- Middleware stack
- Health check endpoints
- Lifespan management (startup/shutdown)
"""
from __future__ import annotations

import asyncio
from contextlib import asynccontextmanager
from typing import AsyncGenerator, Dict, Union

from fastapi import FastAPI
from sqlalchemy import text

from consistency.config import get_consistency_settings
from riot.reference import build_reference_cache
from shared.config import get_settings
from shared.utils.database import DatabaseManager
from shared.utils.http_client import ResilientFetchClient
from shared.utils.logging import get_logger, setup_logging
from shared.utils.metrics import start_metrics_server

from api.dependencies import get_db, init_dependencies
from api.middleware import setup_middleware
from api.routes.players import router as players_router
from api.routes.reference import router as reference_router
from api.routes.riot import router as riot_router

logger = get_logger(__name__)

_CONNECT_RETRY_ATTEMPTS = 10
_CONNECT_RETRY_BASE_DELAY_S = 2.0


async def _connect_with_retry(connect_fn, name: str) -> None:
    """Call async connect_fn(); retry with exponential backoff on failure."""
    for attempt in range(1, _CONNECT_RETRY_ATTEMPTS + 1):
        try:
            await connect_fn()
            return
        except Exception as exc:
            if attempt == _CONNECT_RETRY_ATTEMPTS:
                raise
            delay = _CONNECT_RETRY_BASE_DELAY_S * (2 ** (attempt - 1))
            logger.warning(
                "connect_retry",
                name=name,
                attempt=attempt,
                max_attempts=_CONNECT_RETRY_ATTEMPTS,
                delay_s=delay,
                error=str(exc),
            )
            await asyncio.sleep(delay)


@asynccontextmanager
async def _noop_lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """No-op lifespan for testing without a database or Riot key."""
    yield


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """
    Application lifespan manager.
    Connects Postgres, opens the Riot and Data Dragon clients and builds the
    reference cache on startup; closes all of them on shutdown.
    """
    settings = get_settings()
    consistency = get_consistency_settings()
    setup_logging(
        "api",
        log_level=settings.log_level,
        environment=settings.environment,
        instance_id=settings.instance_id,
    )
    start_metrics_server(settings.metrics_port, enabled=settings.metrics_enabled)

    db = DatabaseManager.from_settings(settings)
    await _connect_with_retry(db.connect, "Database")

    riot = ResilientFetchClient(
        settings.riot_api_key,
        name="riot",
        timeout_s=consistency.fetch_timeout_s,
        max_retries=consistency.max_retries,
        retry_delay_s=consistency.retry_delay_s,
    )
    # Data Dragon is public and sits behind the cache's refresh timeout; no key, no retries.
    ddragon = ResilientFetchClient(
        name="ddragon",
        timeout_s=consistency.reference_timeout_s,
        max_retries=0,
    )
    await riot.start()
    await ddragon.start()

    reference = build_reference_cache(
        ddragon,
        fallback_version=settings.ddragon_fallback_version,
        refresh_timeout_s=consistency.reference_timeout_s,
    )
    init_dependencies(db, riot, reference, consistency)

    logger.info(
        "api_service_started",
        host=settings.api_host,
        port=settings.api_port,
        database=settings.database_url_safe_log,
    )

    yield

    await ddragon.close()
    await riot.close()
    await db.disconnect()
    logger.info("api_service_stopped")


def create_app(*, use_lifespan: bool = True) -> FastAPI:
    """Create and configure the FastAPI application. Set use_lifespan=False for testing without a database."""
    app = FastAPI(
        title="Ladderwatch API",
        description="Ranked match-history consistency checks against the Riot API",
        version="1.0.0",
        lifespan=lifespan if use_lifespan else _noop_lifespan,
        docs_url="/docs",
        redoc_url="/redoc",
    )

    # Middleware
    setup_middleware(app)

    # REST routes
    app.include_router(players_router)
    app.include_router(riot_router)
    app.include_router(reference_router)

    # Health check
    @app.get("/health", tags=["system"])
    async def health() -> dict[str, str]:
        return {"status": "ok", "service": "api"}

    @app.get("/ready", tags=["system"])
    async def readiness() -> Dict[str, Union[str, bool]]:
        """Readiness probe: checks the local store."""
        db_ok = False
        try:
            async with get_db().read_session() as session:
                await session.execute(text("SELECT 1"))
                db_ok = True
        except Exception as exc:
            logger.warning("readiness_database_failed", error=str(exc))

        return {
            "status": "ok" if db_ok else "degraded",
            "database": db_ok,
        }

    return app
