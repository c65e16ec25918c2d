"""
Player REST endpoints.

GET /v1/players/{identity}/consistency: Reconciliation report for a puuid or Riot ID.
"""
from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query

from consistency.config import ConsistencySettings
from consistency.reconciliation import ConsistencyReconciler
from consistency.store import LocalStoreError, SqlLocalStore
from riot.lookups import RiotLookups
from riot.match_history import MatchHistoryFetcher
from riot.reference import DDRAGON_VERSION, ReferenceDataCache
from riot.routing import routing_for_platform
from riot.season import SeasonWindow, resolve_season_start
from shared.config import Settings
from shared.models.domain import ReconciliationReport
from shared.models.enums import Queue
from shared.utils.database import DatabaseManager
from shared.utils.http_client import FetchError, FetchErrorKind, ResilientFetchClient
from shared.utils.logging import get_logger

from api.dependencies import (
    get_app_settings,
    get_consistency_settings,
    get_db,
    get_reference_cache,
    get_riot_client,
)

logger = get_logger(__name__)
router = APIRouter(prefix="/v1/players", tags=["players"])

RATE_LIMIT_RETRY_AFTER_S = 10


def fetch_error_to_http(exc: FetchError) -> HTTPException:
    """Rate limiting stays visible to clients as 429; every other upstream failure is a 502."""
    if exc.kind == FetchErrorKind.RATE_LIMITED:
        return HTTPException(
            status_code=429,
            detail="Riot API rate limit hit. Please try again in a moment.",
            headers={"Retry-After": str(RATE_LIMIT_RETRY_AFTER_S)},
        )
    return HTTPException(status_code=502, detail=f"Riot API request failed ({exc.kind.value})")


@router.get("/{identity}/consistency", response_model=ReconciliationReport)
async def get_player_consistency(
    identity: str,
    season_start: Optional[str] = Query(default=None, description="ISO-8601 season start"),
    queue: Queue = Query(default=Queue.RANKED_SOLO),
    region: Optional[str] = Query(default=None, description="Platform id, e.g. NA1"),
    db: DatabaseManager = Depends(get_db),
    client: ResilientFetchClient = Depends(get_riot_client),
    reference: ReferenceDataCache = Depends(get_reference_cache),
    consistency: ConsistencySettings = Depends(get_consistency_settings),
    settings: Settings = Depends(get_app_settings),
) -> ReconciliationReport:
    """
    Compare stored match history against the Riot listing and latest rank snapshot.

    Without `season_start`, the current season is resolved from the configured
    override, the season table and the Data Dragon patch version.
    """
    routing = settings.riot_routing
    if region:
        platform_routing = routing_for_platform(region)
        if platform_routing is None:
            raise HTTPException(status_code=422, detail=f"Unknown region: {region}")
        routing = platform_routing

    try:
        if season_start is None:
            season_start = resolve_season_start(
                region=region,
                dd_version=await reference.get(DDRAGON_VERSION),
                override=settings.ranked_season_start,
            )
        window = SeasonWindow.from_iso(season_start)
    except ValueError as exc:
        raise HTTPException(status_code=422, detail=f"Invalid season start: {exc}")

    try:
        puuid = await RiotLookups(client).resolve_puuid(identity)
        if puuid is None:
            raise HTTPException(status_code=404, detail=f"No account found for {identity}")

        history = MatchHistoryFetcher(
            client,
            routing=routing,
            queue=queue,
            page_size=consistency.page_size,
            max_pages=consistency.max_pages,
        )
        reconciler = ConsistencyReconciler(history, SqlLocalStore(db), consistency)
        return await reconciler.reconcile(puuid, window)
    except ValueError as exc:
        raise HTTPException(status_code=422, detail=str(exc))
    except FetchError as exc:
        logger.warning("consistency_fetch_failed", identity=identity, kind=exc.kind.value)
        raise fetch_error_to_http(exc)
    except LocalStoreError as exc:
        logger.error("consistency_store_failed", identity=identity, error=str(exc))
        raise HTTPException(status_code=503, detail="Local match store unavailable")
