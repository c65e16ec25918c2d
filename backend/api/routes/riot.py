"""
Riot passthrough endpoints.

GET /v1/riot/matches/{match_id}: Normalized match summary
"""
from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException

from riot.lookups import RiotLookups
from shared.models.domain import MatchSummary
from shared.utils.http_client import FetchError, ResilientFetchClient
from shared.utils.logging import get_logger

from api.dependencies import get_riot_client
from api.routes.players import fetch_error_to_http

logger = get_logger(__name__)
router = APIRouter(prefix="/v1/riot", tags=["riot"])


@router.get("/matches/{match_id}", response_model=MatchSummary)
async def get_match_summary(
    match_id: str,
    client: ResilientFetchClient = Depends(get_riot_client),
) -> MatchSummary:
    try:
        summary = await RiotLookups(client).match_summary(match_id)
    except FetchError as exc:
        logger.warning("match_summary_failed", match_id=match_id, kind=exc.kind.value)
        raise fetch_error_to_http(exc)
    if summary is None:
        raise HTTPException(status_code=404, detail=f"Match {match_id} not found")
    return summary
