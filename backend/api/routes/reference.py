"""
Reference data endpoints backed by the Data Dragon cache.

GET /v1/reference/version:   Current Data Dragon version tag
GET /v1/reference/champions: Champion table keyed by numeric id, with icon URLs
"""
from __future__ import annotations

from typing import Any, Optional

from fastapi import APIRouter, Depends, HTTPException

from riot.reference import CHAMPIONS, DDRAGON_VERSION, ReferenceDataCache, champion_icon_url

from api.dependencies import get_reference_cache

router = APIRouter(prefix="/v1/reference", tags=["reference"])


@router.get("/version")
async def get_version(
    cache: ReferenceDataCache = Depends(get_reference_cache),
) -> dict[str, Optional[str]]:
    return {"version": await cache.get(DDRAGON_VERSION)}


@router.get("/champions")
async def get_champions(
    cache: ReferenceDataCache = Depends(get_reference_cache),
) -> dict[str, Any]:
    """An empty or unavailable table is a 503 so clients keep their own copy."""
    version = await cache.get(DDRAGON_VERSION)
    table = await cache.get(CHAMPIONS)
    if not version or not table:
        raise HTTPException(status_code=503, detail="Champion data unavailable")

    return {
        "version": version,
        "champions": {
            str(key): {
                "id": ref.id,
                "name": ref.name,
                "icon_url": champion_icon_url(version, ref.id),
            }
            for key, ref in sorted(table.items())
        },
    }
