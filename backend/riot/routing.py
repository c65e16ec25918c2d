"""Platform and regional routing for Riot API hosts."""
from __future__ import annotations

from typing import Optional

from shared.models.enums import RegionalRouting

ROUTING_BY_PLATFORM: dict[str, RegionalRouting] = {
    "NA1": RegionalRouting.AMERICAS,
    "BR1": RegionalRouting.AMERICAS,
    "LA1": RegionalRouting.AMERICAS,
    "LA2": RegionalRouting.AMERICAS,
    "OC1": RegionalRouting.SEA,
    "KR": RegionalRouting.ASIA,
    "JP1": RegionalRouting.ASIA,
    "EUN1": RegionalRouting.EUROPE,
    "EUW1": RegionalRouting.EUROPE,
    "TR1": RegionalRouting.EUROPE,
    "RU": RegionalRouting.EUROPE,
    "PH2": RegionalRouting.SEA,
    "SG2": RegionalRouting.SEA,
    "TH2": RegionalRouting.SEA,
    "TW2": RegionalRouting.SEA,
    "VN2": RegionalRouting.SEA,
}

# Account-v1 is served from every region; americas is used for all lookups.
ACCOUNT_ROUTING = RegionalRouting.AMERICAS


def routing_for_platform(platform: str) -> Optional[RegionalRouting]:
    return ROUTING_BY_PLATFORM.get((platform or "").strip().upper())


def routing_for_match_id(match_id: str) -> Optional[RegionalRouting]:
    """Match ids are prefixed by their platform, e.g. NA1_5012345678."""
    platform, sep, _ = (match_id or "").partition("_")
    if not sep:
        return None
    return routing_for_platform(platform)


def regional_base_url(routing: RegionalRouting | str) -> str:
    value = routing.value if isinstance(routing, RegionalRouting) else RegionalRouting(routing).value
    return f"https://{value}.api.riotgames.com"
