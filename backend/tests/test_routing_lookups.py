"""
Unit tests for routing helpers and account/match lookups.

Run: pytest backend/tests/test_routing_lookups.py -v
"""
from __future__ import annotations

import httpx
import pytest

from riot.lookups import RiotLookups, end_type_for, parse_riot_id
from riot.routing import regional_base_url, routing_for_match_id, routing_for_platform
from shared.models.domain import MatchInfoPayload
from shared.models.enums import EndType, RegionalRouting
from shared.utils.http_client import FetchError, FetchErrorKind

MATCH_PAYLOAD = {
    "metadata": {"matchId": "EUW1_7000000001", "participants": ["p1", "p2"]},
    "info": {
        "queueId": 420,
        "gameDuration": 1650,
        "gameStartTimestamp": 1_770_000_000_000,
        "gameEndTimestamp": 1_770_001_700_000,
        "gameEndedInEarlySurrender": False,
        "gameEndedInSurrender": True,
        "participants": [
            {"puuid": "p1", "win": True, "championId": 103, "kills": 7},
            {"puuid": "p2", "win": False, "championId": 266},
        ],
    },
}


# ── Routing ─────────────────────────────────────────────────────────────

def test_platform_routing_is_case_insensitive() -> None:
    assert routing_for_platform("euw1") == RegionalRouting.EUROPE
    assert routing_for_platform(" KR ") == RegionalRouting.ASIA
    assert routing_for_platform("OC1") == RegionalRouting.SEA
    assert routing_for_platform("XX9") is None


def test_match_id_prefix_selects_routing() -> None:
    assert routing_for_match_id("NA1_5012345678") == RegionalRouting.AMERICAS
    assert routing_for_match_id("5012345678") is None
    assert routing_for_match_id("ZZ1_1") is None


def test_regional_base_url() -> None:
    assert regional_base_url(RegionalRouting.ASIA) == "https://asia.api.riotgames.com"
    assert regional_base_url("europe") == "https://europe.api.riotgames.com"
    with pytest.raises(ValueError):
        regional_base_url("mars")


# ── Riot ID parsing and end types ───────────────────────────────────────

def test_parse_riot_id() -> None:
    assert parse_riot_id(" Hide on bush # KR1 ") == ("Hide on bush", "KR1")


@pytest.mark.parametrize("text", ["nohash", "a#b#c", "#KR1", "name#", ""])
def test_parse_riot_id_rejects_malformed(text: str) -> None:
    with pytest.raises(ValueError):
        parse_riot_id(text)


@pytest.mark.parametrize(
    ("info", "expected"),
    [
        ({"gameDuration": 180, "gameEndedInEarlySurrender": True}, EndType.REMAKE),
        ({"gameDuration": 900, "gameEndedInEarlySurrender": True}, EndType.EARLY_SURRENDER),
        ({"gameDuration": 1500, "gameEndedInSurrender": True}, EndType.SURRENDER),
        ({"gameDuration": 1800}, EndType.NORMAL),
    ],
)
def test_end_type_for(info: dict, expected: EndType) -> None:
    assert end_type_for(MatchInfoPayload.model_validate(info)) == expected


# ── Lookups ─────────────────────────────────────────────────────────────

@pytest.mark.asyncio
async def test_resolve_puuid_passes_raw_puuid_through(make_client) -> None:
    client, recorder = await make_client(lambda request: httpx.Response(500))
    assert await RiotLookups(client).resolve_puuid("raw-puuid") == "raw-puuid"
    assert recorder.count == 0


@pytest.mark.asyncio
async def test_resolve_puuid_from_riot_id(make_client) -> None:
    client, recorder = await make_client(
        lambda request: httpx.Response(200, json={"puuid": "p-123", "gameName": "Hide on bush", "tagLine": "KR1"})
    )

    assert await RiotLookups(client).resolve_puuid("Hide on bush#KR1") == "p-123"
    assert str(recorder.requests[0].url) == (
        "https://americas.api.riotgames.com/riot/account/v1/accounts/by-riot-id/Hide%20on%20bush/KR1"
    )


@pytest.mark.asyncio
async def test_unknown_riot_id_resolves_to_none(make_client) -> None:
    client, _ = await make_client(lambda request: httpx.Response(404))
    assert await RiotLookups(client).resolve_puuid("Nobody#NA1") is None


@pytest.mark.asyncio
async def test_account_lookup_with_rejected_key_is_none(make_client) -> None:
    client, _ = await make_client(lambda request: httpx.Response(403))
    assert await RiotLookups(client).account_by_puuid("p1") is None


@pytest.mark.asyncio
async def test_match_summary_normalizes_payload(make_client) -> None:
    client, recorder = await make_client(lambda request: httpx.Response(200, json=MATCH_PAYLOAD))

    summary = await RiotLookups(client).match_summary("EUW1_7000000001")

    assert summary is not None
    assert recorder.requests[0].url.host == "europe.api.riotgames.com"
    assert summary.queue_id == 420
    assert summary.game_end_ts == 1_770_001_700_000
    assert summary.end_type == EndType.SURRENDER.value
    assert [(p.puuid, p.win, p.champion_id) for p in summary.participants] == [
        ("p1", True, 103),
        ("p2", False, 266),
    ]


@pytest.mark.asyncio
async def test_match_summary_end_timestamp_falls_back_to_duration(make_client) -> None:
    payload = {
        "metadata": {"matchId": "NA1_1"},
        "info": {"queueId": 420, "gameDuration": 1000, "gameStartTimestamp": 1_000_000},
    }
    client, _ = await make_client(lambda request: httpx.Response(200, json=payload))

    summary = await RiotLookups(client).match_summary("NA1_1")

    assert summary is not None
    assert summary.game_end_ts == 1_000_000 + 1_000_000


@pytest.mark.asyncio
async def test_match_summary_unknown_platform_makes_no_call(make_client) -> None:
    client, recorder = await make_client(lambda request: httpx.Response(200, json=MATCH_PAYLOAD))

    assert await RiotLookups(client).match_summary("garbage") is None
    assert recorder.count == 0


@pytest.mark.asyncio
async def test_match_summary_missing_match_is_none(make_client) -> None:
    client, _ = await make_client(lambda request: httpx.Response(404))
    assert await RiotLookups(client).match_summary("NA1_404") is None


@pytest.mark.asyncio
async def test_match_summary_server_failure_propagates(make_client) -> None:
    client, _ = await make_client(lambda request: httpx.Response(502), max_retries=0)

    with pytest.raises(FetchError) as exc_info:
        await RiotLookups(client).match_summary("NA1_1")

    assert exc_info.value.kind == FetchErrorKind.SERVER_ERROR
