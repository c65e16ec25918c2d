"""
Per-account and per-match lookups against the Riot API.
Absent resources (404, rejected key) come back as None; terminal failures raise FetchError.
"""
from __future__ import annotations

from typing import Optional
from urllib.parse import quote

from pydantic import TypeAdapter

from shared.models.domain import (
    MatchInfoPayload,
    MatchPayload,
    MatchSummary,
    ParticipantOutcome,
    RiotAccount,
)
from shared.models.enums import EndType
from shared.utils.http_client import ResilientFetchClient
from shared.utils.logging import get_logger

from riot.routing import ACCOUNT_ROUTING, regional_base_url, routing_for_match_id

logger = get_logger(__name__)

REMAKE_MAX_DURATION_S = 300

_ACCOUNT = TypeAdapter(RiotAccount)
_MATCH = TypeAdapter(MatchPayload)


def parse_riot_id(text: str) -> tuple[str, str]:
    """Split `gameName#tagLine`."""
    parts = (text or "").strip().split("#")
    if len(parts) != 2 or not parts[0].strip() or not parts[1].strip():
        raise ValueError("Riot ID must be in the format gameName#tagLine")
    return parts[0].strip(), parts[1].strip()


def end_type_for(info: Optional[MatchInfoPayload]) -> EndType:
    if info is None:
        return EndType.NORMAL
    if info.game_duration < REMAKE_MAX_DURATION_S:
        return EndType.REMAKE
    if info.game_ended_in_early_surrender:
        return EndType.EARLY_SURRENDER
    if info.game_ended_in_surrender:
        return EndType.SURRENDER
    return EndType.NORMAL


class RiotLookups:
    def __init__(self, client: ResilientFetchClient) -> None:
        self._client = client
        self._account_base = regional_base_url(ACCOUNT_ROUTING)

    async def account_by_riot_id(self, game_name: str, tag_line: str) -> Optional[RiotAccount]:
        url = (
            f"{self._account_base}/riot/account/v1/accounts/by-riot-id/"
            f"{quote(game_name, safe='')}/{quote(tag_line, safe='')}"
        )
        result = await self._client.fetch(url, schema=_ACCOUNT)
        if result.is_absent:
            logger.info("account_absent", riot_id=f"{game_name}#{tag_line}", reason=result.absent.value)
            return None
        return result.body

    async def account_by_puuid(self, puuid: str) -> Optional[RiotAccount]:
        url = f"{self._account_base}/riot/account/v1/accounts/by-puuid/{quote(puuid, safe='')}"
        result = await self._client.fetch(url, schema=_ACCOUNT)
        return None if result.is_absent else result.body

    async def resolve_puuid(self, identity: str) -> Optional[str]:
        """Return `identity` unchanged unless it is a Riot ID, which is resolved through account-v1."""
        if "#" not in identity:
            return identity
        game_name, tag_line = parse_riot_id(identity)
        account = await self.account_by_riot_id(game_name, tag_line)
        return account.puuid if account else None

    async def match_summary(self, match_id: str) -> Optional[MatchSummary]:
        routing = routing_for_match_id(match_id)
        if routing is None:
            logger.info("match_unknown_platform", match_id=match_id)
            return None

        url = f"{regional_base_url(routing)}/lol/match/v5/matches/{quote(match_id, safe='')}"
        result = await self._client.fetch(url, schema=_MATCH)
        if result.is_absent:
            return None

        payload: MatchPayload = result.body
        info = payload.info
        end_ts = info.game_end_timestamp or (info.game_start_timestamp + info.game_duration * 1000)
        return MatchSummary(
            match_id=payload.metadata.match_id,
            queue_id=info.queue_id,
            game_end_ts=end_ts,
            game_duration_s=info.game_duration,
            end_type=end_type_for(info).value,
            participants=[
                ParticipantOutcome(puuid=p.puuid, win=p.win, champion_id=p.champion_id)
                for p in info.participants
            ],
        )
