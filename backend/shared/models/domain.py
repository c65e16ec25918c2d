"""
Pydantic v2 domain models shared across Ladderwatch.
These are the canonical wire/internal representations, NOT ORM models.
"""
from __future__ import annotations

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter


# ── Base ────────────────────────────────────────────────────────────────
class DomainModel(BaseModel):
    model_config = ConfigDict(from_attributes=True, populate_by_name=True)


# ── Local store rows ────────────────────────────────────────────────────
class LocalMatchRow(DomainModel):
    """One locally ingested match outcome for a player."""
    match_id: str
    win: bool
    end_type: Optional[str] = None
    queue_id: int
    game_end_ts: int


class RankRecord(DomainModel):
    """Latest cumulative rank snapshot for a player and queue."""
    queue_type: str
    wins: int = 0
    losses: int = 0
    tier: Optional[str] = None
    division: Optional[str] = None
    league_points: Optional[int] = None
    fetched_at: Optional[datetime] = None


class PlayerIdentity(DomainModel):
    puuid: str
    game_name: Optional[str] = None
    tag_line: Optional[str] = None


# ── Reconciliation report ───────────────────────────────────────────────
class WinLoss(DomainModel):
    wins: int
    losses: int


class RankSummary(DomainModel):
    wins: int
    losses: int
    tier: Optional[str] = None
    division: Optional[str] = None
    lp: Optional[int] = None
    fetched_at: Optional[datetime] = None


class Deltas(DomainModel):
    """Signed drift between the local aggregate and the rank snapshot. Zero means consistent."""
    games: int
    wins: int
    losses: int


class ReconciliationReport(DomainModel):
    model_config = ConfigDict(frozen=True)

    player: PlayerIdentity
    season_start: str
    queue_id: int
    riot_count: int
    db_rows: int
    db_unique_count: int
    db_record: WinLoss
    rank_record: Optional[RankSummary] = None
    deltas: Deltas
    db_remakes: int
    extra_in_db_count: int
    missing_in_db_count: int
    extra_in_db_sample: list[str] = Field(default_factory=list)
    missing_in_db_sample: list[str] = Field(default_factory=list)
    consistent: bool


# ── Riot API payloads ───────────────────────────────────────────────────
MATCH_ID_PAGE = TypeAdapter(list[str])
VERSION_LIST = TypeAdapter(list[str])


class RiotAccount(DomainModel):
    puuid: str
    game_name: Optional[str] = Field(default=None, alias="gameName")
    tag_line: Optional[str] = Field(default=None, alias="tagLine")


class ParticipantPayload(DomainModel):
    puuid: str
    win: bool = False
    champion_id: int = Field(default=0, alias="championId")


class MatchInfoPayload(DomainModel):
    queue_id: int = Field(default=0, alias="queueId")
    game_duration: int = Field(default=0, alias="gameDuration")
    game_start_timestamp: int = Field(default=0, alias="gameStartTimestamp")
    game_end_timestamp: Optional[int] = Field(default=None, alias="gameEndTimestamp")
    game_ended_in_early_surrender: bool = Field(default=False, alias="gameEndedInEarlySurrender")
    game_ended_in_surrender: bool = Field(default=False, alias="gameEndedInSurrender")
    participants: list[ParticipantPayload] = Field(default_factory=list)


class MatchMetadataPayload(DomainModel):
    match_id: str = Field(alias="matchId")


class MatchPayload(DomainModel):
    metadata: MatchMetadataPayload
    info: MatchInfoPayload


class ParticipantOutcome(DomainModel):
    puuid: str
    win: bool
    champion_id: int


class MatchSummary(DomainModel):
    match_id: str
    queue_id: int
    game_end_ts: int
    game_duration_s: int
    end_type: str
    participants: list[ParticipantOutcome]


# ── Data Dragon payloads ────────────────────────────────────────────────
class ChampionDescriptor(DomainModel):
    key: int
    id: str
    name: str


class ChampionFile(DomainModel):
    data: dict[str, ChampionDescriptor]


class ChampionRef(DomainModel):
    model_config = ConfigDict(frozen=True)

    id: str
    name: str
