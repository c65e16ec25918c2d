"""
Local store collaborator: read-only access to ingested matches and rank snapshots.
"""
from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Optional

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError

from shared.models.domain import LocalMatchRow, PlayerIdentity, RankRecord
from shared.models.orm import MatchORM, MatchParticipantORM, PlayerORM, PlayerRankSnapshotORM
from shared.utils.database import DatabaseManager
from shared.utils.logging import get_logger
from shared.utils.metrics import LOCAL_QUERY_LATENCY, atrack_latency

logger = get_logger(__name__)


class LocalStoreError(Exception):
    """The local store failed to answer a query."""


class LocalStore(ABC):
    """Read interface the reconciler depends on."""

    @abstractmethod
    async def fetch_match_rows(self, puuid: str, queue_id: int, since_ms: int) -> list[LocalMatchRow]:
        """
        Raw participant rows for `puuid` in `queue_id` with game end at or after `since_ms`.
        Rows are returned as stored; the same match may appear more than once.
        """

    @abstractmethod
    async def fetch_latest_rank(self, puuid: str, queue_type: str) -> Optional[RankRecord]:
        """Most recent rank snapshot by fetch time, or None."""

    @abstractmethod
    async def fetch_player(self, puuid: str) -> Optional[PlayerIdentity]:
        pass


class SqlLocalStore(LocalStore):
    def __init__(self, db: DatabaseManager) -> None:
        self._db = db

    async def fetch_match_rows(self, puuid: str, queue_id: int, since_ms: int) -> list[LocalMatchRow]:
        stmt = (
            select(
                MatchParticipantORM.match_id,
                MatchParticipantORM.win,
                MatchParticipantORM.end_type,
                MatchORM.queue_id,
                MatchORM.game_end_ts,
            )
            .join(MatchORM, MatchORM.match_id == MatchParticipantORM.match_id)
            .where(
                MatchParticipantORM.puuid == puuid,
                MatchORM.queue_id == queue_id,
                MatchORM.game_end_ts >= since_ms,
            )
            .order_by(MatchORM.game_end_ts.desc())
        )
        try:
            async with atrack_latency(LOCAL_QUERY_LATENCY, query="match_rows"), self._db.read_session() as session:
                result = await session.execute(stmt)
                rows = result.all()
        except SQLAlchemyError as exc:
            logger.error("local_store_query_failed", query="match_rows", puuid=puuid, error=str(exc))
            raise LocalStoreError(f"match rows query failed: {exc}") from exc

        return [
            LocalMatchRow(
                match_id=r.match_id,
                win=bool(r.win),
                end_type=r.end_type,
                queue_id=r.queue_id,
                game_end_ts=r.game_end_ts,
            )
            for r in rows
        ]

    async def fetch_latest_rank(self, puuid: str, queue_type: str) -> Optional[RankRecord]:
        stmt = (
            select(PlayerRankSnapshotORM)
            .where(
                PlayerRankSnapshotORM.puuid == puuid,
                PlayerRankSnapshotORM.queue_type == queue_type,
            )
            .order_by(PlayerRankSnapshotORM.fetched_at.desc())
            .limit(1)
        )
        try:
            async with atrack_latency(LOCAL_QUERY_LATENCY, query="latest_rank"), self._db.read_session() as session:
                snap = (await session.execute(stmt)).scalars().first()
        except SQLAlchemyError as exc:
            logger.error("local_store_query_failed", query="latest_rank", puuid=puuid, error=str(exc))
            raise LocalStoreError(f"rank snapshot query failed: {exc}") from exc

        if snap is None:
            return None
        return RankRecord(
            queue_type=snap.queue_type,
            wins=snap.wins or 0,
            losses=snap.losses or 0,
            tier=snap.tier,
            division=snap.rank,
            league_points=snap.league_points,
            fetched_at=snap.fetched_at,
        )

    async def fetch_player(self, puuid: str) -> Optional[PlayerIdentity]:
        try:
            async with atrack_latency(LOCAL_QUERY_LATENCY, query="player"), self._db.read_session() as session:
                player = await session.get(PlayerORM, puuid)
        except SQLAlchemyError as exc:
            logger.error("local_store_query_failed", query="player", puuid=puuid, error=str(exc))
            raise LocalStoreError(f"player query failed: {exc}") from exc

        if player is None:
            return None
        return PlayerIdentity(puuid=player.puuid, game_name=player.game_name, tag_line=player.tag_line)
