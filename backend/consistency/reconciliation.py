"""
Reconciliation: compare local match history with the Riot listing and the rank snapshot.
Detects and reports drift only; re-ingestion is someone else's job.
"""
from __future__ import annotations

from typing import Iterable, Optional

from shared.models.domain import (
    Deltas,
    LocalMatchRow,
    PlayerIdentity,
    RankRecord,
    RankSummary,
    ReconciliationReport,
    WinLoss,
)
from shared.models.enums import EndType, Queue
from shared.utils.logging import get_logger
from shared.utils.metrics import RECONCILIATION_DRIFT, RECONCILIATIONS

from consistency.config import ConsistencySettings, get_consistency_settings
from consistency.store import LocalStore
from riot.match_history import MatchHistoryFetcher
from riot.season import SeasonWindow

logger = get_logger(__name__)

DEFAULT_SAMPLE_SIZE = 20


def dedupe_rows(rows: Iterable[LocalMatchRow]) -> list[LocalMatchRow]:
    """One row per match id; the first row seen wins."""
    unique: dict[str, LocalMatchRow] = {}
    for row in rows:
        unique.setdefault(row.match_id, row)
    return list(unique.values())


def dedupe_ids(ids: Iterable[str]) -> list[str]:
    return list(dict.fromkeys(ids))


def build_report(
    *,
    puuid: str,
    season_start: str,
    queue_id: int,
    remote_ids: list[str],
    local_rows: list[LocalMatchRow],
    rank: Optional[RankRecord],
    player: Optional[PlayerIdentity] = None,
    sample_size: int = DEFAULT_SAMPLE_SIZE,
) -> ReconciliationReport:
    remote = dedupe_ids(remote_ids)
    unique_rows = dedupe_rows(local_rows)

    remote_set = set(remote)
    local_ids = [r.match_id for r in unique_rows]
    local_set = set(local_ids)

    db_wins = sum(1 for r in unique_rows if r.win)
    db_losses = len(unique_rows) - db_wins
    db_remakes = sum(1 for r in unique_rows if (r.end_type or "").upper() == EndType.REMAKE.value)

    extra_in_db = [mid for mid in local_ids if mid not in remote_set]
    missing_in_db = [mid for mid in remote if mid not in local_set]

    rank_wins = rank.wins if rank else 0
    rank_losses = rank.losses if rank else 0
    deltas = Deltas(
        games=len(unique_rows) - (rank_wins + rank_losses),
        wins=db_wins - rank_wins,
        losses=db_losses - rank_losses,
    )

    return ReconciliationReport(
        player=player or PlayerIdentity(puuid=puuid),
        season_start=season_start,
        queue_id=queue_id,
        riot_count=len(remote),
        db_rows=len(local_rows),
        db_unique_count=len(unique_rows),
        db_record=WinLoss(wins=db_wins, losses=db_losses),
        rank_record=RankSummary(
            wins=rank.wins,
            losses=rank.losses,
            tier=rank.tier,
            division=rank.division,
            lp=rank.league_points,
            fetched_at=rank.fetched_at,
        ) if rank else None,
        deltas=deltas,
        db_remakes=db_remakes,
        extra_in_db_count=len(extra_in_db),
        missing_in_db_count=len(missing_in_db),
        extra_in_db_sample=extra_in_db[:sample_size],
        missing_in_db_sample=missing_in_db[:sample_size],
        consistent=not extra_in_db and not missing_in_db and deltas == Deltas(games=0, wins=0, losses=0),
    )


class ConsistencyReconciler:
    """Builds a ReconciliationReport for one player and season window."""

    def __init__(
        self,
        history: MatchHistoryFetcher,
        store: LocalStore,
        settings: Optional[ConsistencySettings] = None,
    ) -> None:
        self._history = history
        self._store = store
        self._settings = settings or get_consistency_settings()

    async def reconcile(self, puuid: str, window: SeasonWindow) -> ReconciliationReport:
        """
        Raises:
            FetchError: The Riot listing could not be fetched completely.
            LocalStoreError: The local store query failed.
        """
        queue: Queue = self._history.queue
        try:
            remote_ids = await self._history.fetch_all_match_ids(puuid, window)
            rows = await self._store.fetch_match_rows(puuid, queue.queue_id, window.start_ms)
            rank = await self._store.fetch_latest_rank(puuid, queue.queue_type)
            player = await self._store.fetch_player(puuid)
        except Exception:
            RECONCILIATIONS.labels(outcome="failed").inc()
            raise

        report = build_report(
            puuid=puuid,
            season_start=window.start_iso,
            queue_id=queue.queue_id,
            remote_ids=remote_ids,
            local_rows=rows,
            rank=rank,
            player=player,
            sample_size=self._settings.sample_size,
        )

        RECONCILIATIONS.labels(outcome="consistent" if report.consistent else "drift").inc()
        RECONCILIATION_DRIFT.labels(kind="games").observe(abs(report.deltas.games))
        RECONCILIATION_DRIFT.labels(kind="extra_in_db").observe(report.extra_in_db_count)
        RECONCILIATION_DRIFT.labels(kind="missing_in_db").observe(report.missing_in_db_count)
        logger.info(
            "reconciliation_complete",
            puuid=puuid,
            riot_count=report.riot_count,
            db_unique_count=report.db_unique_count,
            games_delta=report.deltas.games,
            extra_in_db=report.extra_in_db_count,
            missing_in_db=report.missing_in_db_count,
        )
        return report
