"""
Consistency check entrypoint.

Usage:
    python -m consistency.main <puuid | gameName#tagLine> [seasonStartIso] [--queue solo|flex] [--platform NA1]

Prints the reconciliation report as JSON on stdout. Exits 1 on usage,
configuration or runtime errors; no partial report is printed.
"""
from __future__ import annotations

import argparse
import asyncio
import sys
import traceback
from pathlib import Path
from typing import NoReturn, Optional, Sequence

import httpx

# Ensure backend root is on path when run as a script
_backend = Path(__file__).resolve().parent.parent
if str(_backend) not in sys.path:
    sys.path.insert(0, str(_backend))

from shared.config import DEFAULT_RANKED_SEASON_START, ConfigError, Settings, load_settings
from shared.models.domain import ReconciliationReport
from shared.models.enums import Queue, RegionalRouting
from shared.utils.database import DatabaseManager
from shared.utils.http_client import ResilientFetchClient
from shared.utils.logging import get_logger, setup_logging

from consistency.config import ConsistencySettings, get_consistency_settings
from consistency.reconciliation import ConsistencyReconciler
from consistency.store import SqlLocalStore
from riot.lookups import RiotLookups
from riot.match_history import MatchHistoryFetcher
from riot.routing import routing_for_platform
from riot.season import SeasonWindow

logger = get_logger(__name__)


class IdentityNotFound(LookupError):
    pass


class _UsageParser(argparse.ArgumentParser):
    def error(self, message: str) -> NoReturn:
        self.print_usage(sys.stderr)
        self.exit(1, f"{self.prog}: error: {message}\n")


def build_parser() -> argparse.ArgumentParser:
    parser = _UsageParser(
        prog="ladderwatch-consistency",
        description="Compare a player's stored match history with the Riot API.",
    )
    parser.add_argument("identity", help="puuid, or a Riot ID as gameName#tagLine")
    parser.add_argument("season_start", nargs="?", default=None, help="ISO-8601 season start")
    parser.add_argument("--queue", choices=[q.value for q in Queue], default=Queue.RANKED_SOLO.value)
    parser.add_argument("--platform", default=None, help="Platform id (NA1, EUW1, KR, ...) for routing")
    return parser


async def run(
    identity: str,
    window: SeasonWindow,
    queue: Queue,
    routing: RegionalRouting,
    settings: Settings,
    consistency: ConsistencySettings,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> ReconciliationReport:
    db = DatabaseManager.from_settings(settings)
    await db.connect()
    try:
        async with ResilientFetchClient(
            settings.riot_api_key,
            timeout_s=consistency.fetch_timeout_s,
            max_retries=consistency.max_retries,
            retry_delay_s=consistency.retry_delay_s,
            transport=transport,
        ) as client:
            puuid = await RiotLookups(client).resolve_puuid(identity)
            if puuid is None:
                raise IdentityNotFound(f"No account found for {identity}")

            history = MatchHistoryFetcher(
                client,
                routing=routing,
                queue=queue,
                page_size=consistency.page_size,
                max_pages=consistency.max_pages,
            )
            reconciler = ConsistencyReconciler(history, SqlLocalStore(db), consistency)
            return await reconciler.reconcile(puuid, window)
    finally:
        await db.disconnect()


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = build_parser().parse_args(argv)

    try:
        settings = load_settings()
    except ConfigError as exc:
        print(str(exc), file=sys.stderr)
        return 1

    setup_logging(
        "consistency",
        log_level=settings.log_level,
        environment=settings.environment,
        instance_id=settings.instance_id,
    )

    routing = settings.riot_routing
    if args.platform:
        platform_routing = routing_for_platform(args.platform)
        if platform_routing is None:
            print(f"Unknown platform: {args.platform}", file=sys.stderr)
            return 1
        routing = platform_routing

    try:
        window = SeasonWindow.from_iso(
            args.season_start or settings.ranked_season_start or DEFAULT_RANKED_SEASON_START
        )
    except ValueError as exc:
        print(f"Invalid season start: {exc}", file=sys.stderr)
        return 1

    try:
        report = asyncio.run(
            run(args.identity, window, Queue(args.queue), routing, settings, get_consistency_settings())
        )
    except Exception as exc:
        logger.error("consistency_check_failed", identity=args.identity, error=str(exc))
        traceback.print_exc(file=sys.stderr)
        return 1

    print(report.model_dump_json(indent=2))
    return 0


if __name__ == "__main__":
    sys.exit(main())
